"""Whitted-style recursive ray tracing integrator.

For a ray hitting a surface point p with material m and normal n, the traced
color is

    trace(ray) = m.specular * m.reflection * trace(reflected)    (depth > 0)
               + m.diffuse  * m.refraction * trace(refracted)    (depth > 0)
               + L           for the eye ray
               + m.diffuse * L   for secondary rays

where L is the local illumination: per light, the Lambert and Phong terms
scaled by the shadow-attenuated light color, plus the ambient color once.
Rays that hit nothing take the background color.

Taichi functions cannot recurse, so the recursion runs on an explicit work
stack. Each work item is a ray, the product of the coefficients on the path
from the eye ray (its weight) and a primary flag. Popping an item traces one
ray and pushes its reflected and refracted children. Every contribution is
linear in the weight, so the accumulated color equals the recursive
formulation. Each parallel lane (one image column) owns its own stack rows.

Shadows walk from p toward the light: every occluder met multiplies the
light color by its ``diffuse * refraction``, so opaque occluders block the
light and transparent ones tint it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.core.integrator import setup_render_target, render_row
    >>> setup_render_target(320, 240)
    >>> for y in range(240):
    ...     render_row(y, max_depth=5)
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from whitted.camera.viewbox import get_primary_ray
from whitted.core.ray import Ray, clamp_color, make_ray, max_channel, reflect, refract
from whitted.lights.light import (
    light_color,
    light_direction,
    light_distance_squared,
    num_lights,
)
from whitted.materials.material import ShadingMaterial
from whitted.scene.background import background_color
from whitted.scene.intersection import (
    primitive_material,
    primitive_normal,
    ray_intersection,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Maximum recursion depth accepted for eye rays
MAX_TRACE_DEPTH = 16

# Work stack slots per lane
STACK_CAPACITY = MAX_TRACE_DEPTH + 2

# Offset of child ray origins along their direction
RAY_EPSILON = 1e-3

# Step taken past the current test point by each shadow ray
SHADOW_STEP = 0.01

# Attenuated light below this maximum channel counts as fully shadowed
SHADOW_THRESHOLD = 0.003

# Upper bound on occluders crossed by one shadow walk
MAX_SHADOW_STEPS = 64

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# One lane per image column
MAX_LANES = MAX_IMAGE_WIDTH

# =============================================================================
# Work Stack Storage
# =============================================================================

_stack_origin = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_LANES, STACK_CAPACITY))
_stack_direction = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_LANES, STACK_CAPACITY))
_stack_depth = ti.field(dtype=ti.i32, shape=(MAX_LANES, STACK_CAPACITY))
_stack_weight = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_LANES, STACK_CAPACITY))
_stack_primary = ti.field(dtype=ti.i32, shape=(MAX_LANES, STACK_CAPACITY))

# Reflected and refracted rays spawned per lane since the last reset
_secondary_rays = ti.field(dtype=ti.i32, shape=MAX_LANES)


@ti.func
def _push(
    lane: ti.i32,
    top: ti.i32,
    origin: vec3,
    direction: vec3,
    depth: ti.i32,
    weight: vec3,
    primary: ti.i32,
) -> ti.i32:
    """Push a work item on a lane's stack and return the new stack size."""
    new_top = top
    if top < STACK_CAPACITY:
        _stack_origin[lane, top] = origin
        _stack_direction[lane, top] = direction
        _stack_depth[lane, top] = depth
        _stack_weight[lane, top] = weight
        _stack_primary[lane, top] = primary
        new_top = top + 1
        if primary == 0:
            _secondary_rays[lane] += 1
    return new_top


# =============================================================================
# Local Illumination
# =============================================================================


@ti.func
def shadow(point: vec3, light_id: ti.i32, color: vec3) -> vec3:
    """Attenuate a light color by the occluders between point and the light.

    Args:
        point: The shaded surface point.
        light_id: Index of the light in the light table.
        color: The unattenuated light color.

    Returns:
        The light color reaching point. Opaque occluders give black.
    """
    direction = light_direction(light_id, point)
    light_distance = light_distance_squared(light_id, point)
    result = color
    test_point = point
    steps = 0
    active = 1

    while active == 1:
        ray = make_ray(test_point + SHADOW_STEP * direction, direction, 0)
        rec = ray_intersection(ray)
        if rec.hit == 0:
            active = 0
        else:
            offset = rec.point - point
            if tm.dot(offset, offset) >= light_distance:
                # Occluder behind the light
                active = 0
            else:
                m = primitive_material(rec.index, rec.point)
                result = result * m.diffuse * m.refraction
                test_point = rec.point
                steps += 1
                if max_channel(result) < SHADOW_THRESHOLD or steps >= MAX_SHADOW_STEPS:
                    active = 0

    return result


@ti.func
def illumination(ray: Ray, point: vec3, normal: vec3, m: ShadingMaterial) -> vec3:
    """Local Phong illumination at a surface point, shadows included.

    Args:
        ray: The ray that reached the point.
        point: The surface point.
        normal: Outward unit normal at point.
        m: Material at point.

    Returns:
        Sum over the lights of (diffuse + specular) scaled by the
        shadow-attenuated light color, plus the ambient color.
    """
    result = vec3(0.0, 0.0, 0.0)
    mirror = reflect(ray.direction, normal)

    for i in range(num_lights[None]):
        to_light = light_direction(i, point)
        lit = shadow(point, i, light_color(i, point))

        diffuse = ti.max(0.0, tm.dot(to_light, normal)) * m.diffuse
        specular = vec3(0.0, 0.0, 0.0)
        cos_spec = tm.dot(to_light, mirror)
        if cos_spec >= 0.0:
            specular = (cos_spec**m.shininess) * m.specular

        result += (diffuse + specular) * lit

    result += m.ambient
    return result


# =============================================================================
# Trace / Shade
# =============================================================================


@ti.func
def trace_ray(lane: ti.i32, ray: Ray) -> vec3:
    """Trace an eye ray and everything it spawns.

    Args:
        lane: Work stack lane owned by the caller.
        ray: The eye ray; its depth is the recursion budget.

    Returns:
        The unclamped color seen along the ray.
    """
    color = vec3(0.0, 0.0, 0.0)
    top = _push(lane, 0, ray.origin, ray.direction, ray.depth, vec3(1.0, 1.0, 1.0), 1)

    while top > 0:
        top -= 1
        current = Ray(
            origin=_stack_origin[lane, top],
            direction=_stack_direction[lane, top],
            depth=_stack_depth[lane, top],
        )
        weight = _stack_weight[lane, top]
        primary = _stack_primary[lane, top]

        rec = ray_intersection(current)
        if rec.hit == 0:
            color += weight * background_color(current)
        else:
            p = rec.point
            n = primitive_normal(rec.index, p)
            m = primitive_material(rec.index, p)

            if current.depth > 0 and m.reflection > 0.0:
                reflected = reflect(current.direction, n)
                top = _push(
                    lane,
                    top,
                    p + RAY_EPSILON * reflected,
                    reflected,
                    current.depth - 1,
                    weight * m.specular * m.reflection,
                    0,
                )

            if current.depth > 0 and m.refraction > 0.0:
                # Falls back to the mirror direction on total internal reflection
                refracted = refract(
                    current.direction, n, m.out_refractive_index, m.in_refractive_index
                )
                top = _push(
                    lane,
                    top,
                    p + RAY_EPSILON * refracted,
                    refracted,
                    current.depth - 1,
                    weight * m.diffuse * m.refraction,
                    0,
                )

            local = illumination(current, p, n, m)
            if primary == 1:
                color += weight * local
            else:
                color += weight * m.diffuse * local

    return color


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Clamped pixel colors, indexed [x, y] with y = 0 the top row
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image dimensions and clear the buffer.

    Args:
        width: Image width in pixels, in [2, MAX_IMAGE_WIDTH].
        height: Image height in pixels, in [2, MAX_IMAGE_HEIGHT].

    Raises:
        ValueError: If a dimension is below 2 or exceeds the maximum.
    """
    if width < 2 or height < 2:
        raise ValueError(f"Image dimensions must be at least 2x2, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Clear the image buffer and the ray counters."""
    _color_buffer.fill(0.0)
    _secondary_rays.fill(0)


def reset_render_target() -> None:
    """Forget the render target dimensions."""
    _render_target_initialized[None] = 0
    clear_render_target()


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_row(y: ti.i32, width: ti.i32, height: ti.i32, depth: ti.i32):
    """Trace every pixel of row y, one lane per column."""
    for x in range(width):
        ray = get_primary_ray(x, y, width, height, depth)
        color = trace_ray(x, ray)

        for c in ti.static(range(3)):
            if tm.isnan(color[c]) or tm.isinf(color[c]):
                color[c] = 0.0

        _color_buffer[x, y] = clamp_color(color)


# Staging fields for the single-ray kernels
_single_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_single_direction = ti.Vector.field(3, dtype=ti.f32, shape=())
_single_depth = ti.field(dtype=ti.i32, shape=())
_single_color = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _trace_single():
    # Single iteration keeps the inner loops serial
    for _ in range(1):
        ray = make_ray(_single_origin[None], _single_direction[None], _single_depth[None])
        _single_color[None] = trace_ray(0, ray)


@ti.kernel
def _background_single():
    for _ in range(1):
        ray = make_ray(_single_origin[None], _single_direction[None], 0)
        _single_color[None] = background_color(ray)


# =============================================================================
# Public Rendering API
# =============================================================================


def _validate_depth(max_depth: int) -> None:
    if not 0 <= max_depth <= MAX_TRACE_DEPTH:
        raise ValueError(f"max_depth must be in [0, {MAX_TRACE_DEPTH}], got {max_depth}")


def render_row(y: int, max_depth: int) -> None:
    """Render one scanline of the active render target.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If y or max_depth is out of range.
    """
    _check_render_target_initialized()
    _validate_depth(max_depth)
    width, height = get_image_dimensions()
    if not 0 <= y < height:
        raise ValueError(f"Row {y} outside image of height {height}")
    _render_row(y, width, height, max_depth)


def trace_single(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int,
) -> tuple[float, float, float]:
    """Trace one ray against the resident scene, unclamped.

    Resets the secondary ray counters first, so
    get_secondary_ray_count() afterwards reports the rays this call spawned.

    Raises:
        ValueError: If depth is out of range.
    """
    _validate_depth(depth)
    _secondary_rays.fill(0)
    _single_origin[None] = vec3(*origin)
    _single_direction[None] = vec3(*direction)
    _single_depth[None] = depth
    _trace_single()
    color = _single_color[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def background_single(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> tuple[float, float, float]:
    """Background color of one ray against the resident lights."""
    _single_origin[None] = vec3(*origin)
    _single_direction[None] = vec3(*direction)
    _background_single()
    color = _single_color[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def get_secondary_ray_count() -> int:
    """Reflected and refracted rays spawned since the counters were reset."""
    return int(_secondary_rays.to_numpy().sum())


def get_image_numpy() -> np.ndarray:
    """Get the rendered image as a NumPy array.

    Returns:
        Array of shape (height, width, 3), dtype float32, values in [0, 1],
        row 0 at the top.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()

    full_image = _color_buffer.to_numpy()
    image = full_image[:width, :height, :]

    # (width, height, 3) -> (height, width, 3)
    image = np.transpose(image, (1, 0, 2))
    return np.ascontiguousarray(image, dtype=np.float32)
