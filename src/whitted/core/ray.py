"""Ray data structure, vector and color utilities for Whitted-style ray tracing.

This module provides the fundamental Ray dataclass together with the vector
and color helpers used by every other kernel-side module. A ray carries its
remaining recursion depth: a ray with depth 0 is terminal and never spawns
reflected or refracted children.

Colors are plain ``vec3`` values (red, green, blue). They are added across
light contributions and multiplied component-wise to model absorption.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.core.ray import make_ray, ray_at, vec3
    >>> @ti.kernel
    ... def point_on_ray() -> vec3:
    ...     ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, 2.0), 3)
    ...     return ray_at(ray, 5.0)  # (0, 0, 5): the direction is normalized
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Squared length below which a vector is treated as degenerate
DEGENERATE_LENGTH_SQUARED = 1e-20


@ti.dataclass
class Ray:
    """A ray with an origin, a unit direction and a remaining depth budget.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of the ray (vec3), unit length when built
            through make_ray().
        depth: Remaining number of reflection/refraction recursions allowed.
            Depth 0 means direct illumination only.
    """

    origin: vec3
    direction: vec3
    depth: ti.i32


@ti.func
def make_ray(origin: vec3, direction: vec3, depth: ti.i32) -> Ray:
    """Create a ray, normalizing its direction.

    Args:
        origin: The starting point of the ray.
        direction: Any non-zero direction vector.
        depth: The remaining recursion depth.

    Returns:
        A new Ray instance with a unit direction.
    """
    return Ray(origin=origin, direction=safe_normalize(direction), depth=depth)


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t."""
    return ray.origin + t * ray.direction


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    return tm.cross(a, b)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def length(v: vec3) -> ti.f32:
    return ti.sqrt(tm.dot(v, v))


@ti.func
def safe_normalize(v: vec3) -> vec3:
    """Normalize a vector, leaving a zero-length vector unchanged.

    Args:
        v: The input vector.

    Returns:
        A unit vector in the direction of v, or v itself when v has no
        usable length.
    """
    result = v
    l2 = tm.dot(v, v)
    if l2 > DEGENERATE_LENGTH_SQUARED:
        result = v / ti.sqrt(l2)
    return result


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident direction about a unit normal: d - 2(d.n)n.

    The result does not depend on the orientation of the normal.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, out_index: ti.f32, in_index: ti.f32) -> vec3:
    """Refract a direction through a surface using Snell's law.

    The side of the surface is read from the sign of ``incident . normal``:
    a negative sign means the ray enters the object (index ratio
    out_index / in_index), a positive sign means it leaves it (ratio
    in_index / out_index, normal flipped).

    Args:
        incident: The incoming unit direction.
        normal: The outward unit surface normal.
        out_index: Refractive index outside the object.
        in_index: Refractive index inside the object.

    Returns:
        The transmitted unit direction. On total internal reflection the
        mirror direction is returned instead.
    """
    n = normal
    eta = out_index / in_index
    cos_i = -tm.dot(incident, normal)
    if cos_i < 0.0:
        n = -normal
        eta = in_index / out_index
        cos_i = -cos_i

    k = 1.0 - eta * eta * (1.0 - cos_i * cos_i)

    direction = reflect(incident, normal)
    if k >= 0.0:
        direction = safe_normalize(eta * incident + (eta * cos_i - ti.sqrt(k)) * n)
    return direction


@ti.func
def total_internal_reflection(incident: vec3, normal: vec3, out_index: ti.f32, in_index: ti.f32) -> ti.i32:
    """Return 1 when refract() would fall back to the mirror direction."""
    eta = out_index / in_index
    cos_i = -tm.dot(incident, normal)
    if cos_i < 0.0:
        eta = in_index / out_index
        cos_i = -cos_i
    result = 0
    if 1.0 - eta * eta * (1.0 - cos_i * cos_i) < 0.0:
        result = 1
    return result


# =============================================================================
# Color Utility Functions
# =============================================================================


@ti.func
def max_channel(color: vec3) -> ti.f32:
    """Return the largest of the three channels (termination test)."""
    return ti.max(color.x, color.y, color.z)


@ti.func
def clamp_color(color: vec3) -> vec3:
    """Clamp every channel to the displayable range [0, 1]."""
    return tm.clamp(color, 0.0, 1.0)


def clamp_color_tuple(color: tuple[float, float, float]) -> tuple[float, float, float]:
    """Python-side counterpart of clamp_color()."""
    r, g, b = color
    return (
        min(max(float(r), 0.0), 1.0),
        min(max(float(g), 0.0), 1.0),
        min(max(float(b), 0.0), 1.0),
    )
