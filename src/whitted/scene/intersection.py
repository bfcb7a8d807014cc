"""Scene-level closest-hit query over the primitive table.

Primitives of every kind live in one tagged structure-of-arrays table. The
query scans it in insertion order, keeps the hit closest to the ray origin
(smallest squared distance), and resolves ties in favour of the primitive
encountered first. Normal and material lookups dispatch on the kind tag.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.scene.intersection import query_closest_hit
    >>> # After Scene.upload():
    >>> hit = query_closest_hit((0.0, 0.0, -10.0), (0.0, 0.0, 1.0))
    >>> hit.hit, hit.index
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray, make_ray
from whitted.geometry.plane import Plane, intersect_plane, plane_in_band, plane_normal
from whitted.geometry.primitive import PrimitiveHit, PrimitiveKind, PrimitiveRecord
from whitted.geometry.sphere import Sphere, intersect_sphere, sphere_normal
from whitted.materials.material import ShadingMaterial, load_material

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class SceneHit:
    """Result of a closest-hit scene query.

    Attributes:
        hit: 1 if any primitive was hit, 0 otherwise.
        index: Index of the closest primitive in the table, -1 on a miss.
        point: The closest intersection point. Only valid if hit == 1.
    """

    hit: ti.i32
    index: ti.i32
    point: vec3


# =============================================================================
# Primitive Field Storage
# =============================================================================

# Maximum number of primitives resident at once
MAX_PRIMITIVES = 1024

prim_kinds = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
# Sphere center or point of a plane
prim_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
# Sphere radius or band width of a plane
prim_radii = ti.field(dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_axis_u = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_axis_v = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_material_ids = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
prim_band_material_ids = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
num_primitives = ti.field(dtype=ti.i32, shape=())


def clear_primitives() -> None:
    """Clear all primitives from the primitive table.

    Resets the primitive count to zero. The field data is overwritten when
    new primitives are added.
    """
    num_primitives[None] = 0


def add_primitive(record: PrimitiveRecord) -> int:
    """Append a flattened primitive to the primitive table.

    Args:
        record: The primitive data produced by Primitive.pack().

    Returns:
        The index of the added primitive.

    Raises:
        RuntimeError: If the maximum number of primitives is exceeded.
    """
    idx = num_primitives[None]
    if idx >= MAX_PRIMITIVES:
        raise RuntimeError(f"Maximum number of primitives ({MAX_PRIMITIVES}) exceeded")
    prim_kinds[idx] = int(record.kind)
    prim_centers[idx] = vec3(*record.center)
    prim_radii[idx] = record.radius
    prim_axis_u[idx] = vec3(*record.axis_u)
    prim_axis_v[idx] = vec3(*record.axis_v)
    prim_material_ids[idx] = record.material_id
    prim_band_material_ids[idx] = record.band_material_id
    num_primitives[None] = idx + 1
    return idx


def get_primitive_count() -> int:
    """Get the number of primitives in the primitive table."""
    return int(num_primitives[None])


# =============================================================================
# Kind Dispatch
# =============================================================================


@ti.func
def _load_sphere(index: ti.i32) -> Sphere:
    return Sphere(center=prim_centers[index], radius=prim_radii[index])


@ti.func
def _load_plane(index: ti.i32) -> Plane:
    return Plane(point=prim_centers[index], u=prim_axis_u[index], v=prim_axis_v[index])


@ti.func
def intersect_primitive(index: ti.i32, ray: Ray) -> PrimitiveHit:
    """Intersect a ray with the primitive stored at index."""
    result = PrimitiveHit(metric=1.0, point=ray.origin)
    kind = prim_kinds[index]
    if kind == int(PrimitiveKind.SPHERE):
        result = intersect_sphere(ray, _load_sphere(index))
    elif kind == int(PrimitiveKind.PERIODIC_PLANE):
        result = intersect_plane(ray, _load_plane(index))
    return result


@ti.func
def primitive_normal(index: ti.i32, point: vec3) -> vec3:
    """Outward unit normal of the primitive at index, at a surface point."""
    normal = vec3(0.0, 0.0, 1.0)
    kind = prim_kinds[index]
    if kind == int(PrimitiveKind.SPHERE):
        normal = sphere_normal(_load_sphere(index), point)
    elif kind == int(PrimitiveKind.PERIODIC_PLANE):
        normal = plane_normal(_load_plane(index))
    return normal


@ti.func
def primitive_material_id(index: ti.i32, point: vec3) -> ti.i32:
    """Registry index of the material of the primitive at a surface point."""
    material_id = prim_material_ids[index]
    if prim_kinds[index] == int(PrimitiveKind.PERIODIC_PLANE):
        if plane_in_band(_load_plane(index), point, prim_radii[index]) == 1:
            material_id = prim_band_material_ids[index]
    return material_id


@ti.func
def primitive_material(index: ti.i32, point: vec3) -> ShadingMaterial:
    """Material of the primitive at index, at a surface point."""
    return load_material(primitive_material_id(index, point))


# =============================================================================
# Closest-hit Query
# =============================================================================


@ti.func
def ray_intersection(ray: Ray) -> SceneHit:
    """Find the primitive hit closest to the ray origin.

    Args:
        ray: The ray to trace (unit direction).

    Returns:
        A SceneHit; hit == 0 when no primitive has a metric <= 0.
    """
    best_index = -1
    best_distance = 0.0
    best_point = ray.origin

    for i in range(num_primitives[None]):
        rec = intersect_primitive(i, ray)
        if rec.metric <= 0.0:
            offset = rec.point - ray.origin
            distance = tm.dot(offset, offset)
            if best_index < 0 or distance < best_distance:
                best_index = i
                best_distance = distance
                best_point = rec.point

    hit = 0
    if best_index >= 0:
        hit = 1
    return SceneHit(hit=hit, index=best_index, point=best_point)


@dataclass
class ClosestHit:
    """Python-side result of query_closest_hit().

    Attributes:
        hit: Whether any primitive was hit.
        index: Index of the closest primitive in insertion order, -1 on a miss.
        point: The closest intersection point (the ray origin on a miss).
    """

    hit: bool
    index: int
    point: tuple[float, float, float]


# Staging fields for the one-shot query kernel
_query_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_direction = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_index = ti.field(dtype=ti.i32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _query_kernel():
    # Single iteration keeps the primitive scan serial
    for _ in range(1):
        ray = make_ray(_query_origin[None], _query_direction[None], 0)
        rec = ray_intersection(ray)
        _query_hit[None] = rec.hit
        _query_index[None] = rec.index
        _query_point[None] = rec.point


def query_closest_hit(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> ClosestHit:
    """Run the closest-hit query for a single ray against the resident scene.

    Args:
        origin: Ray origin.
        direction: Ray direction (normalized before the query).

    Returns:
        The closest hit as a ClosestHit.
    """
    _query_origin[None] = vec3(*origin)
    _query_direction[None] = vec3(*direction)
    _query_kernel()
    point = _query_point[None]
    return ClosestHit(
        hit=bool(_query_hit[None]),
        index=int(_query_index[None]),
        point=(float(point[0]), float(point[1]), float(point[2])),
    )


# Staging fields for single-primitive tests outside the table
_single_kind = ti.field(dtype=ti.i32, shape=())
_single_center = ti.Vector.field(3, dtype=ti.f32, shape=())
_single_radius = ti.field(dtype=ti.f32, shape=())
_single_axis_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_single_axis_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_single_metric = ti.field(dtype=ti.f32, shape=())


@ti.kernel
def _intersect_record_kernel():
    for _ in range(1):
        ray = make_ray(_query_origin[None], _query_direction[None], 0)
        result = PrimitiveHit(metric=1.0, point=ray.origin)
        kind = _single_kind[None]
        if kind == int(PrimitiveKind.SPHERE):
            sphere = Sphere(center=_single_center[None], radius=_single_radius[None])
            result = intersect_sphere(ray, sphere)
        elif kind == int(PrimitiveKind.PERIODIC_PLANE):
            plane = Plane(point=_single_center[None], u=_single_axis_u[None], v=_single_axis_v[None])
            result = intersect_plane(ray, plane)
        _single_metric[None] = result.metric
        _query_point[None] = result.point


def intersect_record(
    record: PrimitiveRecord,
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> tuple[float, tuple[float, float, float]]:
    """Intersect one ray with a single flattened primitive.

    The primitive table and the resident scene are left untouched.

    Args:
        record: The primitive data produced by Primitive.pack().
        origin: Ray origin.
        direction: Ray direction (normalized before the test).

    Returns:
        Tuple of (metric, point). A metric <= 0 is a hit at point.
    """
    _single_kind[None] = int(record.kind)
    _single_center[None] = vec3(*record.center)
    _single_radius[None] = record.radius
    _single_axis_u[None] = vec3(*record.axis_u)
    _single_axis_v[None] = vec3(*record.axis_v)
    _query_origin[None] = vec3(*origin)
    _query_direction[None] = vec3(*direction)
    _intersect_record_kernel()
    point = _query_point[None]
    return float(_single_metric[None]), (float(point[0]), float(point[1]), float(point[2]))
