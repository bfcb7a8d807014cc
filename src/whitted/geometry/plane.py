"""Periodic infinite plane: a tiled floor with bands of a second material.

A periodic plane passes through a point c and is spanned by two axes u and
v. Its normal is normalize(u x v). Every point p of the plane has
coordinates

    x = (p - c) . u / |u|^2,    y = (p - c) . v / |v|^2

and the surface uses the band material wherever the fractional part of x or
y is below the band width w, the main material elsewhere. With w = 0.1 and
unit axes this draws a grid of thin lines every unit.

The intersection metric follows the primitive contract: ``-(t^2)`` for a hit
at distance t >= 0 along the ray, a positive value when the ray is parallel
to the plane or the plane is behind the ray origin.

Example:
    >>> from whitted.geometry.plane import PeriodicPlane
    >>> from whitted.materials.material import Material
    >>> floor = PeriodicPlane(
    ...     point=(0.0, 0.0, 0.0), u=(5.0, 0.0, 0.0), v=(0.0, 5.0, 0.0),
    ...     main_material=Material.white_plastic(),
    ...     band_material=Material.red_plastic(),
    ...     band_width=0.05,
    ... )
"""

import math
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray, ray_at, safe_normalize
from whitted.geometry.primitive import (
    Primitive,
    PrimitiveHit,
    PrimitiveKind,
    PrimitiveRecord,
    Vector,
    as_vector,
)
from whitted.materials.material import Material

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# |d . n| below which a ray counts as parallel to the plane
PARALLEL_EPSILON = 1e-8

# Metric reported when the plane is not hit
MISS_METRIC = 1.0

# Half extent of the preview patch, in periods along each axis
PREVIEW_PERIODS = 10


@ti.dataclass
class Plane:
    """A plane through a point, spanned by two axes.

    Attributes:
        point: A point of the plane (vec3).
        u: First axis, also the period along that axis (vec3).
        v: Second axis, also the period along that axis (vec3).
    """

    point: vec3
    u: vec3
    v: vec3


@ti.func
def plane_normal(plane: Plane) -> vec3:
    """Unit normal of the plane, normalize(u x v)."""
    return safe_normalize(tm.cross(plane.u, plane.v))


@ti.func
def intersect_plane(ray: Ray, plane: Plane) -> PrimitiveHit:
    """Test a ray against an infinite plane.

    Args:
        ray: The ray to test (unit direction).
        plane: The plane to test against.

    Returns:
        A PrimitiveHit with metric -(t^2) for a hit at distance t, or a
        positive metric when the ray misses.
    """
    normal = plane_normal(plane)
    denom = tm.dot(ray.direction, normal)
    metric = MISS_METRIC
    point = ray.origin

    if ti.abs(denom) > PARALLEL_EPSILON:
        t = tm.dot(plane.point - ray.origin, normal) / denom
        if t >= 0.0:
            metric = -(t * t)
            point = ray_at(ray, t)

    return PrimitiveHit(metric=metric, point=point)


@ti.func
def plane_in_band(plane: Plane, point: vec3, band_width: ti.f32) -> ti.i32:
    """Return 1 when point lies on a band of the periodic pattern."""
    offset = point - plane.point
    x = tm.dot(offset, plane.u) / tm.dot(plane.u, plane.u)
    y = tm.dot(offset, plane.v) / tm.dot(plane.v, plane.v)
    result = 0
    if tm.fract(x) < band_width or tm.fract(y) < band_width:
        result = 1
    return result


class PeriodicPlane(Primitive):
    """An infinite plane tiled with bands of a second material.

    Attributes:
        point: A point of the plane (origin of the pattern).
        u: First axis and period.
        v: Second axis and period, not parallel to u.
        main_material: Material between the bands.
        band_material: Material of the bands.
        band_width: Width of the bands as a fraction of the period, in [0, 1].
    """

    kind = PrimitiveKind.PERIODIC_PLANE

    def __init__(
        self,
        point: Vector,
        u: Vector,
        v: Vector,
        main_material: Material,
        band_material: Material,
        band_width: float = 0.1,
    ) -> None:
        super().__init__()
        self.point = as_vector(point, "point")
        self.u = as_vector(u, "u")
        self.v = as_vector(v, "v")
        n = np.cross(self.u, self.v)
        if float(np.dot(n, n)) == 0.0:
            raise ValueError("Plane axes u and v must be non-zero and not parallel")
        if not 0.0 <= band_width <= 1.0:
            raise ValueError(f"band_width must be in [0, 1], got {band_width}")
        self.main_material = main_material
        self.band_material = band_material
        self.band_width = float(band_width)

    def coordinates(self, point: Vector) -> tuple[float, float]:
        """Coordinates (x, y) of a plane point in the (u, v) frame."""
        offset = np.subtract(point, self.point)
        x = float(np.dot(offset, self.u) / np.dot(self.u, self.u))
        y = float(np.dot(offset, self.v) / np.dot(self.v, self.v))
        return x, y

    def get_normal(self, point: Vector) -> Vector:
        n = np.cross(self.u, self.v)
        n = n / np.linalg.norm(n)
        return (float(n[0]), float(n[1]), float(n[2]))

    def get_material(self, point: Vector) -> Material:
        x, y = self.coordinates(point)
        if x - math.floor(x) < self.band_width or y - math.floor(y) < self.band_width:
            return self.band_material
        return self.main_material

    def materials(self) -> list[Material]:
        return [self.main_material, self.band_material]

    def pack(self, material_ids: dict[Material, int]) -> PrimitiveRecord:
        return PrimitiveRecord(
            kind=self.kind,
            center=self.point,
            radius=self.band_width,
            axis_u=self.u,
            axis_v=self.v,
            material_id=material_ids[self.main_material],
            band_material_id=material_ids[self.band_material],
        )

    def mesh(
        self,
    ) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32], npt.NDArray[np.int32]]:
        c = np.asarray(self.point)
        u = np.asarray(self.u) * PREVIEW_PERIODS
        v = np.asarray(self.v) * PREVIEW_PERIODS
        vertices = np.array([c - u - v, c + u - v, c + u + v, c - u + v])
        normals = np.tile(np.asarray(self.get_normal(self.point)), (4, 1))
        indices = np.array([0, 1, 2, 0, 2, 3], dtype=np.int32)
        return vertices.astype(np.float32), normals.astype(np.float32), indices

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "periodic_plane",
            "point": list(self.point),
            "u": list(self.u),
            "v": list(self.v),
            "main_material": self.main_material.to_dict(),
            "band_material": self.band_material.to_dict(),
            "band_width": self.band_width,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PeriodicPlane":
        return cls(
            point=as_vector(data["point"], "point"),
            u=as_vector(data["u"], "u"),
            v=as_vector(data["v"], "v"),
            main_material=Material.from_dict(data.get("main_material", {})),
            band_material=Material.from_dict(data.get("band_material", {})),
            band_width=float(data.get("band_width", 0.1)),
        )

    def __repr__(self) -> str:
        return f"PeriodicPlane(point={self.point}, u={self.u}, v={self.v})"
