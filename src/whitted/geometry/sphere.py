"""Sphere primitive with closest-approach ray-sphere intersection.

The intersection test first measures how far the ray's supporting line
passes from the center. With a unit direction d and ``oc = origin - center``:

    b      = d . oc                      (signed distance to closest approach)
    metric = |oc|^2 - b^2 - r^2          (squared line distance minus r^2)

metric > 0 means the line misses the sphere. Otherwise the roots are
``t = -b -/+ sqrt(-metric)``; the smaller non-negative one gives the hit
point, so a ray starting inside the sphere reports the exit point. When both
roots are behind the origin the metric is replaced by ``b^2``, which is
strictly positive in that case.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.geometry.sphere import SphereObject
    >>> from whitted.materials.material import Material
    >>> ball = SphereObject(center=(0.0, 0.0, 0.0), radius=2.0, material=Material.glass())
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

# Preview tessellation: latitude bands and longitude slices
NLAT = 16
NLON = 24


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.func
def intersect_sphere(ray: Ray, sphere: Sphere) -> PrimitiveHit:
    """Test a ray against a sphere.

    Args:
        ray: The ray to test (unit direction).
        sphere: The sphere to test against.

    Returns:
        A PrimitiveHit whose metric is <= 0 on a hit. On a hit, point is the
        first intersection at or in front of the ray origin.
    """
    oc = ray.origin - sphere.center
    b = tm.dot(ray.direction, oc)
    metric = tm.dot(oc, oc) - b * b - sphere.radius * sphere.radius
    point = ray.origin

    if metric <= 0.0:
        half_chord = ti.sqrt(ti.max(0.0, -metric))
        t1 = -b - half_chord
        t2 = -b + half_chord
        if t1 >= 0.0:
            point = ray_at(ray, t1)
        elif t2 >= 0.0:
            point = ray_at(ray, t2)
        else:
            # Sphere entirely behind the origin
            metric = b * b

    return PrimitiveHit(metric=metric, point=point)


@ti.func
def sphere_normal(sphere: Sphere, point: vec3) -> vec3:
    """Outward unit normal at a point of the sphere surface."""
    return safe_normalize(point - sphere.center)


class SphereObject(Primitive):
    """A sphere with a single material.

    Attributes:
        center: Center of the sphere in world space.
        radius: Radius of the sphere (> 0).
        material: Material of the whole surface.
    """

    kind = PrimitiveKind.SPHERE

    def __init__(self, center: Vector, radius: float, material: Material) -> None:
        super().__init__()
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        self.center = as_vector(center, "center")
        self.radius = float(radius)
        self.material = material

    def get_normal(self, point: Vector) -> Vector:
        u = [point[i] - self.center[i] for i in range(3)]
        l2 = u[0] * u[0] + u[1] * u[1] + u[2] * u[2]
        if l2 != 0.0:
            norm = math.sqrt(l2)
            u = [c / norm for c in u]
        return (u[0], u[1], u[2])

    def get_material(self, point: Vector) -> Material:
        return self.material

    def materials(self) -> list[Material]:
        return [self.material]

    def pack(self, material_ids: dict[Material, int]) -> PrimitiveRecord:
        material_id = material_ids[self.material]
        return PrimitiveRecord(
            kind=self.kind,
            center=self.center,
            radius=self.radius,
            material_id=material_id,
            band_material_id=material_id,
        )

    def localize(self, latitude: float, longitude: float) -> Vector:
        """Point of the surface at the given latitude/longitude in degrees.

        Latitude +90 is the pole along +z.
        """
        lat = math.radians(latitude)
        lon = math.radians(longitude)
        return (
            self.center[0] + self.radius * math.cos(lon) * math.cos(lat),
            self.center[1] + self.radius * math.sin(lon) * math.cos(lat),
            self.center[2] + self.radius * math.sin(lat),
        )

    def mesh(
        self,
    ) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32], npt.NDArray[np.int32]]:
        lat = np.radians(np.linspace(-90.0, 90.0, NLAT + 1))
        lon = np.radians(np.linspace(0.0, 360.0, NLON + 1))
        lon_grid, lat_grid = np.meshgrid(lon, lat)

        normals = np.stack(
            [
                np.cos(lon_grid) * np.cos(lat_grid),
                np.sin(lon_grid) * np.cos(lat_grid),
                np.sin(lat_grid),
            ],
            axis=-1,
        ).reshape(-1, 3)
        vertices = np.asarray(self.center) + self.radius * normals

        # Two triangles per latitude/longitude cell
        row = NLON + 1
        indices = []
        for y in range(NLAT):
            for x in range(NLON):
                a = y * row + x
                b = a + row
                indices.extend([a, a + 1, b, a + 1, b + 1, b])

        return (
            vertices.astype(np.float32),
            normals.astype(np.float32),
            np.asarray(indices, dtype=np.int32),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "sphere",
            "center": list(self.center),
            "radius": self.radius,
            "material": self.material.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SphereObject":
        return cls(
            center=as_vector(data["center"], "center"),
            radius=float(data["radius"]),
            material=Material.from_dict(data.get("material", {})),
        )

    def __repr__(self) -> str:
        return f"SphereObject(center={self.center}, radius={self.radius})"
