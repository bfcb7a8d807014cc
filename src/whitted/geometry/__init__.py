"""Geometry module for the primitives a scene can hold.

Components:
    primitive: Common primitive interface and kernel-side hit record
    sphere: Sphere with closest-approach ray intersection
    plane: Infinite periodic plane with banded materials

Kernel-side intersection functions return a PrimitiveHit(metric, point):
a metric <= 0 means the ray hits the primitive at point.
"""

from .plane import PeriodicPlane, Plane, intersect_plane, plane_in_band, plane_normal
from .primitive import Primitive, PrimitiveHit, PrimitiveKind, PrimitiveRecord, primitive_from_dict
from .sphere import Sphere, SphereObject, intersect_sphere, sphere_normal

__all__ = [
    "Primitive",
    "PrimitiveHit",
    "PrimitiveKind",
    "PrimitiveRecord",
    "primitive_from_dict",
    "Sphere",
    "SphereObject",
    "intersect_sphere",
    "sphere_normal",
    "Plane",
    "PeriodicPlane",
    "intersect_plane",
    "plane_normal",
    "plane_in_band",
]
