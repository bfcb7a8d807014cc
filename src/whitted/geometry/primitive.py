"""Common interface of the graphical objects a scene can hold.

Every primitive answers the same questions, on the Python side and, through
the scene's primitive table, inside the kernels:

    - intersect(origin, direction): a signed metric (<= 0 means hit) plus
      the hit point
    - get_normal(p): the outward unit normal at a surface point
    - get_material(p): the material at a surface point (may vary with p)

Kernel-side intersection functions all return a PrimitiveHit so the scene
query can compare primitives of different kinds without knowing them.

The Python-side Primitive base class also carries the preview hooks used by
the interactive window: init(viewer) builds a rasterizable mesh once and
draw(viewer) draws it every frame.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from whitted.core.ray import clamp_color_tuple
from whitted.materials.material import Material

if TYPE_CHECKING:
    from whitted.preview.interactive import InteractivePreview

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

Vector = tuple[float, float, float]


class PrimitiveKind(IntEnum):
    """Enumeration of primitive kinds (kernel-side dispatch tag)."""

    SPHERE = 0
    PERIODIC_PLANE = 1


@ti.dataclass
class PrimitiveHit:
    """Result of a ray-primitive intersection test.

    Attributes:
        metric: Signed intersection metric. Values <= 0 mean the ray hits
            the primitive; positive values mean it misses.
        point: The hit point. Only valid when metric <= 0.
    """

    metric: ti.f32
    point: vec3


@dataclass
class PrimitiveRecord:
    """Flattened primitive data written into the scene's primitive table.

    The meaning of the generic slots depends on the kind:

        - sphere: center, radius
        - periodic plane: point on the plane, band width, axes u and v,
          band material
    """

    kind: PrimitiveKind
    center: Vector
    radius: float
    axis_u: Vector = (0.0, 0.0, 0.0)
    axis_v: Vector = (0.0, 0.0, 0.0)
    material_id: int = 0
    band_material_id: int = 0


def as_vector(value: Any, name: str) -> Vector:
    """Convert a 3-sequence to a float tuple.

    Raises:
        ValueError: If value does not have exactly 3 components.
    """
    values = tuple(float(c) for c in value)
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    return (values[0], values[1], values[2])


class Primitive:
    """Base class of everything a scene can render.

    Subclasses set ``kind`` and implement get_normal(), get_material(),
    materials(), pack(), mesh() and to_dict(). A primitive belongs to at
    most one scene; the owning scene is recorded in ``owner``. Assigning a
    public attribute of an owned primitive bumps the scene revision.
    """

    kind: PrimitiveKind

    def __init__(self) -> None:
        self.owner: Any = None
        self._preview_mesh: Any = None

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        # Any public edit invalidates the uploaded copy
        owner = self.__dict__.get("owner")
        if owner is not None and name != "owner" and not name.startswith("_"):
            owner.revision += 1

    def intersect(self, origin: Vector, direction: Vector) -> tuple[float, Vector]:
        """Intersect a ray with this primitive alone.

        Runs the same kernel-side function the scene query uses, without
        touching the resident scene.

        Args:
            origin: Ray origin.
            direction: Ray direction (normalized before the test).

        Returns:
            Tuple of (metric, point). A metric <= 0 is a hit at point.
        """
        from whitted.scene.intersection import intersect_record

        record = self.pack({material: 0 for material in self.materials()})
        return intersect_record(record, origin, direction)

    def get_normal(self, point: Vector) -> Vector:
        raise NotImplementedError

    def get_material(self, point: Vector) -> Material:
        raise NotImplementedError

    def materials(self) -> list[Material]:
        """Every material the primitive may return from get_material()."""
        raise NotImplementedError

    def pack(self, material_ids: dict[Material, int]) -> PrimitiveRecord:
        """Flatten the primitive for the primitive table.

        Args:
            material_ids: Registry index of every uploaded material.
        """
        raise NotImplementedError

    def mesh(
        self,
    ) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32], npt.NDArray[np.int32]]:
        """Triangle mesh approximating the primitive for the preview.

        Returns:
            Tuple of (vertices, normals, indices): (N, 3) float32 positions,
            (N, 3) float32 unit normals and a flat int32 triangle index list.
        """
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    def preview_color(self) -> Vector:
        """Flat color used by the rasterized preview."""
        material = self.materials()[0]
        color = tuple(a + d for a, d in zip(material.ambient, material.diffuse))
        if max(color) <= 0.0:
            color = tuple(0.5 * s for s in material.specular)
        return clamp_color_tuple((color[0], color[1], color[2]))

    # Preview collaborator hooks

    def init(self, viewer: "InteractivePreview") -> None:
        vertices, normals, indices = self.mesh()
        self._preview_mesh = viewer.create_mesh(vertices, normals, indices)

    def draw(self, viewer: "InteractivePreview") -> None:
        if self._preview_mesh is None:
            self.init(viewer)
        viewer.draw_mesh(self._preview_mesh, self.preview_color())


def primitive_from_dict(data: dict[str, Any]) -> Primitive:
    """Build a primitive from a scene description entry.

    Args:
        data: Dictionary with a "type" key ("sphere" or "periodic_plane")
            and the keys of the matching to_dict() output.

    Returns:
        The new, unowned primitive.

    Raises:
        ValueError: If the primitive type is unknown or a value is invalid.
    """
    # Concrete kinds import this module
    from whitted.geometry.plane import PeriodicPlane
    from whitted.geometry.sphere import SphereObject

    primitive_type = str(data.get("type", "")).lower()
    if primitive_type == "sphere":
        return SphereObject.from_dict(data)
    if primitive_type == "periodic_plane":
        return PeriodicPlane.from_dict(data)
    raise ValueError(f"Unknown object type: {primitive_type}")
