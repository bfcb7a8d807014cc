"""Scene container: graphical objects, lights and their kernel-side upload.

A Scene owns an ordered list of primitives and an ordered list of lights.
Adding an object or a light transfers ownership to the scene; an object
already owned by a scene cannot be added again, to this scene or another.

Rendering kernels read the scene from module-level Taichi fields (material
registry, light table, primitive table). Only one scene is resident in those
fields at a time: upload() writes this scene into them and records which
scene and which revision of it is resident, so callers can skip redundant
uploads.

Scenes can be saved to and loaded from JSON description files:

    {
      "objects": [{"type": "sphere", "center": [...], "radius": 1.0,
                   "material": {...}}, ...],
      "lights": [{"type": "point", "position": [...], "color": [...]}, ...]
    }

Example:
    >>> from whitted.scene.manager import Scene
    >>> from whitted.geometry.sphere import SphereObject
    >>> from whitted.lights.light import PointLight
    >>> from whitted.materials.material import Material
    >>> scene = Scene()
    >>> scene.add_object(SphereObject((0.0, 0.0, 0.0), 1.0, Material.mirror()))
    >>> scene.add_light(PointLight(position=(0.0, 0.0, 5.0)))
    >>> scene.upload()
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from whitted.geometry.primitive import Primitive, primitive_from_dict
from whitted.lights.light import Light, add_light, clear_lights, light_from_dict
from whitted.materials.material import Material, add_material, clear_materials
from whitted.scene.intersection import (
    ClosestHit,
    add_primitive,
    clear_primitives,
    query_closest_hit,
)

if TYPE_CHECKING:
    from whitted.preview.interactive import InteractivePreview

# Scene currently written into the kernel-side tables, and its revision
_resident_scene: Scene | None = None
_resident_revision = -1


def resident_scene() -> Scene | None:
    """Return the scene whose data is currently in the kernel-side tables."""
    return _resident_scene


def clear_resident_scene() -> None:
    """Empty every kernel-side table and forget the resident scene."""
    global _resident_scene, _resident_revision
    clear_primitives()
    clear_materials()
    clear_lights()
    _resident_scene = None
    _resident_revision = -1


class Scene:
    """An ordered collection of graphical objects and lights.

    Attributes:
        objects: Primitives in insertion order (ties in the closest-hit
            query go to the earlier one).
        lights: Lights in insertion order.
        revision: Counter bumped on every modification.
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.objects: list[Primitive] = []
        self.lights: list[Light] = []
        self.revision = 0

    # =========================================================================
    # Content Management
    # =========================================================================

    def add_object(self, obj: Primitive) -> int:
        """Add a graphical object, taking ownership of it.

        Args:
            obj: The primitive to add.

        Returns:
            The index of the object in insertion order.

        Raises:
            ValueError: If the object already belongs to a scene.
        """
        if obj.owner is not None:
            raise ValueError(f"{obj!r} already belongs to a scene")
        obj.owner = self
        self.objects.append(obj)
        self.revision += 1
        return len(self.objects) - 1

    def add_light(self, light: Light) -> int:
        """Add a light, taking ownership of it.

        Args:
            light: The light to add.

        Returns:
            The index of the light in insertion order.

        Raises:
            ValueError: If the light already belongs to a scene.
        """
        if light.owner is not None:
            raise ValueError(f"{light!r} already belongs to a scene")
        light.owner = self
        self.lights.append(light)
        self.revision += 1
        return len(self.lights) - 1

    def clear(self) -> None:
        """Remove every object and light, releasing their ownership."""
        for obj in self.objects:
            obj.owner = None
        for light in self.lights:
            light.owner = None
        self.objects.clear()
        self.lights.clear()
        self.revision += 1

    def get_object_count(self) -> int:
        return len(self.objects)

    def get_light_count(self) -> int:
        return len(self.lights)

    def materials(self) -> list[Material]:
        """Distinct materials used by the objects, in first-use order."""
        seen: dict[Material, None] = {}
        for obj in self.objects:
            for material in obj.materials():
                seen.setdefault(material, None)
        return list(seen)

    # =========================================================================
    # Kernel-side Upload
    # =========================================================================

    def upload(self) -> None:
        """Write the scene into the kernel-side tables.

        Raises:
            RuntimeError: If a table capacity is exceeded. The tables are
                left empty in that case.
        """
        global _resident_scene, _resident_revision
        clear_resident_scene()
        try:
            material_ids = {material: add_material(material) for material in self.materials()}
            for light in self.lights:
                add_light(light)
            for obj in self.objects:
                add_primitive(obj.pack(material_ids))
        except RuntimeError:
            clear_resident_scene()
            raise
        _resident_scene = self
        _resident_revision = self.revision

    def is_resident(self) -> bool:
        """Whether the current revision of this scene is in the tables."""
        return _resident_scene is self and _resident_revision == self.revision

    def ensure_resident(self) -> None:
        """Upload the scene unless its current revision is already resident."""
        if not self.is_resident():
            self.upload()

    def closest_hit(
        self,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
    ) -> ClosestHit:
        """Closest object hit by a ray, uploading the scene if needed."""
        self.ensure_resident()
        return query_closest_hit(origin, direction)

    # =========================================================================
    # Preview Collaborator Hooks
    # =========================================================================

    def init(self, viewer: InteractivePreview) -> None:
        """Prepare every object and light for the preview (called once)."""
        for obj in self.objects:
            obj.init(viewer)
        for light in self.lights:
            light.init(viewer)

    def light(self, viewer: InteractivePreview) -> None:
        """Register the scene lights as preview illumination."""
        for light in self.lights:
            light.light(viewer)

    def draw(self, viewer: InteractivePreview) -> None:
        """Draw every object and light gizmo (called every frame)."""
        for obj in self.objects:
            obj.draw(viewer)
        for light in self.lights:
            light.draw(viewer)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene as a JSON-compatible dictionary."""
        return {
            "objects": [obj.to_dict() for obj in self.objects],
            "lights": [light.to_dict() for light in self.lights],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Scene:
        """Build a scene from a description dictionary.

        Raises:
            ValueError: If an entry has an unknown type, a missing key or an
                invalid value.
        """
        scene = cls()
        try:
            for entry in data.get("objects", []):
                scene.add_object(primitive_from_dict(entry))
            for entry in data.get("lights", []):
                scene.add_light(light_from_dict(entry))
        except KeyError as exc:
            raise ValueError(f"Missing key in scene description: {exc}") from exc
        return scene

    def __repr__(self) -> str:
        return f"Scene(objects={len(self.objects)}, lights={len(self.lights)})"


def load_scene(path: str | Path) -> Scene:
    """Load a scene from a JSON description file.

    Raises:
        ValueError: If the file is not valid JSON or describes an invalid
            scene.
    """
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid scene file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Invalid scene file {path}: expected a JSON object")
    return Scene.from_dict(data)


def save_scene(scene: Scene, path: str | Path) -> None:
    """Write a scene to a JSON description file."""
    with open(path, "w") as f:
        json.dump(scene.to_dict(), f, indent=2)
