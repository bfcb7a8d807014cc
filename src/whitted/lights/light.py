"""Light sources: point lights and directional lights.

A light answers two questions for a surface point p:

    - direction(p): the unit vector from p toward the light
    - color(p): the color/intensity the light contributes at p

Point lights sit at a finite position; directional lights are at infinity
and only carry a direction. The kernel-side light table stores both kinds
with a kind tag, so shading code loops over every light without knowing
which kinds a scene holds.

Lights also take part in the interactive preview: light(viewer) registers
an illumination source for the rasterizer and draw(viewer) draws a small
gizmo at the light position.

Example:
    >>> from whitted.lights.light import PointLight, DirectionalLight
    >>> sun = DirectionalLight(direction=(1.0, 1.0, 2.0), color=(1.0, 1.0, 0.9))
    >>> bulb = PointLight(position=(0.0, 4.0, 6.0), color=(0.6, 0.6, 0.6))
"""

import math
from enum import IntEnum
from typing import TYPE_CHECKING, Any

import taichi as ti
import taichi.math as tm

from whitted.core.ray import safe_normalize

if TYPE_CHECKING:
    from whitted.preview.interactive import InteractivePreview

# Type alias for 3D vectors
vec3 = tm.vec3

# Squared distance reported for lights at infinity
INFINITE_DISTANCE_SQUARED = 1e30


class LightKind(IntEnum):
    """Enumeration of supported light kinds (kernel-side dispatch tag)."""

    POINT = 0
    DIRECTIONAL = 1


class Light:
    """Base class of all light sources.

    Subclasses set ``kind`` and implement direction(), color(), pack() and
    to_dict(). A light belongs to at most one scene; the owning scene is
    recorded in ``owner`` when the light is added, and assigning a public
    attribute afterwards bumps the scene revision.
    """

    kind: LightKind

    def __init__(self, emission: tuple[float, float, float]) -> None:
        if len(emission) != 3 or any(c < 0.0 for c in emission):
            raise ValueError(f"Light color must be 3 non-negative channels, got {emission}")
        self.emission = (float(emission[0]), float(emission[1]), float(emission[2]))
        self.owner: Any = None

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        owner = self.__dict__.get("owner")
        if owner is not None and name != "owner" and not name.startswith("_"):
            owner.revision += 1

    def direction(self, point: tuple[float, float, float]) -> tuple[float, float, float]:
        raise NotImplementedError

    def color(self, point: tuple[float, float, float]) -> tuple[float, float, float]:
        """Color contributed at point (constant for every light kind here)."""
        return self.emission

    def pack(self) -> tuple[int, tuple[float, float, float], tuple[float, float, float]]:
        """Return (kind, position-or-direction, color) for the light table."""
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    # Preview collaborator hooks

    def gizmo_position(self) -> tuple[float, float, float]:
        raise NotImplementedError

    def init(self, viewer: "InteractivePreview") -> None:
        pass

    def light(self, viewer: "InteractivePreview") -> None:
        viewer.add_point_light(self.gizmo_position(), self.emission)

    def draw(self, viewer: "InteractivePreview") -> None:
        viewer.draw_light_gizmo(self.gizmo_position(), self.emission)


class PointLight(Light):
    """A light located at a finite position, shining in every direction.

    Attributes:
        position: Location of the light in world space.
        emission: Light color/intensity (RGB, non-negative).
    """

    kind = LightKind.POINT

    def __init__(
        self,
        position: tuple[float, float, float],
        color: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> None:
        super().__init__(color)
        self.position = (float(position[0]), float(position[1]), float(position[2]))

    def direction(self, point: tuple[float, float, float]) -> tuple[float, float, float]:
        d = [self.position[i] - point[i] for i in range(3)]
        norm = math.sqrt(d[0] * d[0] + d[1] * d[1] + d[2] * d[2])
        if norm > 0.0:
            d = [c / norm for c in d]
        return (d[0], d[1], d[2])

    def pack(self) -> tuple[int, tuple[float, float, float], tuple[float, float, float]]:
        return int(self.kind), self.position, self.emission

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "point",
            "position": list(self.position),
            "color": list(self.emission),
        }

    def gizmo_position(self) -> tuple[float, float, float]:
        return self.position

    def __repr__(self) -> str:
        return f"PointLight(position={self.position}, color={self.emission})"


class DirectionalLight(Light):
    """A light at infinity, reaching every point from the same direction.

    Attributes:
        direction_to_light: Unit vector pointing toward the light.
        emission: Light color/intensity (RGB, non-negative).
    """

    kind = LightKind.DIRECTIONAL

    # Distance at which the preview places a light at infinity
    GIZMO_DISTANCE = 10.0

    def __init__(
        self,
        direction: tuple[float, float, float],
        color: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> None:
        super().__init__(color)
        norm = math.sqrt(sum(float(c) * float(c) for c in direction))
        if norm == 0.0:
            raise ValueError("Directional light direction must be non-zero")
        self.direction_to_light = (
            float(direction[0]) / norm,
            float(direction[1]) / norm,
            float(direction[2]) / norm,
        )

    def direction(self, point: tuple[float, float, float]) -> tuple[float, float, float]:
        return self.direction_to_light

    def pack(self) -> tuple[int, tuple[float, float, float], tuple[float, float, float]]:
        return int(self.kind), self.direction_to_light, self.emission

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "directional",
            "direction": list(self.direction_to_light),
            "color": list(self.emission),
        }

    def gizmo_position(self) -> tuple[float, float, float]:
        d = self.direction_to_light
        s = self.GIZMO_DISTANCE
        return (d[0] * s, d[1] * s, d[2] * s)

    def __repr__(self) -> str:
        return f"DirectionalLight(direction={self.direction_to_light}, color={self.emission})"


def light_from_dict(data: dict[str, Any]) -> Light:
    """Build a light from a scene description entry.

    Raises:
        ValueError: If the light type is unknown.
    """
    light_type = str(data.get("type", "")).lower()
    color = tuple(data.get("color", [1.0, 1.0, 1.0]))
    if light_type == "point":
        return PointLight(position=tuple(data.get("position", [0.0, 0.0, 0.0])), color=color)
    if light_type == "directional":
        return DirectionalLight(direction=tuple(data.get("direction", [0.0, 0.0, 1.0])), color=color)
    raise ValueError(f"Unknown light type: {light_type}")


# =============================================================================
# Light Field Storage
# =============================================================================

# Maximum number of lights resident at once
MAX_LIGHTS = 64

light_kinds = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)
# Position for point lights, unit direction toward the light for directional lights
light_vectors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Clear all lights from the light table."""
    num_lights[None] = 0


def add_light(light: Light) -> int:
    """Copy a light into the light table.

    Args:
        light: The light to store.

    Returns:
        The index of the stored light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
    """
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    kind, vector, color = light.pack()
    light_kinds[idx] = kind
    light_vectors[idx] = vec3(*vector)
    light_colors[idx] = vec3(*color)
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the number of lights in the light table."""
    return int(num_lights[None])


@ti.func
def light_direction(light_id: ti.i32, point: vec3) -> vec3:
    """Unit direction from point toward the light."""
    direction = light_vectors[light_id]
    if light_kinds[light_id] == int(LightKind.POINT):
        direction = light_vectors[light_id] - point
    return safe_normalize(direction)


@ti.func
def light_color(light_id: ti.i32, point: vec3) -> vec3:
    """Color contributed by the light at point (constant for both kinds)."""
    return light_colors[light_id]


@ti.func
def light_distance_squared(light_id: ti.i32, point: vec3) -> ti.f32:
    """Squared distance from point to the light, huge for lights at infinity."""
    result = INFINITE_DISTANCE_SQUARED
    if light_kinds[light_id] == int(LightKind.POINT):
        offset = light_vectors[light_id] - point
        result = tm.dot(offset, offset)
    return result
