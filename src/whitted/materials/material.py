"""Phong-style material model with reflection and refraction coefficients.

A material describes how a surface point answers light:

    - ambient: color added once, regardless of lights and shadows
    - diffuse: Lambert term, also the tint of transmitted light
    - specular: Phong highlight color, also the tint of mirrored light
    - shininess: Phong exponent controlling the highlight lobe sharpness
    - reflection: mirror coefficient in [0, 1] (0 = none, 1 = perfect mirror)
    - refraction: transmission coefficient in [0, 1] (0 = opaque)
    - out_refractive_index / in_refractive_index: Snell indices outside and
      inside the object

Energy conservation between the diffuse, reflected and refracted terms is
not enforced: coefficients are artistic knobs, not physical quantities.

Materials are immutable values. Primitives reference them, and the scene
copies them into a structure-of-arrays registry of Taichi fields when it is
uploaded for rendering.

Example:
    >>> from whitted.materials.material import Material
    >>> glass = Material.glass()
    >>> glass.refraction
    0.9
    >>> red = Material.matte((0.8, 0.1, 0.1))
"""

from dataclasses import dataclass
from typing import Any

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

Color = tuple[float, float, float]


def _validate_color(name: str, color: Color) -> None:
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 channels, got {len(color)}")
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"{name} channel {i} = {component} is negative")


@dataclass(frozen=True)
class Material:
    """Surface material of a primitive.

    Attributes:
        ambient: Ambient color (RGB, non-negative).
        diffuse: Diffuse color (RGB, non-negative).
        specular: Specular color (RGB, non-negative).
        shininess: Phong exponent (>= 0).
        reflection: Reflection coefficient in [0, 1].
        refraction: Refraction coefficient in [0, 1].
        out_refractive_index: Refractive index outside the object (> 0).
        in_refractive_index: Refractive index inside the object (> 0).
    """

    ambient: Color = (0.0, 0.0, 0.0)
    diffuse: Color = (0.0, 0.0, 0.0)
    specular: Color = (0.0, 0.0, 0.0)
    shininess: float = 1.0
    reflection: float = 0.0
    refraction: float = 0.0
    out_refractive_index: float = 1.0
    in_refractive_index: float = 1.0

    def __post_init__(self) -> None:
        for name in ("ambient", "diffuse", "specular"):
            color = getattr(self, name)
            _validate_color(name, color)
            # Stored as float tuples so materials stay hashable
            object.__setattr__(self, name, tuple(float(c) for c in color))
        if self.shininess < 0.0:
            raise ValueError(f"shininess must be non-negative, got {self.shininess}")
        if not 0.0 <= self.reflection <= 1.0:
            raise ValueError(f"reflection must be in [0, 1], got {self.reflection}")
        if not 0.0 <= self.refraction <= 1.0:
            raise ValueError(f"refraction must be in [0, 1], got {self.refraction}")
        if self.out_refractive_index <= 0.0 or self.in_refractive_index <= 0.0:
            raise ValueError(
                "Refractive indices must be positive, got "
                f"out={self.out_refractive_index}, in={self.in_refractive_index}"
            )

    # =========================================================================
    # Presets
    # =========================================================================

    @classmethod
    def matte(cls, color: Color) -> "Material":
        """A dull diffuse material with a faint ambient of the same hue."""
        return cls(
            ambient=(0.1 * color[0], 0.1 * color[1], 0.1 * color[2]),
            diffuse=color,
            specular=(0.0, 0.0, 0.0),
            shininess=1.0,
        )

    @classmethod
    def white_plastic(cls) -> "Material":
        return cls(
            ambient=(0.1, 0.1, 0.1),
            diffuse=(0.7, 0.7, 0.7),
            specular=(1.0, 1.0, 1.0),
            shininess=5.0,
        )

    @classmethod
    def red_plastic(cls) -> "Material":
        return cls(
            ambient=(0.1, 0.0, 0.0),
            diffuse=(0.85, 0.05, 0.05),
            specular=(1.0, 1.0, 0.98),
            shininess=5.0,
        )

    @classmethod
    def bronze(cls) -> "Material":
        return cls(
            ambient=(0.1125, 0.0675, 0.054),
            diffuse=(0.714, 0.4284, 0.18144),
            specular=(0.393548, 0.271906, 0.166721),
            shininess=56.0,
            reflection=0.5,
        )

    @classmethod
    def emerald(cls) -> "Material":
        return cls(
            ambient=(0.0215, 0.1745, 0.0215),
            diffuse=(0.07568, 0.61424, 0.07568),
            specular=(0.633, 0.727811, 0.633),
            shininess=76.8,
            reflection=0.3,
            refraction=0.5,
            out_refractive_index=1.0,
            in_refractive_index=1.57,
        )

    @classmethod
    def mirror(cls) -> "Material":
        return cls(
            ambient=(0.0, 0.0, 0.0),
            diffuse=(0.0, 0.0, 0.0),
            specular=(1.0, 1.0, 1.0),
            shininess=100.0,
            reflection=1.0,
        )

    @classmethod
    def glass(cls) -> "Material":
        return cls(
            ambient=(0.0, 0.0, 0.0),
            diffuse=(0.95, 0.95, 1.0),
            specular=(1.0, 1.0, 1.0),
            shininess=80.0,
            reflection=0.1,
            refraction=0.9,
            out_refractive_index=1.0,
            in_refractive_index=1.5,
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the material as a JSON-compatible dictionary."""
        return {
            "ambient": list(self.ambient),
            "diffuse": list(self.diffuse),
            "specular": list(self.specular),
            "shininess": self.shininess,
            "reflection": self.reflection,
            "refraction": self.refraction,
            "out_refractive_index": self.out_refractive_index,
            "in_refractive_index": self.in_refractive_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Material":
        """Build a material from a dictionary, missing keys take defaults.

        Raises:
            ValueError: If a key is unknown or a value is out of range.
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown material keys: {sorted(unknown)}")
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key in ("ambient", "diffuse", "specular"):
                kwargs[key] = tuple(float(c) for c in value)
            else:
                kwargs[key] = float(value)
        return cls(**kwargs)


# =============================================================================
# Kernel-side Material Record
# =============================================================================


@ti.dataclass
class ShadingMaterial:
    """Material properties as seen by the shading kernels."""

    ambient: vec3
    diffuse: vec3
    specular: vec3
    shininess: ti.f32
    reflection: ti.f32
    refraction: ti.f32
    out_refractive_index: ti.f32
    in_refractive_index: ti.f32


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of materials resident at once
MAX_MATERIALS = 1024

# Storage for material properties: Structure of Arrays layout
material_ambient = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_diffuse = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_specular = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_shininess = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_reflection = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_refraction = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_out_index = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_in_index = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear the material registry.

    Resets the material count to zero. Existing data in the fields will be
    overwritten when new materials are added.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Copy a material into the registry.

    Args:
        material: The material to store.

    Returns:
        The index of the stored material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_ambient[idx] = vec3(*material.ambient)
    material_diffuse[idx] = vec3(*material.diffuse)
    material_specular[idx] = vec3(*material.specular)
    material_shininess[idx] = material.shininess
    material_reflection[idx] = material.reflection
    material_refraction[idx] = material.refraction
    material_out_index[idx] = material.out_refractive_index
    material_in_index[idx] = material.in_refractive_index
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the registry."""
    return int(num_materials[None])


@ti.func
def load_material(material_id: ti.i32) -> ShadingMaterial:
    """Read a material record from the registry.

    Args:
        material_id: The index returned by add_material().

    Returns:
        The ShadingMaterial stored at that index.
    """
    return ShadingMaterial(
        ambient=material_ambient[material_id],
        diffuse=material_diffuse[material_id],
        specular=material_specular[material_id],
        shininess=material_shininess[material_id],
        reflection=material_reflection[material_id],
        refraction=material_refraction[material_id],
        out_refractive_index=material_out_index[material_id],
        in_refractive_index=material_in_index[material_id],
    )
