"""Materials module for the Phong/Whitted shading model.

Components:
    material: Material value type, presets, and the kernel-side registry

Each material carries ambient, diffuse and specular colors, a shininess
exponent, reflection and refraction coefficients, and the pair of refractive
indices used by Snell's law. Materials are copied into Taichi fields when a
scene is uploaded; shading kernels read them back with load_material().
"""

from .material import (
    MAX_MATERIALS,
    Material,
    ShadingMaterial,
    add_material,
    clear_materials,
    get_material_count,
    load_material,
)

__all__ = [
    "Material",
    "ShadingMaterial",
    "add_material",
    "clear_materials",
    "get_material_count",
    "load_material",
    "MAX_MATERIALS",
]
