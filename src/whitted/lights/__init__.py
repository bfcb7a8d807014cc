"""Lights module: light sources consumed by the shading kernels.

Components:
    light: Point and directional lights plus the kernel-side light table

Shading code only relies on two questions per light and surface point:
the direction toward the light and the color it contributes.
"""

from .light import (
    MAX_LIGHTS,
    DirectionalLight,
    Light,
    LightKind,
    PointLight,
    add_light,
    clear_lights,
    get_light_count,
    light_color,
    light_direction,
    light_distance_squared,
    light_from_dict,
    num_lights,
)

__all__ = [
    "Light",
    "LightKind",
    "PointLight",
    "DirectionalLight",
    "light_from_dict",
    "add_light",
    "clear_lights",
    "get_light_count",
    "light_direction",
    "light_color",
    "light_distance_squared",
    "num_lights",
    "MAX_LIGHTS",
]
