"""Core rendering module.

Components:
    ray: Ray data structure, vector and color utilities
    integrator: Recursive trace/shade with shadows, reflection, refraction
    renderer: Renderer driving the per-scanline render loop

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    Ray,
    clamp_color,
    clamp_color_tuple,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    max_channel,
    ray_at,
    reflect,
    refract,
    safe_normalize,
    total_internal_reflection,
    vec3,
)

# integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from whitted.core.renderer when needed:
#   from whitted.core.renderer import Renderer

__all__ = [
    "Ray",
    "make_ray",
    "ray_at",
    "vec3",
    "dot",
    "cross",
    "length",
    "length_squared",
    "safe_normalize",
    "reflect",
    "refract",
    "total_internal_reflection",
    "max_channel",
    "clamp_color",
    "clamp_color_tuple",
]
