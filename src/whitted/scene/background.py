"""Background shader: sky gradient, fogged checkerboard ground, light glows.

Rays that hit nothing take their color from the background. The z axis is
up. For a unit direction d:

    - sky (d.z >= 0): horizon + d.z * (sky - horizon), white at the horizon
      fading to blue at the zenith
    - ground (d.z < 0): the ray is followed down to a virtual checkerboard
      ``ground_depth`` below the origin, at x = -depth * d.x / d.z and
      y = -depth * d.y / d.z. Cells alternate between a dark and a light
      gray tone and fade linearly into the fog color up to ``fog_distance``.
    - glow: every light whose direction is within the glow cone of d adds
      its color scaled by (1 - a)^2, a being the angle to the light relative
      to the cone half-angle. Glows add on top of sky or ground.

Example:
    >>> from whitted.scene.background import Background, setup_background
    >>> setup_background(Background(fog_distance=50.0))
"""

import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray
from whitted.lights.light import light_color, light_direction, num_lights

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

Color = tuple[float, float, float]


@dataclass
class Background:
    """Parameters of the background shader.

    Attributes:
        sky_color: Color at the zenith.
        horizon_color: Color at the horizon.
        ground_dark: Tone of checker cells with matching parity.
        ground_light: Tone of the other checker cells.
        fog_color: Color the ground fades into with distance.
        fog_distance: Ground distance at which the fog is total (> 0).
        ground_depth: Depth of the virtual ground below the ray origin (> 0).
        glow_threshold: Cosine above which a light direction glows, in (-1, 1).
    """

    sky_color: Color = (0.0, 0.0, 1.0)
    horizon_color: Color = (1.0, 1.0, 1.0)
    ground_dark: Color = (0.2, 0.2, 0.2)
    ground_light: Color = (0.4, 0.4, 0.4)
    fog_color: Color = (1.0, 1.0, 1.0)
    fog_distance: float = 30.0
    ground_depth: float = 0.5
    glow_threshold: float = 0.99

    def validate(self) -> None:
        """Check the parameters.

        Raises:
            ValueError: If a distance is not positive or the glow threshold
                is outside (-1, 1).
        """
        if self.fog_distance <= 0.0:
            raise ValueError(f"fog_distance must be positive, got {self.fog_distance}")
        if self.ground_depth <= 0.0:
            raise ValueError(f"ground_depth must be positive, got {self.ground_depth}")
        if not -1.0 < self.glow_threshold < 1.0:
            raise ValueError(f"glow_threshold must be in (-1, 1), got {self.glow_threshold}")


# =============================================================================
# Background Field Storage
# =============================================================================

bg_sky = ti.Vector.field(3, dtype=ti.f32, shape=())
bg_horizon = ti.Vector.field(3, dtype=ti.f32, shape=())
bg_ground_dark = ti.Vector.field(3, dtype=ti.f32, shape=())
bg_ground_light = ti.Vector.field(3, dtype=ti.f32, shape=())
bg_fog_color = ti.Vector.field(3, dtype=ti.f32, shape=())
bg_fog_distance = ti.field(dtype=ti.f32, shape=())
bg_ground_depth = ti.field(dtype=ti.f32, shape=())
bg_glow_threshold = ti.field(dtype=ti.f32, shape=())
# acos(glow_threshold), the half-angle of the glow cone
bg_glow_angle = ti.field(dtype=ti.f32, shape=())


def setup_background(background: Background) -> None:
    """Write background parameters into the fields read by the kernels.

    Raises:
        ValueError: If the parameters are invalid.
    """
    background.validate()
    bg_sky[None] = vec3(*background.sky_color)
    bg_horizon[None] = vec3(*background.horizon_color)
    bg_ground_dark[None] = vec3(*background.ground_dark)
    bg_ground_light[None] = vec3(*background.ground_light)
    bg_fog_color[None] = vec3(*background.fog_color)
    bg_fog_distance[None] = background.fog_distance
    bg_ground_depth[None] = background.ground_depth
    bg_glow_threshold[None] = background.glow_threshold
    bg_glow_angle[None] = math.acos(background.glow_threshold)


@ti.func
def light_glow(ray: Ray) -> vec3:
    """Sum of the glows of the lights seen close to the ray direction."""
    glow = vec3(0.0, 0.0, 0.0)
    for i in range(num_lights[None]):
        cos_angle = tm.dot(light_direction(i, ray.origin), ray.direction)
        if cos_angle > bg_glow_threshold[None]:
            a = ti.acos(ti.min(cos_angle, 1.0)) / bg_glow_angle[None]
            glow += light_color(i, ray.origin) * (1.0 - a) * (1.0 - a)
    return glow


@ti.func
def environment_color(direction: vec3) -> vec3:
    """Sky or fogged ground color seen along a unit direction."""
    result = vec3(0.0, 0.0, 0.0)
    if direction.z >= 0.0:
        result = bg_horizon[None] + direction.z * (bg_sky[None] - bg_horizon[None])
    else:
        depth = bg_ground_depth[None]
        x = -depth * direction.x / direction.z
        y = -depth * direction.y / direction.z
        fog = bg_fog_distance[None]
        t = ti.min(ti.sqrt(x * x + y * y), fog) / fog
        tone = bg_ground_light[None]
        upper_x = 0
        upper_y = 0
        if tm.fract(x) >= 0.5:
            upper_x = 1
        if tm.fract(y) >= 0.5:
            upper_y = 1
        if upper_x == upper_y:
            tone = bg_ground_dark[None]
        result = (1.0 - t) * tone + t * bg_fog_color[None]
    return result


@ti.func
def background_color(ray: Ray) -> vec3:
    """Color of a ray that hits nothing.

    Args:
        ray: The escaping ray (unit direction).

    Returns:
        Light glows plus the sky or ground color, unclamped.
    """
    return light_glow(ray) + environment_color(ray.direction)
