"""View box camera: an eye point and the four viewport corner directions.

The camera is described directly by the rays through the four corner pixels
of the image:

    - dir_ul: direction through the upper-left pixel (0, 0)
    - dir_ur: direction through the upper-right pixel (width - 1, 0)
    - dir_ll: direction through the lower-left pixel (0, height - 1)
    - dir_lr: direction through the lower-right pixel (width - 1, height - 1)

For pixel (x, y) with ty = y / (height - 1) and tx = x / (width - 1), the
left and right row directions are interpolated between the upper and lower
corners and normalized, then the pixel direction is interpolated between
them and normalized again. Pixel row 0 is the top of the image.

ViewBox.look_at() builds the corners of a pinhole frustum from the usual
look-at parameters.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.camera.viewbox import ViewBox, setup_view_box
    >>> view = ViewBox.look_at(
    ...     lookfrom=(0.0, -10.0, 2.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 0.0, 1.0),
    ...     vfov=40.0,
    ...     aspect_ratio=4.0 / 3.0,
    ... )
    >>> setup_view_box(view)
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray, make_ray, safe_normalize

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

Vector = tuple[float, float, float]

# Corner pairs blended along the viewport edges
EDGE_PAIRS = (("dir_ul", "dir_ll"), ("dir_ur", "dir_lr"), ("dir_ul", "dir_ur"), ("dir_ll", "dir_lr"))

# Relative cross product magnitude below which two corners count as parallel
OPPOSITE_TOLERANCE = 1e-9

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ViewBox:
    """Eye position and corner directions of the viewport.

    Attributes:
        origin: Eye position in world space.
        dir_ul: Direction through the upper-left pixel.
        dir_ur: Direction through the upper-right pixel.
        dir_ll: Direction through the lower-left pixel.
        dir_lr: Direction through the lower-right pixel.
    """

    origin: Vector
    dir_ul: Vector
    dir_ur: Vector
    dir_ll: Vector
    dir_lr: Vector

    def validate(self) -> None:
        """Check that every corner direction is usable.

        Raises:
            ValueError: If a direction has zero length, or if two corners on
                one edge of the viewport point in opposite directions (their
                blend passes through the zero vector).
        """
        for name in ("dir_ul", "dir_ur", "dir_ll", "dir_lr"):
            direction = getattr(self, name)
            if len(direction) != 3:
                raise ValueError(f"{name} must have 3 components, got {len(direction)}")
            if float(np.dot(direction, direction)) == 0.0:
                raise ValueError(f"View direction {name} has zero length")
        if len(self.origin) != 3:
            raise ValueError(f"origin must have 3 components, got {len(self.origin)}")

        for first, second in EDGE_PAIRS:
            a = np.asarray(getattr(self, first), dtype=np.float64)
            b = np.asarray(getattr(self, second), dtype=np.float64)
            scale = OPPOSITE_TOLERANCE * np.linalg.norm(a) * np.linalg.norm(b)
            parallel = np.linalg.norm(np.cross(a, b)) <= scale
            if parallel and float(np.dot(a, b)) < 0.0:
                raise ValueError(f"View directions {first} and {second} point in opposite directions")

    @classmethod
    def look_at(
        cls,
        lookfrom: Vector,
        lookat: Vector,
        vup: Vector,
        vfov: float,
        aspect_ratio: float,
    ) -> "ViewBox":
        """Build the view box of a pinhole camera.

        Args:
            lookfrom: Camera position in world space.
            lookat: Point the camera is looking at.
            vup: Up direction for camera orientation.
            vfov: Vertical field of view in degrees, in (0, 180).
            aspect_ratio: Width divided by height of the output image.

        Returns:
            The corresponding ViewBox.

        Raises:
            ValueError: If the parameters do not define a camera frame.
        """
        if not 0.0 < vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {vfov}")
        if aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {aspect_ratio}")

        origin = np.array(lookfrom, dtype=np.float64)
        forward = np.array(lookat, dtype=np.float64) - origin
        forward_norm = np.linalg.norm(forward)
        if forward_norm == 0.0:
            raise ValueError("lookfrom and lookat must differ")
        forward /= forward_norm

        right = np.cross(forward, np.array(vup, dtype=np.float64))
        right_norm = np.linalg.norm(right)
        if right_norm == 0.0:
            raise ValueError("vup must not be parallel to the view direction")
        right /= right_norm
        up = np.cross(right, forward)

        # Viewport half extents at unit distance
        half_height = math.tan(math.radians(vfov) / 2.0)
        half_width = aspect_ratio * half_height

        def corner(sx: float, sy: float) -> Vector:
            d = forward + sx * half_width * right + sy * half_height * up
            return (float(d[0]), float(d[1]), float(d[2]))

        return cls(
            origin=(float(origin[0]), float(origin[1]), float(origin[2])),
            dir_ul=corner(-1.0, 1.0),
            dir_ur=corner(1.0, 1.0),
            dir_ll=corner(-1.0, -1.0),
            dir_lr=corner(1.0, -1.0),
        )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_view_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_view_dir_ul = ti.Vector.field(3, dtype=ti.f32, shape=())
_view_dir_ur = ti.Vector.field(3, dtype=ti.f32, shape=())
_view_dir_ll = ti.Vector.field(3, dtype=ti.f32, shape=())
_view_dir_lr = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_view_box(view_box: ViewBox) -> None:
    """Write the view box into the fields read by get_primary_ray().

    Raises:
        ValueError: If a corner direction has zero length.
    """
    view_box.validate()
    _view_origin[None] = vec3(*view_box.origin)
    _view_dir_ul[None] = vec3(*view_box.dir_ul)
    _view_dir_ur[None] = vec3(*view_box.dir_ur)
    _view_dir_ll[None] = vec3(*view_box.dir_ll)
    _view_dir_lr[None] = vec3(*view_box.dir_lr)


@ti.func
def get_primary_ray(x: ti.i32, y: ti.i32, width: ti.i32, height: ti.i32, depth: ti.i32) -> Ray:
    """Eye ray through pixel (x, y).

    Args:
        x: Pixel column, 0 on the left.
        y: Pixel row, 0 at the top.
        width: Image width (>= 2).
        height: Image height (>= 2).
        depth: Recursion depth given to the ray.

    Returns:
        A Ray from the eye through the pixel, unit direction.
    """
    ty = ti.cast(y, ti.f32) / ti.cast(height - 1, ti.f32)
    tx = ti.cast(x, ti.f32) / ti.cast(width - 1, ti.f32)
    dir_l = safe_normalize((1.0 - ty) * _view_dir_ul[None] + ty * _view_dir_ll[None])
    dir_r = safe_normalize((1.0 - ty) * _view_dir_ur[None] + ty * _view_dir_lr[None])
    return make_ray(_view_origin[None], (1.0 - tx) * dir_l + tx * dir_r, depth)


def get_view_box_info() -> dict[str, Vector]:
    """Get the view box currently written in the fields, for debugging."""
    info = {}
    for name, f in (
        ("origin", _view_origin),
        ("dir_ul", _view_dir_ul),
        ("dir_ur", _view_dir_ur),
        ("dir_ll", _view_dir_ll),
        ("dir_lr", _view_dir_lr),
    ):
        v = f[None]
        info[name] = (float(v[0]), float(v[1]), float(v[2]))
    return info
