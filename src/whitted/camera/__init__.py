"""Camera module for primary ray generation.

Components:
    viewbox: View box camera defined by the eye point and the four
        viewport corner directions, with a look-at constructor

Pixel coordinates are integers:
    x in [0, width - 1]: left to right across the image
    y in [0, height - 1]: top to bottom across the image
"""

from .viewbox import ViewBox, get_primary_ray, get_view_box_info, setup_view_box

__all__ = [
    "ViewBox",
    "setup_view_box",
    "get_primary_ray",
    "get_view_box_info",
]
