"""Renderer: camera, resolution and background around the integrator.

The Renderer owns the configuration of a render and drives the integrator
one scanline at a time:

    - the Scene to render (uploaded to the kernel-side tables when needed)
    - the ViewBox (eye point and corner directions)
    - the output resolution (width, height >= 2)
    - the Background shader, created once for the renderer's lifetime

Every piece of configuration is validated before the first scanline is
traced. Progress is reported per scanline through an optional callback or
by iterating render_progressive().

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.core.renderer import Renderer
    >>> from whitted.scene.demo import create_demo_scene
    >>>
    >>> scene, view_box = create_demo_scene()
    >>> renderer = Renderer(scene, view_box, width=320, height=240)
    >>> image = renderer.render(max_depth=5)  # (240, 320, 3) float32
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from whitted.camera.viewbox import ViewBox, setup_view_box
from whitted.core.integrator import (
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    MAX_TRACE_DEPTH,
    background_single,
    get_image_numpy,
    get_secondary_ray_count,
    render_row,
    setup_render_target,
    trace_single,
)
from whitted.scene.background import Background, setup_background

if TYPE_CHECKING:
    from whitted.scene.manager import Scene

# Type alias for progress callback
# Callback receives (rows_done, total_rows)
ProgressCallback = Callable[[int, int], None]

DEFAULT_WIDTH = 320
DEFAULT_HEIGHT = 240
DEFAULT_DEPTH = 5


def validate_resolution(width: int, height: int) -> None:
    """Raise ValueError unless both dimensions are in [2, MAX_IMAGE_*]."""
    if width < 2 or height < 2:
        raise ValueError(f"Resolution must be at least 2x2, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Resolution ({width}x{height}) exceeds maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )


class Renderer:
    """Whitted ray tracing renderer for one scene.

    Attributes:
        scene: The scene to render.
        background: Background shader parameters, owned by the renderer.
    """

    def __init__(
        self,
        scene: Scene,
        view_box: ViewBox | None = None,
        background: Background | None = None,
        *,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
    ) -> None:
        """Initialize the renderer.

        Args:
            scene: The scene to render.
            view_box: Camera view box; can also be set later with
                set_view_box(), but must be set before rendering.
            background: Background shader parameters. Defaults to the
                standard sky and checkerboard ground.
            width: Image width in pixels.
            height: Image height in pixels.

        Raises:
            ValueError: If the resolution, view box or background is invalid.
        """
        self.scene = scene
        self.background = background if background is not None else Background()
        self.background.validate()
        self._view_box: ViewBox | None = None
        if view_box is not None:
            self.set_view_box(view_box)
        validate_resolution(width, height)
        self._width = width
        self._height = height
        self._secondary_rays = 0

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def view_box(self) -> ViewBox | None:
        return self._view_box

    @property
    def secondary_ray_count(self) -> int:
        """Reflected and refracted rays spawned by the last render or trace."""
        return self._secondary_rays

    def set_view_box(self, view_box: ViewBox) -> None:
        """Set the eye point and the four corner directions.

        Raises:
            ValueError: If a corner direction has zero length.
        """
        view_box.validate()
        self._view_box = view_box

    def set_resolution(self, width: int, height: int) -> None:
        """Set the output resolution.

        Raises:
            ValueError: If a dimension is below 2 or above the maximum.
        """
        validate_resolution(width, height)
        self._width = width
        self._height = height

    # =========================================================================
    # Rendering
    # =========================================================================

    def _prepare(self, max_depth: int) -> None:
        """Validate the configuration and write it to the kernel-side fields."""
        if not 0 <= max_depth <= MAX_TRACE_DEPTH:
            raise ValueError(f"max_depth must be in [0, {MAX_TRACE_DEPTH}], got {max_depth}")
        if self._view_box is None:
            raise ValueError("No view box set. Call set_view_box() first.")
        setup_view_box(self._view_box)
        setup_background(self.background)
        setup_render_target(self._width, self._height)
        self.scene.ensure_resident()

    def render_progressive(
        self, max_depth: int = DEFAULT_DEPTH
    ) -> Generator[tuple[int, int], None, None]:
        """Render scanline by scanline, yielding progress after each one.

        The configuration is validated when iteration starts, before the
        first scanline.

        Args:
            max_depth: Recursion depth of the eye rays, in [0, MAX_TRACE_DEPTH].

        Yields:
            Tuple of (rows_done, total_rows).

        Example:
            >>> for done, total in renderer.render_progressive(5):
            ...     print(f"{done}/{total}", end="\\r")
            >>> image = renderer.get_image_numpy()
        """
        self._prepare(max_depth)
        for y in range(self._height):
            render_row(y, max_depth)
            yield (y + 1, self._height)
        self._secondary_rays = get_secondary_ray_count()

    def render(
        self,
        max_depth: int = DEFAULT_DEPTH,
        callback: ProgressCallback | None = None,
    ) -> npt.NDArray[np.float32]:
        """Render the whole image.

        Args:
            max_depth: Recursion depth of the eye rays, in [0, MAX_TRACE_DEPTH].
            callback: Optional function called after each scanline with
                (rows_done, total_rows).

        Returns:
            Clamped colors as a (height, width, 3) float32 array, row 0 at
            the top.

        Raises:
            ValueError: If the configuration is invalid. Nothing is rendered.
        """
        for done, total in self.render_progressive(max_depth):
            if callback is not None:
                callback(done, total)
        return self.get_image_numpy()

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the last rendered image, optionally gamma corrected.

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).
        """
        image = get_image_numpy()
        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)
        return image

    def save_image(self, filepath: str | Path, gamma: float = 1.0) -> None:
        """Save the last rendered image; the format follows the extension."""
        from whitted.preview.export import save_image

        save_image(self.get_image_numpy(), filepath, gamma=gamma)

    # =========================================================================
    # Single-ray Queries
    # =========================================================================

    def trace(
        self,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
        depth: int = DEFAULT_DEPTH,
    ) -> tuple[float, float, float]:
        """Trace one ray through the scene.

        Args:
            origin: Ray origin.
            direction: Ray direction (normalized before tracing).
            depth: Recursion depth, in [0, MAX_TRACE_DEPTH].

        Returns:
            The unclamped RGB color seen along the ray.
        """
        setup_background(self.background)
        self.scene.ensure_resident()
        color = trace_single(origin, direction, depth)
        self._secondary_rays = get_secondary_ray_count()
        return color

    def background_color(
        self,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
    ) -> tuple[float, float, float]:
        """Background color of a ray, with the scene's light glows."""
        setup_background(self.background)
        self.scene.ensure_resident()
        return background_single(origin, direction)

    def __repr__(self) -> str:
        return f"Renderer(width={self.width}, height={self.height}, scene={self.scene!r})"
