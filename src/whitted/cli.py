"""Command line renderer.

Renders a scene description file (or the built-in demo scene) to an image
file, printing a progress bar while the scanlines are traced.

Usage:
    whitted-render [options]

Options:
    --scene FILE        JSON scene description (default: demo scene)
    --width WIDTH       Image width in pixels (default: 320)
    --height HEIGHT     Image height in pixels (default: 240)
    --depth DEPTH       Maximum recursion depth (default: 5)
    --output OUTPUT     Output file path, format from extension (default: output.png)
    --gamma GAMMA       Gamma correction applied on save (default: 1.0)
    --arch {cpu,gpu}    Taichi backend (default: cpu)
    --preview           Show the result in a window after rendering
    --quiet             Suppress progress output

Example:
    whitted-render --width 640 --height 480 --depth 8 --output demo.ppm
"""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

import taichi as ti

PROGRESS_BAR_WIDTH = 60
PROGRESS_ROTATION = "|\\-/"

DEFAULT_OUTPUT = "output.png"


class ProgressBar:
    """Text progress meter redrawn in place with a carriage return.

    The bar is only redrawn when its filled part grows, and a spinner
    character advances on every redraw.
    """

    def __init__(self, stream: TextIO | None = None, width: int = PROGRESS_BAR_WIDTH) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.width = width
        self._filled = 0
        self._rotation = 0

    def render_line(self, filled: int, fraction: float) -> str:
        bar = "#" * filled + " " * (self.width - filled)
        spinner = PROGRESS_ROTATION[self._rotation % len(PROGRESS_ROTATION)]
        return f"[{bar}] {spinner} {fraction * 100.0:5.1f}%"

    def update(self, current: int, total: int) -> None:
        """Report progress; redraws only when the filled part changes."""
        fraction = current / total if total > 0 else 1.0
        filled = min(int(fraction * self.width), self.width)
        if filled == self._filled:
            return
        self._filled = filled
        self._rotation += 1
        print(self.render_line(filled, fraction), end="\r", file=self.stream, flush=True)

    def finish(self) -> None:
        print(file=self.stream)
        print("Done.", file=self.stream)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="whitted-render",
        description="Render a scene with the Whitted ray tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        type=str,
        default=None,
        help="JSON scene description (default: built-in demo scene)",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=320,
        help="Image width in pixels (default: 320)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=240,
        help="Image height in pixels (default: 240)",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=5,
        help="Maximum recursion depth of eye rays (default: 5)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=DEFAULT_OUTPUT,
        help=f"Output file path; format from extension (default: {DEFAULT_OUTPUT})",
    )
    parser.add_argument(
        "--gamma",
        type=float,
        default=1.0,
        help="Gamma correction applied when saving (default: 1.0)",
    )
    parser.add_argument(
        "--arch",
        choices=("cpu", "gpu"),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Show the rendered image in a window",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser


def initialize_taichi(arch: str) -> str:
    """Initialize Taichi; a failing GPU backend falls back to the CPU.

    Returns:
        Name of the backend being used.
    """
    if arch == "gpu":
        try:
            ti.init(arch=ti.gpu)
            return "GPU"
        except RuntimeError:
            pass
    ti.init(arch=ti.cpu)
    return "CPU"


def render_to_file(
    scene_path: str | None,
    width: int,
    height: int,
    max_depth: int,
    output_path: str,
    gamma: float = 1.0,
    quiet: bool = False,
) -> Path:
    """Render a scene and save the image.

    Taichi must be initialized before calling this function.

    Args:
        scene_path: JSON scene description, or None for the demo scene.
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Maximum recursion depth of eye rays.
        output_path: Output file; the format follows the extension.
        gamma: Gamma correction applied when saving.
        quiet: If True, print nothing.

    Returns:
        Path to the saved image file.

    Raises:
        ValueError: If the scene or the render configuration is invalid.
        OSError: If the scene file cannot be read or the image written.
    """
    # Lazy imports to allow Taichi initialization first
    from whitted.camera.viewbox import ViewBox
    from whitted.core.renderer import Renderer, validate_resolution
    from whitted.scene.demo import DemoCamera, create_demo_scene
    from whitted.scene.manager import load_scene

    validate_resolution(width, height)
    aspect_ratio = width / height
    if scene_path is None:
        scene, view_box = create_demo_scene(aspect_ratio=aspect_ratio)
    else:
        scene = load_scene(scene_path)
        camera = DemoCamera()
        view_box = ViewBox.look_at(
            lookfrom=camera.lookfrom,
            lookat=camera.lookat,
            vup=camera.vup,
            vfov=camera.vfov,
            aspect_ratio=aspect_ratio,
        )

    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")

    renderer = Renderer(scene, view_box, width=width, height=height)
    if not quiet:
        print(f"Rendering {scene.get_object_count()} objects at {width}x{height}, depth {max_depth}")

    progress = None if quiet else ProgressBar()
    start_time = time.time()
    renderer.render(max_depth, callback=progress.update if progress is not None else None)
    if progress is not None:
        progress.finish()

    output_file = Path(output_path)
    renderer.save_image(output_file, gamma=gamma)

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Secondary rays: {renderer.secondary_ray_count}")
        print(f"Total time: {time.time() - start_time:.2f}s")
    return output_file


def show_image(path: Path) -> None:
    """Display a saved image in a preview window until it is closed."""
    from whitted.preview.export import load_image
    from whitted.preview.interactive import InteractivePreview

    image = load_image(path)
    preview = InteractivePreview(image.shape[1], image.shape[0], title=f"whitted - {path.name}")
    preview.update_image(image)
    preview.run()


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    args = build_parser().parse_args(argv)

    backend = initialize_taichi(args.arch)
    if not args.quiet:
        print(f"Using {backend} backend")

    try:
        output_file = render_to_file(
            scene_path=args.scene,
            width=args.width,
            height=args.height,
            max_depth=args.depth,
            output_path=args.output,
            gamma=args.gamma,
            quiet=args.quiet,
        )
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.preview:
        from whitted.preview.interactive import InteractivePreview

        if not InteractivePreview.is_display_available():
            print("Error: no display available for --preview", file=sys.stderr)
            return 1
        show_image(output_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
