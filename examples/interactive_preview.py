#!/usr/bin/env python3
"""Explore the demo scene in an interactive preview window.

The scene is rasterized with Taichi GGUI so the camera can be moved in real
time; pressing R ray traces the current view and saves it as a PNG.

Usage:
    python examples/interactive_preview.py [--width W] [--height H] [--depth D]

Controls:
    - A / D: Orbit left / right
    - W / S: Orbit up / down
    - Q / E: Move closer / farther
    - R: Ray trace the current view (any other key returns to the preview)
    - Esc or closing the window exits
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure the package is importable when run from a source checkout
_source_root = Path(__file__).parent.parent / "src"
if str(_source_root) not in sys.path:
    sys.path.insert(0, str(_source_root))

from whitted.cli import initialize_taichi  # noqa: E402


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Explore the demo scene interactively.")
    parser.add_argument("--width", type=int, default=640, help="Window width (default: 640)")
    parser.add_argument("--height", type=int, default=480, help="Window height (default: 480)")
    parser.add_argument("--depth", type=int, default=5, help="Ray tracing depth (default: 5)")
    parser.add_argument("--arch", choices=("cpu", "gpu"), default="gpu", help="Taichi backend")
    return parser.parse_args()


def main() -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    args = parse_args()

    # Initialize Taichi first (before importing modules that declare fields)
    backend = initialize_taichi(args.arch)
    print(f"Taichi backend: {backend}")

    from whitted.preview.interactive import InteractivePreview
    from whitted.scene.demo import create_demo_scene

    if not InteractivePreview.is_display_available():
        print("Error: No display available. Cannot run interactive preview.")
        print("This script requires a graphical display environment.")
        return 1

    scene, view_box = create_demo_scene(aspect_ratio=args.width / args.height)
    preview = InteractivePreview(args.width, args.height)

    print("Starting interactive preview...")
    print("  - WASD to orbit, Q/E to zoom")
    print("  - R to ray trace the current view and save a PNG")
    print("  - Close window to exit")
    print()

    try:
        preview.run_scene(scene, view_box, max_depth=args.depth)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        preview.close()
        print("Preview window closed.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
