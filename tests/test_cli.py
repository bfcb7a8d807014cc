"""Tests for the command line renderer.

main() initializes Taichi itself, so these tests exercise the parser, the
progress bar and render_to_file() under the session's Taichi runtime.
"""

import io

import pytest


class TestParser:
    """Tests for the argument parser."""

    def test_defaults(self):
        """Test default option values."""
        from whitted.cli import DEFAULT_OUTPUT, build_parser

        args = build_parser().parse_args([])
        assert args.scene is None
        assert (args.width, args.height, args.depth) == (320, 240, 5)
        assert args.output == DEFAULT_OUTPUT
        assert args.gamma == 1.0
        assert args.arch == "cpu"
        assert not args.quiet

    def test_options(self):
        """Test parsing every option."""
        from whitted.cli import build_parser

        args = build_parser().parse_args(
            [
                "--scene", "scene.json",
                "--width", "64",
                "--height", "48",
                "--depth", "3",
                "--output", "out.ppm",
                "--gamma", "2.2",
                "--arch", "gpu",
                "--quiet",
            ]
        )
        assert args.scene == "scene.json"
        assert (args.width, args.height, args.depth) == (64, 48, 3)
        assert args.output == "out.ppm"
        assert args.gamma == 2.2
        assert args.arch == "gpu"
        assert args.quiet

    def test_unknown_arch_rejected(self):
        """Test that only cpu and gpu are accepted."""
        from whitted.cli import build_parser

        with pytest.raises(SystemExit):
            build_parser().parse_args(["--arch", "tpu"])


class TestProgressBar:
    """Tests for the text progress bar."""

    def test_redraws_only_when_filled_part_grows(self):
        """Test the bar skips updates that do not change its fill."""
        from whitted.cli import ProgressBar

        stream = io.StringIO()
        bar = ProgressBar(stream=stream, width=10)
        for row in range(1, 101):
            bar.update(row, 100)
        output = stream.getvalue()
        assert output.count("\r") == 10
        assert output.rstrip("\r").endswith("100.0%")

    def test_line_format(self):
        """Test the meter layout and spinner."""
        from whitted.cli import ProgressBar

        stream = io.StringIO()
        bar = ProgressBar(stream=stream, width=4)
        bar.update(1, 2)
        assert stream.getvalue() == "[##  ] \\  50.0%\r"

    def test_finish(self):
        """Test finish ends the line and prints Done."""
        from whitted.cli import ProgressBar

        stream = io.StringIO()
        bar = ProgressBar(stream=stream)
        bar.finish()
        assert stream.getvalue() == "\nDone.\n"


class TestRenderToFile:
    """Tests for render_to_file."""

    def test_demo_scene(self, tmp_path, capsys):
        """Test rendering the demo scene to a PNG."""
        from PIL import Image

        from whitted.cli import render_to_file

        output = render_to_file(None, 16, 12, 2, str(tmp_path / "demo.png"))
        assert output.exists()
        with Image.open(output) as img:
            assert img.size == (16, 12)
        captured = capsys.readouterr()
        assert "Done." in captured.out
        assert "Saved to:" in captured.out

    def test_scene_file_quiet(self, tmp_path, capsys):
        """Test rendering a description file without output."""
        from whitted.cli import render_to_file
        from whitted.geometry.sphere import SphereObject
        from whitted.lights.light import PointLight
        from whitted.materials.material import Material
        from whitted.scene.manager import Scene, save_scene

        scene = Scene()
        scene.add_object(SphereObject(center=(0.0, 0.0, 1.5), radius=1.0, material=Material.emerald()))
        scene.add_light(PointLight(position=(0.0, -5.0, 5.0)))
        scene_path = tmp_path / "scene.json"
        save_scene(scene, scene_path)

        output = render_to_file(str(scene_path), 8, 6, 1, str(tmp_path / "out.ppm"), quiet=True)
        assert output.read_bytes().startswith(b"P6")
        assert capsys.readouterr().out == ""

    def test_invalid_gamma(self, tmp_path):
        """Test that a non-positive gamma is rejected before rendering."""
        from whitted.cli import render_to_file

        with pytest.raises(ValueError, match="gamma"):
            render_to_file(None, 8, 6, 1, str(tmp_path / "out.png"), gamma=0.0, quiet=True)
        assert not (tmp_path / "out.png").exists()

    def test_missing_scene_file(self, tmp_path):
        """Test that a missing description file raises OSError."""
        from whitted.cli import render_to_file

        with pytest.raises(OSError):
            render_to_file(str(tmp_path / "missing.json"), 8, 6, 1, str(tmp_path / "out.png"))

    def test_invalid_resolution(self, tmp_path):
        """Test that a resolution below 2 is rejected."""
        from whitted.cli import render_to_file

        with pytest.raises(ValueError):
            render_to_file(None, 1, 6, 1, str(tmp_path / "out.png"), quiet=True)

    @pytest.mark.parametrize("width,height", [(8, 0), (0, 6)])
    def test_zero_resolution(self, tmp_path, width, height):
        """Test that a zero dimension is a configuration error, not a crash."""
        from whitted.cli import render_to_file

        with pytest.raises(ValueError, match="Resolution"):
            render_to_file(None, width, height, 1, str(tmp_path / "out.png"), quiet=True)
        assert not (tmp_path / "out.png").exists()
