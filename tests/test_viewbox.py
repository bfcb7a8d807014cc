"""Unit tests for the view box camera.

Tests cover:
- ViewBox validation
- look_at() frustum corners
- Primary ray interpolation through the corner pixels and the center
"""

import math

import numpy as np
import pytest
import taichi as ti


def _primary_directions(view_box, width, height, pixels):
    """Return the primary ray directions for a list of (x, y) pixels."""
    from whitted.camera.viewbox import get_primary_ray, setup_view_box

    setup_view_box(view_box)
    n = len(pixels)
    xs = ti.field(dtype=ti.i32, shape=n)
    ys = ti.field(dtype=ti.i32, shape=n)
    origins = ti.field(dtype=ti.math.vec3, shape=n)
    directions = ti.field(dtype=ti.math.vec3, shape=n)
    for i, (x, y) in enumerate(pixels):
        xs[i] = x
        ys[i] = y

    @ti.kernel
    def test_kernel(w: ti.i32, h: ti.i32):
        for i in range(n):
            ray = get_primary_ray(xs[i], ys[i], w, h, 3)
            origins[i] = ray.origin
            directions[i] = ray.direction

    test_kernel(width, height)
    return origins.to_numpy(), directions.to_numpy()


class TestViewBox:
    """Tests for ViewBox construction and validation."""

    def test_zero_direction_raises(self):
        """Test that zero-length corner directions are rejected."""
        from whitted.camera.viewbox import ViewBox

        view = ViewBox(
            origin=(0.0, 0.0, 0.0),
            dir_ul=(0.0, 0.0, 0.0),
            dir_ur=(1.0, 0.0, 0.0),
            dir_ll=(1.0, 0.0, 0.0),
            dir_lr=(1.0, 0.0, 0.0),
        )
        with pytest.raises(ValueError, match="zero length"):
            view.validate()

    @pytest.mark.parametrize(
        "corners",
        [
            {"dir_ul": (0.0, 1.0, 1.0), "dir_ll": (0.0, -1.0, -1.0)},
            {"dir_ur": (0.0, 1.0, 1.0), "dir_lr": (0.0, -2.0, -2.0)},
            {"dir_ul": (1.0, 1.0, 0.0), "dir_ur": (-1.0, -1.0, 0.0)},
        ],
    )
    def test_opposite_edge_corners_raise(self, corners):
        """Test that corners whose blend passes through zero are rejected."""
        from whitted.camera.viewbox import ViewBox

        fields = {
            "dir_ul": (-0.5, 1.0, 0.5),
            "dir_ur": (0.5, 1.0, 0.5),
            "dir_ll": (-0.5, 1.0, -0.5),
            "dir_lr": (0.5, 1.0, -0.5),
        }
        fields.update(corners)
        view = ViewBox(origin=(0.0, 0.0, 0.0), **fields)
        with pytest.raises(ValueError, match="opposite directions"):
            view.validate()

    def test_setup_rejects_opposite_corners(self):
        """Test that setup_view_box validates the edge corners too."""
        from whitted.camera.viewbox import ViewBox, setup_view_box

        view = ViewBox(
            origin=(0.0, 0.0, 0.0),
            dir_ul=(0.0, 1.0, 1.0),
            dir_ur=(0.5, 1.0, 0.5),
            dir_ll=(0.0, -1.0, -1.0),
            dir_lr=(0.5, 1.0, -0.5),
        )
        with pytest.raises(ValueError):
            setup_view_box(view)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"vfov": 0.0},
            {"vfov": 180.0},
            {"aspect_ratio": 0.0},
            {"lookat": (0.0, -10.0, 0.0)},
            {"vup": (0.0, 1.0, 0.0)},
        ],
    )
    def test_look_at_invalid_parameters(self, kwargs):
        """Test that degenerate camera frames are rejected."""
        from whitted.camera.viewbox import ViewBox

        params = {
            "lookfrom": (0.0, -10.0, 0.0),
            "lookat": (0.0, 0.0, 0.0),
            "vup": (0.0, 0.0, 1.0),
            "vfov": 60.0,
            "aspect_ratio": 1.0,
        }
        params.update(kwargs)
        with pytest.raises(ValueError):
            ViewBox.look_at(**params)

    def test_look_at_corners(self):
        """Test the corner directions of a 90 degree square frustum."""
        from whitted.camera.viewbox import ViewBox

        view = ViewBox.look_at(
            lookfrom=(0.0, 0.0, 0.0),
            lookat=(0.0, 1.0, 0.0),
            vup=(0.0, 0.0, 1.0),
            vfov=90.0,
            aspect_ratio=1.0,
        )
        assert view.dir_ul == pytest.approx((-1.0, 1.0, 1.0))
        assert view.dir_ur == pytest.approx((1.0, 1.0, 1.0))
        assert view.dir_ll == pytest.approx((-1.0, 1.0, -1.0))
        assert view.dir_lr == pytest.approx((1.0, 1.0, -1.0))


class TestPrimaryRays:
    """Tests for get_primary_ray()."""

    def test_corner_pixels_follow_corner_directions(self):
        """Test that corner pixels shoot along the normalized corners."""
        from whitted.camera.viewbox import ViewBox

        view = ViewBox.look_at(
            lookfrom=(1.0, 2.0, 3.0),
            lookat=(1.0, 10.0, 3.0),
            vup=(0.0, 0.0, 1.0),
            vfov=60.0,
            aspect_ratio=2.0,
        )
        pixels = [(0, 0), (9, 0), (0, 4), (9, 4)]
        origins, directions = _primary_directions(view, 10, 5, pixels)

        for corner, d in zip((view.dir_ul, view.dir_ur, view.dir_ll, view.dir_lr), directions):
            expected = np.array(corner) / np.linalg.norm(corner)
            assert np.allclose(d, expected, atol=1e-5)
        assert np.allclose(origins, [1.0, 2.0, 3.0])

    def test_center_pixel_looks_forward(self):
        """Test the middle of an odd-sized image looks at lookat."""
        from whitted.camera.viewbox import ViewBox

        view = ViewBox.look_at(
            lookfrom=(0.0, -5.0, 0.0),
            lookat=(0.0, 0.0, 0.0),
            vup=(0.0, 0.0, 1.0),
            vfov=40.0,
            aspect_ratio=1.0,
        )
        _, directions = _primary_directions(view, 11, 11, [(5, 5)])
        assert np.allclose(directions[0], [0.0, 1.0, 0.0], atol=1e-5)

    def test_row_zero_is_top(self):
        """Test that rows go from top to bottom."""
        from whitted.camera.viewbox import ViewBox

        view = ViewBox.look_at(
            lookfrom=(0.0, 0.0, 0.0),
            lookat=(0.0, 1.0, 0.0),
            vup=(0.0, 0.0, 1.0),
            vfov=60.0,
            aspect_ratio=1.0,
        )
        _, directions = _primary_directions(view, 4, 4, [(1, 0), (1, 3)])
        assert directions[0][2] > 0.0
        assert directions[1][2] < 0.0
        assert abs(np.linalg.norm(directions[0]) - 1.0) < 1e-5

    def test_opposite_rows_give_finite_direction(self):
        """Test a pixel between opposite row ends stays finite."""
        from whitted.camera.viewbox import ViewBox

        # Middle row runs from +x on the left to -x on the right
        view = ViewBox(
            origin=(0.0, 0.0, 0.0),
            dir_ul=(1.0, 0.0, 1.0),
            dir_ur=(-1.0, 0.0, 1.0),
            dir_ll=(1.0, 0.0, -1.0),
            dir_lr=(-1.0, 0.0, -1.0),
        )
        _, directions = _primary_directions(view, 3, 3, [(1, 1), (0, 1)])
        assert np.all(np.isfinite(directions))
        assert np.allclose(directions[1], [1.0, 0.0, 0.0], atol=1e-5)

    def test_get_view_box_info(self):
        """Test reading back the view box written into the fields."""
        from whitted.camera.viewbox import ViewBox, get_view_box_info, setup_view_box

        view = ViewBox.look_at(
            lookfrom=(0.0, 0.0, 0.0),
            lookat=(0.0, 1.0, 0.0),
            vup=(0.0, 0.0, 1.0),
            vfov=90.0,
            aspect_ratio=1.0,
        )
        setup_view_box(view)
        info = get_view_box_info()
        assert info["dir_ul"] == pytest.approx(view.dir_ul)
        assert math.isclose(info["origin"][0], 0.0)
