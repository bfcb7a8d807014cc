"""Tests for image export utilities.

Tests cover:
- Gamma correction
- Float to 8-bit conversion
- Saving and loading PNG/PPM files
- RMSE comparison
"""

import numpy as np
import pytest


class TestGamma:
    """Tests for apply_gamma."""

    def test_gamma_one_is_identity(self):
        """Test that gamma 1.0 leaves the image unchanged."""
        from whitted.preview.export import apply_gamma

        image = np.random.default_rng(0).random((4, 4, 3)).astype(np.float32)
        assert np.array_equal(apply_gamma(image, 1.0), image)

    def test_gamma_brightens_midtones(self):
        """Test gamma 2.0 maps 0.25 to 0.5 and keeps the endpoints."""
        from whitted.preview.export import apply_gamma

        image = np.array([[[0.0, 0.25, 1.0]]], dtype=np.float32)
        result = apply_gamma(image, 2.0)
        assert result[0, 0] == pytest.approx([0.0, 0.5, 1.0], abs=1e-6)

    def test_non_positive_gamma_raises(self):
        """Test that gamma must be positive."""
        from whitted.preview.export import apply_gamma

        with pytest.raises(ValueError, match="gamma"):
            apply_gamma(np.zeros((2, 2, 3), dtype=np.float32), 0.0)


class TestImageToUint8:
    """Tests for image_to_uint8."""

    def test_conversion_and_clipping(self):
        """Test rounding and clipping to [0, 255]."""
        from whitted.preview.export import image_to_uint8

        image = np.array([[[0.0, 0.5, 1.0], [-1.0, 2.0, np.nan]]], dtype=np.float32)
        result = image_to_uint8(image)
        assert result.dtype == np.uint8
        assert result.tolist() == [[[0, 128, 255], [0, 255, 0]]]

    def test_wrong_shape_raises(self):
        """Test that non-RGB arrays are rejected."""
        from whitted.preview.export import image_to_uint8

        with pytest.raises(ValueError, match="Expected an"):
            image_to_uint8(np.zeros((4, 4), dtype=np.float32))


class TestSaveLoad:
    """Tests for writing and reading image files."""

    @pytest.mark.parametrize("suffix", [".png", ".ppm"])
    def test_round_trip(self, tmp_path, suffix):
        """Test saved images load back within quantization error."""
        from whitted.preview.export import compute_rmse, load_image, save_image

        rng = np.random.default_rng(1)
        image = rng.random((6, 8, 3)).astype(np.float32)
        path = tmp_path / f"image{suffix}"
        save_image(image, path)

        loaded = load_image(path)
        assert loaded.shape == (6, 8, 3)
        assert compute_rmse(image, loaded) < 1.0 / 255.0

    def test_top_row_is_first_row(self, tmp_path):
        """Test row 0 of the array is the top of the file."""
        from PIL import Image

        from whitted.preview.export import save_image

        image = np.zeros((4, 4, 3), dtype=np.float32)
        image[0, :, 0] = 1.0
        path = tmp_path / "top.png"
        save_image(image, path)

        with Image.open(path) as img:
            assert img.getpixel((0, 0)) == (255, 0, 0)
            assert img.getpixel((0, 3)) == (0, 0, 0)


class TestRmse:
    """Tests for compute_rmse."""

    def test_identical_images(self):
        """Test RMSE of identical images is zero."""
        from whitted.preview.export import compute_rmse

        image = np.ones((3, 3, 3), dtype=np.float32)
        assert compute_rmse(image, image) == 0.0

    def test_known_difference(self):
        """Test RMSE of a constant offset."""
        from whitted.preview.export import compute_rmse

        a = np.zeros((3, 3, 3), dtype=np.float32)
        b = np.full((3, 3, 3), 0.5, dtype=np.float32)
        assert compute_rmse(a, b) == pytest.approx(0.5)

    def test_shape_mismatch_raises(self):
        """Test that images must have the same shape."""
        from whitted.preview.export import compute_rmse

        with pytest.raises(ValueError, match="shapes must match"):
            compute_rmse(np.zeros((2, 2, 3)), np.zeros((3, 3, 3)))
