"""Image export utilities for rendered images.

Rendered images are (height, width, 3) float arrays of clamped colors, row 0
at the top. This module converts them to 8-bit and writes them with Pillow;
the file format follows the extension (PNG, PPM, ...).

Example:
    >>> from whitted.preview.export import save_image
    >>> image = renderer.render(max_depth=5)
    >>> save_image(image, "output.png", gamma=2.2)
"""

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Apply gamma correction for display.

    Args:
        image: Linear image array of shape (H, W, 3) in [0, 1] range.
        gamma: Gamma value (> 0). 1.0 leaves the image unchanged.

    Returns:
        Gamma corrected image.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    if gamma == 1.0:
        return image

    # Clamp to [0, 1] before gamma to avoid NaN from negative values
    image = np.clip(image, 0.0, 1.0)
    result = np.power(image, 1.0 / gamma)
    return result.astype(np.float32)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    gamma: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a float image in [0, 1] to uint8.

    Args:
        image: Image array of shape (H, W, 3).
        gamma: Gamma correction applied before quantization.

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.

    Raises:
        ValueError: If the image is not (H, W, 3).
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")
    processed = np.clip(apply_gamma(image, gamma), 0.0, 1.0)
    processed = np.nan_to_num(processed, nan=0.0)
    return np.round(processed * 255.0).astype(np.uint8)


def save_image(
    image: npt.NDArray[np.float32],
    filepath: str | Path,
    *,
    gamma: float = 1.0,
) -> None:
    """Save a rendered image; the format is chosen from the extension.

    Args:
        image: Image array of shape (H, W, 3) with values in [0, 1].
        filepath: Output file path, e.g. "render.png" or "render.ppm".
        gamma: Gamma correction value (default 1.0, linear).
    """
    image_uint8 = image_to_uint8(image, gamma=gamma)
    pil_image = PILImage.fromarray(image_uint8)
    pil_image.save(filepath)


def load_image(filepath: str | Path) -> npt.NDArray[np.float32]:
    """Load an image file as a (H, W, 3) float32 array in [0, 1]."""
    with PILImage.open(filepath) as pil_image:
        data = np.asarray(pil_image.convert("RGB"), dtype=np.float32)
    return data / 255.0


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
