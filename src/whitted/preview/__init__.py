"""Preview module for output and visualization.

Components:
    export: Image file output (PNG, PPM, ...) with optional gamma
    interactive: Taichi GGUI window for images and scene exploration

Example:
    >>> from whitted.preview import save_image
    >>> image = renderer.render(max_depth=5)
    >>> save_image(image, "output.png")

For interactive GGUI preview:
    >>> from whitted.preview import InteractivePreview
    >>> preview = InteractivePreview(640, 480)
    >>> preview.update_image(image)
    >>> preview.run()
"""

from whitted.preview.export import (
    apply_gamma,
    compute_rmse,
    image_to_uint8,
    load_image,
    save_image,
)
from whitted.preview.interactive import InteractivePreview, OrbitCamera, PreviewMesh

__all__ = [
    # Interactive preview
    "InteractivePreview",
    "OrbitCamera",
    "PreviewMesh",
    # Export functions
    "apply_gamma",
    "image_to_uint8",
    "save_image",
    "load_image",
    "compute_rmse",
]
