"""Output and preview of rendered images.

Components:
    export: PPM and PNG writers, RMSE between images
    display: Matplotlib preview window

Example:
    >>> from src.raytracer.preview import save_image, show_preview
    >>> save_image(pixels, "render.png")
    >>> show_preview(pixels)
"""

from src.raytracer.preview.display import show_preview
from src.raytracer.preview.export import (
    compute_rmse,
    format_ppm,
    save_image,
    save_png,
    write_ppm,
)

__all__ = [
    "show_preview",
    "format_ppm",
    "write_ppm",
    "save_png",
    "save_image",
    "compute_rmse",
]
