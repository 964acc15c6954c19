"""Image writers for resolved pixel buffers.

All writers take the renderer's output layout: a uint8 array of shape
(height, width, 3) with row 0 at the top of the image.

Supported formats:
    - PPM (plain-text ``P3``, no dependencies beyond NumPy)
    - PNG (8-bit RGB via Pillow)

Example:
    >>> from src.raytracer.preview.export import write_ppm
    >>> write_ppm(pixels, "image.ppm")
"""

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)


def _check_pixels(pixels: npt.NDArray[np.uint8]) -> None:
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"Expected an array of shape (height, width, 3), got {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise ValueError(f"Expected dtype uint8, got {pixels.dtype}")


def format_ppm(pixels: npt.NDArray[np.uint8]) -> str:
    """Encode a pixel buffer as plain PPM text.

    The header is ``P3``, then ``width height``, then ``255``, followed by
    one ``R G B`` line per pixel from the top-left corner, row by row.

    Raises:
        ValueError: If pixels is not a (height, width, 3) uint8 array.
    """
    _check_pixels(pixels)
    height, width, _ = pixels.shape
    lines = ["P3", f"{width} {height}", "255"]
    lines.extend(f"{r} {g} {b}" for r, g, b in pixels.reshape(-1, 3).tolist())
    return "\n".join(lines) + "\n"


def write_ppm(pixels: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Write a pixel buffer as a plain PPM file.

    Raises:
        ValueError: If pixels is not a (height, width, 3) uint8 array.
    """
    Path(filepath).write_text(format_ppm(pixels), encoding="ascii")
    logger.info("Wrote %s", filepath)


def save_png(pixels: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Write a pixel buffer as an 8-bit RGB PNG.

    Raises:
        ValueError: If pixels is not a (height, width, 3) uint8 array.
    """
    _check_pixels(pixels)
    PILImage.fromarray(np.ascontiguousarray(pixels)).save(filepath)
    logger.info("Wrote %s", filepath)


def save_image(pixels: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Write a pixel buffer, choosing PPM for a ``.ppm`` suffix and PNG otherwise."""
    if Path(filepath).suffix.lower() == ".ppm":
        write_ppm(pixels, filepath)
    else:
        save_png(pixels, filepath)


def compute_rmse(
    image_a: npt.NDArray[np.generic],
    image_b: npt.NDArray[np.generic],
) -> float:
    """Compute the root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
