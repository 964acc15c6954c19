"""Matplotlib preview of rendered images.

Example:
    >>> from src.raytracer.preview.display import show_preview
    >>> show_preview(pixels, title="Random spheres")
"""

import numpy as np
import numpy.typing as npt


def show_preview(
    pixels: npt.NDArray[np.uint8],
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 4.5),
    block: bool = True,
) -> None:
    """Display a pixel buffer in a Matplotlib window.

    Args:
        pixels: uint8 array of shape (height, width, 3), row 0 at the top.
        title: Figure title. Defaults to the image size.
        figsize: Figure size in inches (width, height).
        block: Whether to block until the window is closed.
    """
    import matplotlib.pyplot as plt

    height, width = pixels.shape[:2]

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(pixels)
    ax.axis("off")
    ax.set_title(title if title is not None else f"Render Preview - {width}x{height}")

    plt.tight_layout()
    plt.show(block=block)
