"""Progressive rendering on top of the integrator.

ProgressiveRenderer owns the render target for one set of RenderSettings and
adds samples in batches, reporting progress after each batch through a
callback or a generator. Because every sample draws from a stream keyed on
its absolute index, the batch size never changes the final image.

``render_scene`` is the one-shot entry point: camera + settings in, pixel
bytes out.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracer.core.integrator import RenderSettings
    >>> from src.raytracer.core.progressive import render_scene
    >>> from src.raytracer.scene.presets import create_material_showcase_scene
    >>>
    >>> scene, camera = create_material_showcase_scene()
    >>> settings = RenderSettings(image_width=400, image_height=225, samples_per_pixel=20)
    >>> pixels = render_scene(scene, camera, settings)
"""

import logging
import time
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.raytracer.camera.thin_lens import Camera, setup_camera
from src.raytracer.core.integrator import (
    RenderSettings,
    clear_render_target,
    get_linear_image,
    get_pixel_buffer,
    get_total_samples,
    render_samples,
    setup_render_target,
)
from src.raytracer.preview.export import save_image
from src.raytracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# Callback receives (current_samples, target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """Accumulates samples for one image, batch by batch.

    The render target is global Taichi state, so only one renderer is live
    at a time; creating a renderer (or calling resize) clears it.

    Attributes:
        settings: The settings the renderer was created with.
    """

    def __init__(self, settings: RenderSettings) -> None:
        self.settings = settings
        setup_render_target(settings.image_width, settings.image_height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.settings.image_width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.settings.image_height

    @property
    def sample_count(self) -> int:
        """Get the number of samples accumulated per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Discard all accumulated samples."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Change the image size and discard accumulated samples.

        Raises:
            ValueError: If the new size is out of range.
        """
        self.settings = RenderSettings(
            image_width=width,
            image_height=height,
            samples_per_pixel=self.settings.samples_per_pixel,
            max_depth=self.settings.max_depth,
            seed=self.settings.seed,
        )
        setup_render_target(width, height)

    def render_progressive(
        self,
        num_samples: int | None = None,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Add samples in batches, yielding progress after each batch.

        Args:
            num_samples: Samples to add per pixel. Defaults to
                settings.samples_per_pixel.
            batch_size: Samples per batch.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Raises:
            ValueError: If batch_size < 1.
        """
        if num_samples is None:
            num_samples = self.settings.samples_per_pixel
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if num_samples <= 0:
            return

        target_samples = self.sample_count + num_samples
        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_samples(batch, max_depth=self.settings.max_depth, seed=self.settings.seed)
            remaining -= batch
            yield (self.sample_count, target_samples)

    def render(
        self,
        num_samples: int | None = None,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Add samples in batches with an optional progress callback.

        Args:
            num_samples: Samples to add per pixel. Defaults to
                settings.samples_per_pixel.
            batch_size: Samples per batch. Larger batches mean fewer kernel
                launches and fewer callbacks.
            callback: Called after each batch with
                (current_total_samples, target_total_samples).

        Example:
            >>> def progress(current, target):
            ...     print(f"{current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the averaged linear image, shape (height, width, 3), top row first."""
        return get_linear_image()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the gamma-corrected 8-bit image, shape (height, width, 3)."""
        return get_pixel_buffer()

    def save_image(self, filepath: str | Path) -> None:
        """Write the current image as PNG, or as plain PPM for a .ppm path."""
        save_image(self.get_image_uint8(), filepath)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )


def render_scene(
    scene: SceneManager,
    camera: Camera,
    settings: RenderSettings,
    callback: ProgressCallback | None = None,
    batch_size: int = 1,
) -> npt.NDArray[np.uint8]:
    """Render a scene to display bytes.

    The scene must already be built; ``scene`` is the manager that built it.

    Args:
        scene: The populated scene.
        camera: Camera configuration, applied before rendering.
        settings: Image size, sample count, depth and seed.
        callback: Optional progress callback, see ProgressiveRenderer.render.
        batch_size: Samples per batch between callbacks.

    Returns:
        uint8 array of shape (image_height, image_width, 3), row 0 at the top.
    """
    setup_camera(camera)
    renderer = ProgressiveRenderer(settings)

    logger.info(
        "Rendering %dx%d at %d spp (max_depth=%d, seed=%d, %d primitives)",
        settings.image_width,
        settings.image_height,
        settings.samples_per_pixel,
        settings.max_depth,
        settings.seed,
        scene.get_primitive_count(),
    )
    start = time.perf_counter()
    renderer.render(settings.samples_per_pixel, batch_size=batch_size, callback=callback)
    logger.info("Render finished in %.2fs", time.perf_counter() - start)

    return renderer.get_image_uint8()
