"""Recursive ray tracing integrator and render target.

Each camera sample is followed through the scene for at most ``max_depth``
bounces. At every hit the surface material either absorbs the ray or
scatters it with an attenuation; rays that escape pick up the sky gradient.
The color of a path is the sky color times the product of all attenuations
along the way, or black if the path was absorbed or ran out of depth.

Samples are summed per pixel in a preallocated buffer together with a
sample count. Resolving the buffer divides by the count, applies gamma 2
(square root), clamps to [0, 0.999] and scales by 256 into bytes.

Randomness comes from per-(pixel, sample) streams seeded from
``RenderSettings.seed`` (see ``src.raytracer.core.rng``), so an image is
fully determined by its scene, camera and settings.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracer.core.integrator import (
    ...     get_pixel_buffer, render_samples, setup_render_target
    ... )
    >>> from src.raytracer.scene.presets import create_material_showcase_scene
    >>> from src.raytracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_material_showcase_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(400, 225)
    >>> render_samples(num_samples=10, max_depth=50, seed=0)
    >>> pixels = get_pixel_buffer()  # (225, 400, 3) uint8
"""

import logging
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from src.raytracer.camera.thin_lens import get_ray_jittered
from src.raytracer.core.ray import Ray, unit_vector
from src.raytracer.core.rng import init_rng
from src.raytracer.materials.dielectric import get_dielectric_ior, scatter_dielectric
from src.raytracer.materials.lambertian import get_lambertian_albedo, scatter_lambertian
from src.raytracer.materials.metal import get_metal_params, scatter_metal
from src.raytracer.scene.intersection import SceneHitRecord, intersect_scene
from src.raytracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

DEFAULT_MAX_DEPTH = 50

# Intersection interval; T_MIN keeps scattered rays from re-hitting their origin
T_MIN = 1e-3
T_MAX = 1e10

# Sky gradient endpoints (horizon and zenith)
SKY_HORIZON_COLOR = vec3(1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = vec3(0.5, 0.7, 1.0)

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

MAX_SEED = 2**32 - 1


@dataclass
class RenderSettings:
    """Image and sampling parameters for a render.

    Attributes:
        image_width: Output width in pixels.
        image_height: Output height in pixels.
        samples_per_pixel: Number of jittered samples averaged per pixel.
        max_depth: Maximum number of bounces per path. 0 renders black.
        seed: Seed of the per-pixel random streams, in [0, 2^32).

    Raises:
        ValueError: If any parameter is out of range.
    """

    image_width: int = 400
    image_height: int = 225
    samples_per_pixel: int = 100
    max_depth: int = DEFAULT_MAX_DEPTH
    seed: int = 0

    def __post_init__(self) -> None:
        if self.image_width < 1 or self.image_height < 1:
            raise ValueError(
                f"Image dimensions must be positive, got {self.image_width}x{self.image_height}"
            )
        if self.image_width > MAX_IMAGE_WIDTH or self.image_height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.image_width}x{self.image_height}) exceed maximum "
                f"supported ({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if not 0 <= self.seed <= MAX_SEED:
            raise ValueError(f"seed must be in [0, 2^32), got {self.seed}")

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height."""
        return self.image_width / self.image_height


# =============================================================================
# Render Target
# =============================================================================

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Per-pixel sum of sample colors and number of samples, indexed [i, j]
# with j = 0 at the bottom row
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_total_samples = ti.field(dtype=ti.i32, shape=())
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the accumulation buffers.

    Args:
        width: Image width in pixels, in [1, MAX_IMAGE_WIDTH].
        height: Image height in pixels, in [1, MAX_IMAGE_HEIGHT].

    Raises:
        ValueError: If either dimension is out of range.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Zero the accumulation buffers and the sample counter."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)
    _total_samples[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the active render target size as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def get_total_samples() -> int:
    """Get the number of samples accumulated per pixel so far."""
    _check_render_target_initialized()
    return int(_total_samples[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Shading
# =============================================================================


@ti.func
def background_color(direction: vec3) -> vec3:
    """Sky color seen along a direction.

    Blends from white at y = -1 to light blue at y = +1 of the unit
    direction.
    """
    unit_dir = unit_vector(direction)
    a = tm.clamp(0.5 * (unit_dir.y + 1.0), 0.0, 1.0)
    return (1.0 - a) * SKY_HORIZON_COLOR + a * SKY_ZENITH_COLOR


@ti.func
def _scatter_material(state: ti.u32, ray_in: Ray, rec: SceneHitRecord):
    """Dispatch to the scatter function of the hit material.

    Unknown material ids absorb the ray.

    Returns:
        A tuple of (new_state, did_scatter, attenuation, scattered_ray).
    """
    mat_type = get_material_type(rec.material_id)
    type_index = get_material_type_index(rec.material_id)

    s = state
    did_scatter = 0
    attenuation = vec3(0.0, 0.0, 0.0)
    scattered = Ray(origin=rec.point, direction=rec.normal, time=ray_in.time)

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(type_index)
        s, did_scatter, attenuation, scattered = scatter_lambertian(
            state, albedo, ray_in, rec.point, rec.normal
        )
    elif mat_type == int(MaterialType.METAL):
        albedo, fuzz = get_metal_params(type_index)
        s, did_scatter, attenuation, scattered = scatter_metal(
            state, albedo, fuzz, ray_in, rec.point, rec.normal
        )
    elif mat_type == int(MaterialType.DIELECTRIC):
        ior = get_dielectric_ior(type_index)
        s, did_scatter, attenuation, scattered = scatter_dielectric(
            state, ior, ray_in, rec.point, rec.normal, rec.front_face
        )

    return s, did_scatter, attenuation, scattered


@ti.func
def ray_color(ray: Ray, max_depth: ti.i32, state: ti.u32):
    """Compute the color carried back along a ray.

    Follows the path bounce by bounce with a running throughput instead of
    recursing. The path ends when it escapes to the sky, is absorbed, or
    runs out of depth; the last two contribute black.

    Args:
        ray: The primary ray.
        max_depth: Maximum number of surface interactions.
        state: RNG state.

    Returns:
        A tuple of (new_state, color).
    """
    s = state
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    current = ray

    # A while loop stays serial even when a kernel calls this at top level
    active = 1
    depth = 0
    while active == 1 and depth < max_depth:
        rec = intersect_scene(current, T_MIN, T_MAX)
        if rec.hit == 0:
            color = throughput * background_color(current.direction)
            active = 0
        else:
            s, did_scatter, attenuation, scattered = _scatter_material(s, current, rec)
            if did_scatter == 0:
                active = 0
            else:
                throughput *= attenuation
                current = scattered
        depth += 1

    return s, color


@ti.func
def _sanitize(color: vec3) -> vec3:
    """Zero NaN, infinite and negative components."""
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]) or result[c] < 0.0:
            result[c] = 0.0
    return result


@ti.func
def _sample_pixel(
    i: ti.i32,
    j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    sample_index: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
) -> vec3:
    pixel_index = ti.cast(j * width + i, ti.u32)
    state = init_rng(seed, pixel_index, ti.cast(sample_index, ti.u32))
    state, ray = get_ray_jittered(i, j, width, height, state)
    state, color = ray_color(ray, max_depth, state)
    return _sanitize(color)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pass(
    width: ti.i32,
    height: ti.i32,
    first_sample: ti.i32,
    num_samples: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
):
    """Add num_samples samples to every pixel of the active region."""
    for i, j in ti.ndrange(width, height):
        total = vec3(0.0, 0.0, 0.0)
        for k in range(num_samples):
            total += _sample_pixel(i, j, width, height, first_sample + k, max_depth, seed)
        _color_buffer[i, j] += total
        _sample_count[i, j] += num_samples


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    sample_index: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
) -> vec3:
    return _sample_pixel(pixel_i, pixel_j, width, height, sample_index, max_depth, seed)


@ti.kernel
def _trace_ray_kernel(
    origin: vec3, direction: vec3, time: ti.f32, max_depth: ti.i32, seed: ti.u32
) -> vec3:
    state = init_rng(seed, ti.u32(0), ti.u32(0))
    ray = Ray(origin=origin, direction=direction, time=time)
    state, color = ray_color(ray, max_depth, state)
    return color


# =============================================================================
# Public Rendering API
# =============================================================================


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int = DEFAULT_MAX_DEPTH,
    seed: int = 0,
    time: float = 0.0,
) -> tuple[float, float, float]:
    """Compute ray_color for an explicit ray against the current scene.

    Args:
        origin: Ray origin.
        direction: Ray direction (non-zero).
        max_depth: Maximum number of bounces.
        seed: Seed of the random stream used for scattering.
        time: Ray time for moving primitives.

    Returns:
        Tuple of (R, G, B) linear color values.
    """
    color = _trace_ray_kernel(
        vec3(origin[0], origin[1], origin[2]),
        vec3(direction[0], direction[1], direction[2]),
        time,
        max_depth,
        seed,
    )
    return (float(color[0]), float(color[1]), float(color[2]))


def render_sample(
    pixel_i: int,
    pixel_j: int,
    sample_index: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Compute one sample of one pixel without touching the buffers.

    Returns exactly the value render_samples() would accumulate for the
    same pixel, sample index and seed.

    Args:
        pixel_i: Pixel column (0 = left).
        pixel_j: Pixel row (0 = bottom).
        sample_index: Absolute sample number within the pixel.
        max_depth: Maximum number of bounces.
        seed: Render seed.

    Returns:
        Tuple of (R, G, B) linear color values.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    color = _render_single_pixel(pixel_i, pixel_j, width, height, sample_index, max_depth, seed)
    return (float(color[0]), float(color[1]), float(color[2]))


def render_samples(num_samples: int, max_depth: int = DEFAULT_MAX_DEPTH, seed: int = 0) -> None:
    """Accumulate more samples into every pixel.

    Sample indices continue from the samples already accumulated, so
    several calls produce the same image as one call with the total count.

    Args:
        num_samples: Number of samples to add per pixel.
        max_depth: Maximum number of bounces per path.
        seed: Render seed.

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If num_samples < 1, max_depth < 0 or seed is out of range.
    """
    _check_render_target_initialized()
    if num_samples < 1:
        raise ValueError(f"num_samples must be at least 1, got {num_samples}")
    if max_depth < 0:
        raise ValueError(f"max_depth must be non-negative, got {max_depth}")
    if not 0 <= seed <= MAX_SEED:
        raise ValueError(f"seed must be in [0, 2^32), got {seed}")

    width, height = get_image_dimensions()
    first_sample = int(_total_samples[None])
    logger.debug(
        "Render pass: %dx%d, samples %d..%d, max_depth=%d",
        width,
        height,
        first_sample,
        first_sample + num_samples - 1,
        max_depth,
    )
    _render_pass(width, height, first_sample, num_samples, max_depth, seed)
    _total_samples[None] = first_sample + num_samples


def get_linear_image() -> np.ndarray:
    """Get the per-pixel average color before gamma correction.

    Returns:
        float32 array of shape (height, width, 3), row 0 at the top.

    Raises:
        RuntimeError: If the render target has not been set up or holds no
            samples yet.
    """
    _check_render_target_initialized()
    if _total_samples[None] == 0:
        raise RuntimeError("No samples rendered yet. Call render_samples() first.")

    width, height = get_image_dimensions()
    sums = _color_buffer.to_numpy()[:width, :height, :]
    counts = _sample_count.to_numpy()[:width, :height]
    image = sums / counts[:, :, np.newaxis]

    # (width, height, 3) with j = 0 at the bottom -> (height, width, 3) top first
    image = np.flipud(np.transpose(image, (1, 0, 2)))
    return np.ascontiguousarray(image, dtype=np.float32)


def to_display_bytes(linear: np.ndarray) -> np.ndarray:
    """Map averaged linear colors to 8-bit display values.

    Applies gamma 2 (square root), clamps to [0, 0.999] and scales by 256,
    so 0.0 maps to 0 and anything at or above 1.0 maps to 255.

    Args:
        linear: Array of averaged linear color values.

    Returns:
        uint8 array of the same shape.
    """
    gamma = np.sqrt(np.clip(linear, 0.0, None))
    return (256.0 * np.clip(gamma, 0.0, 0.999)).astype(np.uint8)


def get_pixel_buffer() -> np.ndarray:
    """Resolve the accumulated samples to display bytes.

    Returns:
        uint8 array of shape (height, width, 3), row 0 at the top.

    Raises:
        RuntimeError: If the render target has not been set up or holds no
            samples yet.
    """
    return to_display_bytes(get_linear_image())
