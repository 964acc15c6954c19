"""Thin-lens camera with defocus blur and a shutter interval.

The camera builds an orthonormal basis (u, v, w) from its look-at parameters:

    - w points from lookat back toward lookfrom (opposite the view direction)
    - u points right in the image plane
    - v points up in the image plane

The image plane sits at the focus distance in front of the camera. Rays start
at a random point on a lens disk of radius ``aperture / 2`` around the camera
origin and pass through the point (s, t) of the image plane, so geometry at
the focus distance is sharp and everything else blurs. With ``aperture=0``
the camera is an ideal pinhole.

Each ray also gets a time drawn uniformly from [time0, time1], which moving
spheres use for motion blur.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracer.camera.thin_lens import Camera, setup_camera
    >>> camera = Camera(
    ...     lookfrom=(-2.0, 2.0, 1.0),
    ...     lookat=(0.0, 0.0, -1.0),
    ...     vfov=20.0,
    ...     aspect_ratio=16.0 / 9.0,
    ...     aperture=0.5,
    ... )
    >>> setup_camera(camera)
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from src.raytracer.core.ray import Ray, random_float, random_in_unit_disk, vec3

logger = logging.getLogger(__name__)


@dataclass
class Camera:
    """Configuration for a thin-lens camera.

    Attributes:
        lookfrom: Camera position in world space.
        lookat: Point the camera looks at.
        vup: World up direction. Must not be parallel to the view direction.
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Image width divided by height.
        aperture: Lens diameter. 0 disables defocus blur.
        focus_dist: Distance to the plane of perfect focus. Defaults to the
            distance between lookfrom and lookat.
        time0: Shutter open time.
        time1: Shutter close time.

    Raises:
        ValueError: If any parameter is out of range.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0
    aspect_ratio: float = 16.0 / 9.0
    aperture: float = 0.0
    focus_dist: float | None = None
    time0: float = 0.0
    time1: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if not self.aspect_ratio > 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.aperture < 0.0:
            raise ValueError(f"aperture must be non-negative, got {self.aperture}")
        if self.time1 < self.time0:
            raise ValueError(f"time1 ({self.time1}) must not precede time0 ({self.time0})")

        view = np.asarray(self.lookat, dtype=np.float64) - np.asarray(
            self.lookfrom, dtype=np.float64
        )
        distance = float(np.linalg.norm(view))
        if distance == 0.0:
            raise ValueError("lookfrom and lookat must be different points")
        if np.linalg.norm(np.cross(np.asarray(self.vup, dtype=np.float64), view)) < 1e-8 * distance:
            raise ValueError("vup must not be parallel to the view direction")

        if self.focus_dist is None:
            self.focus_dist = distance
        elif not self.focus_dist > 0.0:
            raise ValueError(f"focus_dist must be positive, got {self.focus_dist}")


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward

# Image plane at the focus distance
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_lens_radius = ti.field(dtype=ti.f32, shape=())
_time0 = ti.field(dtype=ti.f32, shape=())
_time1 = ti.field(dtype=ti.f32, shape=())


def setup_camera(camera: Camera) -> None:
    """Compute the camera frame and store it in the camera fields.

    Must be called from Python scope before rendering.

    Args:
        camera: Validated camera configuration.
    """
    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = lookfrom - lookat
    w = w / np.linalg.norm(w)
    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)
    v = np.cross(w, u)

    focus_dist = camera.focus_dist
    horizontal = focus_dist * viewport_width * u
    vertical = focus_dist * viewport_height * v
    lower_left = lookfrom - horizontal / 2.0 - vertical / 2.0 - focus_dist * w

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0
    _time0[None] = camera.time0
    _time1[None] = camera.time1

    logger.debug(
        "Camera at %s looking at %s (vfov=%.1f, aperture=%.3f, focus=%.3f)",
        camera.lookfrom,
        camera.lookat,
        camera.vfov,
        camera.aperture,
        focus_dist,
    )


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32, state: ti.u32):
    """Generate a ray through image-plane coordinates (s, t).

    Coordinates are normalized: s = 0 is the left edge and s = 1 the right
    edge, t = 0 is the bottom edge and t = 1 the top edge. The direction is
    not normalized.

    Args:
        s: Horizontal coordinate.
        t: Vertical coordinate.
        state: RNG state, used for the lens sample and the ray time.

    Returns:
        A tuple of (new_state, ray).
    """
    st, disk = random_in_unit_disk(state)
    rd = _lens_radius[None] * disk
    offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    st, shutter = random_float(st)
    time = _time0[None] + shutter * (_time1[None] - _time0[None])

    origin = _camera_origin[None] + offset
    target = _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    return st, Ray(origin=origin, direction=target - origin, time=time)


@ti.func
def get_ray_jittered(
    pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32, state: ti.u32
):
    """Generate a ray through a random point inside pixel (i, j).

    Args:
        pixel_i: Pixel column (0 = left).
        pixel_j: Pixel row (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        state: RNG state.

    Returns:
        A tuple of (new_state, ray).
    """
    st, jitter_u = random_float(state)
    st, jitter_v = random_float(st)
    s = (ti.cast(pixel_i, ti.f32) + jitter_u) / ti.cast(width, ti.f32)
    t = (ti.cast(pixel_j, ti.f32) + jitter_v) / ti.cast(height, ti.f32)
    return get_ray(s, t, st)


@ti.func
def get_camera_origin() -> vec3:
    """Get the camera position in world space."""
    return _camera_origin[None]


def get_camera_info() -> dict[str, tuple[float, float, float] | float]:
    """Get the current camera state for inspection.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left
        as 3-tuples and lens_radius, time0, time1 as floats.
    """

    def _tuple(f) -> tuple[float, float, float]:
        vec = f[None]
        return (float(vec[0]), float(vec[1]), float(vec[2]))

    return {
        "origin": _tuple(_camera_origin),
        "u": _tuple(_camera_u),
        "v": _tuple(_camera_v),
        "w": _tuple(_camera_w),
        "horizontal": _tuple(_viewport_horizontal),
        "vertical": _tuple(_viewport_vertical),
        "lower_left": _tuple(_lower_left_corner),
        "lens_radius": float(_lens_radius[None]),
        "time0": float(_time0[None]),
        "time1": float(_time1[None]),
    }
