"""Lambertian (ideal diffuse) material.

A diffuse surface scatters toward ``normal + random_unit_vector()``, which
distributes outgoing directions with a cosine falloff around the normal. The
scattered ray is attenuated by the material's albedo.

Example:
    >>> # Inside a Taichi function:
    >>> # state, did_scatter, attenuation, scattered = scatter_lambertian(
    >>> #     state, albedo, ray_in, hit_point, normal
    >>> # )
"""

import logging

import taichi as ti
import taichi.math as tm

from src.raytracer.core.ray import Ray, near_zero, random_unit_vector

logger = logging.getLogger(__name__)

vec3 = tm.vec3


@ti.dataclass
class LambertianMaterial:
    """Lambertian material properties.

    Attributes:
        albedo: Fraction of light reflected per color channel, each in [0, 1].
    """

    albedo: vec3


@ti.func
def scatter_lambertian(
    state: ti.u32,
    albedo: vec3,
    ray_in: Ray,
    hit_point: vec3,
    normal: vec3,
):
    """Scatter a ray off a diffuse surface.

    When the random unit vector almost cancels the normal the sum would be
    degenerate, so the normal itself is used as the scatter direction.

    Args:
        state: RNG state.
        albedo: Diffuse reflectance (RGB).
        ray_in: The incoming ray. Its time is carried over.
        hit_point: Origin of the scattered ray.
        normal: Unit surface normal facing the incoming ray.

    Returns:
        A tuple of (new_state, did_scatter, attenuation, scattered_ray).
        Diffuse surfaces always scatter.
    """
    s, offset = random_unit_vector(state)
    direction = normal + offset
    if near_zero(direction):
        direction = normal

    scattered = Ray(origin=hit_point, direction=direction, time=ray_in.time)
    return s, 1, albedo, scattered


# =============================================================================
# Material Registry
# =============================================================================

MAX_LAMBERTIAN_MATERIALS = 1024

lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials from the registry."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Register a Lambertian material.

    Args:
        albedo: Diffuse reflectance as (R, G, B), each component in [0, 1].

    Returns:
        The type-local index of the new material.

    Raises:
        ValueError: If any albedo component is outside [0, 1].
        RuntimeError: If the registry is full.
    """
    for i, component in enumerate(albedo):
        if not 0.0 <= component <= 1.0:
            raise ValueError(f"Albedo component {i} = {component} is outside [0, 1]")

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    logger.debug("Registered lambertian material %d albedo=%s", idx, tuple(albedo))
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of registered Lambertian materials."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    """Look up the albedo of a registered Lambertian material."""
    return lambertian_albedos[material_idx]
