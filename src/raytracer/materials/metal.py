"""Metal (specular) material with optional fuzz.

A metal reflects the incoming direction about the surface normal. ``fuzz``
perturbs the mirror direction by a random point in a sphere of that radius,
blurring the reflection. Perturbed directions that end up below the surface
are absorbed.
"""

import logging

import taichi as ti
import taichi.math as tm

from src.raytracer.core.ray import Ray, random_in_unit_sphere, reflect, unit_vector

logger = logging.getLogger(__name__)

vec3 = tm.vec3


@ti.dataclass
class MetalMaterial:
    """Metal material properties.

    Attributes:
        albedo: Reflectance color (RGB, each component in [0, 1]).
        fuzz: Reflection blur radius in [0, 1]. 0 is a perfect mirror.
    """

    albedo: vec3
    fuzz: ti.f32


@ti.func
def scatter_metal(
    state: ti.u32,
    albedo: vec3,
    fuzz: ti.f32,
    ray_in: Ray,
    hit_point: vec3,
    normal: vec3,
):
    """Scatter a ray off a metal surface.

    Args:
        state: RNG state.
        albedo: Reflectance color.
        fuzz: Reflection blur radius.
        ray_in: The incoming ray. Its time is carried over.
        hit_point: Origin of the scattered ray.
        normal: Unit surface normal facing the incoming ray.

    Returns:
        A tuple of (new_state, did_scatter, attenuation, scattered_ray).
        did_scatter is 0 when the fuzzed direction points into the surface.
    """
    reflected = reflect(unit_vector(ray_in.direction), normal)
    s, jitter = random_in_unit_sphere(state)
    direction = reflected + fuzz * jitter

    did_scatter = 0
    if tm.dot(direction, normal) > 0.0:
        did_scatter = 1

    scattered = Ray(origin=hit_point, direction=direction, time=ray_in.time)
    return s, did_scatter, albedo, scattered


# =============================================================================
# Material Registry
# =============================================================================

MAX_METAL_MATERIALS = 1024

metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzz = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Clear all metal materials from the registry."""
    num_metal_materials[None] = 0


def add_metal_material(albedo: tuple[float, float, float], fuzz: float = 0.0) -> int:
    """Register a metal material.

    Args:
        albedo: Reflectance as (R, G, B), each component in [0, 1].
        fuzz: Reflection blur radius in [0, 1].

    Returns:
        The type-local index of the new material.

    Raises:
        ValueError: If an albedo component or fuzz is outside [0, 1].
        RuntimeError: If the registry is full.
    """
    for i, component in enumerate(albedo):
        if not 0.0 <= component <= 1.0:
            raise ValueError(f"Albedo component {i} = {component} is outside [0, 1]")
    if not 0.0 <= fuzz <= 1.0:
        raise ValueError(f"Fuzz {fuzz} is outside [0, 1]")

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded")

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzz[idx] = fuzz
    num_metal_materials[None] = idx + 1
    logger.debug("Registered metal material %d albedo=%s fuzz=%s", idx, tuple(albedo), fuzz)
    return idx


def get_metal_material_count() -> int:
    """Get the number of registered metal materials."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_params(material_idx: ti.i32):
    """Look up (albedo, fuzz) of a registered metal material."""
    return metal_albedos[material_idx], metal_fuzz[material_idx]
