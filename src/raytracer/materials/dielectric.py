"""Dielectric (glass, water) material.

A dielectric never absorbs light. At each interaction it either reflects or
refracts:

    - Snell's law gives the refracted direction, n1 sin(theta1) = n2 sin(theta2).
    - When ratio * sin(theta) > 1 there is no refracted ray (total internal
      reflection) and the ray reflects.
    - Otherwise it reflects with probability given by Schlick's approximation
      of the Fresnel reflectance and refracts the rest of the time.

The ratio is 1/ior when entering the material (front face) and ior when
leaving it.

Example:
    >>> from src.raytracer.materials.dielectric import WINDOW_GLASS_IOR
    >>> # Inside a Taichi function:
    >>> # state, did_scatter, attenuation, scattered = scatter_dielectric(
    >>> #     state, WINDOW_GLASS_IOR, ray_in, hit_point, normal, front_face
    >>> # )
"""

import logging

import taichi as ti
import taichi.math as tm

from src.raytracer.core.ray import (
    Ray,
    can_refract,
    random_float,
    reflect,
    refract,
    schlick_reflectance,
    unit_vector,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Common refraction indices
VACUUM_IOR = 1.0
WATER_IOR = 1.333
WINDOW_GLASS_IOR = 1.52
DIAMOND_IOR = 2.417


@ti.dataclass
class DielectricMaterial:
    """Dielectric material properties.

    Attributes:
        ior: Index of refraction relative to the surrounding medium.
    """

    ior: ti.f32


@ti.func
def scatter_dielectric(
    state: ti.u32,
    ior: ti.f32,
    ray_in: Ray,
    hit_point: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Reflect or refract a ray at a dielectric boundary.

    One uniform number is drawn per call whether or not it is needed, so the
    stream advances the same way on every path.

    Args:
        state: RNG state.
        ior: Index of refraction of the material.
        ray_in: The incoming ray. Its time is carried over.
        hit_point: Origin of the scattered ray.
        normal: Unit surface normal facing the incoming ray.
        front_face: 1 when entering the material, 0 when leaving.

    Returns:
        A tuple of (new_state, did_scatter, attenuation, scattered_ray).
        Attenuation is always white and did_scatter always 1.
    """
    ratio = ior
    if front_face == 1:
        ratio = 1.0 / ior

    unit_dir = unit_vector(ray_in.direction)
    cos_theta = tm.min(-tm.dot(unit_dir, normal), 1.0)

    s, u = random_float(state)
    direction = vec3(0.0, 0.0, 0.0)
    if not can_refract(unit_dir, normal, ratio) or schlick_reflectance(cos_theta, ratio) > u:
        direction = reflect(unit_dir, normal)
    else:
        direction = refract(unit_dir, normal, ratio)

    scattered = Ray(origin=hit_point, direction=direction, time=ray_in.time)
    return s, 1, vec3(1.0, 1.0, 1.0), scattered


# =============================================================================
# Material Registry
# =============================================================================

MAX_DIELECTRIC_MATERIALS = 1024

dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials from the registry."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = WINDOW_GLASS_IOR) -> int:
    """Register a dielectric material.

    Values below 1 are allowed and model a bubble of thinner medium (for
    example air inside water).

    Args:
        ior: Index of refraction, must be positive.

    Returns:
        The type-local index of the new material.

    Raises:
        ValueError: If ior is not positive.
        RuntimeError: If the registry is full.
    """
    if not ior > 0.0:
        raise ValueError(f"Index of refraction must be positive, got {ior}")

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    logger.debug("Registered dielectric material %d ior=%s", idx, ior)
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of registered dielectric materials."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    """Look up the index of refraction of a registered dielectric."""
    return dielectric_iors[material_idx]
