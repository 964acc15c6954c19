"""Core rendering module.

Components:
    rng: Hash-seeded xorshift random streams with explicit state
    ray: Ray data structure, vector algebra and random sampling
    integrator: RenderSettings, ray_color, render target and resolve
    progressive: Batched sample accumulation and render_scene

Note: integrator and progressive are NOT imported here to avoid circular
imports. Import them directly from src.raytracer.core.integrator or
src.raytracer.core.progressive.
"""

from .ray import (
    Ray,
    can_refract,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    random_float,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_on_hemisphere,
    random_range,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    safe_unit_vector,
    schlick_reflectance,
    unit_vector,
    vec3,
)
from .rng import init_rng, next_float, wang_hash, xorshift32

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "dot",
    "cross",
    "unit_vector",
    "safe_unit_vector",
    "near_zero",
    "reflect",
    "refract",
    "can_refract",
    "schlick_reflectance",
    "random_float",
    "random_range",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_on_hemisphere",
    "random_in_unit_disk",
    "init_rng",
    "next_float",
    "wang_hash",
    "xorshift32",
]
