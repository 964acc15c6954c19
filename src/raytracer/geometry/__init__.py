"""Geometric primitives and their ray intersection tests.

Components:
    sphere: Static and moving spheres, the shared HitRecord
    quad: Parallelograms

Every primitive exposes ``hit_<kind>(ray, primitive, t_min, t_max)``
returning a HitRecord whose normal faces against the incoming ray.
"""

from .quad import Quad, hit_quad, quad_area
from .sphere import (
    HitRecord,
    Sphere,
    hit_sphere,
    make_moving_sphere,
    make_static_sphere,
    sphere_center_at,
)

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "sphere_center_at",
    "make_static_sphere",
    "make_moving_sphere",
    "Quad",
    "hit_quad",
    "quad_area",
]
