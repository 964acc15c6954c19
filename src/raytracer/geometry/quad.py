"""Parallelogram primitive.

A quad is given by a corner ``Q`` and two edge vectors ``u`` and ``v``; it
covers the points ``Q + alpha * u + beta * v`` with alpha and beta in [0, 1].
Its geometric normal follows the right-hand rule, ``normalize(cross(u, v))``.

Intersection is a plane test followed by a bounds test in the quad's own
(alpha, beta) coordinates, using the same HitRecord and front-face
convention as spheres.
"""

import taichi as ti
import taichi.math as tm

from src.raytracer.core.ray import Ray, ray_at
from src.raytracer.geometry.sphere import HitRecord

vec3 = tm.vec3


@ti.dataclass
class Quad:
    """A parallelogram defined by a corner point and two edge vectors.

    Attributes:
        Q: The corner point (vec3).
        u: First edge vector from Q (vec3).
        v: Second edge vector from Q (vec3).
    """

    Q: vec3
    u: vec3
    v: vec3


@ti.func
def _plane_frame(quad: Quad):
    """Return (unit_normal, plane_d, w_u, w_v) for a quad.

    ``w_u`` and ``w_v`` are dual vectors: for a point P on the plane,
    alpha = dot(w_u, P - Q) and beta = dot(w_v, P - Q). They are zero for a
    degenerate quad, which then reports no hits.
    """
    n = tm.cross(quad.u, quad.v)
    n_dot_n = tm.dot(n, n)

    normal = vec3(0.0, 0.0, 0.0)
    w_u = vec3(0.0, 0.0, 0.0)
    w_v = vec3(0.0, 0.0, 0.0)
    if n_dot_n > 1e-10:
        normal = n / ti.sqrt(n_dot_n)
        w_u = tm.cross(quad.v, n) / n_dot_n
        w_v = tm.cross(n, quad.u) / n_dot_n

    d = tm.dot(normal, quad.Q)
    return normal, d, w_u, w_v


@ti.func
def hit_quad(ray: Ray, quad: Quad, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Test a ray against a quad over the closed interval [t_min, t_max].

    Args:
        ray: The ray to test.
        quad: The quad to test against.
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Returns:
        A HitRecord. Rays parallel to the plane never hit.
    """
    normal, d, w_u, w_v = _plane_frame(quad)
    denom = tm.dot(normal, ray.direction)

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if ti.abs(denom) > 1e-8:
        t = (d - tm.dot(normal, ray.origin)) / denom
        if t >= t_min and t <= t_max:
            p = ray_at(ray, t)
            rel = p - quad.Q
            alpha = tm.dot(w_u, rel)
            beta = tm.dot(w_v, rel)
            if alpha >= 0.0 and alpha <= 1.0 and beta >= 0.0 and beta <= 1.0:
                did_hit = 1
                hit_t = t
                hit_point = p
                if denom < 0.0:
                    is_front_face = 1
                    hit_normal = normal
                else:
                    hit_normal = -normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )


@ti.func
def quad_area(quad: Quad) -> ti.f32:
    """Area of the parallelogram, |u x v|."""
    return tm.length(tm.cross(quad.u, quad.v))
