"""Sphere primitive, optionally moving, with ray-sphere intersection.

A sphere carries two centers and a shutter window. Static spheres store the
same point twice; moving spheres slide linearly from ``center`` at ``time0``
to ``center1`` at ``time1``, which gives motion blur when the camera spreads
ray times over its shutter interval.

Intersection solves the half-b quadratic with a sign-aware root formula so
that grazing rays do not lose precision to cancellation.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracer.geometry.sphere import make_static_sphere
    >>> # Inside a Taichi function:
    >>> # sphere = make_static_sphere(ti.math.vec3(0, 0, -1), 0.5)
    >>> # rec = hit_sphere(ray, sphere, 0.001, 1e10)
"""

import taichi as ti
import taichi.math as tm

from src.raytracer.core.ray import Ray, ray_at

vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere whose center may move during the shutter interval.

    Attributes:
        center: Center at ``time0`` (vec3).
        radius: Radius (positive float).
        center1: Center at ``time1``. Equal to ``center`` for static spheres.
        time0: Start of the motion window.
        time1: End of the motion window.
    """

    center: vec3
    radius: ti.f32
    center1: vec3
    time0: ti.f32
    time1: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: 1 if the ray intersected the primitive, 0 on a miss.
        t: Ray parameter of the intersection. Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        normal: Unit surface normal facing against the incoming ray.
            Only valid if hit == 1.
        front_face: 1 if the ray struck the outside of the surface, 0 if it
            struck from inside. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def sphere_center_at(sphere: Sphere, time: ti.f32) -> vec3:
    """Return the sphere center at a given ray time.

    Times outside the motion window extrapolate linearly. A zero-length
    window always yields ``sphere.center``.
    """
    center = sphere.center
    span = sphere.time1 - sphere.time0
    if span > 0.0:
        center = sphere.center + ((time - sphere.time0) / span) * (
            sphere.center1 - sphere.center
        )
    return center


@ti.func
def _solve_quadratic(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Return both roots of a*t^2 + 2*h*t + c = 0, smaller first.

    Uses q = -(h + sign(h) * sqrt(h^2 - ac)); t0 = q / a, t1 = c / q.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0
    if ti.abs(q) < 1e-10:
        # Tangent through the origin of the frame; the textbook form is exact here
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        tmp = t0
        t0 = t1
        t1 = tmp

    return t0, t1


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Test a ray against a sphere over the closed interval [t_min, t_max].

    The intersection solves |O + tD - C|^2 = r^2 where C is the sphere
    center at ``ray.time``:

        a = dot(D, D)
        h = dot(D, O - C)
        c = dot(O - C, O - C) - r^2

    The smaller root is taken when it lies in range, otherwise the larger
    one. A ray with a zero direction never hits.

    Args:
        ray: The ray to test.
        sphere: The sphere to test against.
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Returns:
        A HitRecord. The normal is the outward normal when the ray arrives
        from outside and its negation otherwise.
    """
    center = sphere_center_at(sphere, ray.time)
    oc = ray.origin - center

    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if a > 0.0 and discriminant >= 0.0:
        t0, t1 = _solve_quadratic(h, a, c, ti.sqrt(discriminant))

        t = t0
        valid = t >= t_min and t <= t_max
        if not valid:
            t = t1
            valid = t >= t_min and t <= t_max

        if valid:
            did_hit = 1
            hit_t = t
            hit_point = ray_at(ray, t)
            outward_normal = (hit_point - center) / sphere.radius
            if tm.dot(ray.direction, outward_normal) < 0.0:
                is_front_face = 1
                hit_normal = outward_normal
            else:
                hit_normal = -outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )


@ti.func
def make_static_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere that does not move."""
    return Sphere(center=center, radius=radius, center1=center, time0=0.0, time1=0.0)


@ti.func
def make_moving_sphere(
    center0: vec3, center1: vec3, time0: ti.f32, time1: ti.f32, radius: ti.f32
) -> Sphere:
    """Create a sphere moving from center0 at time0 to center1 at time1."""
    return Sphere(
        center=center0, radius=radius, center1=center1, time0=time0, time1=time1
    )
