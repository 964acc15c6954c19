"""Ray data structure, vector algebra and random sampling utilities.

This module provides the Ray dataclass and the vector helpers every other
stage of the pipeline builds on. All functions are Taichi functions meant to
be called from inside kernels.

Random sampling functions take the caller's generator state (see
``src.raytracer.core.rng``) and return the advanced state as the first
element of a tuple, so randomness is always an explicit input.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction, time=0.0)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

from src.raytracer.core.rng import next_float

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Components below this magnitude count as zero in near_zero()
NEAR_ZERO_EPSILON = 1e-8


@ti.dataclass
class Ray:
    """A ray with an origin, a direction and a shutter time.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to be
            unit length.
        time: The moment within the camera shutter interval at which the
            ray was emitted. Moving primitives are intersected at this time.
    """

    origin: vec3
    direction: vec3
    time: ti.f32


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3, time: ti.f32) -> Ray:
    """Create a ray from origin, direction and time."""
    return Ray(origin=origin, direction=direction, time=time)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def unit_vector(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    The input must have non-zero length. The precondition is asserted, which
    Taichi checks when initialised with ``debug=True``.

    Args:
        v: The input vector.

    Returns:
        A unit vector in the same direction as v.
    """
    len_sq = tm.dot(v, v)
    assert len_sq > 0.0, "unit_vector() called on a zero-length vector"
    return v / ti.sqrt(len_sq)


@ti.func
def safe_unit_vector(v: vec3, fallback: vec3) -> vec3:
    """Normalize a vector, substituting fallback when it is (near) zero.

    Args:
        v: The input vector.
        fallback: Returned unchanged when v is too short to normalize.

    Returns:
        The normalized vector or the fallback.
    """
    result = fallback
    len_sq = tm.dot(v, v)
    if len_sq > NEAR_ZERO_EPSILON * NEAR_ZERO_EPSILON:
        result = v / ti.sqrt(len_sq)
    return result


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Used to detect degenerate scatter directions.

    Returns:
        1 if all components are near zero, 0 otherwise.
    """
    s = NEAR_ZERO_EPSILON
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes R = I - 2(I . N)N. The normal should be unit length.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal.

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def can_refract(incident: vec3, normal: vec3, eta: ti.f32) -> ti.i32:
    """Check whether Snell's law admits a refracted direction.

    Args:
        incident: The incoming direction (unit length).
        normal: The surface normal facing the incoming ray (unit length).
        eta: Ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        1 if refraction is possible, 0 under total internal reflection.
    """
    cos_theta = tm.min(-tm.dot(incident, normal), 1.0)
    sin_theta = ti.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))
    return 1 if eta * sin_theta <= 1.0 else 0


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract an incident vector through a surface.

    Computes the refracted direction using Snell's law. Under total internal
    reflection there is no refracted direction and a zero vector is returned;
    callers check can_refract() first and reflect instead.

    Args:
        incident: The incoming direction vector (unit length).
        normal: The surface normal facing the incoming ray (unit length).
        eta: The ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted direction vector, or a zero vector on total internal
        reflection.
    """
    cos_theta = tm.min(-tm.dot(incident, normal), 1.0)
    r_out_perp = eta * (incident + cos_theta * normal)
    k = 1.0 - tm.dot(r_out_perp, r_out_perp)
    result = vec3(0.0, 0.0, 0.0)
    if k >= 0.0:
        r_out_parallel = -ti.sqrt(k) * normal
        result = r_out_perp + r_out_parallel
    return result


@ti.func
def schlick_reflectance(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Compute Fresnel reflectance using Schlick's approximation.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ref_idx: Ratio of refractive indices.

    Returns:
        The approximate Fresnel reflectance coefficient.
    """
    r0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_float(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Returns:
        A tuple of (new_state, value).
    """
    return next_float(state)


@ti.func
def random_range(state: ti.u32, lo: ti.f32, hi: ti.f32):
    """Draw a uniform float in [lo, hi).

    Returns:
        A tuple of (new_state, value).
    """
    new_state, u = next_float(state)
    return new_state, lo + (hi - lo) * u


@ti.func
def random_in_unit_sphere(state: ti.u32):
    """Generate a random point strictly inside the unit sphere.

    Rejection sampling: draw from the [-1, 1]^3 cube until the point lands
    inside the sphere (about two draws on average).

    Returns:
        A tuple of (new_state, point) with length(point) < 1.
    """
    s = state
    p = vec3(1.0, 1.0, 1.0)
    while length_squared(p) >= 1.0:
        s, x = random_range(s, -1.0, 1.0)
        s, y = random_range(s, -1.0, 1.0)
        s, z = random_range(s, -1.0, 1.0)
        p = vec3(x, y, z)
    return s, p


@ti.func
def random_unit_vector(state: ti.u32):
    """Generate a random unit vector uniformly distributed on the sphere.

    Points too close to the origin are rejected along with points outside
    the sphere so the normalization is always well defined.

    Returns:
        A tuple of (new_state, unit_vector).
    """
    s = state
    p = vec3(0.0, 0.0, 0.0)
    len_sq = 0.0
    while len_sq <= 1e-12 or len_sq >= 1.0:
        s, x = random_range(s, -1.0, 1.0)
        s, y = random_range(s, -1.0, 1.0)
        s, z = random_range(s, -1.0, 1.0)
        p = vec3(x, y, z)
        len_sq = length_squared(p)
    return s, p / ti.sqrt(len_sq)


@ti.func
def random_on_hemisphere(state: ti.u32, normal: vec3):
    """Generate a random unit vector in the hemisphere around a normal.

    Returns:
        A tuple of (new_state, direction) with dot(direction, normal) >= 0.
    """
    s, on_sphere = random_unit_vector(state)
    result = on_sphere
    if tm.dot(on_sphere, normal) < 0.0:
        result = -on_sphere
    return s, result


@ti.func
def random_in_unit_disk(state: ti.u32):
    """Generate a random point inside the unit disk in the xy-plane.

    Used for sampling the camera lens.

    Returns:
        A tuple of (new_state, point) where point = (x, y, 0), x^2 + y^2 < 1.
    """
    s = state
    p = vec3(1.0, 1.0, 0.0)
    while length_squared(p) >= 1.0:
        s, x = random_range(s, -1.0, 1.0)
        s, y = random_range(s, -1.0, 1.0)
        p = vec3(x, y, 0.0)
    return s, p
