"""Scene storage and closest-hit queries.

Primitives live in preallocated Taichi fields. Each primitive kind keeps its
own Structure-of-Arrays storage, and a unified primitive table records the
insertion order as (kind, slot, material_id) rows. ``intersect_scene`` walks
that table front to back so that, when two primitives are hit at exactly the
same distance, the one added first wins.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracer.scene.intersection import add_sphere, clear_scene
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -1.0), 0.5, material_id=0)
    0
    >>> # Use intersect_scene(ray, t_min, t_max) within a Taichi kernel
"""

import logging
from typing import Sequence

import numpy as np
import taichi as ti
import taichi.math as tm

from src.raytracer.core.ray import Ray
from src.raytracer.geometry.quad import Quad, hit_quad
from src.raytracer.geometry.sphere import HitRecord, Sphere, hit_sphere

logger = logging.getLogger(__name__)

vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: 1 if any primitive was hit, 0 on a miss.
        t: Ray parameter of the closest intersection.
        point: The closest intersection point.
        normal: Unit normal facing against the incoming ray.
        front_face: 1 if the ray struck the outside of the surface.
        material_id: Unified material id of the hit primitive, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


# Primitive kinds stored in the unified table
PRIM_SPHERE = 0
PRIM_QUAD = 1

MAX_SPHERES = 1024
MAX_QUADS = 1024
MAX_PRIMITIVES = MAX_SPHERES + MAX_QUADS

# Sphere storage (Structure of Arrays)
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_centers1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_time0 = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_time1 = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Quad storage (Structure of Arrays)
quad_corners = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_edge_u = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_edge_v = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
num_quads = ti.field(dtype=ti.i32, shape=())

# Unified primitive table in insertion order
primitive_kinds = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
primitive_slots = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
primitive_material_ids = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
num_primitives = ti.field(dtype=ti.i32, shape=())


def _as_vec3(value: Sequence[float]) -> vec3:
    """Convert a 3-sequence (tuple, list, ndarray or vec3) to a vec3."""
    return vec3(float(value[0]), float(value[1]), float(value[2]))


def clear_scene() -> None:
    """Remove all primitives from the scene.

    Only the counters are reset; stale field data is overwritten as new
    primitives are added.
    """
    num_spheres[None] = 0
    num_quads[None] = 0
    num_primitives[None] = 0


def _append_primitive(kind: int, slot: int, material_id: int) -> int:
    idx = num_primitives[None]
    if idx >= MAX_PRIMITIVES:
        raise RuntimeError(f"Maximum number of primitives ({MAX_PRIMITIVES}) exceeded")
    primitive_kinds[idx] = kind
    primitive_slots[idx] = slot
    primitive_material_ids[idx] = material_id
    num_primitives[None] = idx + 1
    return idx


def add_moving_sphere(
    center0: Sequence[float],
    center1: Sequence[float],
    time0: float,
    time1: float,
    radius: float,
    material_id: int = 0,
) -> int:
    """Add a sphere that moves linearly from center0 to center1.

    Args:
        center0: Center at time0.
        center1: Center at time1.
        time0: Start of the motion window.
        time1: End of the motion window (must not precede time0).
        radius: Sphere radius (must be positive).
        material_id: Unified material id for the sphere.

    Returns:
        The sphere's slot index in the sphere storage.

    Raises:
        ValueError: If the radius is not positive or time1 < time0.
        RuntimeError: If sphere or primitive capacity is exhausted.
    """
    if not radius > 0.0:
        raise ValueError(f"Sphere radius must be positive, got {radius}")
    if time1 < time0:
        raise ValueError(f"time1 ({time1}) must not precede time0 ({time0})")

    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

    _append_primitive(PRIM_SPHERE, idx, material_id)
    sphere_centers[idx] = _as_vec3(center0)
    sphere_centers1[idx] = _as_vec3(center1)
    sphere_radii[idx] = radius
    sphere_time0[idx] = time0
    sphere_time1[idx] = time1
    num_spheres[None] = idx + 1
    logger.debug("Added sphere %d (radius=%s, material=%d)", idx, radius, material_id)
    return idx


def add_sphere(center: Sequence[float], radius: float, material_id: int = 0) -> int:
    """Add a static sphere to the scene.

    Args:
        center: The center point.
        radius: The radius (must be positive).
        material_id: Unified material id for the sphere.

    Returns:
        The sphere's slot index in the sphere storage.

    Raises:
        ValueError: If the radius is not positive.
        RuntimeError: If sphere or primitive capacity is exhausted.
    """
    return add_moving_sphere(center, center, 0.0, 0.0, radius, material_id)


def add_quad(
    q: Sequence[float], u: Sequence[float], v: Sequence[float], material_id: int = 0
) -> int:
    """Add a parallelogram with vertices Q, Q+u, Q+v, Q+u+v.

    Returns:
        The quad's slot index in the quad storage.

    Raises:
        ValueError: If u and v are parallel or zero (the quad has no area).
        RuntimeError: If quad or primitive capacity is exhausted.
    """
    edge_u = np.array([float(u[0]), float(u[1]), float(u[2])])
    edge_v = np.array([float(v[0]), float(v[1]), float(v[2])])
    area = float(np.linalg.norm(np.cross(edge_u, edge_v)))
    if area < 1e-8:
        raise ValueError("Quad edges must span a non-degenerate parallelogram")

    idx = num_quads[None]
    if idx >= MAX_QUADS:
        raise RuntimeError(f"Maximum number of quads ({MAX_QUADS}) exceeded")

    _append_primitive(PRIM_QUAD, idx, material_id)
    quad_corners[idx] = _as_vec3(q)
    quad_edge_u[idx] = _as_vec3(u)
    quad_edge_v[idx] = _as_vec3(v)
    num_quads[None] = idx + 1
    logger.debug("Added quad %d (area=%.4g, material=%d)", idx, area, material_id)
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_quad_count() -> int:
    """Get the number of quads in the scene."""
    return int(num_quads[None])


def get_primitive_count() -> int:
    """Get the total number of primitives in the scene."""
    return int(num_primitives[None])


@ti.func
def _load_sphere(slot: ti.i32) -> Sphere:
    return Sphere(
        center=sphere_centers[slot],
        radius=sphere_radii[slot],
        center1=sphere_centers1[slot],
        time0=sphere_time0[slot],
        time1=sphere_time1[slot],
    )


@ti.func
def _load_quad(slot: ti.i32) -> Quad:
    return Quad(Q=quad_corners[slot], u=quad_edge_u[slot], v=quad_edge_v[slot])


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )


@ti.func
def intersect_scene(ray: Ray, t_min: ti.f32, t_max: ti.f32) -> SceneHitRecord:
    """Find the closest primitive hit by a ray in [t_min, t_max].

    The search interval shrinks to the best t found so far. A later
    primitive only replaces the current best when it is strictly closer, so
    exact ties resolve to the primitive inserted first.

    Args:
        ray: The ray to trace.
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Returns:
        The closest SceneHitRecord, or a miss record (hit=0, material_id=-1).
    """
    closest_t = t_max
    result = _make_miss_record()

    for k in range(num_primitives[None]):
        slot = primitive_slots[k]
        rec = HitRecord(
            hit=0,
            t=0.0,
            point=vec3(0.0, 0.0, 0.0),
            normal=vec3(0.0, 0.0, 0.0),
            front_face=0,
        )
        if primitive_kinds[k] == PRIM_SPHERE:
            rec = hit_sphere(ray, _load_sphere(slot), t_min, closest_t)
        else:
            rec = hit_quad(ray, _load_quad(slot), t_min, closest_t)

        if rec.hit == 1 and (result.hit == 0 or rec.t < closest_t):
            closest_t = rec.t
            result = SceneHitRecord(
                hit=1,
                t=rec.t,
                point=rec.point,
                normal=rec.normal,
                front_face=rec.front_face,
                material_id=primitive_material_ids[k],
            )

    return result
