"""Scene storage, management and preset scenes.

Components:
    intersection: Primitive fields and the closest-hit query
    manager: Unified material ids, primitive insertion, serialization
    presets: Material showcase, random spheres and ground scenes
"""

from .intersection import (
    MAX_PRIMITIVES,
    MAX_QUADS,
    MAX_SPHERES,
    SceneHitRecord,
    add_moving_sphere,
    add_quad,
    add_sphere,
    clear_scene,
    get_primitive_count,
    get_quad_count,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    PrimitiveInfo,
    SceneConfig,
    SceneManager,
    get_material_type,
    get_material_type_index,
)
from .presets import (
    create_ground_scene,
    create_material_showcase_scene,
    create_random_spheres_scene,
)

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "add_moving_sphere",
    "add_quad",
    "clear_scene",
    "get_sphere_count",
    "get_quad_count",
    "get_primitive_count",
    "intersect_scene",
    "MAX_SPHERES",
    "MAX_QUADS",
    "MAX_PRIMITIVES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "PrimitiveInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Presets
    "create_material_showcase_scene",
    "create_random_spheres_scene",
    "create_ground_scene",
]
