"""Material models.

Components:
    lambertian: Ideal diffuse reflection
    metal: Mirror reflection with optional fuzz
    dielectric: Glass-like reflection and refraction

Every scatter function takes the RNG state first and returns
(new_state, did_scatter, attenuation, scattered_ray). Each material type
keeps its parameters in its own registry of Taichi fields.
"""

from .dielectric import (
    DIAMOND_IOR,
    VACUUM_IOR,
    WATER_IOR,
    WINDOW_GLASS_IOR,
    DielectricMaterial,
    add_dielectric_material,
    clear_dielectric_materials,
    get_dielectric_ior,
    get_dielectric_material_count,
    scatter_dielectric,
)
from .lambertian import (
    LambertianMaterial,
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_albedo,
    get_lambertian_material_count,
    scatter_lambertian,
)
from .metal import (
    MetalMaterial,
    add_metal_material,
    clear_metal_materials,
    get_metal_material_count,
    get_metal_params,
    scatter_metal,
)

__all__ = [
    # Lambertian
    "LambertianMaterial",
    "scatter_lambertian",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    "get_lambertian_albedo",
    # Metal
    "MetalMaterial",
    "scatter_metal",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    "get_metal_params",
    # Dielectric
    "DielectricMaterial",
    "scatter_dielectric",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "get_dielectric_ior",
    "VACUUM_IOR",
    "WATER_IOR",
    "WINDOW_GLASS_IOR",
    "DIAMOND_IOR",
]
