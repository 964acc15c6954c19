"""Scene manager coordinating primitives and materials.

The SceneManager gives every material a unified id, whatever its type, and
records the mapping id -> (type, type-local index) in Taichi fields so the
integrator can dispatch to the right scatter function on the device.

It also keeps a host-side record of everything added, which is what
``to_dict`` / ``from_dict`` serialize. Primitives are recorded in insertion
order, the same order ``intersect_scene`` uses to break ties.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> glass = scene.add_dielectric_material(ior=1.52)
    >>> scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    0
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti

from src.raytracer.materials.dielectric import (
    MAX_DIELECTRIC_MATERIALS,
    add_dielectric_material,
    clear_dielectric_materials,
)
from src.raytracer.materials.lambertian import (
    MAX_LAMBERTIAN_MATERIALS,
    add_lambertian_material,
    clear_lambertian_materials,
)
from src.raytracer.materials.metal import (
    MAX_METAL_MATERIALS,
    add_metal_material,
    clear_metal_materials,
)
from src.raytracer.scene.intersection import (
    MAX_PRIMITIVES,
    add_moving_sphere,
    add_quad,
    add_sphere,
    clear_scene,
    get_primitive_count,
    get_quad_count,
    get_sphere_count,
)

logger = logging.getLogger(__name__)


class MaterialType(IntEnum):
    """Material variants understood by the integrator's dispatch."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


MAX_MATERIALS = MAX_LAMBERTIAN_MATERIALS + MAX_METAL_MATERIALS + MAX_DIELECTRIC_MATERIALS

# material_types[id] is the MaterialType of unified material id
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[id] is the index into that type's registry
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the MaterialType of a unified material id, or -1 if unknown."""
    result = -1
    if material_id >= 0 and material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local registry index of a unified material id, or -1."""
    result = -1
    if material_id >= 0 and material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Host-side record of a registered material.

    Attributes:
        material_id: The unified material id.
        material_type: The material variant.
        type_index: Index within the type's registry.
        params: Parameters as given at creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class PrimitiveInfo:
    """Host-side record of a primitive.

    Attributes:
        kind: ``"sphere"`` or ``"quad"``.
        index: Slot in the kind's storage arrays.
        material_id: Unified material id of the primitive.
        params: Geometric parameters as given at creation.
    """

    kind: str
    index: int
    material_id: int
    params: dict[str, Any]


@dataclass
class SceneConfig:
    """Serializable scene description.

    Attributes:
        materials: Material entries, each with a ``"type"`` key. A material's
            position in the list is its id.
        primitives: Primitive entries in insertion order, each with a
            ``"type"`` key of ``"sphere"`` or ``"quad"``.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    primitives: list[dict[str, Any]] = field(default_factory=list)


def _triple(value: Any) -> tuple[float, float, float]:
    return (float(value[0]), float(value[1]), float(value[2]))


class SceneManager:
    """Builds a scene in the global Taichi fields.

    Creating a SceneManager clears any previous scene, since the primitive
    and material storage is shared module state.

    Attributes:
        materials: MaterialInfo for every material, indexed by material id.
        primitives: PrimitiveInfo for every primitive, in insertion order.

    Example:
        >>> scene = SceneManager()
        >>> ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.0)
        >>> scene.add_sphere((0, -100.5, -1), 100.0, ground)
        0
        >>> scene.add_sphere((1, 0, -1), 0.5, gold)
        1
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.primitives: list[PrimitiveInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.primitives.clear()

    def clear(self) -> None:
        """Remove all primitives and materials."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self, material_type: MaterialType, type_index: int, params: dict[str, Any]
    ) -> int:
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a diffuse material.

        Args:
            albedo: Diffuse reflectance as (R, G, B), each in [0, 1].

        Returns:
            The unified material id.

        Raises:
            ValueError: If any albedo component is outside [0, 1].
            RuntimeError: If material capacity is exhausted.
        """
        albedo = _triple(albedo)
        type_index = add_lambertian_material(albedo)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"albedo": albedo}
        )

    def add_metal_material(
        self, albedo: tuple[float, float, float], fuzz: float = 0.0
    ) -> int:
        """Add a metal material.

        Args:
            albedo: Reflectance as (R, G, B), each in [0, 1].
            fuzz: Reflection blur radius in [0, 1]. 0 is a perfect mirror.

        Returns:
            The unified material id.

        Raises:
            ValueError: If albedo or fuzz is outside [0, 1].
            RuntimeError: If material capacity is exhausted.
        """
        albedo = _triple(albedo)
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": albedo, "fuzz": fuzz}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Add a dielectric material.

        Args:
            ior: Index of refraction (positive). Window glass is 1.52,
                water 1.333, diamond 2.417.

        Returns:
            The unified material id.

        Raises:
            ValueError: If ior is not positive.
            RuntimeError: If material capacity is exhausted.
        """
        type_index = add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": ior})

    def get_material_count(self) -> int:
        """Get the number of registered materials."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get the record of a material, or None for an unknown id."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Host-side counterpart of the get_material_type() Taichi function."""
        info = self.get_material_info(material_id)
        return info.material_type if info is not None else None

    def _check_material_id(self, material_id: int) -> None:
        if not 0 <= material_id < len(self.materials):
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a static sphere.

        Returns:
            The sphere's slot index.

        Raises:
            ValueError: If material_id is unknown or radius is not positive.
            RuntimeError: If primitive capacity is exhausted.
        """
        self._check_material_id(material_id)
        center = _triple(center)
        index = add_sphere(center, radius, material_id)
        self.primitives.append(
            PrimitiveInfo(
                kind="sphere",
                index=index,
                material_id=material_id,
                params={"center": center, "radius": radius},
            )
        )
        return index

    def add_moving_sphere(
        self,
        center0: tuple[float, float, float],
        center1: tuple[float, float, float],
        time0: float,
        time1: float,
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere moving from center0 at time0 to center1 at time1.

        Returns:
            The sphere's slot index.

        Raises:
            ValueError: If material_id is unknown, radius is not positive or
                time1 < time0.
            RuntimeError: If primitive capacity is exhausted.
        """
        self._check_material_id(material_id)
        center0 = _triple(center0)
        center1 = _triple(center1)
        index = add_moving_sphere(center0, center1, time0, time1, radius, material_id)
        self.primitives.append(
            PrimitiveInfo(
                kind="sphere",
                index=index,
                material_id=material_id,
                params={
                    "center": center0,
                    "center1": center1,
                    "time0": time0,
                    "time1": time1,
                    "radius": radius,
                },
            )
        )
        return index

    def add_quad(
        self,
        corner: tuple[float, float, float],
        edge_u: tuple[float, float, float],
        edge_v: tuple[float, float, float],
        material_id: int,
    ) -> int:
        """Add a parallelogram with vertices corner, corner+u, corner+v, corner+u+v.

        Returns:
            The quad's slot index.

        Raises:
            ValueError: If material_id is unknown or the edges are degenerate.
            RuntimeError: If primitive capacity is exhausted.
        """
        self._check_material_id(material_id)
        corner, edge_u, edge_v = _triple(corner), _triple(edge_u), _triple(edge_v)
        index = add_quad(corner, edge_u, edge_v, material_id)
        self.primitives.append(
            PrimitiveInfo(
                kind="quad",
                index=index,
                material_id=material_id,
                params={"corner": corner, "edge_u": edge_u, "edge_v": edge_v},
            )
        )
        return index

    # =========================================================================
    # Convenience Methods
    # =========================================================================

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new diffuse material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        ior: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(ior)
        return self.add_sphere(center, radius, material_id), material_id

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    def get_quad_count(self) -> int:
        """Get the number of quads in the scene."""
        return get_quad_count()

    def get_primitive_count(self) -> int:
        """Get the total number of primitives in the scene."""
        return get_primitive_count()

    @staticmethod
    def get_max_primitives() -> int:
        """Get the maximum number of primitives supported."""
        return MAX_PRIMITIVES

    @staticmethod
    def get_max_materials() -> int:
        """Get the maximum number of materials supported."""
        return MAX_MATERIALS

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a SceneConfig."""
        config = SceneConfig()
        for mat in self.materials:
            entry: dict[str, Any] = {"type": mat.material_type.name.lower()}
            for key, value in mat.params.items():
                entry[key] = list(value) if isinstance(value, tuple) else value
            config.materials.append(entry)

        for prim in self.primitives:
            entry = {"type": prim.kind, "material_id": prim.material_id}
            for key, value in prim.params.items():
                entry[key] = list(value) if isinstance(value, tuple) else value
            config.primitives.append(entry)
        return config

    def from_config(self, config: SceneConfig) -> None:
        """Replace the current scene with the contents of a SceneConfig.

        Raises:
            ValueError: On unknown material or primitive types, or on any
                parameter the add_* methods reject.
        """
        self.clear()

        for mat in config.materials:
            mat_type = str(mat.get("type", "")).lower()
            if mat_type == "lambertian":
                self.add_lambertian_material(mat.get("albedo", [0.5, 0.5, 0.5]))
            elif mat_type == "metal":
                self.add_metal_material(
                    mat.get("albedo", [0.8, 0.8, 0.8]), mat.get("fuzz", 0.0)
                )
            elif mat_type == "dielectric":
                self.add_dielectric_material(mat.get("ior", 1.5))
            else:
                raise ValueError(f"Unknown material type: {mat_type}")

        for prim in config.primitives:
            prim_type = str(prim.get("type", "")).lower()
            material_id = prim.get("material_id", 0)
            if prim_type == "sphere" and "center1" in prim:
                self.add_moving_sphere(
                    prim["center"],
                    prim["center1"],
                    prim.get("time0", 0.0),
                    prim.get("time1", 1.0),
                    prim.get("radius", 1.0),
                    material_id,
                )
            elif prim_type == "sphere":
                self.add_sphere(prim.get("center", [0, 0, 0]), prim.get("radius", 1.0), material_id)
            elif prim_type == "quad":
                self.add_quad(
                    prim.get("corner", [0, 0, 0]),
                    prim.get("edge_u", [1, 0, 0]),
                    prim.get("edge_v", [0, 1, 0]),
                    material_id,
                )
            else:
                raise ValueError(f"Unknown primitive type: {prim_type}")

        logger.info(
            "Loaded scene with %d materials and %d primitives",
            len(self.materials),
            len(self.primitives),
        )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a JSON-compatible dictionary."""
        config = self.to_config()
        return {"materials": config.materials, "primitives": config.primitives}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary with 'materials' and 'primitives' keys."""
        self.from_config(
            SceneConfig(
                materials=data.get("materials", []),
                primitives=data.get("primitives", []),
            )
        )
