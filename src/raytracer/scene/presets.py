"""Ready-made scenes.

Each factory clears the global scene, builds its primitives and materials
through a fresh SceneManager and returns it together with a matching Camera.

Scenes:
    - material showcase: one sphere of each material on a large ground sphere
    - random spheres: a field of small random spheres around three large ones,
      optionally with the diffuse spheres bouncing during the shutter interval
    - ground: a single gray ground sphere seen from straight above

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytracer.camera.thin_lens import setup_camera
    >>> from src.raytracer.scene.presets import create_random_spheres_scene
    >>> scene, camera = create_random_spheres_scene(seed=7)
    >>> setup_camera(camera)
"""

import logging

import numpy as np

from src.raytracer.camera.thin_lens import Camera
from src.raytracer.materials.dielectric import WINDOW_GLASS_IOR
from src.raytracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# =============================================================================
# Material Showcase
# =============================================================================

SHOWCASE_GROUND_ALBEDO = (0.8, 0.8, 0.0)
SHOWCASE_CENTER_ALBEDO = (0.1, 0.2, 0.5)
SHOWCASE_GOLD_ALBEDO = (0.8, 0.6, 0.2)


def create_material_showcase_scene(
    aspect_ratio: float = 16.0 / 9.0,
) -> tuple[SceneManager, Camera]:
    """Create the three-ball material showcase.

    A diffuse blue ball sits between a glass ball (left) and a polished gold
    ball (right) on a large yellow-green ground sphere. The camera looks at
    the center ball from above and to the left with a wide aperture, so the
    balls in front and behind it are visibly defocused.

    Args:
        aspect_ratio: Image width divided by height.

    Returns:
        Tuple of (scene, camera).
    """
    scene = SceneManager()

    ground = scene.add_lambertian_material(SHOWCASE_GROUND_ALBEDO)
    center = scene.add_lambertian_material(SHOWCASE_CENTER_ALBEDO)
    glass = scene.add_dielectric_material(WINDOW_GLASS_IOR)
    gold = scene.add_metal_material(SHOWCASE_GOLD_ALBEDO, fuzz=0.0)

    scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, center)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, gold)

    camera = Camera(
        lookfrom=(-2.0, 2.0, 1.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.5,
    )
    return scene, camera


# =============================================================================
# Random Spheres
# =============================================================================

GRID_EXTENT = 11
SMALL_RADIUS = 0.2
# Small spheres closer than this to the metal feature sphere are skipped
CLEARANCE_POINT = (4.0, 0.2, 0.0)
CLEARANCE = 0.9


def create_random_spheres_scene(
    seed: int = 0,
    motion_blur: bool = False,
    aspect_ratio: float = 3.0 / 2.0,
) -> tuple[SceneManager, Camera]:
    """Create the random spheres scene.

    Small spheres of radius 0.2 are placed on a jittered 22 x 22 grid.
    About 80% are diffuse with a random albedo, 15% are fuzzy metal and 5%
    are glass. Three unit spheres (glass, brown diffuse, brushed metal) sit
    in the middle.

    Args:
        seed: Seed of the layout generator. The same seed gives the same
            scene.
        motion_blur: If True, every small diffuse sphere rises by a random
            amount in [0, 0.5] during a shutter interval of [0, 1].
        aspect_ratio: Image width divided by height.

    Returns:
        Tuple of (scene, camera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    ground = scene.add_lambertian_material((0.5, 0.5, 0.5))
    scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, ground)

    clearance_point = np.array(CLEARANCE_POINT)
    for a in range(-GRID_EXTENT, GRID_EXTENT):
        for b in range(-GRID_EXTENT, GRID_EXTENT):
            choose_mat = rng.uniform(0.0, 1.0)
            center = (a + 0.9 * rng.uniform(0.0, 1.0), SMALL_RADIUS, b + 0.9 * rng.uniform(0.0, 1.0))

            if np.linalg.norm(np.array(center) - clearance_point) <= CLEARANCE:
                continue

            if choose_mat < 0.8:
                albedo = tuple(rng.uniform(0.0, 1.0, size=3).tolist())
                material = scene.add_lambertian_material(albedo)
                if motion_blur:
                    center1 = (center[0], center[1] + rng.uniform(0.0, 0.5), center[2])
                    scene.add_moving_sphere(center, center1, 0.0, 1.0, SMALL_RADIUS, material)
                else:
                    scene.add_sphere(center, SMALL_RADIUS, material)
            elif choose_mat < 0.95:
                albedo = tuple(rng.uniform(0.5, 1.0, size=3).tolist())
                fuzz = rng.uniform(0.5, 1.0)
                material = scene.add_metal_material(albedo, fuzz)
                scene.add_sphere(center, SMALL_RADIUS, material)
            else:
                material = scene.add_dielectric_material(WINDOW_GLASS_IOR)
                scene.add_sphere(center, SMALL_RADIUS, material)

    glass = scene.add_dielectric_material(WINDOW_GLASS_IOR)
    scene.add_sphere((0.0, 1.0, 0.0), 1.0, glass)
    brown = scene.add_lambertian_material((0.4, 0.2, 0.1))
    scene.add_sphere((-4.0, 1.0, 0.0), 1.0, brown)
    steel = scene.add_metal_material((0.7, 0.6, 0.5), fuzz=0.5)
    scene.add_sphere((4.0, 1.0, 0.0), 1.0, steel)

    logger.info(
        "Random spheres scene (seed=%d): %d primitives, %d materials",
        seed,
        scene.get_primitive_count(),
        scene.get_material_count(),
    )

    camera = Camera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=45.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_dist=10.0,
        time0=0.0,
        time1=1.0 if motion_blur else 0.0,
    )
    return scene, camera


# =============================================================================
# Ground
# =============================================================================


def create_ground_scene(aspect_ratio: float = 1.0) -> tuple[SceneManager, Camera]:
    """Create a single gray ground sphere viewed from straight above.

    The sphere of radius 100 is centered at (0, -100, 0), so its top touches
    the origin. The pinhole camera sits at (0, 5, 0) looking down with -z as
    its up direction and a 90 degree field of view.

    Returns:
        Tuple of (scene, camera).
    """
    scene = SceneManager()
    gray = scene.add_lambertian_material((0.5, 0.5, 0.5))
    scene.add_sphere((0.0, -100.0, 0.0), 100.0, gray)

    camera = Camera(
        lookfrom=(0.0, 5.0, 0.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 0.0, -1.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
    )
    return scene, camera
