"""Ready-made scenes with matching cameras.

Each preset returns a ``(Scene, Camera)`` pair:

- two_spheres: a small diffuse sphere resting on a huge ground sphere
- materials: diffuse, hollow glass and fuzzy metal spheres side by side
- defocus: the materials scene through a narrow lens with depth of field
- final: a large field of random small spheres around three big ones

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.presets import get_preset
    >>> scene, camera = get_preset("materials")()
"""

from collections.abc import Callable

import numpy as np

from pathtracer.camera.camera import Camera
from pathtracer.errors import ConfigurationError
from pathtracer.materials import Dielectric, Lambertian, Metal
from pathtracer.scene.manager import Scene

ScenePreset = Callable[[], tuple[Scene, Camera]]


def two_spheres() -> tuple[Scene, Camera]:
    """Create the two-sphere scene seen through the default camera."""
    gray = Lambertian((0.5, 0.5, 0.5))

    scene = Scene()
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, gray)
    scene.add_sphere((0.0, -100.5, -1.0), 100.0, gray)

    return scene, Camera()


def _material_showcase() -> Scene:
    scene = Scene()
    scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.8, 0.8, 0.0))
    scene.add_lambertian_sphere((0.0, 0.0, -1.2), 0.5, (0.1, 0.2, 0.5))

    # Hollow glass: the inner sphere has a negative radius so its normals
    # point inward, turning the ball into a thin shell.
    glass = Dielectric(1.5)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    scene.add_sphere((-1.0, 0.0, -1.0), -0.4, glass)

    scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), fuzz=1.0)
    return scene


def materials() -> tuple[Scene, Camera]:
    """Create the material showcase: diffuse, hollow glass and fuzzy metal."""
    camera = Camera(samples_per_pixel=100, max_depth=50)
    return _material_showcase(), camera


def defocus() -> tuple[Scene, Camera]:
    """Create the material showcase seen through a lens with depth of field."""
    camera = Camera(
        samples_per_pixel=100,
        max_depth=50,
        vfov=20.0,
        look_from=(-2.0, 2.0, 1.0),
        look_at=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        defocus_angle=10.0,
        focus_dist=3.4,
    )
    return _material_showcase(), camera


def final(seed: int = 0) -> tuple[Scene, Camera]:
    """Create the random sphere field.

    Args:
        seed: Seed for the NumPy generator that places and colors the small
            spheres. The same seed always builds the same scene.
    """
    rng = np.random.default_rng(seed)

    scene = Scene()
    scene.add_lambertian_sphere((0.0, -1000.0, 0.0), 1000.0, (0.5, 0.5, 0.5))

    clearing = np.array([4.0, 0.2, 0.0])
    for a in range(-11, 11):
        for b in range(-11, 11):
            choose_mat = rng.random()
            center = np.array([a + 0.9 * rng.random(), 0.2, b + 0.9 * rng.random()])

            if np.linalg.norm(center - clearing) <= 0.9:
                continue

            if choose_mat < 0.8:
                albedo = rng.random(3) * rng.random(3)
                material = Lambertian(tuple(albedo.tolist()))
            elif choose_mat < 0.95:
                albedo = rng.uniform(0.5, 1.0, 3)
                material = Metal(tuple(albedo.tolist()), float(rng.uniform(0.0, 0.5)))
            else:
                material = Dielectric(1.5)

            scene.add_sphere(tuple(center.tolist()), 0.2, material)

    scene.add_sphere((0.0, 1.0, 0.0), 1.0, Dielectric(1.5))
    scene.add_sphere((-4.0, 1.0, 0.0), 1.0, Lambertian((0.4, 0.2, 0.1)))
    scene.add_sphere((4.0, 1.0, 0.0), 1.0, Metal((0.7, 0.6, 0.5), 0.0))

    camera = Camera(
        image_width=1200,
        samples_per_pixel=500,
        max_depth=50,
        vfov=20.0,
        look_from=(13.0, 2.0, 3.0),
        look_at=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        defocus_angle=0.6,
        focus_dist=10.0,
    )
    return scene, camera


PRESETS: dict[str, ScenePreset] = {
    "two_spheres": two_spheres,
    "materials": materials,
    "defocus": defocus,
    "final": final,
}


def get_preset(name: str) -> ScenePreset:
    """Look up a preset by name.

    Raises:
        ConfigurationError: If no preset has that name.
    """
    try:
        return PRESETS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown scene preset {name!r}; choose from {', '.join(sorted(PRESETS))}"
        ) from None
