"""Pytest configuration for path tracer tests.

Taichi must be initialized once per session, before any pathtracer module
that declares Taichi fields is imported. Test modules therefore import
package modules inside the test functions.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate the fields declared by already imported modules.
    """
    ti.init(arch=ti.cpu)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene, material, camera and render target state around each test."""
    from pathtracer.camera.camera import reset_camera
    from pathtracer.core.integrator import clear_render_target, reset_render_target, set_seed
    from pathtracer.scene.manager import clear_all

    def _clear_all():
        clear_all()
        clear_render_target()
        reset_render_target()
        reset_camera()
        set_seed(0)

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def two_sphere_scene():
    """The two-sphere scene with a single gray diffuse material."""
    from pathtracer.materials import Lambertian
    from pathtracer.scene.manager import Scene

    gray = Lambertian((0.5, 0.5, 0.5))
    scene = Scene()
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, gray)
    scene.add_sphere((0.0, -100.5, -1.0), 100.0, gray)
    return scene
