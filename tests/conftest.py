"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate the module-level fields allocated on import.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene storage, the camera and the accumulation buffer around each test."""
    # Import here so Taichi is initialized before fields are allocated
    from src.pathtracer.camera.pinhole import release_camera
    from src.pathtracer.core.integrator import release_render_target
    from src.pathtracer.scene.world import release_scene

    def _clear_all():
        release_scene()
        release_render_target()
        release_camera()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def small_camera():
    """An 8x6 camera at the origin looking down -z with a 90 degree field of view."""
    from src.pathtracer.camera.pinhole import Camera

    return Camera(origin=(0.0, 0.0, 0.0), direction=(0.0, 0.0, -1.0), fov=90.0, width=8, height=6)
