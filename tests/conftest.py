"""Pytest configuration for raytracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. fast_math stays off
    so +inf and NaN behave as IEEE values.
    """
    ti.init(arch=ti.cpu, random_seed=42, fast_math=False)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Reset scene, environment, light and render target around each test."""
    # Import here so the Taichi fields are created after ti.init()
    from gpu_raytracing.core.integrator import clear_directional_light, clear_render_target
    from gpu_raytracing.materials.phong import set_energy_clamp
    from gpu_raytracing.scene.environment import clear_environment
    from gpu_raytracing.scene.intersection import clear_scene

    def _clear_all():
        clear_scene()
        clear_environment()
        clear_directional_light()
        clear_render_target()
        set_energy_clamp(True)

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def small_target():
    """A 16x8 render target with an axis-aligned camera at (0, 5, 0) looking down -Z."""
    from gpu_raytracing.camera.pinhole import PinholeCamera, setup_camera
    from gpu_raytracing.core.integrator import setup_render_target

    width, height = 16, 8
    setup_render_target(width, height)
    setup_camera(
        PinholeCamera(
            lookfrom=(0.0, 5.0, 0.0),
            lookat=(0.0, 5.0, -1.0),
            vup=(0.0, 1.0, 0.0),
            vfov=60.0,
            aspect_ratio=width / height,
        )
    )
    return width, height
