"""Pytest configuration for the ray tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate the module-level fields of every imported module.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_resident_data():
    """Empty the kernel-side tables and the render target around each test.

    This ensures tests are isolated from each other.
    """
    # Import here so Taichi is initialized before any field is declared
    from whitted.core.integrator import reset_render_target
    from whitted.scene.manager import clear_resident_scene

    def _clear_all():
        clear_resident_scene()
        reset_render_target()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def default_background():
    """Write the default background parameters into the fields."""
    from whitted.scene.background import Background, setup_background

    background = Background()
    setup_background(background)
    return background
