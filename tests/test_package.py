"""Tests for the package layout.

Modules holding Taichi dataclasses and functions must import cleanly: Taichi
reads their annotations when the decorators run.
"""

import importlib

import pytest

KERNEL_MODULES = [
    "whitted.core.ray",
    "whitted.core.integrator",
    "whitted.camera.viewbox",
    "whitted.geometry.primitive",
    "whitted.geometry.sphere",
    "whitted.geometry.plane",
    "whitted.materials.material",
    "whitted.lights.light",
    "whitted.scene.background",
    "whitted.scene.intersection",
]


class TestKernelModules:
    """Tests for the modules that declare Taichi kernels and fields."""

    @pytest.mark.parametrize("name", KERNEL_MODULES)
    def test_module_imports(self, name):
        """Test each kernel module imports under the session runtime."""
        module = importlib.import_module(name)
        assert module.__name__ == name

    @pytest.mark.parametrize("name", KERNEL_MODULES)
    def test_annotations_are_evaluated(self, name):
        """Test kernel modules keep real annotation objects, not strings."""
        module = importlib.import_module(name)
        assert "annotations" not in vars(module)

    def test_subpackages_import(self):
        """Test the subpackage re-exports resolve."""
        from whitted.camera import ViewBox
        from whitted.geometry import PeriodicPlane, SphereObject
        from whitted.lights import DirectionalLight, PointLight
        from whitted.materials import Material
        from whitted.scene import Scene, intersect_record

        exported = (ViewBox, PeriodicPlane, SphereObject, DirectionalLight, PointLight, Material, Scene)
        assert all(item is not None for item in exported)
        assert callable(intersect_record)
