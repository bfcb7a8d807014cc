"""Unit tests for the material model and the material registry.

Tests cover:
- Material validation
- Presets and serialization
- Registry add/clear/capacity and kernel-side loading
"""

import pytest
import taichi as ti


class TestMaterialValidation:
    """Tests for Material construction."""

    def test_default_material_is_valid(self):
        """Test that a default material can be created."""
        from whitted.materials.material import Material

        m = Material()
        assert m.reflection == 0.0
        assert m.refraction == 0.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"shininess": -1.0},
            {"reflection": 1.5},
            {"reflection": -0.1},
            {"refraction": 2.0},
            {"in_refractive_index": 0.0},
            {"out_refractive_index": -1.0},
            {"diffuse": (0.5, -0.1, 0.5)},
            {"ambient": (0.5, 0.5)},
        ],
    )
    def test_invalid_values_raise(self, kwargs):
        """Test that out-of-range coefficients are rejected."""
        from whitted.materials.material import Material

        with pytest.raises(ValueError):
            Material(**kwargs)

    def test_colors_are_float_tuples(self):
        """Test that colors given as lists are stored as hashable tuples."""
        from whitted.materials.material import Material

        m = Material(diffuse=[1, 0, 0])
        assert m.diffuse == (1.0, 0.0, 0.0)
        assert hash(m) == hash(Material(diffuse=(1.0, 0.0, 0.0)))

    def test_materials_are_immutable(self):
        """Test that fields cannot be reassigned."""
        import dataclasses

        from whitted.materials.material import Material

        m = Material.mirror()
        with pytest.raises(dataclasses.FrozenInstanceError):
            m.reflection = 0.5


class TestPresets:
    """Tests for the named presets."""

    def test_mirror_reflects_fully(self):
        """Test the mirror preset."""
        from whitted.materials.material import Material

        m = Material.mirror()
        assert m.reflection == 1.0
        assert m.refraction == 0.0

    def test_glass_refracts(self):
        """Test the glass preset."""
        from whitted.materials.material import Material

        m = Material.glass()
        assert m.refraction > 0.0
        assert m.in_refractive_index > m.out_refractive_index

    def test_matte_uses_color(self):
        """Test the matte preset."""
        from whitted.materials.material import Material

        m = Material.matte((0.8, 0.2, 0.1))
        assert m.diffuse == (0.8, 0.2, 0.1)
        assert m.specular == (0.0, 0.0, 0.0)

    def test_dict_round_trip(self):
        """Test that to_dict/from_dict reproduce the material."""
        from whitted.materials.material import Material

        m = Material.emerald()
        assert Material.from_dict(m.to_dict()) == m

    def test_from_dict_rejects_unknown_keys(self):
        """Test that unknown keys raise ValueError."""
        from whitted.materials.material import Material

        with pytest.raises(ValueError, match="Unknown material keys"):
            Material.from_dict({"albedo": [1.0, 1.0, 1.0]})


class TestMaterialRegistry:
    """Tests for the kernel-side material registry."""

    def test_add_and_count(self):
        """Test adding materials returns sequential indices."""
        from whitted.materials.material import Material, add_material, get_material_count

        assert add_material(Material.mirror()) == 0
        assert add_material(Material.glass()) == 1
        assert get_material_count() == 2

    def test_clear(self):
        """Test clearing the registry."""
        from whitted.materials.material import (
            Material,
            add_material,
            clear_materials,
            get_material_count,
        )

        add_material(Material.mirror())
        clear_materials()
        assert get_material_count() == 0

    def test_capacity_exceeded_raises(self):
        """Test that the registry refuses materials past its capacity."""
        from whitted.materials.material import MAX_MATERIALS, Material, add_material

        m = Material()
        for _ in range(MAX_MATERIALS):
            add_material(m)
        with pytest.raises(RuntimeError, match="Maximum number of materials"):
            add_material(m)

    def test_load_material_in_kernel(self):
        """Test reading a stored material back inside a kernel."""
        from whitted.materials.material import Material, add_material, load_material

        diffuse = ti.field(dtype=ti.math.vec3, shape=())
        scalars = ti.field(dtype=ti.f32, shape=4)

        material_id = add_material(Material.glass())

        @ti.kernel
        def test_kernel(idx: ti.i32):
            m = load_material(idx)
            diffuse[None] = m.diffuse
            scalars[0] = m.reflection
            scalars[1] = m.refraction
            scalars[2] = m.in_refractive_index
            scalars[3] = m.shininess

        test_kernel(material_id)
        glass = Material.glass()
        for i in range(3):
            assert abs(diffuse[None][i] - glass.diffuse[i]) < 1e-6
        assert abs(scalars[0] - glass.reflection) < 1e-6
        assert abs(scalars[1] - glass.refraction) < 1e-6
        assert abs(scalars[2] - glass.in_refractive_index) < 1e-6
        assert abs(scalars[3] - glass.shininess) < 1e-5
