"""Unit tests for ray, vector and color utilities.

Tests cover:
- Ray construction and evaluation
- Vector helpers (dot, cross, lengths, safe normalization)
- Reflection and Snell refraction, including total internal reflection
- Color helpers (max channel, clamping)
"""

import math

import taichi as ti


class TestRay:
    """Tests for Ray construction."""

    def test_make_ray_normalizes_direction(self):
        """Test that make_ray returns a unit direction and keeps the depth."""
        from whitted.core.ray import make_ray, vec3

        direction = ti.field(dtype=ti.math.vec3, shape=())
        depth = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 2.0, 3.0), vec3(0.0, 0.0, 4.0), 7)
            direction[None] = ray.direction
            depth[None] = ray.depth

        test_kernel()
        d = direction[None]
        assert abs(d[0]) < 1e-6
        assert abs(d[1]) < 1e-6
        assert abs(d[2] - 1.0) < 1e-6
        assert depth[None] == 7

    def test_ray_at(self):
        """Test evaluating the ray at a parameter."""
        from whitted.core.ray import make_ray, ray_at, vec3

        point = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 0.0, 0.0), vec3(0.0, 2.0, 0.0), 0)
            point[None] = ray_at(ray, 3.0)

        test_kernel()
        p = point[None]
        assert abs(p[0] - 1.0) < 1e-6
        assert abs(p[1] - 3.0) < 1e-6
        assert abs(p[2]) < 1e-6


class TestVectorUtilities:
    """Tests for vector helpers."""

    def test_dot_cross_and_lengths(self):
        """Test dot, cross, length and length_squared together."""
        from whitted.core.ray import cross, dot, length, length_squared, vec3

        scalars = ti.field(dtype=ti.f32, shape=3)
        crossed = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            a = vec3(1.0, 2.0, 2.0)
            scalars[0] = dot(a, vec3(1.0, 0.0, 1.0))
            scalars[1] = length_squared(a)
            scalars[2] = length(a)
            crossed[None] = cross(vec3(1.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        assert abs(scalars[0] - 3.0) < 1e-6
        assert abs(scalars[1] - 9.0) < 1e-6
        assert abs(scalars[2] - 3.0) < 1e-6
        c = crossed[None]
        assert abs(c[2] - 1.0) < 1e-6

    def test_safe_normalize_keeps_zero_vector(self):
        """Test that a zero-length vector is returned unchanged."""
        from whitted.core.ray import safe_normalize, vec3

        result = ti.field(dtype=ti.math.vec3, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = safe_normalize(vec3(0.0, 0.0, 0.0))
            result[1] = safe_normalize(vec3(3.0, 0.0, 4.0))

        test_kernel()
        z = result[0]
        assert z[0] == 0.0 and z[1] == 0.0 and z[2] == 0.0
        n = result[1]
        assert abs(n[0] - 0.6) < 1e-6
        assert abs(n[2] - 0.8) < 1e-6


class TestReflectRefract:
    """Tests for reflect() and refract()."""

    def test_reflect(self):
        """Test mirror reflection about a normal."""
        from whitted.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            d = vec3(1.0, 0.0, -1.0).normalized()
            result[None] = reflect(d, vec3(0.0, 0.0, 1.0))

        test_kernel()
        r = result[None]
        s = 1.0 / math.sqrt(2.0)
        assert abs(r[0] - s) < 1e-5
        assert abs(r[1]) < 1e-5
        assert abs(r[2] - s) < 1e-5

    def test_refract_normal_incidence_passes_straight(self):
        """Test that a ray along the normal is not bent."""
        from whitted.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = refract(vec3(0.0, 0.0, -1.0), vec3(0.0, 0.0, 1.0), 1.0, 1.5)

        test_kernel()
        r = result[None]
        assert abs(r[0]) < 1e-5
        assert abs(r[1]) < 1e-5
        assert abs(r[2] + 1.0) < 1e-5

    def test_refract_entering_follows_snell(self):
        """Test Snell's law when entering a denser medium."""
        from whitted.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            d = vec3(1.0, 0.0, -1.0).normalized()
            result[None] = refract(d, vec3(0.0, 0.0, 1.0), 1.0, 1.5)

        test_kernel()
        r = result[None]
        sin_i = 1.0 / math.sqrt(2.0)
        sin_t = sin_i / 1.5
        assert abs(r[0] - sin_t) < 1e-5
        assert r[2] < 0.0
        assert abs(r[0] ** 2 + r[1] ** 2 + r[2] ** 2 - 1.0) < 1e-5

    def test_refract_exiting_uses_inverse_ratio(self):
        """Test that a ray leaving the object bends away from the normal."""
        from whitted.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            # Travelling outward along +z through a surface with normal +z
            d = vec3(0.3, 0.0, 1.0).normalized()
            result[None] = refract(d, vec3(0.0, 0.0, 1.0), 1.0, 1.5)

        test_kernel()
        r = result[None]
        sin_i = 0.3 / math.sqrt(1.09)
        assert abs(r[0] - 1.5 * sin_i) < 1e-5
        assert r[2] > 0.0

    def test_total_internal_reflection_returns_mirror(self):
        """Test that a grazing exit beyond the critical angle reflects."""
        from whitted.core.ray import reflect, refract, total_internal_reflection, vec3

        result = ti.field(dtype=ti.math.vec3, shape=2)
        tir = ti.field(dtype=ti.i32, shape=2)

        @ti.kernel
        def test_kernel():
            n = vec3(0.0, 0.0, 1.0)
            d = vec3(1.0, 0.0, 0.2).normalized()
            result[0] = refract(d, n, 1.0, 1.5)
            result[1] = reflect(d, n)
            tir[0] = total_internal_reflection(d, n, 1.0, 1.5)
            tir[1] = total_internal_reflection(vec3(0.0, 0.0, -1.0), n, 1.0, 1.5)

        test_kernel()
        assert tir[0] == 1
        assert tir[1] == 0
        for i in range(3):
            assert abs(result[0][i] - result[1][i]) < 1e-5


class TestColorUtilities:
    """Tests for color helpers."""

    def test_max_channel(self):
        """Test the largest channel is returned."""
        from whitted.core.ray import max_channel, vec3

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = max_channel(vec3(0.1, 0.7, 0.3))

        test_kernel()
        assert abs(result[None] - 0.7) < 1e-6

    def test_clamp_color_is_idempotent(self):
        """Test clamping to [0, 1] and that clamping twice changes nothing."""
        from whitted.core.ray import clamp_color, vec3

        result = ti.field(dtype=ti.math.vec3, shape=2)

        @ti.kernel
        def test_kernel():
            once = clamp_color(vec3(-0.5, 0.25, 3.0))
            result[0] = once
            result[1] = clamp_color(once)

        test_kernel()
        once = result[0]
        twice = result[1]
        assert once[0] == 0.0
        assert abs(once[1] - 0.25) < 1e-6
        assert once[2] == 1.0
        for i in range(3):
            assert once[i] == twice[i]

    def test_clamp_color_tuple(self):
        """Test the Python-side clamp."""
        from whitted.core.ray import clamp_color_tuple

        assert clamp_color_tuple((-1.0, 0.5, 2.0)) == (0.0, 0.5, 1.0)
        assert clamp_color_tuple(clamp_color_tuple((-1.0, 0.5, 2.0))) == (0.0, 0.5, 1.0)
