"""Tests for the metal (specular) material."""

import numpy as np
import pytest
import taichi as ti

N = 2048


def _scatter_metal(albedo, fuzz, direction, normal, count=1):
    from pathtracer.core.ray import make_ray, vec3
    from pathtracer.core.sampler import seed_rng
    from pathtracer.geometry.sphere import HitRecord
    from pathtracer.materials.metal import scatter_metal

    directions = ti.Vector.field(3, dtype=ti.f32, shape=count)
    attenuations = ti.Vector.field(3, dtype=ti.f32, shape=count)
    scattered = ti.field(dtype=ti.i32, shape=count)

    @ti.kernel
    def test_kernel(alb: vec3, f: ti.f32, d_in: vec3, n: vec3):
        for i in range(count):
            ray_in = make_ray(vec3(0.0, 0.0, 0.0), d_in)
            rec = HitRecord(
                hit=1, t=1.0, point=vec3(0.0, 0.0, 0.0), normal=n, front_face=1, material_id=0
            )
            d, a, s, _ = scatter_metal(alb, f, ray_in, rec, seed_rng(ti.u32(5), i, 0, 0))
            directions[i] = d
            attenuations[i] = a
            scattered[i] = s

    test_kernel(vec3(*albedo), fuzz, vec3(*direction), vec3(*normal))
    return directions.to_numpy(), attenuations.to_numpy(), scattered.to_numpy()


class TestMetalConfig:
    """Tests for the Metal dataclass."""

    @pytest.mark.parametrize("fuzz, expected", [(-0.5, 0.0), (0.3, 0.3), (1.0, 1.0), (2.5, 1.0)])
    def test_fuzz_clamped(self, fuzz, expected):
        """Test fuzz is clamped into [0, 1] at construction."""
        from pathtracer.materials import Metal

        assert Metal((0.8, 0.8, 0.8), fuzz).fuzz == pytest.approx(expected)

    def test_default_fuzz_is_mirror(self):
        """Test the default fuzz is a perfect mirror."""
        from pathtracer.materials import Metal

        assert Metal((0.8, 0.8, 0.8)).fuzz == 0.0

    def test_invalid_albedo(self):
        """Test metal albedo is validated like Lambertian albedo."""
        from pathtracer.errors import ConfigurationError
        from pathtracer.materials import Metal

        with pytest.raises(ConfigurationError):
            Metal((0.8, 2.0, 0.8))

    def test_registry_clamps_fuzz(self):
        """Test add_metal_material stores clamped fuzz values."""
        from pathtracer.materials.metal import add_metal_material, get_metal_fuzz_value

        idx = add_metal_material((0.5, 0.5, 0.5), fuzz=-1.0)
        assert get_metal_fuzz_value(idx) == 0.0


class TestMetalScatter:
    """Tests for scatter_metal."""

    def test_mirror_head_on(self):
        """Test fuzz 0 head-on reverses the normal component of the direction."""
        d, a, s = _scatter_metal((0.8, 0.6, 0.2), 0.0, (0.0, 0.0, -1.0), (0.0, 0.0, 1.0))

        assert s[0] == 1
        assert np.allclose(a[0], [0.8, 0.6, 0.2], atol=1e-6)
        # dot(scattered, n) == -dot(unit incident, n)
        assert d[0][2] == pytest.approx(1.0, abs=1e-6)
        assert np.allclose(d[0][:2], 0.0, atol=1e-6)

    def test_mirror_oblique(self):
        """Test fuzz 0 reflects the normalized incident direction."""
        d, _, s = _scatter_metal((0.8, 0.8, 0.8), 0.0, (3.0, -3.0, 0.0), (0.0, 1.0, 0.0))

        s2 = 1.0 / np.sqrt(2.0)
        assert s[0] == 1
        assert np.allclose(d[0], [s2, s2, 0.0], atol=1e-5)

    def test_fuzz_perturbs_within_radius(self):
        """Test fuzzy reflections stay within fuzz of the mirror direction."""
        d, _, s = _scatter_metal(
            (0.8, 0.8, 0.8), 0.3, (0.0, -1.0, 0.0), (0.0, 1.0, 0.0), count=N
        )

        offsets = d - np.array([0.0, 1.0, 0.0])
        assert np.allclose(np.linalg.norm(offsets, axis=1), 0.3, atol=1e-4)
        # Perturbed direction never dips below the surface at normal incidence
        assert np.all(s == 1)

    def test_grazing_fuzz_can_absorb(self):
        """Test fuzzy reflections pushed below the surface are absorbed."""
        d, _, s = _scatter_metal(
            (0.8, 0.8, 0.8), 1.0, (1.0, -0.05, 0.0), (0.0, 1.0, 0.0), count=N
        )

        absorbed = s == 0
        assert absorbed.any()
        assert np.all(d[absorbed][:, 1] <= 0.0)
        assert np.all(d[~absorbed][:, 1] > 0.0)
