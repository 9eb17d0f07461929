"""Tests for the Scene container, material registration and serialization."""

import json

import pytest
import taichi as ti


class TestSphereInfo:
    """Tests for sphere validation."""

    def test_zero_radius_rejected(self):
        """Test a zero radius raises ConfigurationError."""
        from pathtracer.errors import ConfigurationError
        from pathtracer.materials import Lambertian
        from pathtracer.scene.manager import SphereInfo

        with pytest.raises(ConfigurationError, match="radius"):
            SphereInfo((0.0, 0.0, 0.0), 0.0, Lambertian((0.5, 0.5, 0.5)))

    def test_negative_radius_allowed(self):
        """Test negative radii are accepted for hollow shells."""
        from pathtracer.materials import Dielectric
        from pathtracer.scene.manager import SphereInfo

        sphere = SphereInfo((-1.0, 0.0, -1.0), -0.4, Dielectric(1.5))
        assert sphere.radius == -0.4

    def test_center_must_have_three_components(self):
        """Test malformed centers are rejected."""
        from pathtracer.errors import ConfigurationError
        from pathtracer.materials import Lambertian
        from pathtracer.scene.manager import SphereInfo

        with pytest.raises(ConfigurationError, match="3 components"):
            SphereInfo((0.0, 0.0), 1.0, Lambertian((0.5, 0.5, 0.5)))

    def test_material_must_be_known(self):
        """Test unsupported material values are rejected."""
        from pathtracer.errors import ConfigurationError
        from pathtracer.scene.manager import SphereInfo

        with pytest.raises(ConfigurationError, match="Unsupported material"):
            SphereInfo((0.0, 0.0, 0.0), 1.0, "glass")

    def test_configuration_error_is_value_error(self):
        """Test ConfigurationError can be caught as ValueError."""
        from pathtracer.materials import Lambertian
        from pathtracer.scene.manager import SphereInfo

        with pytest.raises(ValueError):
            SphereInfo((0.0, 0.0, 0.0), 0.0, Lambertian((0.5, 0.5, 0.5)))


class TestScene:
    """Tests for building scenes."""

    def test_add_spheres_in_order(self):
        """Test spheres keep their insertion order."""
        from pathtracer.scene.manager import Scene

        scene = Scene()
        assert scene.add_lambertian_sphere((0, -100.5, -1), 100, (0.8, 0.8, 0.0)) == 0
        assert scene.add_dielectric_sphere((-1, 0, -1), 0.5, 1.5) == 1
        assert scene.add_metal_sphere((1, 0, -1), 0.5, (0.8, 0.6, 0.2), fuzz=0.3) == 2

        assert len(scene) == 3
        assert [s.center for s in scene] == [(0.0, -100.5, -1.0), (-1.0, 0.0, -1.0), (1.0, 0.0, -1.0)]

    def test_shared_material_value(self):
        """Test one material value may be used by several spheres."""
        from pathtracer.materials import Lambertian
        from pathtracer.scene.manager import Scene

        gray = Lambertian((0.5, 0.5, 0.5))
        scene = Scene()
        scene.add_sphere((0, 0, -1), 0.5, gray)
        scene.add_sphere((0, -100.5, -1), 100, gray)

        assert scene.spheres[0].material == scene.spheres[1].material

    def test_clear(self):
        """Test clear removes all spheres."""
        from pathtracer.scene.manager import Scene

        scene = Scene()
        scene.add_lambertian_sphere((0, 0, -1), 0.5, (0.5, 0.5, 0.5))
        scene.clear()
        assert len(scene) == 0

    def test_invalid_material_parameters_fail_fast(self):
        """Test invalid albedo and refractive index are rejected when added."""
        from pathtracer.errors import ConfigurationError
        from pathtracer.scene.manager import Scene

        scene = Scene()
        with pytest.raises(ConfigurationError):
            scene.add_lambertian_sphere((0, 0, -1), 0.5, (1.5, 0.5, 0.5))
        with pytest.raises(ConfigurationError):
            scene.add_dielectric_sphere((0, 0, -1), 0.5, 0.0)
        assert len(scene) == 0


class TestSceneUpload:
    """Tests for copying a scene into Taichi storage."""

    def test_upload_registers_spheres_and_materials(self):
        """Test upload fills sphere storage and material registries."""
        from pathtracer.materials import get_dielectric_material_count
        from pathtracer.materials.lambertian import get_lambertian_material_count
        from pathtracer.materials.metal import get_metal_material_count
        from pathtracer.scene.intersection import get_sphere_count
        from pathtracer.scene.manager import Scene, get_material_count

        scene = Scene()
        scene.add_lambertian_sphere((0, -100.5, -1), 100, (0.8, 0.8, 0.0))
        scene.add_lambertian_sphere((0, 0, -1.2), 0.5, (0.1, 0.2, 0.5))
        scene.add_dielectric_sphere((-1, 0, -1), 0.5, 1.5)
        scene.add_metal_sphere((1, 0, -1), 0.5, (0.8, 0.6, 0.2), fuzz=1.0)
        scene.upload()

        assert get_sphere_count() == 4
        assert get_material_count() == 4
        assert get_lambertian_material_count() == 2
        assert get_metal_material_count() == 1
        assert get_dielectric_material_count() == 1

    def test_upload_replaces_previous_scene(self):
        """Test uploading twice does not accumulate spheres."""
        from pathtracer.scene.intersection import get_sphere_count
        from pathtracer.scene.manager import Scene, get_material_count

        scene = Scene()
        scene.add_lambertian_sphere((0, 0, -1), 0.5, (0.5, 0.5, 0.5))
        scene.add_lambertian_sphere((0, 1, -1), 0.5, (0.5, 0.5, 0.5))
        scene.upload()
        scene.upload()

        assert get_sphere_count() == 2
        assert get_material_count() == 2

    def test_material_dispatch_mapping(self):
        """Test each unified id maps to its type and type-local index."""
        from pathtracer.scene.manager import (
            MaterialType,
            Scene,
            get_material_type,
            get_material_type_index,
        )

        scene = Scene()
        scene.add_lambertian_sphere((0, 0, -1), 0.5, (0.5, 0.5, 0.5))
        scene.add_metal_sphere((1, 0, -1), 0.5, (0.8, 0.8, 0.8))
        scene.add_lambertian_sphere((2, 0, -1), 0.5, (0.2, 0.2, 0.2))
        scene.add_dielectric_sphere((3, 0, -1), 0.5, 1.5)
        scene.upload()

        types = ti.field(dtype=ti.i32, shape=5)
        indices = ti.field(dtype=ti.i32, shape=5)

        @ti.kernel
        def test_kernel():
            for i in range(5):
                types[i] = get_material_type(i)
                indices[i] = get_material_type_index(i)

        test_kernel()
        assert types.to_numpy().tolist() == [
            int(MaterialType.LAMBERTIAN),
            int(MaterialType.METAL),
            int(MaterialType.LAMBERTIAN),
            int(MaterialType.DIELECTRIC),
            -1,
        ]
        assert indices.to_numpy().tolist() == [0, 0, 1, 0, -1]

    def test_metal_fuzz_is_clamped_on_upload(self):
        """Test fuzz above 1 is stored as 1."""
        from pathtracer.materials.metal import get_metal_fuzz_value
        from pathtracer.scene.manager import Scene

        scene = Scene()
        scene.add_metal_sphere((0, 0, -1), 0.5, (0.8, 0.8, 0.8), fuzz=3.0)
        scene.upload()

        assert get_metal_fuzz_value(0) == pytest.approx(1.0)

    def test_register_material_rejects_unknown(self):
        """Test register_material rejects values that are not materials."""
        from pathtracer.errors import ConfigurationError
        from pathtracer.scene.manager import register_material

        with pytest.raises(ConfigurationError):
            register_material(object())


class TestSceneCapacity:
    """Tests for the sphere and material registry limits."""

    def test_every_sphere_can_be_metal(self):
        """Test a scene of 300 metal spheres builds and uploads."""
        from pathtracer.materials.metal import get_metal_material_count
        from pathtracer.scene.intersection import get_sphere_count
        from pathtracer.scene.manager import Scene, get_material_count

        scene = Scene()
        for k in range(300):
            scene.add_metal_sphere((k % 20, k // 20, -5), 0.4, (0.7, 0.7, 0.7), fuzz=0.1)
        scene.upload()

        assert get_sphere_count() == 300
        assert get_material_count() == 300
        assert get_metal_material_count() == 300

    def test_registries_hold_one_material_per_sphere(self):
        """Test each type registry is as large as the sphere storage."""
        from pathtracer.geometry.sphere import MAX_SPHERES
        from pathtracer.materials import Dielectric, Lambertian, Metal
        from pathtracer.scene.manager import MAX_MATERIALS, REGISTRY_CAPACITY

        assert MAX_MATERIALS == MAX_SPHERES
        assert REGISTRY_CAPACITY == {
            Lambertian: MAX_SPHERES,
            Metal: MAX_SPHERES,
            Dielectric: MAX_SPHERES,
        }

    def test_full_type_registry_fails_at_add(self, monkeypatch):
        """Test Scene.add rejects a sphere its material registry cannot hold."""
        from pathtracer.materials import Metal
        from pathtracer.scene import manager

        monkeypatch.setitem(manager.REGISTRY_CAPACITY, Metal, 2)
        scene = manager.Scene()
        scene.add_metal_sphere((0, 0, -1), 0.5, (0.8, 0.8, 0.8))
        scene.add_metal_sphere((1, 0, -1), 0.5, (0.8, 0.8, 0.8))
        # Other types are unaffected
        scene.add_lambertian_sphere((2, 0, -1), 0.5, (0.5, 0.5, 0.5))

        with pytest.raises(RuntimeError, match="Metal"):
            scene.add_metal_sphere((3, 0, -1), 0.5, (0.8, 0.8, 0.8))
        assert len(scene) == 3

    def test_full_material_table_leaves_registries_untouched(self, monkeypatch):
        """Test a rejected material does not leave an entry in its type registry."""
        from pathtracer.materials import Lambertian
        from pathtracer.materials.lambertian import get_lambertian_material_count
        from pathtracer.scene import manager

        monkeypatch.setattr(manager, "MAX_MATERIALS", 1)
        manager.register_material(Lambertian((0.5, 0.5, 0.5)))

        with pytest.raises(RuntimeError, match="materials"):
            manager.register_material(Lambertian((0.1, 0.1, 0.1)))
        assert manager.get_material_count() == 1
        assert get_lambertian_material_count() == 1


class TestSceneSerialization:
    """Tests for dict and JSON round trips."""

    def _scene(self):
        from pathtracer.scene.manager import Scene

        scene = Scene()
        scene.add_lambertian_sphere((0, -100.5, -1), 100, (0.8, 0.8, 0.0))
        scene.add_dielectric_sphere((-1, 0, -1), -0.4, 1.5)
        scene.add_metal_sphere((1, 0, -1), 0.5, (0.8, 0.6, 0.2), fuzz=0.3)
        return scene

    def test_to_dict_format(self):
        """Test the dictionary layout with inline materials."""
        data = self._scene().to_dict()

        assert len(data["spheres"]) == 3
        assert data["spheres"][0] == {
            "center": [0.0, -100.5, -1.0],
            "radius": 100.0,
            "material": {"type": "lambertian", "albedo": [0.8, 0.8, 0.0]},
        }
        assert data["spheres"][1]["material"] == {"type": "dielectric", "refractive_index": 1.5}
        assert data["spheres"][2]["material"]["fuzz"] == pytest.approx(0.3)

    def test_from_dict_rebuilds_scene(self):
        """Test from_dict produces the same spheres."""
        from pathtracer.scene.manager import Scene

        original = self._scene()
        rebuilt = Scene.from_dict(original.to_dict())

        assert rebuilt.spheres == original.spheres

    def test_json_file_round_trip(self, tmp_path):
        """Test save_json and load_json."""
        from pathtracer.scene.manager import Scene

        path = tmp_path / "scene.json"
        original = self._scene()
        original.save_json(path)

        assert json.loads(path.read_text())["spheres"][1]["radius"] == -0.4
        assert Scene.load_json(path).spheres == original.spheres

    def test_unknown_material_type(self):
        """Test unknown material types raise ConfigurationError."""
        from pathtracer.errors import ConfigurationError
        from pathtracer.scene.manager import Scene

        data = {"spheres": [{"center": [0, 0, 0], "radius": 1, "material": {"type": "plasma"}}]}
        with pytest.raises(ConfigurationError, match="plasma"):
            Scene.from_dict(data)

    def test_missing_material(self):
        """Test sphere entries without a material are rejected."""
        from pathtracer.errors import ConfigurationError
        from pathtracer.scene.manager import Scene

        with pytest.raises(ConfigurationError, match="no material"):
            Scene.from_dict({"spheres": [{"center": [0, 0, 0], "radius": 1}]})
