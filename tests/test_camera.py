"""Tests for camera configuration, setup and ray generation."""

import math

import numpy as np
import pytest
import taichi as ti

N = 2048


class TestCameraConfig:
    """Tests for Camera defaults and validation."""

    def test_defaults(self):
        """Test the default camera matches the classic settings."""
        from pathtracer.camera import Camera

        camera = Camera()
        assert camera.aspect_ratio == pytest.approx(16.0 / 9.0)
        assert camera.image_width == 400
        assert camera.image_height == 225
        assert camera.samples_per_pixel == 10
        assert camera.max_depth == 10
        assert camera.vfov == 90.0
        assert camera.look_from == (0.0, 0.0, 0.0)
        assert camera.look_at == (0.0, 0.0, -1.0)
        assert camera.vup == (0.0, 1.0, 0.0)
        assert camera.defocus_angle == 0.0
        assert camera.focus_dist == 10.0

    def test_image_height_at_least_one(self):
        """Test very wide aspect ratios still give one row."""
        from pathtracer.camera import Camera

        assert Camera(aspect_ratio=100.0, image_width=10).image_height == 1

    def test_camera_is_immutable(self):
        """Test the configuration cannot be changed after construction."""
        import dataclasses

        from pathtracer.camera import Camera

        camera = Camera()
        with pytest.raises(dataclasses.FrozenInstanceError):
            camera.vfov = 45.0

    @pytest.mark.parametrize(
        "kwargs, match",
        [
            ({"image_width": 0}, "image_width"),
            ({"image_width": 5000}, "image_width"),
            ({"aspect_ratio": 0.0}, "aspect_ratio"),
            ({"samples_per_pixel": 0}, "samples_per_pixel"),
            ({"max_depth": -1}, "max_depth"),
            ({"vfov": 0.0}, "vfov"),
            ({"vfov": 180.0}, "vfov"),
            ({"focus_dist": 0.0}, "focus_dist"),
            ({"defocus_angle": -1.0}, "defocus_angle"),
            ({"look_from": (1.0, 2.0, 3.0), "look_at": (1.0, 2.0, 3.0)}, "different points"),
            ({"vup": (0.0, 0.0, 1.0)}, "parallel"),
            ({"aspect_ratio": 0.1, "image_width": 400}, "height"),
        ],
    )
    def test_invalid_configuration(self, kwargs, match):
        """Test malformed configurations fail fast with ConfigurationError."""
        from pathtracer.camera import Camera
        from pathtracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match=match):
            Camera(**kwargs)

    def test_zero_max_depth_allowed(self):
        """Test max_depth 0 is valid (renders black)."""
        from pathtracer.camera import Camera

        assert Camera(max_depth=0).max_depth == 0


class TestCameraSetup:
    """Tests for the derived camera geometry."""

    def test_default_geometry(self):
        """Test basis, pixel deltas and pixel00 for the default camera."""
        from pathtracer.camera import Camera, get_camera_info, setup_camera

        camera = Camera()
        setup_camera(camera)
        info = get_camera_info()

        assert info["center"] == pytest.approx((0.0, 0.0, 0.0))
        assert info["u"] == pytest.approx((1.0, 0.0, 0.0), abs=1e-6)
        assert info["v"] == pytest.approx((0.0, 1.0, 0.0), abs=1e-6)
        assert info["w"] == pytest.approx((0.0, 0.0, 1.0), abs=1e-6)

        # vfov 90 at focus_dist 10: viewport height 20, width 20 * 400 / 225
        viewport_height = 2.0 * math.tan(math.radians(45.0)) * 10.0
        viewport_width = viewport_height * 400 / 225
        assert info["pixel_delta_u"] == pytest.approx((viewport_width / 400, 0.0, 0.0), abs=1e-5)
        assert info["pixel_delta_v"] == pytest.approx((0.0, -viewport_height / 225, 0.0), abs=1e-5)

        expected_pixel00 = (
            -viewport_width / 2 + 0.5 * viewport_width / 400,
            viewport_height / 2 - 0.5 * viewport_height / 225,
            -10.0,
        )
        assert info["pixel00"] == pytest.approx(expected_pixel00, abs=1e-4)
        assert info["defocus_disk_u"] == pytest.approx((0.0, 0.0, 0.0))

    def test_look_at_basis(self):
        """Test the orthonormal basis for an off-axis camera."""
        from pathtracer.camera import Camera, get_camera_info, setup_camera

        setup_camera(Camera(look_from=(13.0, 2.0, 3.0), look_at=(0.0, 0.0, 0.0), vfov=20.0))
        info = get_camera_info()

        u, v, w = (np.array(info[k]) for k in ("u", "v", "w"))
        expected_w = np.array([13.0, 2.0, 3.0]) / np.linalg.norm([13.0, 2.0, 3.0])
        assert np.allclose(w, expected_w, atol=1e-6)
        for axis in (u, v, w):
            assert np.linalg.norm(axis) == pytest.approx(1.0, abs=1e-6)
        assert np.dot(u, v) == pytest.approx(0.0, abs=1e-6)
        assert np.dot(u, w) == pytest.approx(0.0, abs=1e-6)
        assert np.allclose(np.cross(u, v), w, atol=1e-6)

    def test_defocus_disk_radius(self):
        """Test the defocus disk vectors scale with focus_dist * tan(angle / 2)."""
        from pathtracer.camera import Camera, get_camera_info, setup_camera

        setup_camera(Camera(defocus_angle=10.0, focus_dist=3.4))
        info = get_camera_info()

        radius = 3.4 * math.tan(math.radians(5.0))
        assert info["defocus_disk_u"] == pytest.approx((radius, 0.0, 0.0), abs=1e-6)
        assert info["defocus_disk_v"] == pytest.approx((0.0, radius, 0.0), abs=1e-6)


class TestGetRay:
    """Tests for get_ray."""

    def _rays(self, i, j):
        from pathtracer.camera.camera import get_ray
        from pathtracer.core.sampler import seed_rng

        origins = ti.Vector.field(3, dtype=ti.f32, shape=N)
        directions = ti.Vector.field(3, dtype=ti.f32, shape=N)

        @ti.kernel
        def test_kernel(pi: ti.i32, pj: ti.i32):
            for k in range(N):
                ray = get_ray(pi, pj, seed_rng(ti.u32(1), pi, pj, k))
                origins[k] = ray.origin
                directions[k] = ray.direction

        test_kernel(i, j)
        return origins.to_numpy(), directions.to_numpy()

    def test_pinhole_rays_start_at_center(self):
        """Test rays start at the camera center without defocus."""
        from pathtracer.camera import Camera, setup_camera

        setup_camera(Camera(look_from=(1.0, 2.0, 3.0), look_at=(1.0, 2.0, 0.0)))
        origins, _ = self._rays(10, 10)
        assert np.allclose(origins, [1.0, 2.0, 3.0])

    def test_jitter_stays_inside_pixel(self):
        """Test sample points lie within half a pixel of the pixel center."""
        from pathtracer.camera import Camera, get_camera_info, setup_camera

        setup_camera(Camera())
        info = get_camera_info()
        _, directions = self._rays(0, 0)

        # With the center at the origin the direction is the sample point
        du = info["pixel_delta_u"][0]
        dv = -info["pixel_delta_v"][1]
        px, py, _ = info["pixel00"]
        assert np.all(np.abs(directions[:, 0] - px) <= 0.5 * du + 1e-4)
        assert np.all(np.abs(directions[:, 1] - py) <= 0.5 * dv + 1e-4)
        assert np.allclose(directions[:, 2], -10.0, atol=1e-4)
        # Jitter actually varies
        assert directions[:, 0].std() > 0.1 * du

    def test_top_left_points_up_and_left(self):
        """Test pixel (0, 0) is the top-left of the image."""
        from pathtracer.camera import Camera, setup_camera

        setup_camera(Camera())
        _, top_left = self._rays(0, 0)
        _, bottom_right = self._rays(399, 224)

        assert np.all(top_left[:, 0] < 0.0) and np.all(top_left[:, 1] > 0.0)
        assert np.all(bottom_right[:, 0] > 0.0) and np.all(bottom_right[:, 1] < 0.0)

    def test_defocus_origins_on_disk(self):
        """Test defocused rays start on the lens disk and converge at focus_dist."""
        from pathtracer.camera import Camera, setup_camera

        camera = Camera(defocus_angle=10.0, focus_dist=3.4)
        setup_camera(camera)
        origins, directions = self._rays(200, 112)

        radius = 3.4 * math.tan(math.radians(5.0))
        assert np.allclose(origins[:, 2], 0.0, atol=1e-6)
        assert np.all(np.linalg.norm(origins[:, :2], axis=1) < radius + 1e-5)
        assert origins[:, 0].std() > 0.1 * radius

        # Every ray reaches the focus plane inside the pixel footprint
        targets = origins + directions
        assert np.allclose(targets[:, 2], -3.4, atol=1e-4)
        pixel_size = 2.0 * math.tan(math.radians(45.0)) * 3.4 / 225
        assert np.all(np.abs(targets[:, 1] - targets[:, 1].mean()) <= pixel_size)
