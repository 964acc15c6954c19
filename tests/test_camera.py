"""Unit tests for the thin-lens camera.

Tests cover:
- Parameter validation
- Camera basis and viewport computation
- Ray generation for pinhole and defocused cameras
- Shutter time sampling
"""

import numpy as np
import pytest
import taichi as ti

N_STREAMS = 1000


def _generate_rays(s=0.5, t=0.5):
    """Generate N_STREAMS rays through (s, t), one per stream."""
    from src.raytracer.camera.thin_lens import get_ray
    from src.raytracer.core.rng import init_rng

    n = N_STREAMS
    origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
    directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
    times = ti.field(dtype=ti.f32, shape=n)

    @ti.kernel
    def test_kernel(ss: ti.f32, tt: ti.f32):
        for i in range(n):
            state = init_rng(ti.u32(41), ti.u32(i), ti.u32(0))
            state, ray = get_ray(ss, tt, state)
            origins[i] = ray.origin
            directions[i] = ray.direction
            times[i] = ray.time

    test_kernel(s, t)
    return origins.to_numpy(), directions.to_numpy(), times.to_numpy()


class TestCameraValidation:
    """Tests for Camera parameter checks."""

    @pytest.mark.parametrize("vfov", [0.0, 180.0, -10.0, 200.0])
    def test_invalid_vfov(self, vfov):
        """vfov must lie strictly between 0 and 180 degrees."""
        from src.raytracer.camera.thin_lens import Camera

        with pytest.raises(ValueError, match="vfov"):
            Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), vfov=vfov)

    def test_invalid_aspect_ratio(self):
        """aspect_ratio must be positive."""
        from src.raytracer.camera.thin_lens import Camera

        with pytest.raises(ValueError, match="aspect_ratio"):
            Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), aspect_ratio=0.0)

    def test_negative_aperture(self):
        """aperture must be non-negative."""
        from src.raytracer.camera.thin_lens import Camera

        with pytest.raises(ValueError, match="aperture"):
            Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), aperture=-0.1)

    def test_non_positive_focus_dist(self):
        """focus_dist must be positive when given."""
        from src.raytracer.camera.thin_lens import Camera

        with pytest.raises(ValueError, match="focus_dist"):
            Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), focus_dist=0.0)

    def test_reversed_shutter(self):
        """The shutter cannot close before it opens."""
        from src.raytracer.camera.thin_lens import Camera

        with pytest.raises(ValueError, match="time1"):
            Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), time0=1.0, time1=0.0)

    def test_coincident_points(self):
        """lookfrom and lookat must differ."""
        from src.raytracer.camera.thin_lens import Camera

        with pytest.raises(ValueError, match="different"):
            Camera(lookfrom=(1, 2, 3), lookat=(1, 2, 3))

    def test_vup_parallel_to_view(self):
        """vup along the view direction leaves the basis undefined."""
        from src.raytracer.camera.thin_lens import Camera

        with pytest.raises(ValueError, match="parallel"):
            Camera(lookfrom=(0, 5, 0), lookat=(0, 0, 0), vup=(0, 1, 0))

    def test_focus_dist_defaults_to_look_distance(self):
        """Without focus_dist the lookat point is in focus."""
        from src.raytracer.camera.thin_lens import Camera

        camera = Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -3))
        assert camera.focus_dist == pytest.approx(3.0)


class TestCameraSetup:
    """Tests for setup_camera."""

    def test_basis_and_viewport(self):
        """A camera looking down -z has the canonical basis."""
        from src.raytracer.camera.thin_lens import Camera, get_camera_info, setup_camera

        setup_camera(
            Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), vfov=90.0, aspect_ratio=2.0)
        )
        info = get_camera_info()

        assert info["origin"] == pytest.approx((0.0, 0.0, 0.0))
        assert info["u"] == pytest.approx((1.0, 0.0, 0.0))
        assert info["v"] == pytest.approx((0.0, 1.0, 0.0))
        assert info["w"] == pytest.approx((0.0, 0.0, 1.0))
        assert info["horizontal"] == pytest.approx((4.0, 0.0, 0.0))
        assert info["vertical"] == pytest.approx((0.0, 2.0, 0.0))
        assert info["lower_left"] == pytest.approx((-2.0, -1.0, -1.0))
        assert info["lens_radius"] == pytest.approx(0.0)

    def test_basis_is_orthonormal(self):
        """An oblique camera still has an orthonormal basis."""
        from src.raytracer.camera.thin_lens import Camera, get_camera_info, setup_camera

        setup_camera(Camera(lookfrom=(13, 2, 3), lookat=(0, 0, 0), vfov=20.0, aperture=0.1))
        info = get_camera_info()
        u, v, w = (np.array(info[k]) for k in ("u", "v", "w"))

        for vec in (u, v, w):
            assert np.linalg.norm(vec) == pytest.approx(1.0, abs=1e-5)
        assert abs(np.dot(u, v)) < 1e-5
        assert abs(np.dot(u, w)) < 1e-5
        assert abs(np.dot(v, w)) < 1e-5
        assert info["lens_radius"] == pytest.approx(0.05)

    def test_viewport_scales_with_focus_distance(self):
        """The image plane sits at focus_dist, so it grows with it."""
        from src.raytracer.camera.thin_lens import Camera, get_camera_info, setup_camera

        setup_camera(
            Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), vfov=90.0, aspect_ratio=1.0, focus_dist=10.0)
        )
        info = get_camera_info()
        assert info["vertical"] == pytest.approx((0.0, 20.0, 0.0))
        assert info["lower_left"][2] == pytest.approx(-10.0)


class TestRayGeneration:
    """Tests for get_ray and get_ray_jittered."""

    def test_pinhole_center_ray(self):
        """A pinhole camera sends the center ray straight at lookat."""
        from src.raytracer.camera.thin_lens import Camera, setup_camera

        setup_camera(Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), vfov=90.0, aspect_ratio=2.0))
        origins, directions, times = _generate_rays()

        np.testing.assert_allclose(origins, 0.0, atol=1e-6)
        np.testing.assert_allclose(directions, np.tile([0.0, 0.0, -1.0], (N_STREAMS, 1)), atol=1e-6)
        np.testing.assert_allclose(times, 0.0)

    def test_corner_ray(self):
        """(s, t) = (0, 0) passes through the lower-left corner."""
        from src.raytracer.camera.thin_lens import Camera, setup_camera

        setup_camera(Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), vfov=90.0, aspect_ratio=2.0))
        _, directions, _ = _generate_rays(0.0, 0.0)

        np.testing.assert_allclose(directions[0], [-2.0, -1.0, -1.0], atol=1e-6)

    def test_defocus_rays_converge_on_focus_plane(self):
        """Lens samples vary the origin but every ray passes the focus point."""
        from src.raytracer.camera.thin_lens import Camera, setup_camera

        setup_camera(
            Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -2), vfov=60.0, aperture=1.0)
        )
        origins, directions, _ = _generate_rays()

        # Origins spread over the lens disk in the xy-plane
        assert np.abs(origins[:, 2]).max() < 1e-6
        radii = np.linalg.norm(origins[:, :2], axis=1)
        assert radii.max() < 0.5 + 1e-6
        assert radii.max() > 0.1
        # origin + direction is the focus-plane target
        np.testing.assert_allclose(
            origins + directions, np.tile([0.0, 0.0, -2.0], (N_STREAMS, 1)), atol=1e-5
        )

    def test_shutter_times(self):
        """Ray times are spread over [time0, time1]."""
        from src.raytracer.camera.thin_lens import Camera, setup_camera

        setup_camera(Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), time0=0.5, time1=1.5))
        _, _, times = _generate_rays()

        assert times.min() >= 0.5
        assert times.max() <= 1.5
        assert times.max() - times.min() > 0.5

    def test_jittered_ray_stays_in_pixel(self):
        """Jittered rays for pixel (0, 0) of a 2x2 image hit its quarter of the plane."""
        from src.raytracer.camera.thin_lens import Camera, get_ray_jittered, setup_camera
        from src.raytracer.core.rng import init_rng

        setup_camera(Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), vfov=90.0, aspect_ratio=2.0))

        n = N_STREAMS
        targets = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                state = init_rng(ti.u32(43), ti.u32(k), ti.u32(0))
                state, ray = get_ray_jittered(0, 0, 2, 2, state)
                targets[k] = ray.origin + ray.direction

        test_kernel()
        pts = targets.to_numpy()
        assert pts[:, 0].min() >= -2.0 - 1e-6
        assert pts[:, 0].max() <= 0.0 + 1e-6
        assert pts[:, 1].min() >= -1.0 - 1e-6
        assert pts[:, 1].max() <= 0.0 + 1e-6
        np.testing.assert_allclose(pts[:, 2], -1.0, atol=1e-6)
