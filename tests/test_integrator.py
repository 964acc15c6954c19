"""Unit tests for the path-tracing integrator.

Tests cover:
- RenderSettings and render target validation
- Sky gradient
- ray_color for escaping, absorbed, mirrored and transmitted paths
- Accumulation, determinism and batch invariance of render_samples
- Gamma mapping to display bytes and image orientation
"""

import numpy as np
import pytest
import taichi as ti


def _setup_pinhole(vfov=90.0, aspect_ratio=1.0):
    from src.raytracer.camera.thin_lens import Camera, setup_camera

    setup_camera(
        Camera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), vfov=vfov, aspect_ratio=aspect_ratio)
    )


def _setup_ground_scene():
    from src.raytracer.camera.thin_lens import setup_camera
    from src.raytracer.scene.presets import create_ground_scene

    scene, camera = create_ground_scene()
    setup_camera(camera)
    return scene


class TestRenderSettings:
    """Tests for RenderSettings validation."""

    def test_defaults(self):
        """Defaults describe a 400x225 image with 100 samples and depth 50."""
        from src.raytracer.core.integrator import RenderSettings

        settings = RenderSettings()
        assert settings.image_width == 400
        assert settings.image_height == 225
        assert settings.samples_per_pixel == 100
        assert settings.max_depth == 50
        assert settings.aspect_ratio == pytest.approx(16.0 / 9.0)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"image_width": 0},
            {"image_height": -1},
            {"image_width": 4096},
            {"samples_per_pixel": 0},
            {"max_depth": -1},
            {"seed": -1},
            {"seed": 2**32},
        ],
    )
    def test_invalid_settings(self, kwargs):
        """Out-of-range settings raise ValueError."""
        from src.raytracer.core.integrator import RenderSettings

        with pytest.raises(ValueError):
            RenderSettings(**kwargs)

    def test_zero_depth_allowed(self):
        """max_depth = 0 is valid and renders black."""
        from src.raytracer.core.integrator import RenderSettings

        assert RenderSettings(max_depth=0).max_depth == 0


class TestRenderTarget:
    """Tests for render target management."""

    def test_setup_sets_dimensions(self):
        """setup_render_target records the size and resets the count."""
        from src.raytracer.core.integrator import (
            get_image_dimensions,
            get_total_samples,
            setup_render_target,
        )

        setup_render_target(8, 4)
        assert get_image_dimensions() == (8, 4)
        assert get_total_samples() == 0

    @pytest.mark.parametrize("size", [(0, 4), (4, 0), (4096, 4), (4, 4096)])
    def test_invalid_dimensions(self, size):
        """Dimensions outside [1, 2048] raise ValueError."""
        from src.raytracer.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(*size)

    def test_uninitialized_target_raises(self):
        """Rendering without a target raises RuntimeError."""
        from src.raytracer.core import integrator

        original = integrator._render_target_initialized[None]
        integrator._render_target_initialized[None] = 0
        try:
            with pytest.raises(RuntimeError, match="Render target not set up"):
                integrator.render_samples(1)
            with pytest.raises(RuntimeError, match="Render target not set up"):
                integrator.render_sample(0, 0)
            with pytest.raises(RuntimeError, match="Render target not set up"):
                integrator.get_pixel_buffer()
        finally:
            integrator._render_target_initialized[None] = original

    def test_no_samples_raises(self):
        """Resolving an empty buffer raises RuntimeError."""
        from src.raytracer.core.integrator import get_pixel_buffer, setup_render_target

        setup_render_target(2, 2)
        with pytest.raises(RuntimeError, match="No samples rendered yet"):
            get_pixel_buffer()

    @pytest.mark.parametrize(
        "kwargs", [{"num_samples": 0}, {"num_samples": 1, "max_depth": -1}, {"num_samples": 1, "seed": -5}]
    )
    def test_render_samples_validation(self, kwargs):
        """render_samples rejects bad arguments."""
        from src.raytracer.core.integrator import render_samples, setup_render_target

        setup_render_target(2, 2)
        with pytest.raises(ValueError):
            render_samples(**kwargs)


class TestBackground:
    """Tests for the sky gradient."""

    def test_sky_gradient(self):
        """Up is light blue, down is white, horizontal is the midpoint."""
        from src.raytracer.core.integrator import background_color
        from src.raytracer.core.ray import vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel():
            result[0] = background_color(vec3(0.0, 1.0, 0.0))
            result[1] = background_color(vec3(0.0, -3.0, 0.0))
            result[2] = background_color(vec3(1.0, 0.0, 0.0))

        test_kernel()
        assert list(result[0]) == pytest.approx([0.5, 0.7, 1.0], abs=1e-6)
        assert list(result[1]) == pytest.approx([1.0, 1.0, 1.0], abs=1e-6)
        assert list(result[2]) == pytest.approx([0.75, 0.85, 1.0], abs=1e-6)


class TestRayColor:
    """Tests for ray_color through trace_ray."""

    def test_empty_scene_returns_sky(self):
        """A ray that hits nothing returns the sky color."""
        from src.raytracer.core.integrator import trace_ray

        color = trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        assert color == pytest.approx((0.5, 0.7, 1.0), abs=1e-6)

    def test_zero_depth_is_black(self):
        """No bounces allowed means no light gathered, even toward the sky."""
        from src.raytracer.core.integrator import trace_ray

        assert trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), max_depth=0) == (0.0, 0.0, 0.0)

    def test_single_bounce_budget_is_black_on_hit(self):
        """A path that hits a surface on its last allowed bounce contributes black."""
        from src.raytracer.core.integrator import trace_ray
        from src.raytracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -2.0), 1.0, (0.5, 0.5, 0.5))

        assert trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), max_depth=1) == (0.0, 0.0, 0.0)

    def test_mirror_reflects_sky_times_albedo(self):
        """A head-on perfect mirror returns the sky behind the camera, tinted."""
        from src.raytracer.core.integrator import trace_ray
        from src.raytracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, 0.0, -3.0), 1.0, (0.8, 0.6, 0.2), fuzz=0.0)

        color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert color == pytest.approx((0.8 * 0.75, 0.6 * 0.85, 0.2 * 1.0), abs=1e-5)

    def test_matched_glass_is_invisible(self):
        """A dielectric with index 1 passes the ray straight through to the sky."""
        from src.raytracer.core.integrator import trace_ray
        from src.raytracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_dielectric_sphere((0.0, 0.0, -3.0), 1.0, ior=1.0)

        color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert color == pytest.approx((0.75, 0.85, 1.0), abs=1e-5)

    def test_diffuse_color_bounded_by_albedo(self):
        """Light reflected off a diffuse surface never exceeds its albedo."""
        from src.raytracer.core.integrator import trace_ray
        from src.raytracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -2.0), 1.0, (0.4, 0.6, 0.8))

        for seed in range(10):
            color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), seed=seed)
            assert all(c >= 0.0 for c in color)
            assert color[0] <= 0.4 + 1e-5
            assert color[1] <= 0.6 + 1e-5
            assert color[2] <= 0.8 + 1e-5

    def test_moving_sphere_uses_ray_time(self):
        """A moving mirror is hit at time 0 and missed once it has moved away."""
        from src.raytracer.core.integrator import trace_ray
        from src.raytracer.scene.manager import SceneManager

        scene = SceneManager()
        mirror = scene.add_metal_material((0.5, 0.5, 0.5))
        scene.add_moving_sphere((0.0, 0.0, -3.0), (0.0, 5.0, -3.0), 0.0, 1.0, 1.0, mirror)

        at_start = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), time=0.0)
        at_end = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), time=1.0)
        assert at_start == pytest.approx((0.375, 0.425, 0.5), abs=1e-5)
        assert at_end == pytest.approx((0.75, 0.85, 1.0), abs=1e-5)


class TestAccumulation:
    """Tests for render_samples and buffer resolution."""

    def test_sample_count(self):
        """Repeated calls accumulate their sample counts."""
        from src.raytracer.core.integrator import get_total_samples, render_samples, setup_render_target

        _setup_pinhole()
        setup_render_target(4, 4)
        render_samples(2)
        render_samples(3)
        assert get_total_samples() == 5

    def test_output_shape_and_dtype(self):
        """The pixel buffer is (height, width, 3) uint8."""
        from src.raytracer.core.integrator import get_pixel_buffer, render_samples, setup_render_target

        _setup_pinhole(aspect_ratio=2.0)
        setup_render_target(6, 3)
        render_samples(1)
        pixels = get_pixel_buffer()
        assert pixels.shape == (3, 6, 3)
        assert pixels.dtype == np.uint8

    def test_top_row_is_first(self):
        """Row 0 looks up into the bluer sky, the last row down toward white."""
        from src.raytracer.core.integrator import get_linear_image, render_samples, setup_render_target

        _setup_pinhole()
        setup_render_target(4, 4)
        render_samples(4)
        linear = get_linear_image()
        assert linear[0, :, 0].mean() < linear[-1, :, 0].mean()

    def test_same_seed_is_deterministic(self):
        """Two renders with the same seed are identical."""
        from src.raytracer.core.integrator import (
            clear_render_target,
            get_linear_image,
            render_samples,
        )
        from src.raytracer.core.integrator import setup_render_target

        _setup_ground_scene()
        setup_render_target(8, 8)
        render_samples(2, seed=7)
        first = get_linear_image()

        clear_render_target()
        render_samples(2, seed=7)
        second = get_linear_image()

        np.testing.assert_array_equal(first, second)

    def test_different_seeds_differ(self):
        """Changing the seed changes the noise."""
        from src.raytracer.core.integrator import (
            clear_render_target,
            get_linear_image,
            render_samples,
            setup_render_target,
        )

        _setup_ground_scene()
        setup_render_target(8, 8)
        render_samples(2, seed=1)
        first = get_linear_image()

        clear_render_target()
        render_samples(2, seed=2)
        second = get_linear_image()

        assert not np.array_equal(first, second)

    def test_batches_match_single_pass(self):
        """2 + 2 samples give the same image as 4 samples at once."""
        from src.raytracer.core.integrator import (
            clear_render_target,
            get_linear_image,
            get_pixel_buffer,
            render_samples,
            setup_render_target,
        )

        _setup_ground_scene()
        setup_render_target(8, 8)
        render_samples(4, seed=3)
        one_shot = get_linear_image()
        one_shot_bytes = get_pixel_buffer()

        clear_render_target()
        render_samples(2, seed=3)
        render_samples(2, seed=3)
        batched = get_linear_image()
        batched_bytes = get_pixel_buffer()

        np.testing.assert_allclose(batched, one_shot, rtol=1e-5, atol=1e-6)
        assert np.abs(batched_bytes.astype(int) - one_shot_bytes.astype(int)).max() <= 1

    def test_render_sample_matches_buffer(self):
        """render_sample reproduces the value accumulated for that pixel."""
        from src.raytracer.core.integrator import (
            get_linear_image,
            render_sample,
            render_samples,
            setup_render_target,
        )

        _setup_ground_scene()
        setup_render_target(4, 4)
        render_samples(1, seed=9)
        linear = get_linear_image()

        # Pixel row j counts from the bottom; image row 0 is the top
        color = render_sample(1, 0, sample_index=0, seed=9)
        np.testing.assert_allclose(color, linear[3, 1], rtol=1e-5, atol=1e-6)

    def test_linear_values_are_finite_and_non_negative(self):
        """Sanitized samples never produce NaN or negative averages."""
        from src.raytracer.camera.thin_lens import setup_camera
        from src.raytracer.core.integrator import get_linear_image, render_samples, setup_render_target
        from src.raytracer.scene.presets import create_material_showcase_scene

        _, camera = create_material_showcase_scene(aspect_ratio=2.0)
        setup_camera(camera)
        setup_render_target(8, 4)
        render_samples(2)
        linear = get_linear_image()
        assert np.isfinite(linear).all()
        assert linear.min() >= 0.0


class TestDisplayBytes:
    """Tests for the gamma-2 mapping to 8-bit values."""

    def test_endpoints(self):
        """0 maps to 0 and 1 maps to 255."""
        from src.raytracer.core.integrator import to_display_bytes

        out = to_display_bytes(np.array([0.0, 1.0], dtype=np.float32))
        assert out.tolist() == [0, 255]
        assert out.dtype == np.uint8

    def test_gamma_two(self):
        """0.25 linear is 0.5 after gamma, which is byte 128."""
        from src.raytracer.core.integrator import to_display_bytes

        assert to_display_bytes(np.array([0.25])).tolist() == [128]

    def test_clamping(self):
        """Negative values clamp to 0 and values above 1 to 255."""
        from src.raytracer.core.integrator import to_display_bytes

        assert to_display_bytes(np.array([-0.5, 4.0])).tolist() == [0, 255]
