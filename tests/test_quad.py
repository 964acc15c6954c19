"""Unit tests for quad (parallelogram) intersection."""

import pytest
import taichi as ti


def _trace_quad(origin, direction, q=(-1.0, -1.0, -2.0), u=(2.0, 0.0, 0.0), v=(0.0, 2.0, 0.0)):
    from src.raytracer.core.ray import Ray, vec3
    from src.raytracer.geometry.quad import Quad, hit_quad

    hit = ti.field(dtype=ti.i32, shape=())
    front = ti.field(dtype=ti.i32, shape=())
    t = ti.field(dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, qq: vec3, uu: vec3, vv: vec3):
        ray = Ray(origin=o, direction=d, time=0.0)
        rec = hit_quad(ray, Quad(Q=qq, u=uu, v=vv), 0.001, 1000.0)
        hit[None] = rec.hit
        front[None] = rec.front_face
        t[None] = rec.t
        normal[None] = rec.normal

    test_kernel(origin, direction, q, u, v)
    return hit[None], front[None], t[None], list(normal[None])


class TestQuadHit:
    """Tests for hit_quad."""

    def test_front_hit(self):
        """A ray toward -z strikes the front of a +z facing quad."""
        hit, front, t, normal = _trace_quad((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))

        assert hit == 1
        assert front == 1
        assert t == pytest.approx(2.0)
        assert normal == pytest.approx([0.0, 0.0, 1.0])

    def test_back_hit(self):
        """A ray from behind gets the flipped normal."""
        hit, front, t, normal = _trace_quad((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))

        assert hit == 1
        assert front == 0
        assert t == pytest.approx(3.0)
        assert normal == pytest.approx([0.0, 0.0, -1.0])

    def test_outside_bounds_misses(self):
        """A ray hitting the plane outside the parallelogram misses."""
        hit, _, _, _ = _trace_quad((5.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit == 0

    def test_parallel_ray_misses(self):
        """A ray parallel to the plane never hits."""
        hit, _, _, _ = _trace_quad((0.0, 0.0, -2.0), (1.0, 0.0, 0.0))
        assert hit == 0

    def test_degenerate_quad_misses(self):
        """Collinear edges give no hits."""
        hit, _, _, _ = _trace_quad(
            (0.0, 0.0, 0.0), (0.0, 0.0, -1.0), u=(2.0, 0.0, 0.0), v=(4.0, 0.0, 0.0)
        )
        assert hit == 0

    def test_area(self):
        """A 2 x 2 quad has area 4."""
        from src.raytracer.core.ray import vec3
        from src.raytracer.geometry.quad import Quad, quad_area

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            quad = Quad(Q=vec3(0.0, 0.0, 0.0), u=vec3(2.0, 0.0, 0.0), v=vec3(0.0, 2.0, 0.0))
            result[None] = quad_area(quad)

        test_kernel()
        assert result[None] == pytest.approx(4.0)
