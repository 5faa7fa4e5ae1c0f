"""Tests for the sphere buffer and the scene-level trace()."""

import math

import numpy as np
import pytest
import taichi as ti


def _trace_rays(origins, directions):
    """Trace a batch of rays; returns (distances, normals, albedos) as arrays."""
    from gpu_raytracing.core.ray import make_ray, normalize
    from gpu_raytracing.scene.intersection import trace

    n = len(origins)
    origin_field = ti.Vector.field(3, dtype=ti.f32, shape=n)
    direction_field = ti.Vector.field(3, dtype=ti.f32, shape=n)
    distances = ti.field(dtype=ti.f32, shape=n)
    normals = ti.Vector.field(3, dtype=ti.f32, shape=n)
    albedos = ti.Vector.field(3, dtype=ti.f32, shape=n)

    origin_field.from_numpy(np.asarray(origins, dtype=np.float32))
    direction_field.from_numpy(np.asarray(directions, dtype=np.float32))

    @ti.kernel
    def test_kernel():
        for i in range(n):
            hit = trace(make_ray(origin_field[i], normalize(direction_field[i])))
            distances[i] = hit.distance
            normals[i] = hit.normal
            albedos[i] = hit.albedo

    test_kernel()
    return distances.to_numpy(), normals.to_numpy(), albedos.to_numpy()


def _brute_force_nearest(origin, direction, spheres):
    """Reference nearest distance over the ground plane and spheres in float64."""
    origin = np.asarray(origin, dtype=np.float64)
    direction = np.asarray(direction, dtype=np.float64)
    direction /= np.linalg.norm(direction)

    best = math.inf
    if direction[1] != 0.0:
        t = -origin[1] / direction[1]
        if t > 0.0:
            best = t
    for center, radius in spheres:
        d = origin - np.asarray(center)
        p1 = -np.dot(direction, d)
        disc = p1 * p1 - np.dot(d, d) + radius * radius
        if disc < 0.0:
            continue
        p2 = math.sqrt(disc)
        t = p1 - p2 if p1 - p2 > 0.0 else p1 + p2
        if 0.0 < t < best:
            best = t
    return best


class TestSphereBuffer:
    """Tests for host-side sphere storage."""

    def test_add_and_read_back(self):
        from gpu_raytracing.scene.intersection import add_sphere, get_sphere, get_sphere_count

        index = add_sphere((1.0, 2.0, 3.0), 2.0, albedo=(0.1, 0.2, 0.3), specular=(0.5, 0.5, 0.5))
        assert index == 0
        assert get_sphere_count() == 1

        sphere = get_sphere(0)
        assert sphere["position"] == pytest.approx((1.0, 2.0, 3.0))
        assert sphere["radius"] == pytest.approx(2.0)
        assert sphere["albedo"] == pytest.approx((0.1, 0.2, 0.3))
        assert sphere["specular"] == pytest.approx((0.5, 0.5, 0.5))

    def test_get_sphere_out_of_range(self):
        from gpu_raytracing.scene.intersection import get_sphere

        with pytest.raises(IndexError):
            get_sphere(0)

    def test_clear_scene(self):
        from gpu_raytracing.scene.intersection import add_sphere, clear_scene, get_sphere_count

        add_sphere((0.0, 1.0, 0.0), 1.0)
        clear_scene()
        assert get_sphere_count() == 0

    def test_capacity_overflow(self):
        from gpu_raytracing.scene.intersection import MAX_SPHERES, add_sphere, set_spheres

        count = set_spheres(
            np.zeros((MAX_SPHERES, 3)),
            np.ones(MAX_SPHERES),
            np.zeros((MAX_SPHERES, 3)),
            np.zeros((MAX_SPHERES, 3)),
        )
        assert count == MAX_SPHERES
        with pytest.raises(RuntimeError):
            add_sphere((0.0, 1.0, 0.0), 1.0)

    def test_set_spheres_length_mismatch(self):
        from gpu_raytracing.scene.intersection import set_spheres

        with pytest.raises(ValueError):
            set_spheres(np.zeros((2, 3)), np.ones(3), np.zeros((2, 3)), np.zeros((2, 3)))

    def test_set_spheres_too_many(self):
        from gpu_raytracing.scene.intersection import MAX_SPHERES, set_spheres

        n = MAX_SPHERES + 1
        with pytest.raises(RuntimeError):
            set_spheres(np.zeros((n, 3)), np.ones(n), np.zeros((n, 3)), np.zeros((n, 3)))


class TestTrace:
    """Tests for nearest-hit tracing over the whole scene."""

    def test_empty_scene_down_ray_hits_ground(self):
        distances, normals, _ = _trace_rays([(0.0, 5.0, 0.0)], [(0.0, -1.0, 0.0)])
        assert abs(distances[0] - 5.0) < 1e-5
        assert abs(normals[0][1] - 1.0) < 1e-6

    def test_empty_scene_up_ray_misses(self):
        distances, normals, albedos = _trace_rays([(0.0, 5.0, 0.0)], [(0.0, 1.0, 0.0)])
        assert math.isinf(distances[0]) and distances[0] > 0
        assert np.all(normals[0] == 0.0)
        assert np.all(albedos[0] == 0.0)

    def test_sphere_in_front_of_ground(self):
        from gpu_raytracing.scene.intersection import add_sphere

        add_sphere((0.0, 2.0, 0.0), 2.0, albedo=(0.9, 0.1, 0.1))
        distances, normals, albedos = _trace_rays([(0.0, 10.0, 0.0)], [(0.0, -1.0, 0.0)])
        assert abs(distances[0] - 6.0) < 1e-5
        assert abs(normals[0][1] - 1.0) < 1e-5
        assert albedos[0][0] == pytest.approx(0.9)

    def test_nearest_of_overlapping_candidates(self):
        """The later sphere in the buffer wins when it is closer."""
        from gpu_raytracing.scene.intersection import add_sphere

        add_sphere((0.0, 5.0, -20.0), 3.0, albedo=(1.0, 0.0, 0.0))
        add_sphere((0.0, 5.0, -10.0), 1.0, albedo=(0.0, 1.0, 0.0))
        distances, _, albedos = _trace_rays([(0.0, 5.0, 0.0)], [(0.0, 0.0, -1.0)])
        assert abs(distances[0] - 9.0) < 1e-5
        assert albedos[0][1] == pytest.approx(1.0)

    def test_matches_brute_force_nearest(self):
        from gpu_raytracing.scene.intersection import add_sphere

        rng = np.random.default_rng(123)
        spheres = []
        for _ in range(20):
            radius = float(rng.uniform(0.5, 3.0))
            center = (float(rng.uniform(-20, 20)), radius, float(rng.uniform(-20, 20)))
            add_sphere(center, radius)
            spheres.append((center, radius))

        n_rays = 256
        origins = np.column_stack(
            [rng.uniform(-25, 25, n_rays), rng.uniform(0.5, 15, n_rays), rng.uniform(-25, 25, n_rays)]
        )
        directions = rng.normal(size=(n_rays, 3))

        distances, _, _ = _trace_rays(origins, directions)

        for i in range(n_rays):
            expected = _brute_force_nearest(origins[i], directions[i], spheres)
            if math.isinf(expected):
                assert math.isinf(distances[i])
            else:
                assert distances[i] == pytest.approx(expected, rel=1e-3, abs=1e-3)
