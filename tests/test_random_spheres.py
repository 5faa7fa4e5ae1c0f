"""Tests for the random sphere scene generator."""

import numpy as np
import pytest


def _generate(**kwargs):
    from gpu_raytracing.scene.random_spheres import RandomSphereParams, create_random_sphere_scene

    return create_random_sphere_scene(RandomSphereParams(**kwargs))


class TestRandomSphereScene:
    def test_spheres_rest_on_ground(self):
        scene = _generate(seed=1)
        assert scene.get_sphere_count() > 0
        for sphere in scene.spheres:
            assert sphere.position[1] == pytest.approx(sphere.radius)

    def test_radii_and_placement_in_range(self):
        scene = _generate(seed=2, sphere_radius=(2.0, 4.0), placement_radius=50.0)
        for sphere in scene.spheres:
            assert 2.0 <= sphere.radius <= 4.0
            x, _, z = sphere.position
            assert x * x + z * z <= 50.0 * 50.0 + 1e-6

    def test_no_overlaps(self):
        scene = _generate(seed=3, max_spheres=100)
        spheres = scene.spheres
        for a in range(len(spheres)):
            for b in range(a + 1, len(spheres)):
                distance = np.linalg.norm(np.subtract(spheres[a].position, spheres[b].position))
                assert distance >= spheres[a].radius + spheres[b].radius - 1e-9

    def test_overlapping_candidates_are_dropped(self, caplog):
        # Big spheres in a small disc: most candidates collide
        with caplog.at_level("INFO", logger="gpu_raytracing.scene.random_spheres"):
            scene = _generate(seed=4, max_spheres=50, sphere_radius=(5.0, 5.0), placement_radius=20.0)
        assert 0 < scene.get_sphere_count() < 50
        assert "rejected" in caplog.text

    def test_all_metal_by_default(self):
        scene = _generate(seed=5, max_spheres=20)
        for sphere in scene.spheres:
            assert sphere.albedo == (0.0, 0.0, 0.0)

    def test_diffuse_spheres(self):
        from gpu_raytracing.scene.manager import DEFAULT_DIELECTRIC_SPECULAR

        scene = _generate(seed=6, max_spheres=20, metal_probability=0.0)
        for sphere in scene.spheres:
            assert sphere.specular == DEFAULT_DIELECTRIC_SPECULAR
            assert all(0.0 <= c <= 1.0 for c in sphere.albedo)

    def test_same_seed_same_scene(self):
        first = _generate(seed=7).to_dict()
        second = _generate(seed=7).to_dict()
        third = _generate(seed=8).to_dict()
        assert first == second
        assert first != third

    def test_reuses_given_scene(self):
        from gpu_raytracing.scene.manager import SceneManager
        from gpu_raytracing.scene.random_spheres import RandomSphereParams, create_random_sphere_scene

        scene = SceneManager()
        scene.add_sphere((0, 1000, 0), 1.0)
        result = create_random_sphere_scene(RandomSphereParams(seed=9, max_spheres=5), scene=scene)
        assert result is scene
        assert all(s.position[1] < 1000 for s in scene.spheres)

    def test_zero_spheres(self):
        assert _generate(max_spheres=0).get_sphere_count() == 0


class TestRandomSphereParams:
    @pytest.mark.parametrize(
        "kwargs",
        [
            dict(sphere_radius=(0.0, 1.0)),
            dict(sphere_radius=(5.0, 3.0)),
            dict(max_spheres=-1),
            dict(placement_radius=-1.0),
            dict(metal_probability=1.5),
        ],
    )
    def test_invalid_params(self, kwargs):
        from gpu_raytracing.scene.random_spheres import RandomSphereParams

        with pytest.raises(ValueError):
            RandomSphereParams(**kwargs)


class TestDefaultCamera:
    def test_default_camera(self):
        from gpu_raytracing.scene.random_spheres import (
            DEFAULT_LOOKAT,
            DEFAULT_LOOKFROM,
            create_default_camera,
        )

        camera = create_default_camera(2.0)
        assert camera.lookfrom == DEFAULT_LOOKFROM
        assert camera.lookat == DEFAULT_LOOKAT
        assert camera.aspect_ratio == 2.0
