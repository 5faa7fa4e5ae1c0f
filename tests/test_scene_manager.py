"""Unit tests for the SceneManager.

Tests cover:
- Sphere addition and parameter validation
- Metal and diffuse convenience methods
- Scene serialization (to_config, from_config, to_dict, from_dict)
- Scene clearing
"""

import pytest


@pytest.fixture
def fresh_scene():
    """Create a fresh SceneManager for each test."""
    from gpu_raytracing.scene.manager import SceneManager

    scene = SceneManager()
    yield scene
    scene.clear()


class TestSphereAddition:
    def test_add_sphere_returns_indices(self, fresh_scene):
        assert fresh_scene.add_sphere((0, 3, 0), 3.0, albedo=(0.5, 0.5, 0.5)) == 0
        assert fresh_scene.add_sphere((10, 2, 0), 2.0) == 1
        assert fresh_scene.get_sphere_count() == 2
        assert len(fresh_scene.spheres) == 2

    def test_sphere_info_recorded(self, fresh_scene):
        fresh_scene.add_sphere([1, 2, 3], 2, albedo=[0.1, 0.2, 0.3], specular=[0.4, 0.5, 0.6])
        info = fresh_scene.spheres[0]
        assert info.sphere_index == 0
        assert info.position == (1.0, 2.0, 3.0)
        assert info.radius == 2.0
        assert info.albedo == (0.1, 0.2, 0.3)
        assert info.specular == (0.4, 0.5, 0.6)

    def test_gpu_buffer_matches(self, fresh_scene):
        from gpu_raytracing.scene.intersection import get_sphere

        fresh_scene.add_sphere((4.0, 5.0, 6.0), 5.0, albedo=(0.25, 0.5, 0.75), specular=(0.04, 0.04, 0.04))
        sphere = get_sphere(0)
        assert sphere["position"] == pytest.approx((4.0, 5.0, 6.0))
        assert sphere["radius"] == pytest.approx(5.0)
        assert sphere["albedo"] == pytest.approx((0.25, 0.5, 0.75))
        assert sphere["specular"] == pytest.approx((0.04, 0.04, 0.04))

    @pytest.mark.parametrize("radius", [0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_radius(self, fresh_scene, radius):
        with pytest.raises(ValueError):
            fresh_scene.add_sphere((0, 0, 0), radius)
        assert fresh_scene.get_sphere_count() == 0

    def test_invalid_position(self, fresh_scene):
        with pytest.raises(ValueError):
            fresh_scene.add_sphere((0, 0), 1.0)
        with pytest.raises(ValueError):
            fresh_scene.add_sphere((0, float("nan"), 0), 1.0)

    @pytest.mark.parametrize("color", [(1.5, 0.0, 0.0), (-0.1, 0.0, 0.0), (0.5, 0.5)])
    def test_invalid_colors(self, fresh_scene, color):
        with pytest.raises(ValueError):
            fresh_scene.add_sphere((0, 1, 0), 1.0, albedo=color)
        with pytest.raises(ValueError):
            fresh_scene.add_sphere((0, 1, 0), 1.0, specular=color)

    def test_metal_sphere(self, fresh_scene):
        fresh_scene.add_metal_sphere((0, 4, 0), 4.0, color=(0.9, 0.7, 0.3))
        info = fresh_scene.spheres[0]
        assert info.albedo == (0.0, 0.0, 0.0)
        assert info.specular == (0.9, 0.7, 0.3)

    def test_diffuse_sphere(self, fresh_scene):
        from gpu_raytracing.scene.manager import DEFAULT_DIELECTRIC_SPECULAR

        fresh_scene.add_diffuse_sphere((0, 4, 0), 4.0, color=(0.2, 0.8, 0.2))
        info = fresh_scene.spheres[0]
        assert info.albedo == (0.2, 0.8, 0.2)
        assert info.specular == DEFAULT_DIELECTRIC_SPECULAR

    def test_capacity(self):
        from gpu_raytracing.scene.intersection import MAX_SPHERES
        from gpu_raytracing.scene.manager import SceneManager

        assert SceneManager.get_max_spheres() == MAX_SPHERES


class TestSceneClear:
    def test_clear(self, fresh_scene):
        fresh_scene.add_sphere((0, 1, 0), 1.0)
        fresh_scene.add_sphere((5, 1, 0), 1.0)
        fresh_scene.clear()
        assert fresh_scene.get_sphere_count() == 0
        assert fresh_scene.spheres == []

    def test_new_manager_clears_buffer(self, fresh_scene):
        from gpu_raytracing.scene.manager import SceneManager

        fresh_scene.add_sphere((0, 1, 0), 1.0)
        other = SceneManager()
        assert other.get_sphere_count() == 0


class TestSceneSerialization:
    def test_to_dict(self, fresh_scene):
        fresh_scene.add_sphere((1, 2, 3), 2.0, albedo=(0.5, 0.5, 0.5), specular=(0.04, 0.04, 0.04))
        data = fresh_scene.to_dict()
        assert data == {
            "spheres": [
                {
                    "position": [1.0, 2.0, 3.0],
                    "radius": 2.0,
                    "albedo": [0.5, 0.5, 0.5],
                    "specular": [0.04, 0.04, 0.04],
                }
            ]
        }

    def test_round_trip(self, fresh_scene):
        fresh_scene.add_metal_sphere((0, 4, 0), 4.0, color=(0.9, 0.7, 0.3))
        fresh_scene.add_diffuse_sphere((12, 3, -5), 3.0, color=(0.1, 0.2, 0.3))
        data = fresh_scene.to_dict()

        fresh_scene.from_dict(data)
        assert fresh_scene.get_sphere_count() == 2
        assert fresh_scene.to_dict() == data

    def test_from_config_defaults_colors(self, fresh_scene):
        from gpu_raytracing.scene.manager import SceneConfig

        fresh_scene.from_config(SceneConfig(spheres=[{"position": [0, 1, 0], "radius": 1.0}]))
        info = fresh_scene.spheres[0]
        assert info.albedo == (0.0, 0.0, 0.0)
        assert info.specular == (0.0, 0.0, 0.0)

    def test_from_config_requires_position_and_radius(self, fresh_scene):
        from gpu_raytracing.scene.manager import SceneConfig

        with pytest.raises(ValueError):
            fresh_scene.from_config(SceneConfig(spheres=[{"radius": 1.0}]))
        with pytest.raises(ValueError):
            fresh_scene.from_config(SceneConfig(spheres=[{"position": [0, 1, 0]}]))

    def test_from_dict_replaces_scene(self, fresh_scene):
        fresh_scene.add_sphere((0, 1, 0), 1.0)
        fresh_scene.from_dict({})
        assert fresh_scene.get_sphere_count() == 0
