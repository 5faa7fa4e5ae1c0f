"""Tests for the environment image and its lookup."""

import math

import numpy as np
import pytest
import taichi as ti


def _sample_directions(directions):
    """Evaluate sample_environment for each direction; returns an (N, 3) array."""
    from gpu_raytracing.core.ray import normalize
    from gpu_raytracing.scene.environment import sample_environment

    n = len(directions)
    dirs = ti.Vector.field(3, dtype=ti.f32, shape=n)
    colors = ti.Vector.field(3, dtype=ti.f32, shape=n)
    dirs.from_numpy(np.asarray(directions, dtype=np.float32))

    @ti.kernel
    def test_kernel():
        for i in range(n):
            colors[i] = sample_environment(normalize(dirs[i]))

    test_kernel()
    return colors.to_numpy()


class TestEnvironmentSetup:
    """Tests for uploading environment images."""

    def test_set_float_image(self):
        from gpu_raytracing.scene.environment import get_environment_size, set_environment_image

        size = set_environment_image(np.full((8, 16, 3), 0.5, dtype=np.float32))
        assert size == (16, 8)
        assert get_environment_size() == (16, 8)

    def test_rejects_bad_shape(self):
        from gpu_raytracing.scene.environment import set_environment_image

        with pytest.raises(ValueError):
            set_environment_image(np.zeros((8, 16), dtype=np.float32))
        with pytest.raises(ValueError):
            set_environment_image(np.zeros((8, 16, 2), dtype=np.float32))

    def test_oversized_image_is_downsampled(self, caplog):
        from gpu_raytracing.scene.environment import (
            MAX_ENVIRONMENT_HEIGHT,
            MAX_ENVIRONMENT_WIDTH,
            set_environment_image,
        )

        image = np.full((MAX_ENVIRONMENT_HEIGHT * 2, 64, 3), 0.25, dtype=np.float32)
        with caplog.at_level("WARNING", logger="gpu_raytracing.scene.environment"):
            width, height = set_environment_image(image)
        assert height <= MAX_ENVIRONMENT_HEIGHT
        assert width <= MAX_ENVIRONMENT_WIDTH
        assert "exceeds capacity" in caplog.text
        colors = _sample_directions([(0.0, 1.0, 0.0), (1.0, 0.0, 0.0)])
        np.testing.assert_allclose(colors, 0.25, atol=1e-4)

    def test_uint8_image_is_linearized(self):
        from gpu_raytracing.scene.environment import set_environment_image, srgb_to_linear

        set_environment_image(np.full((4, 8, 3), 128, dtype=np.uint8))
        expected = float(srgb_to_linear(np.array([128 / 255.0], dtype=np.float32))[0])
        colors = _sample_directions([(0.0, 0.0, -1.0)])
        np.testing.assert_allclose(colors, expected, atol=1e-5)

    def test_negative_intensity_rejected(self):
        from gpu_raytracing.scene.environment import set_environment_intensity

        with pytest.raises(ValueError):
            set_environment_intensity(-0.1)

    def test_load_missing_file(self, tmp_path):
        from gpu_raytracing.scene.environment import load_environment_image

        with pytest.raises(FileNotFoundError):
            load_environment_image(tmp_path / "missing.png")

    def test_load_png(self, tmp_path):
        from PIL import Image as PILImage

        from gpu_raytracing.scene.environment import get_environment_size, load_environment_image

        path = tmp_path / "sky.png"
        PILImage.fromarray(np.full((10, 20, 3), 255, dtype=np.uint8), mode="RGB").save(path)

        assert load_environment_image(path) == (20, 10)
        assert get_environment_size() == (20, 10)
        np.testing.assert_allclose(_sample_directions([(0.3, 0.5, 0.2)]), 1.0, atol=1e-5)


class TestEnvironmentLookup:
    """Tests for direction -> texel mapping."""

    def test_uniform_color_times_intensity(self):
        from gpu_raytracing.scene.environment import set_environment_color, set_environment_intensity

        set_environment_color((0.2, 0.4, 0.6))
        set_environment_intensity(2.5)
        colors = _sample_directions([(0.0, 1.0, 0.0), (0.5, -0.5, 0.1), (-1.0, 0.0, 0.0)])
        np.testing.assert_allclose(colors, [[0.5, 1.0, 1.5]] * 3, atol=1e-5)

    def test_black_by_default(self):
        colors = _sample_directions([(0.0, 1.0, 0.0), (0.0, -1.0, 0.0)])
        assert np.all(colors == 0.0)

    def test_direction_to_uv(self):
        from gpu_raytracing.core.ray import vec3
        from gpu_raytracing.scene.environment import direction_to_uv

        uv = ti.Vector.field(2, dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel():
            uv[0] = direction_to_uv(vec3(0.0, 1.0, 0.0))
            uv[1] = direction_to_uv(vec3(0.0, 0.0, -1.0))
            uv[2] = direction_to_uv(vec3(1.0, 0.0, 0.0))

        test_kernel()
        # Straight up: theta = 0
        assert abs(uv[0][1]) < 1e-6
        # Forward on the horizon: phi = atan2(0, 1) = 0, theta = -1/2
        assert abs(uv[1][0]) < 1e-6
        assert abs(uv[1][1] + 0.5) < 1e-6
        # +X: phi = (pi / 2) / -pi / 2 = -1/4
        assert abs(uv[2][0] + 0.25) < 1e-6

    def test_zenith_reads_top_row_and_nadir_bottom_row(self):
        from gpu_raytracing.scene.environment import set_environment_image

        image = np.zeros((16, 32, 3), dtype=np.float32)
        image[:8] = (1.0, 0.0, 0.0)  # upper half red
        image[8:] = (0.0, 0.0, 1.0)  # lower half blue
        set_environment_image(image)

        up, down = _sample_directions([(0.0, 1.0, 0.0), (0.0, -1.0, 0.0)])
        # Straight up sits on the wrap between the top and bottom rows, so
        # check the rows just off the poles instead
        near_up, near_down = _sample_directions(
            [(0.0, math.cos(0.3), -math.sin(0.3)), (0.0, -math.cos(0.3), -math.sin(0.3))]
        )
        assert near_up[0] > 0.99 and near_up[2] < 0.01
        assert near_down[2] > 0.99 and near_down[0] < 0.01
        assert np.all(np.isfinite(up)) and np.all(np.isfinite(down))

    def test_bilinear_blend_between_columns(self):
        from gpu_raytracing.scene.environment import sample_environment_uv, set_environment_image

        image = np.zeros((1, 2, 3), dtype=np.float32)
        image[0, 0] = (0.0, 0.0, 0.0)
        image[0, 1] = (1.0, 1.0, 1.0)
        set_environment_image(image)

        result = ti.Vector.field(3, dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel():
            result[0] = sample_environment_uv(ti.math.vec2(0.25, 0.5))  # texel 0 center
            result[1] = sample_environment_uv(ti.math.vec2(0.75, 0.5))  # texel 1 center
            result[2] = sample_environment_uv(ti.math.vec2(0.5, 0.5))  # halfway

        test_kernel()
        values = result.to_numpy()[:, 0]
        np.testing.assert_allclose(values, [0.0, 1.0, 0.5], atol=1e-6)


class TestGradientSky:
    def test_shape_and_colors(self):
        from gpu_raytracing.scene.environment import create_gradient_sky

        sky = create_gradient_sky(64, 32, zenith=(0, 0, 1), horizon=(1, 1, 1), ground=(0.2, 0.2, 0.2))
        assert sky.shape == (32, 64, 3)
        assert sky.dtype == np.float32
        # Top row is close to the zenith color, bottom row is ground
        assert sky[0, 0, 2] > 0.9 and sky[0, 0, 0] < 0.1
        np.testing.assert_allclose(sky[-1, 0], [0.2, 0.2, 0.2], atol=1e-6)
