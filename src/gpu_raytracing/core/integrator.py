"""Per-pixel integrator, render target and frame accumulation.

This module implements the main rendering kernel. Each pixel of a frame:

1. generates its camera ray (with the frame's sub-pixel jitter offset),
2. runs at most MAX_BOUNCES iterations of trace -> shade, adding
   energy * emitted radiance to its result,
3. stops early as soon as the ray's energy is exactly zero,
4. writes (radiance, 1) to the RGBA result buffer.

Surfaces only redirect and attenuate rays; the environment image is the
only source of light, reached when a ray escapes the scene. Each frame is a
single noisy sample per pixel. accumulate_frame() blends the latest result
into the converged buffer with weight 1 / (n + 1) so that successive
jittered frames average into an anti-aliased, converged image.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from gpu_raytracing.core.integrator import (
    ...     setup_render_target, render_frame, accumulate_frame
    ... )
    >>> setup_render_target(512, 512)
    >>> render_frame(pixel_offset=(0.3, 0.7), seed=0.42)
    >>> accumulate_frame()
"""

import logging
import math
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from gpu_raytracing.camera.pinhole import generate_camera_ray
from gpu_raytracing.core.ray import Ray, is_zero
from gpu_raytracing.core.sampler import RandomState, make_random_state
from gpu_raytracing.geometry.hit_record import HitRecord, has_hit
from gpu_raytracing.materials.phong import scatter_phong
from gpu_raytracing.scene.environment import sample_environment
from gpu_raytracing.scene.intersection import trace

# Type aliases for vectors
vec2 = tm.vec2
vec3 = tm.vec3
vec4 = tm.vec4

logger = logging.getLogger(__name__)

# =============================================================================
# Rendering Constants
# =============================================================================

# Maximum number of trace -> shade iterations per camera ray
MAX_BOUNCES = 8

# Pixels are dispatched in TILE_SIZE x TILE_SIZE thread blocks
TILE_SIZE = 8

# =============================================================================
# Directional Light
# =============================================================================

# (direction.xyz, intensity). Part of the per-frame inputs; shading does not
# read it, so it has no effect on the image.
_directional_light = ti.Vector.field(4, dtype=ti.f32, shape=())


def set_directional_light(direction: Sequence[float], intensity: float = 1.0) -> None:
    """Store the directional light.

    Args:
        direction: Direction the light travels in (normalized on upload).
        intensity: Light intensity.

    Raises:
        ValueError: If direction has zero length.
    """
    d = np.asarray(direction, dtype=np.float64)[:3]
    norm = float(np.linalg.norm(d))
    if norm < 1e-12:
        raise ValueError("Directional light direction must be non-zero")
    d = d / norm
    _directional_light[None] = [float(d[0]), float(d[1]), float(d[2]), float(intensity)]


def get_directional_light() -> tuple[tuple[float, float, float], float]:
    """Get the stored directional light as (direction, intensity)."""
    light = _directional_light[None]
    return (float(light[0]), float(light[1]), float(light[2])), float(light[3])


def clear_directional_light() -> None:
    _directional_light[None] = [0.0, -1.0, 0.0, 0.0]


@ti.func
def get_light() -> vec4:
    """Directional light as (direction.xyz, intensity) for kernel code."""
    return _directional_light[None]


# =============================================================================
# Render Target (Image Buffers)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Latest frame: one RGBA radiance sample per pixel, overwritten every frame
_result = ti.Vector.field(4, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Running average of all frames since the last reset
_converged = ti.Vector.field(4, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Number of frames blended into _converged
_frame_count = ti.field(dtype=ti.i32, shape=())

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())

# Single-pixel readback used by render_pixel()
_debug_radiance = ti.Vector.field(3, dtype=ti.f32, shape=())
_debug_bounces = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers. The buffers
    are preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    logger.debug("Render target set to %dx%d", width, height)

    clear_render_target()


def clear_render_target() -> None:
    """Clear both buffers and the frame count."""
    _result.fill(0.0)
    _converged.fill(0.0)
    _frame_count[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def get_dispatch_groups(width: int, height: int) -> tuple[int, int]:
    """Number of TILE_SIZE x TILE_SIZE tiles needed to cover an image."""
    return math.ceil(width / TILE_SIZE), math.ceil(height / TILE_SIZE)


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_frame_count() -> int:
    """Get the number of frames accumulated since the last clear."""
    return int(_frame_count[None])


# =============================================================================
# Shading
# =============================================================================


@ti.func
def shade(ray: Ray, hit: HitRecord, rng: RandomState):
    """Shade one intersection result.

    On a surface hit the ray continues from the surface with attenuated
    energy and nothing is emitted. On a miss the ray is spent (energy set to
    zero) and the environment radiance along its direction is returned.

    Args:
        ray: The ray that was traced.
        hit: The nearest hit returned by trace().
        rng: The current random state.

    Returns:
        A tuple of (ray, emitted, rng) with the updated ray, the emitted
        radiance and the advanced random state.
    """
    next_ray = ray
    next_rng = rng
    emitted = vec3(0.0, 0.0, 0.0)

    if has_hit(hit):
        next_ray, next_rng = scatter_phong(ray, hit, rng)
    else:
        next_ray = Ray(origin=ray.origin, direction=ray.direction, energy=vec3(0.0, 0.0, 0.0))
        emitted = sample_environment(ray.direction)

    return next_ray, emitted, next_rng


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def trace_path(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    pixel_offset: vec2,
    seed: ti.f32,
):
    """Estimate the radiance arriving through one pixel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        pixel_offset: Sub-pixel jitter offset of the frame.
        seed: Starting seed of the frame's random sequence.

    Returns:
        A tuple of (radiance, bounces) where bounces is the number of
        trace -> shade iterations that ran (1 to MAX_BOUNCES).
    """
    ray = generate_camera_ray(pixel_i, pixel_j, width, height, pixel_offset)
    rng = make_random_state(pixel_i, pixel_j, seed)

    result = vec3(0.0, 0.0, 0.0)
    bounces = 0

    # Active flag for path continuation
    active = 1

    for _ in range(MAX_BOUNCES):
        if active == 1:
            hit = trace(ray)
            # Throughput that carries the emitted light back to the camera
            energy = ray.energy
            ray, emitted, rng = shade(ray, hit, rng)
            result += energy * emitted
            bounces += 1

            if is_zero(ray.energy):
                active = 0

    return result, bounces


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_frame_kernel(
    width: ti.i32,
    height: ti.i32,
    offset_x: ti.f32,
    offset_y: ti.f32,
    seed: ti.f32,
):
    """Trace one sample for every pixel into the result buffer."""
    ti.loop_config(block_dim=TILE_SIZE * TILE_SIZE)
    for i, j in ti.ndrange(width, height):
        radiance, _ = trace_path(i, j, width, height, vec2(offset_x, offset_y), seed)
        _result[i, j] = vec4(radiance.x, radiance.y, radiance.z, 1.0)


@ti.kernel
def _accumulate_kernel(width: ti.i32, height: ti.i32, frame: ti.i32):
    """Blend the result buffer into the converged buffer."""
    weight = 1.0 / (ti.cast(frame, ti.f32) + 1.0)
    for i, j in ti.ndrange(width, height):
        sample = _result[i, j]

        # Check for NaN/Inf and replace with zero
        for c in ti.static(range(4)):
            if tm.isnan(sample[c]) or tm.isinf(sample[c]):
                sample[c] = 0.0

        # Running average: avg_n = avg_{n-1} + (x_n - avg_{n-1}) / n
        _converged[i, j] += (sample - _converged[i, j]) * weight


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    offset_x: ti.f32,
    offset_y: ti.f32,
    seed: ti.f32,
):
    """Trace a specific pixel into the debug readback fields."""
    radiance, bounces = trace_path(pixel_i, pixel_j, width, height, vec2(offset_x, offset_y), seed)
    _debug_radiance[None] = radiance
    _debug_bounces[None] = bounces


# =============================================================================
# Public Rendering API
# =============================================================================


def render_frame(
    pixel_offset: Sequence[float] = (0.5, 0.5),
    seed: float = 0.5,
) -> None:
    """Render one frame into the result buffer.

    Args:
        pixel_offset: Sub-pixel jitter in [0, 1)^2; (0.5, 0.5) samples
            pixel centers.
        seed: Frame seed for the per-pixel random sequences.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    _render_frame_kernel(width, height, float(pixel_offset[0]), float(pixel_offset[1]), float(seed))


def accumulate_frame() -> int:
    """Blend the latest frame into the converged image.

    Returns:
        The number of frames accumulated, including this one.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    frame = get_frame_count()
    _accumulate_kernel(width, height, frame)
    _frame_count[None] = frame + 1
    return frame + 1


def render_image(num_frames: int = 1, rng: np.random.Generator | None = None) -> None:
    """Render and accumulate several jittered frames.

    Each frame draws its own jitter offset and seed from rng.

    Args:
        num_frames: Number of frames to add to the converged image.
        rng: NumPy random generator (a fresh default_rng() if None).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    if rng is None:
        rng = np.random.default_rng()

    for _ in range(num_frames):
        offset = rng.random(2)
        render_frame(pixel_offset=(offset[0], offset[1]), seed=float(rng.random()))
        accumulate_frame()


def render_pixel(
    pixel_i: int,
    pixel_j: int,
    pixel_offset: Sequence[float] = (0.5, 0.5),
    seed: float = 0.5,
) -> tuple[tuple[float, float, float], int]:
    """Trace a single pixel.

    This is a Python-callable function for testing. For production
    rendering, use render_frame() which processes all pixels in parallel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        pixel_offset: Sub-pixel jitter offset.
        seed: Frame seed.

    Returns:
        Tuple of ((R, G, B), bounces).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    _render_single_pixel(
        pixel_i,
        pixel_j,
        width,
        height,
        float(pixel_offset[0]),
        float(pixel_offset[1]),
        float(seed),
    )
    color = _debug_radiance[None]
    return (float(color[0]), float(color[1]), float(color[2])), int(_debug_bounces[None])


def _active_region_numpy(field: ti.MatrixField) -> npt.NDArray[np.float32]:
    """Copy the active region of a (W, H) buffer to an (H, W, C) image array."""
    width, height = get_image_dimensions()

    # Get raw image data (full buffer) and extract active region
    image = field.to_numpy()[:width, :height, :]

    # Transpose from (width, height, C) to (height, width, C) for standard image format
    image = np.transpose(image, (1, 0, 2))

    # Flip vertically (Taichi uses bottom-left origin, images use top-left)
    image = np.flipud(image)

    return np.ascontiguousarray(image, dtype=np.float32)


def get_result_numpy() -> npt.NDArray[np.float32]:
    """Get the latest frame as an RGBA array of shape (height, width, 4).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _active_region_numpy(_result)


def get_converged_numpy() -> npt.NDArray[np.float32]:
    """Get the converged (averaged) image as an RGBA array of shape (height, width, 4).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _active_region_numpy(_converged)


def get_normalized_image_numpy() -> npt.NDArray[np.float32]:
    """Get the converged image as RGB clamped to [0, 1], shape (height, width, 3).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    image = get_converged_numpy()[:, :, :3]
    return np.clip(image, 0.0, 1.0).astype(np.float32)
