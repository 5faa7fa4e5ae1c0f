"""Per-pixel pseudo-random sequence.

Each pixel invocation owns a RandomState made of its pixel coordinate and a
scalar seed. A draw hashes both through a sine / fractional-part transform
and advances the seed by exactly 1.0, so the sequence is a pure function of
(pixel, starting seed) and needs no shared generator state.

The host supplies a fresh starting seed every frame; combined with the pixel
coordinate this decorrelates neighbouring pixels and successive frames.

Example:
    >>> # Inside a kernel:
    >>> # rng = make_random_state(i, j, frame_seed)
    >>> # u, rng = next_random(rng)
    >>> # v, rng = next_random(rng)
"""

import taichi as ti
import taichi.math as tm

vec2 = tm.vec2

# Hash constants of the classic shader one-liner.
HASH_DIRECTION = (12.9898, 78.233)
HASH_SCALE = 43758.5453
SEED_SCALE = 0.01


@ti.dataclass
class RandomState:
    """State of one pixel's random sequence.

    Attributes:
        pixel: Pixel-center coordinate (i + 0.5, j + 0.5). Centers are used
            so that pixel (0, 0) does not hash every draw to zero.
        seed: Scalar counter advanced by 1.0 after each draw.
    """

    pixel: vec2
    seed: ti.f32


@ti.func
def make_random_state(pixel_i: ti.i32, pixel_j: ti.i32, seed: ti.f32) -> RandomState:
    """Create the random state for a pixel.

    Args:
        pixel_i: Pixel x-coordinate.
        pixel_j: Pixel y-coordinate.
        seed: Starting seed (the per-frame seed chosen by the host).
    """
    pixel = vec2(ti.cast(pixel_i, ti.f32) + 0.5, ti.cast(pixel_j, ti.f32) + 0.5)
    return RandomState(pixel=pixel, seed=seed)


@ti.func
def hash_random(pixel: vec2, seed: ti.f32) -> ti.f32:
    """Hash a pixel coordinate and seed to a float in [0, 1)."""
    h = ti.sin(seed * SEED_SCALE * tm.dot(pixel, vec2(HASH_DIRECTION[0], HASH_DIRECTION[1])))
    result = tm.fract(h * HASH_SCALE)
    # fract of a value just below an integer can round up to 1.0 in f32
    if result >= 1.0:
        result = 0.0
    return result


@ti.func
def next_random(rng: RandomState):
    """Draw the next value of a pixel's sequence.

    Args:
        rng: The current random state.

    Returns:
        A tuple of (value, next_rng) where value is in [0, 1) and next_rng
        has its seed advanced by 1.0.
    """
    value = hash_random(rng.pixel, rng.seed)
    return value, RandomState(pixel=rng.pixel, seed=rng.seed + 1.0)
