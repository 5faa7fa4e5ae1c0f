"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure, vector utilities and hemisphere sampling
    sampler: Per-pixel pseudo-random sequence with explicit state
    integrator: Shading dispatch, bounce loop, render target and kernels
    progressive: Frame-to-frame accumulation with change detection

The core module estimates incoming light along each camera ray with a
bounded bounce loop: intersect, shade, attenuate throughput, repeat, and
falls back to the environment image when a ray escapes the scene.
"""

from .ray import (
    Ray,
    build_tangent_frame,
    cross,
    dot,
    is_zero,
    length,
    length_squared,
    make_ray,
    normalize,
    ray_at,
    reflect,
    sample_hemisphere,
    saturated_dot,
    tangent_to_world,
    vec3,
)
from .sampler import RandomState, hash_random, make_random_state, next_random

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from gpu_raytracing.core.integrator or gpu_raytracing.core.progressive.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "saturated_dot",
    "reflect",
    "is_zero",
    "build_tangent_frame",
    "tangent_to_world",
    "sample_hemisphere",
    "RandomState",
    "make_random_state",
    "next_random",
    "hash_random",
]
