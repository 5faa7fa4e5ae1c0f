"""Ray data structure, vector utilities and hemisphere sampling.

This module provides the Ray dataclass carried through the bounce loop and
the vector helpers used by intersection and shading. A ray carries its
throughput ("energy"): the fraction of light, per color channel, that will
still reach the camera from whatever the ray hits next.

All functions are Taichi functions (@ti.func) meant to be called from
kernels. Functions that consume random numbers take the generator state
explicitly and return the advanced state alongside their result.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> origin = ti.math.vec3(0.0, 5.0, 0.0)
    >>> direction = ti.math.vec3(0.0, -1.0, 0.0)
    >>> # Inside a kernel:
    >>> # ray = make_ray(origin, direction)   # energy starts at (1, 1, 1)
    >>> # point = ray_at(ray, 5.0)            # (0, 0, 0)
"""

import taichi as ti
import taichi.math as tm

from gpu_raytracing.core.sampler import RandomState, next_random

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Helper axis switch for the tangent frame: above this |normal.x| the world
# X axis is too close to the normal and world Z is used instead.
TANGENT_HELPER_THRESHOLD = 0.99


@ti.dataclass
class Ray:
    """A ray with origin, direction and throughput.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of the ray (vec3, unit length).
        energy: Per-channel throughput, (1, 1, 1) for a fresh camera ray and
            attenuated multiplicatively at every bounce. A zero vector marks a
            spent ray.
    """

    origin: vec3
    direction: vec3
    energy: vec3


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray with full throughput.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector (should be normalized).

    Returns:
        A new Ray with energy (1, 1, 1).
    """
    return Ray(origin=origin, direction=direction, energy=vec3(1.0, 1.0, 1.0))


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point origin + t * direction."""
    return ray.origin + t * ray.direction


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    Returns:
        A unit vector in the same direction as v, or the zero vector if v
        has zero length.
    """
    result = vec3(0.0, 0.0, 0.0)
    len_sq = tm.dot(v, v)
    if len_sq > 0.0:
        result = v / ti.sqrt(len_sq)
    return result


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    return tm.cross(a, b)


@ti.func
def saturated_dot(a: vec3, b: vec3) -> ti.f32:
    """Dot product clamped to [0, 1]."""
    return tm.clamp(tm.dot(a, b), 0.0, 1.0)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def is_zero(v: vec3) -> ti.i32:
    """Check if every component of a vector is exactly zero."""
    return v.x == 0.0 and v.y == 0.0 and v.z == 0.0


# =============================================================================
# Tangent Space and Hemisphere Sampling
# =============================================================================


@ti.func
def build_tangent_frame(normal: vec3):
    """Build an orthonormal basis around a surface normal.

    The helper axis is world X, or world Z when the normal is nearly
    parallel to X, so the cross products never degenerate.

    Args:
        normal: The surface normal (should be normalized).

    Returns:
        A tuple (tangent, binormal, normal) forming an orthonormal basis.
    """
    helper = vec3(1.0, 0.0, 0.0)
    if ti.abs(normal.x) > TANGENT_HELPER_THRESHOLD:
        helper = vec3(0.0, 0.0, 1.0)
    tangent = normalize(cross(normal, helper))
    binormal = normalize(cross(normal, tangent))
    return tangent, binormal, normal


@ti.func
def tangent_to_world(local_dir: vec3, tangent: vec3, binormal: vec3, normal: vec3) -> vec3:
    """Transform a direction from tangent space (z along the normal) to world space."""
    return local_dir.x * tangent + local_dir.y * binormal + local_dir.z * normal


@ti.func
def sample_hemisphere(normal: vec3, rng: RandomState):
    """Draw a direction on the hemisphere around a normal.

    cos(theta) is drawn uniformly on [0, 1), which makes the sample density
    uniform over solid angle (pdf = 1 / (2 * pi)). The shading weights in
    materials.phong are written for this density.

    Args:
        normal: The surface normal defining the hemisphere.
        rng: The current random state.

    Returns:
        A tuple of (direction, rng) with the world-space unit direction and
        the random state advanced by two draws.
    """
    cos_theta, rng_theta = next_random(rng)
    sin_theta = ti.sqrt(ti.max(0.0, 1.0 - cos_theta * cos_theta))
    u, rng_phi = next_random(rng_theta)
    phi = 2.0 * tm.pi * u

    local_dir = vec3(ti.cos(phi) * sin_theta, ti.sin(phi) * sin_theta, cos_theta)
    tangent, binormal, n = build_tangent_frame(normal)
    return tangent_to_world(local_dir, tangent, binormal, n), rng_phi
