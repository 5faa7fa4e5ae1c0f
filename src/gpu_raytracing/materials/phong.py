"""Diffuse + normalized Phong shading for surface bounces.

Every surface in the scene (ground and spheres) uses the same model, driven
by the hit record's albedo and specular colors. At each bounce the ray is
moved to the hit point, a new direction is drawn on the hemisphere around
the normal and the throughput is weighted by

    diffuse  = 2 * min(1 - specular, albedo)
    specular = specular * (alpha + 2) * saturate(dot(new_dir, reflected))^alpha
    energy  *= (diffuse + specular) * saturate(dot(normal, new_dir))

with alpha = 15. The factor 2 on the diffuse term and the (alpha + 2)
normalization of the lobe account for the uniform hemisphere density
(1 / (2 * pi)) of sample_hemisphere(); the 1 - specular bound keeps the
diffuse and specular lobes from reflecting more than the incoming light.

Surfaces do not emit, so the radiance a bounce contributes is always zero;
all light enters through the environment lookup when a ray escapes.

Example:
    >>> # Inside a kernel:
    >>> # ray, rng = scatter_phong(ray, hit, rng)
"""

import taichi as ti
import taichi.math as tm

from gpu_raytracing.core.ray import Ray, reflect, sample_hemisphere, saturated_dot
from gpu_raytracing.core.sampler import RandomState
from gpu_raytracing.geometry.hit_record import HitRecord

# Type alias for 3D vectors
vec3 = tm.vec3

# Phong exponent of the specular lobe
PHONG_ALPHA = 15.0

# Distance the new origin is pushed along the normal to avoid self-intersection
RAY_EPSILON = 1e-3

# 1 clamps the per-bounce weight to [0, 1], 0 keeps the raw Phong weight
_clamp_weight = ti.field(dtype=ti.i32, shape=())
_clamp_weight[None] = 1


def set_energy_clamp(enabled: bool) -> None:
    """Enable or disable clamping of the per-bounce weight to [0, 1].

    With the clamp on, throughput never grows across a bounce. The
    normalized lobe peaks at specular * (alpha + 2), so clamping darkens
    strongly specular surfaces: for specular = 1 the mean weight of a bounce
    drops from about 0.97 to about 0.21. Turning the clamp off gives the
    unbiased (but noisier) estimate.
    """
    _clamp_weight[None] = 1 if enabled else 0


def get_energy_clamp() -> bool:
    return bool(_clamp_weight[None])


@ti.func
def phong_attenuation(
    albedo: vec3,
    specular: vec3,
    normal: vec3,
    reflected: vec3,
    direction: vec3,
) -> vec3:
    """Evaluate the per-bounce throughput weight for a sampled direction.

    Args:
        albedo: Diffuse reflectance of the surface.
        specular: Specular reflectance of the surface.
        normal: Unit surface normal.
        reflected: Mirror reflection of the incoming direction.
        direction: The sampled outgoing direction.

    Returns:
        The component-wise weight (diffuse + specular) * cos(theta), before
        clamping.
    """
    diffuse = 2.0 * tm.min(1.0 - specular, albedo)
    lobe = tm.pow(saturated_dot(direction, reflected), PHONG_ALPHA)
    specular_term = specular * (PHONG_ALPHA + 2.0) * lobe
    return (diffuse + specular_term) * saturated_dot(normal, direction)


@ti.func
def scatter_phong(ray: Ray, hit: HitRecord, rng: RandomState):
    """Continue a ray from a surface hit.

    Unless disabled with set_energy_clamp(False), the weight is clamped to
    [0, 1] per component, so throughput never grows across a bounce.

    Args:
        ray: The incoming ray.
        hit: The surface that was hit (finite distance).
        rng: The current random state.

    Returns:
        A tuple of (ray, rng) with the outgoing ray and the advanced state.
    """
    origin = hit.position + hit.normal * RAY_EPSILON
    reflected = reflect(ray.direction, hit.normal)
    direction, next_rng = sample_hemisphere(hit.normal, rng)

    weight = phong_attenuation(hit.albedo, hit.specular, hit.normal, reflected, direction)
    if _clamp_weight[None] != 0:
        weight = tm.clamp(weight, 0.0, 1.0)

    return Ray(origin=origin, direction=direction, energy=ray.energy * weight), next_rng
