"""Sphere primitive with ray-sphere intersection.

A sphere carries its own material: a diffuse albedo and a specular color.

The intersection solves |origin + t * direction - center|^2 = radius^2 for a
unit-length direction:

    d = origin - center
    p1 = -dot(direction, d)
    disc = p1^2 - dot(d, d) + radius^2
    t = p1 - sqrt(disc)   if that is positive
        p1 + sqrt(disc)   otherwise (origin inside the sphere)

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from gpu_raytracing.geometry.sphere import Sphere, intersect_sphere
    >>> # Inside a kernel:
    >>> # hit = intersect_sphere(ray, hit, sphere)
"""

import taichi as ti
import taichi.math as tm

from gpu_raytracing.core.ray import Ray, normalize, ray_at
from gpu_raytracing.geometry.hit_record import HitRecord, accepts_distance

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere with its material.

    Attributes:
        position: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
        albedo: Diffuse reflectance color (RGB in [0, 1]).
        specular: Specular reflectance color (RGB in [0, 1]).
    """

    position: vec3
    radius: ti.f32
    albedo: vec3
    specular: vec3


@ti.func
def intersect_sphere(ray: Ray, hit: HitRecord, sphere: Sphere) -> HitRecord:
    """Test for ray-sphere intersection.

    Prefers the near root; when it lies behind the origin (the origin is
    inside the sphere) the far root is used instead.

    Args:
        ray: The ray to test (unit-length direction).
        hit: The nearest hit found so far.
        sphere: The sphere to test.

    Returns:
        A record for this sphere if it is hit in front of the ray and closer
        than hit, otherwise hit unchanged.
    """
    result = hit
    d = ray.origin - sphere.position
    p1 = -tm.dot(ray.direction, d)
    discriminant = p1 * p1 - tm.dot(d, d) + sphere.radius * sphere.radius

    if discriminant >= 0.0:
        p2 = ti.sqrt(discriminant)
        t = p1 - p2
        if t <= 0.0:
            t = p1 + p2

        if accepts_distance(t, hit):
            position = ray_at(ray, t)
            result = HitRecord(
                position=position,
                distance=t,
                normal=normalize(position - sphere.position),
                albedo=sphere.albedo,
                specular=sphere.specular,
            )
    return result


@ti.func
def make_sphere(position: vec3, radius: ti.f32, albedo: vec3, specular: vec3) -> Sphere:
    """Create a sphere within a Taichi kernel."""
    return Sphere(position=position, radius=radius, albedo=albedo, specular=specular)
