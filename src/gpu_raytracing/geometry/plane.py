"""Implicit ground plane.

The ground is the infinite plane y = 0 with a fixed material. It is not
stored in the scene buffer; trace() always tests it before the spheres.
"""

import taichi as ti
import taichi.math as tm

from gpu_raytracing.core.ray import Ray, ray_at
from gpu_raytracing.geometry.hit_record import HitRecord, accepts_distance

vec3 = tm.vec3

GROUND_ALBEDO = (0.8, 0.8, 0.8)
GROUND_SPECULAR = (0.03, 0.03, 0.03)


@ti.func
def intersect_ground_plane(ray: Ray, hit: HitRecord) -> HitRecord:
    """Intersect a ray with the ground plane y = 0.

    Solves origin.y + t * direction.y = 0. A ray parallel to the ground gives
    an infinite or NaN t, which accepts_distance() rejects.

    Args:
        ray: The ray to test.
        hit: The nearest hit found so far.

    Returns:
        A record for the ground if it is hit in front of the ray and closer
        than hit, otherwise hit unchanged.
    """
    result = hit
    t = -ray.origin.y / ray.direction.y
    if accepts_distance(t, hit):
        result = HitRecord(
            position=ray_at(ray, t),
            distance=t,
            normal=vec3(0.0, 1.0, 0.0),
            albedo=vec3(GROUND_ALBEDO[0], GROUND_ALBEDO[1], GROUND_ALBEDO[2]),
            specular=vec3(GROUND_SPECULAR[0], GROUND_SPECULAR[1], GROUND_SPECULAR[2]),
        )
    return result
