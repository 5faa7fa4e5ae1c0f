"""Hit record shared by all intersection routines.

A HitRecord holds the nearest surface found so far along a ray. Intersection
functions take the current record and return it either unchanged or
replaced by a strictly closer hit, so testing a ray against several
primitives is a chain of calls threading one record through.

The "no surface yet" state is encoded as distance = +inf with zero normal,
albedo and specular.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.dataclass
class HitRecord:
    """Nearest intersection found along a ray.

    Attributes:
        position: The 3D point of the intersection.
        distance: Ray parameter of the intersection, +inf when nothing was hit.
        normal: Unit surface normal at the intersection (zero when no hit).
        albedo: Diffuse reflectance of the surface (zero when no hit).
        specular: Specular reflectance of the surface (zero when no hit).
    """

    position: vec3
    distance: ti.f32
    normal: vec3
    albedo: vec3
    specular: vec3


@ti.func
def make_empty_hit() -> HitRecord:
    """Create a record meaning "no surface hit yet"."""
    return HitRecord(
        position=vec3(0.0, 0.0, 0.0),
        distance=tm.inf,
        normal=vec3(0.0, 0.0, 0.0),
        albedo=vec3(0.0, 0.0, 0.0),
        specular=vec3(0.0, 0.0, 0.0),
    )


@ti.func
def has_hit(hit: HitRecord) -> ti.i32:
    """Check whether a record describes an actual surface (finite distance)."""
    return hit.distance < tm.inf


@ti.func
def is_finite(x: ti.f32) -> ti.i32:
    """Check that a float is neither NaN nor infinite."""
    return not (tm.isnan(x) or tm.isinf(x))


@ti.func
def accepts_distance(t: ti.f32, hit: HitRecord) -> ti.i32:
    """Check whether a candidate ray parameter should replace the current hit.

    Non-finite candidates (from divisions by a zero direction component) are
    rejected explicitly rather than relying on their comparison results.
    """
    return is_finite(t) and t > 0.0 and t < hit.distance
