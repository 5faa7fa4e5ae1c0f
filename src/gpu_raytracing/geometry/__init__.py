"""Geometry module for shape primitives and intersection.

This module provides the primitives a ray can hit:

Components:
    hit_record: Nearest-hit record threaded through intersection tests
    plane: The implicit ground plane y = 0
    sphere: Sphere primitive with ray-sphere intersection

All intersection routines are Taichi functions (@ti.func) with the shape:
    hit = intersect_shape(ray, hit, shape)
which returns either the incoming record or a strictly closer hit.
"""

from .hit_record import HitRecord, accepts_distance, has_hit, is_finite, make_empty_hit
from .plane import GROUND_ALBEDO, GROUND_SPECULAR, intersect_ground_plane
from .sphere import Sphere, intersect_sphere, make_sphere

__all__ = [
    "HitRecord",
    "make_empty_hit",
    "has_hit",
    "is_finite",
    "accepts_distance",
    "intersect_ground_plane",
    "GROUND_ALBEDO",
    "GROUND_SPECULAR",
    "Sphere",
    "intersect_sphere",
    "make_sphere",
]
