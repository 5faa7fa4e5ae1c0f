"""Materials module for surface shading.

Components:
    phong: Diffuse + normalized Phong lobe used by the ground and all spheres

Materials are described per primitive by two colors, albedo (diffuse) and
specular, stored directly in the hit record. A "metal" surface has zero
albedo and a colored specular; a "plastic" surface has a colored albedo and
a small grey specular (0.04).
"""

from .phong import (
    PHONG_ALPHA,
    RAY_EPSILON,
    get_energy_clamp,
    phong_attenuation,
    scatter_phong,
    set_energy_clamp,
)

__all__ = [
    "PHONG_ALPHA",
    "RAY_EPSILON",
    "phong_attenuation",
    "scatter_phong",
    "set_energy_clamp",
    "get_energy_clamp",
]
