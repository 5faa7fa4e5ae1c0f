"""Host-side scene manager for the sphere buffer.

The SceneManager keeps a Python mirror of every sphere uploaded to the
Taichi scene fields, validates sphere parameters before upload and supports
scene serialization to plain dictionaries (for JSON files).

Every sphere carries its own albedo and specular color; the ground plane
is implicit and always present, so it is not part of the scene description.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from gpu_raytracing.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> scene.add_sphere((0.0, 5.0, 0.0), 5.0, albedo=(0.8, 0.2, 0.2), specular=(0.04, 0.04, 0.04))
    >>> scene.add_metal_sphere((12.0, 4.0, 3.0), 4.0, color=(0.9, 0.7, 0.3))
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from gpu_raytracing.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

# Specular reflectance used for non-metallic (dielectric-looking) spheres
DEFAULT_DIELECTRIC_SPECULAR = (0.04, 0.04, 0.04)


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The index in the sphere storage arrays.
        position: The center of the sphere.
        radius: The radius of the sphere.
        albedo: Diffuse reflectance color.
        specular: Specular reflectance color.
    """

    sphere_index: int
    position: tuple[float, float, float]
    radius: float
    albedo: tuple[float, float, float]
    specular: tuple[float, float, float]


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        spheres: List of sphere configurations.
    """

    spheres: list[dict[str, Any]] = field(default_factory=list)


def _as_vec3(name: str, value: Sequence[float]) -> tuple[float, float, float]:
    if len(value) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(value)}")
    vec = (float(value[0]), float(value[1]), float(value[2]))
    if not all(math.isfinite(c) for c in vec):
        raise ValueError(f"{name} must be finite, got {vec}")
    return vec


def _as_color(name: str, value: Sequence[float]) -> tuple[float, float, float]:
    color = _as_vec3(name, value)
    if not all(0.0 <= c <= 1.0 for c in color):
        raise ValueError(f"{name} components must be in [0, 1], got {color}")
    return color


class SceneManager:
    """Scene manager mirroring the GPU sphere buffer.

    Attributes:
        spheres: List of SphereInfo for all spheres in the scene.

    Example:
        >>> scene = SceneManager()
        >>> scene.add_sphere((0, 3, 0), 3.0, albedo=(0.2, 0.5, 0.8))
        >>> data = scene.to_dict()
        >>> SceneManager().from_dict(data)
    """

    def __init__(self) -> None:
        """Initialize an empty scene (clears the sphere buffer)."""
        self.spheres: list[SphereInfo] = []
        self.clear()

    def clear(self) -> None:
        """Remove every sphere from the scene and the Taichi fields."""
        clear_scene()
        self.spheres.clear()

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(
        self,
        position: Sequence[float],
        radius: float,
        albedo: Sequence[float] = (0.0, 0.0, 0.0),
        specular: Sequence[float] = (0.0, 0.0, 0.0),
    ) -> int:
        """Add a sphere to the scene.

        Args:
            position: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (must be positive).
            albedo: Diffuse reflectance, components in [0, 1].
            specular: Specular reflectance, components in [0, 1].

        Returns:
            The index of the added sphere.

        Raises:
            ValueError: If any parameter is out of range.
            RuntimeError: If the maximum number of spheres is exceeded.
        """
        position_vec = _as_vec3("position", position)
        if not (math.isfinite(radius) and radius > 0.0):
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        albedo_vec = _as_color("albedo", albedo)
        specular_vec = _as_color("specular", specular)

        sphere_index = add_sphere(position_vec, radius, albedo_vec, specular_vec)

        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                position=position_vec,
                radius=float(radius),
                albedo=albedo_vec,
                specular=specular_vec,
            )
        )
        return sphere_index

    def add_metal_sphere(
        self,
        position: Sequence[float],
        radius: float,
        color: Sequence[float],
    ) -> int:
        """Add a metallic sphere: no diffuse term, specular tinted by color."""
        return self.add_sphere(position, radius, albedo=(0.0, 0.0, 0.0), specular=color)

    def add_diffuse_sphere(
        self,
        position: Sequence[float],
        radius: float,
        color: Sequence[float],
    ) -> int:
        """Add a non-metallic sphere with a faint uncolored highlight."""
        return self.add_sphere(position, radius, albedo=color, specular=DEFAULT_DIELECTRIC_SPECULAR)

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()
        for sphere in self.spheres:
            config.spheres.append(
                {
                    "position": list(sphere.position),
                    "radius": sphere.radius,
                    "albedo": list(sphere.albedo),
                    "specular": list(sphere.specular),
                }
            )
        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for sphere_config in config.spheres:
            if "position" not in sphere_config or "radius" not in sphere_config:
                raise ValueError(f"Sphere entry needs 'position' and 'radius': {sphere_config}")
            self.add_sphere(
                sphere_config["position"],
                sphere_config["radius"],
                albedo=sphere_config.get("albedo", [0.0, 0.0, 0.0]),
                specular=sphere_config.get("specular", [0.0, 0.0, 0.0]),
            )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        return {"spheres": self.to_config().spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary with a 'spheres' key."""
        self.from_config(SceneConfig(spheres=data.get("spheres", [])))

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        """Get the maximum number of spheres supported."""
        return MAX_SPHERES
