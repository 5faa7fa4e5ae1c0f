"""Random sphere field resting on the ground plane.

Spheres are generated by rejection: each candidate gets a random radius and
a random position inside a disc on the ground, lifted so it rests on the
plane (y = radius). A candidate that overlaps an already accepted sphere is
dropped rather than retried, so a scene usually holds fewer spheres than
max_spheres. Accepted spheres get a random HSV color and are either metals
(no diffuse term, specular tinted by the color) or plastics (diffuse color
with a 4% uncolored highlight).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from gpu_raytracing.scene.random_spheres import (
    ...     RandomSphereParams, create_default_camera, create_random_sphere_scene
    ... )
    >>> scene = create_random_sphere_scene(RandomSphereParams(seed=3))
    >>> camera = create_default_camera(16.0 / 9.0)
"""

import colorsys
import logging
from dataclasses import dataclass

import numpy as np

from gpu_raytracing.camera.pinhole import PinholeCamera
from gpu_raytracing.scene.manager import DEFAULT_DIELECTRIC_SPECULAR, SceneManager

logger = logging.getLogger(__name__)

# Default camera framing the placement disc from above and in front
DEFAULT_LOOKFROM = (0.0, 60.0, -160.0)
DEFAULT_LOOKAT = (0.0, 0.0, 0.0)
DEFAULT_VUP = (0.0, 1.0, 0.0)
DEFAULT_VFOV = 60.0


@dataclass
class RandomSphereParams:
    """Parameters of the random sphere scene.

    Attributes:
        sphere_radius: (min, max) radius; radii are drawn uniformly.
        max_spheres: Number of candidates generated.
        placement_radius: Radius of the ground disc holding sphere centers.
        seed: Seed of the scene generator.
        metal_probability: Chance an accepted sphere is metallic. The
            default of 1.0 makes every sphere a metal.

    Example:
        >>> params = RandomSphereParams(max_spheres=50, metal_probability=0.5)
    """

    sphere_radius: tuple[float, float] = (3.0, 8.0)
    max_spheres: int = 100
    placement_radius: float = 100.0
    seed: int = 0
    metal_probability: float = 1.0

    def __post_init__(self) -> None:
        low, high = self.sphere_radius
        if not 0.0 < low <= high:
            raise ValueError(f"sphere_radius must satisfy 0 < min <= max, got {self.sphere_radius}")
        if self.max_spheres < 0:
            raise ValueError(f"max_spheres must be non-negative, got {self.max_spheres}")
        if self.placement_radius < 0.0:
            raise ValueError(f"placement_radius must be non-negative, got {self.placement_radius}")
        if not 0.0 <= self.metal_probability <= 1.0:
            raise ValueError(
                f"metal_probability must be in [0, 1], got {self.metal_probability}"
            )


def _random_in_disc(rng: np.random.Generator) -> tuple[float, float]:
    """Uniform point in the unit disc."""
    angle = rng.uniform(0.0, 2.0 * np.pi)
    r = np.sqrt(rng.random())
    return float(r * np.cos(angle)), float(r * np.sin(angle))


def create_random_sphere_scene(
    params: RandomSphereParams | None = None,
    scene: SceneManager | None = None,
) -> SceneManager:
    """Fill the scene with randomly placed, non-overlapping spheres.

    Args:
        params: Generation parameters (defaults if None).
        scene: Scene to fill; it is cleared first. A new SceneManager is
            created if None.

    Returns:
        The filled SceneManager.
    """
    if params is None:
        params = RandomSphereParams()
    if scene is None:
        scene = SceneManager()
    else:
        scene.clear()

    rng = np.random.default_rng(params.seed)
    low, high = params.sphere_radius

    # (center, radius) of accepted spheres for the overlap test
    accepted: list[tuple[np.ndarray, float]] = []
    rejected = 0

    for _ in range(params.max_spheres):
        radius = low + rng.random() * (high - low)
        x, z = _random_in_disc(rng)
        position = np.array(
            [x * params.placement_radius, radius, z * params.placement_radius]
        )

        overlaps = False
        for other_position, other_radius in accepted:
            min_dist = radius + other_radius
            if np.sum((position - other_position) ** 2) < min_dist * min_dist:
                overlaps = True
                break
        if overlaps:
            rejected += 1
            continue

        color = colorsys.hsv_to_rgb(rng.random(), rng.random(), rng.random())
        metal = rng.random() < params.metal_probability

        if metal:
            scene.add_sphere(position, radius, albedo=(0.0, 0.0, 0.0), specular=color)
        else:
            scene.add_sphere(position, radius, albedo=color, specular=DEFAULT_DIELECTRIC_SPECULAR)
        accepted.append((position, radius))

    logger.info(
        "Generated %d spheres (%d candidates rejected for overlap)", len(accepted), rejected
    )
    return scene


def create_default_camera(aspect_ratio: float = 16.0 / 9.0) -> PinholeCamera:
    """Camera looking down at the placement disc from in front of it."""
    return PinholeCamera(
        lookfrom=DEFAULT_LOOKFROM,
        lookat=DEFAULT_LOOKAT,
        vup=DEFAULT_VUP,
        vfov=DEFAULT_VFOV,
        aspect_ratio=aspect_ratio,
    )
