"""Scene description, intersection and environment lighting.

Components:
    intersection: Sphere buffer and nearest-hit trace over plane + spheres
    environment: Equirectangular sky image lookup for escaping rays
    manager: Host-side SceneManager with validation and serialization
    random_spheres: Random non-overlapping sphere field generator
"""

from .environment import (
    MAX_ENVIRONMENT_HEIGHT,
    MAX_ENVIRONMENT_WIDTH,
    clear_environment,
    create_gradient_sky,
    direction_to_uv,
    get_environment_intensity,
    get_environment_size,
    load_environment_image,
    sample_environment,
    set_environment_color,
    set_environment_image,
    set_environment_intensity,
)
from .intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere,
    get_sphere_count,
    set_spheres,
    trace,
)
from .manager import SceneConfig, SceneManager, SphereInfo
from .random_spheres import (
    RandomSphereParams,
    create_default_camera,
    create_random_sphere_scene,
)

__all__ = [
    # Intersection
    "MAX_SPHERES",
    "add_sphere",
    "clear_scene",
    "get_sphere",
    "get_sphere_count",
    "set_spheres",
    "trace",
    # Environment
    "MAX_ENVIRONMENT_WIDTH",
    "MAX_ENVIRONMENT_HEIGHT",
    "clear_environment",
    "create_gradient_sky",
    "direction_to_uv",
    "get_environment_intensity",
    "get_environment_size",
    "load_environment_image",
    "sample_environment",
    "set_environment_color",
    "set_environment_image",
    "set_environment_intensity",
    # Manager
    "SceneConfig",
    "SceneManager",
    "SphereInfo",
    # Random scene
    "RandomSphereParams",
    "create_default_camera",
    "create_random_sphere_scene",
]
