"""Camera module for view and ray generation.

Components:
    pinhole: Pinhole (perspective) camera matrices and primary ray generation

Camera responsibilities:
    - Build camera-to-world and inverse-projection matrices on the host
    - Map pixels plus a per-frame jitter offset to normalized device coordinates
    - Generate unit-length world-space primary rays inside kernels

Normalized device coordinates span [-1, 1] with (-1, -1) at the
bottom-left corner of the image.
"""

from .pinhole import (
    PinholeCamera,
    camera_to_world_matrix,
    generate_camera_ray,
    get_camera_info,
    get_camera_matrices,
    get_camera_origin,
    inverse_projection_matrix,
    pixel_to_ndc,
    projection_matrix,
    set_camera_matrices,
    setup_camera,
)

__all__ = [
    "PinholeCamera",
    "camera_to_world_matrix",
    "projection_matrix",
    "inverse_projection_matrix",
    "setup_camera",
    "set_camera_matrices",
    "get_camera_matrices",
    "get_camera_info",
    "get_camera_origin",
    "pixel_to_ndc",
    "generate_camera_ray",
]
