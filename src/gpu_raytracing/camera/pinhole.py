"""Pinhole camera model and camera ray generation.

The kernel side of the camera is two 4x4 matrices, a camera-to-world
transform and an inverse projection, so any host-side camera model can drive
it. PinholeCamera builds both from look-at parameters:

- camera space is right-handed with the view direction along -Z
  (u = right, v = up, w = backward, as in the look-at basis)
- the projection is the usual OpenGL-style perspective matrix

A pixel (i, j) plus a sub-pixel jitter offset is mapped to normalized device
coordinates in [-1, 1]; the view-space direction is the inverse projection
applied to (ndc, 0, 1), which is then rotated into world space.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from gpu_raytracing.camera.pinhole import PinholeCamera, setup_camera
    >>>
    >>> camera = PinholeCamera(
    ...     lookfrom=(0.0, 30.0, -120.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=60.0,
    ...     aspect_ratio=16.0 / 9.0,
    ... )
    >>> setup_camera(camera)
    >>> # Inside a kernel:
    >>> # ray = generate_camera_ray(i, j, width, height, pixel_offset)
"""

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from gpu_raytracing.core.ray import Ray, make_ray, normalize, vec3

vec2 = tm.vec2
vec4 = tm.vec4

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class PinholeCamera:
    """Configuration for a pinhole (perspective) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees.
        aspect_ratio: Width divided by height of the output image.
        near: Near clip distance of the projection matrix.
        far: Far clip distance of the projection matrix.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    near: float = 0.3
    far: float = 1000.0


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

_camera_to_world = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
_camera_inverse_projection = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())


# =============================================================================
# Matrix Construction (Python-side)
# =============================================================================


def camera_to_world_matrix(camera: PinholeCamera) -> npt.NDArray[np.float32]:
    """Build the camera-to-world transform from look-at parameters.

    The columns are the camera's right (u), up (v) and backward (w) axes and
    its position.

    Raises:
        ValueError: If lookfrom equals lookat or vup is parallel to the view
            direction.
    """
    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    # w points from lookat toward lookfrom (backward)
    w = lookfrom - lookat
    w_len = np.linalg.norm(w)
    if w_len < 1e-12:
        raise ValueError("Camera lookfrom and lookat must differ")
    w = w / w_len

    # u points right (perpendicular to w and vup)
    u = np.cross(vup, w)
    u_len = np.linalg.norm(u)
    if u_len < 1e-12:
        raise ValueError("Camera vup must not be parallel to the view direction")
    u = u / u_len

    # v points up in the camera's frame
    v = np.cross(w, u)

    matrix = np.identity(4, dtype=np.float64)
    matrix[:3, 0] = u
    matrix[:3, 1] = v
    matrix[:3, 2] = w
    matrix[:3, 3] = lookfrom
    return matrix.astype(np.float32)


def projection_matrix(
    vfov: float,
    aspect_ratio: float,
    near: float = 0.3,
    far: float = 1000.0,
) -> npt.NDArray[np.float32]:
    """Build an OpenGL-style perspective projection matrix.

    Raises:
        ValueError: If the field of view, aspect ratio or clip planes are
            out of range.
    """
    if not 0.0 < vfov < 180.0:
        raise ValueError(f"Vertical field of view must be in (0, 180) degrees, got {vfov}")
    if aspect_ratio <= 0.0:
        raise ValueError(f"Aspect ratio must be positive, got {aspect_ratio}")
    if not 0.0 < near < far:
        raise ValueError(f"Clip planes must satisfy 0 < near < far, got near={near}, far={far}")

    f = 1.0 / math.tan(math.radians(vfov) / 2.0)
    matrix = np.zeros((4, 4), dtype=np.float64)
    matrix[0, 0] = f / aspect_ratio
    matrix[1, 1] = f
    matrix[2, 2] = (far + near) / (near - far)
    matrix[2, 3] = 2.0 * far * near / (near - far)
    matrix[3, 2] = -1.0
    return matrix.astype(np.float32)


def inverse_projection_matrix(camera: PinholeCamera) -> npt.NDArray[np.float32]:
    """Invert the camera's projection matrix."""
    projection = projection_matrix(camera.vfov, camera.aspect_ratio, camera.near, camera.far)
    return np.linalg.inv(projection.astype(np.float64)).astype(np.float32)


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def _validate_matrix(name: str, matrix: npt.ArrayLike) -> npt.NDArray[np.float32]:
    array = np.asarray(matrix, dtype=np.float32)
    if array.shape != (4, 4):
        raise ValueError(f"{name} must be a 4x4 matrix, got shape {array.shape}")
    if not np.all(np.isfinite(array)):
        raise ValueError(f"{name} contains non-finite values")
    return array


def set_camera_matrices(camera_to_world: npt.ArrayLike, inverse_projection: npt.ArrayLike) -> None:
    """Upload raw camera matrices.

    Args:
        camera_to_world: 4x4 transform from camera space to world space.
        inverse_projection: 4x4 inverse of the camera's projection matrix.

    Raises:
        ValueError: If either matrix is not a finite 4x4 array.
    """
    _camera_to_world[None] = _validate_matrix("camera_to_world", camera_to_world).tolist()
    _camera_inverse_projection[None] = _validate_matrix(
        "inverse_projection", inverse_projection
    ).tolist()


def setup_camera(camera: PinholeCamera) -> None:
    """Compute and upload the matrices for a pinhole camera.

    Note:
        This function writes to Taichi fields and should be called from
        Python (not from within a Taichi kernel).
    """
    set_camera_matrices(camera_to_world_matrix(camera), inverse_projection_matrix(camera))


def get_camera_matrices() -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32]]:
    """Read back (camera_to_world, inverse_projection) as NumPy arrays."""
    return (
        np.array(_camera_to_world.to_numpy(), dtype=np.float32).reshape(4, 4),
        np.array(_camera_inverse_projection.to_numpy(), dtype=np.float32).reshape(4, 4),
    )


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get the camera position and axes for debugging.

    Returns:
        Dictionary with origin, right, up and forward vectors.
    """
    c2w, _ = get_camera_matrices()
    return {
        "origin": tuple(float(x) for x in c2w[:3, 3]),
        "right": tuple(float(x) for x in c2w[:3, 0]),
        "up": tuple(float(x) for x in c2w[:3, 1]),
        "forward": tuple(float(-x) for x in c2w[:3, 2]),
    }


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def get_camera_origin() -> vec3:
    """Camera position: the camera-to-world transform applied to the origin."""
    p = _camera_to_world[None] @ vec4(0.0, 0.0, 0.0, 1.0)
    return vec3(p[0], p[1], p[2])


@ti.func
def pixel_to_ndc(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    pixel_offset: vec2,
) -> vec2:
    """Map a pixel plus sub-pixel offset to normalized device coordinates.

    Offset (0.5, 0.5) is the pixel center; the full image spans [-1, 1].
    """
    size = vec2(ti.cast(width, ti.f32), ti.cast(height, ti.f32))
    pixel = vec2(ti.cast(pixel_i, ti.f32), ti.cast(pixel_j, ti.f32))
    return (pixel + pixel_offset) / size * 2.0 - 1.0


@ti.func
def generate_camera_ray(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    pixel_offset: vec2,
) -> Ray:
    """Generate the primary ray for a pixel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        pixel_offset: Sub-pixel jitter in [0, 1)^2, fresh every frame.

    Returns:
        A ray from the camera origin with unit direction and full energy.
    """
    ndc = pixel_to_ndc(pixel_i, pixel_j, width, height, pixel_offset)

    # View-space direction: inverse projection of (ndc, 0, 1), w dropped
    view = _camera_inverse_projection[None] @ vec4(ndc.x, ndc.y, 0.0, 1.0)
    world = _camera_to_world[None] @ vec4(view[0], view[1], view[2], 0.0)
    direction = normalize(vec3(world[0], world[1], world[2]))

    return make_ray(get_camera_origin(), direction)
