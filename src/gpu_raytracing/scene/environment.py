"""Environment (sky) image lookup for rays that escape the scene.

The environment is an equirectangular RGB image stored in a preallocated
Taichi field. A direction maps to texture coordinates

    theta = acos(direction.y) / -pi
    phi = atan2(direction.x, -direction.z) / -pi / 2

which are sampled at (u, v) = (phi, theta) with bilinear filtering and
repeat addressing, then scaled by the environment intensity.

Texture coordinates follow the usual GPU convention: v = 0 is the bottom
row of the image, so straight up (theta = 0, repeating to v = 1) reads the
top row. Host-side arrays are given top row first, as Pillow and NumPy
store them.

Example:
    >>> from gpu_raytracing.scene.environment import (
    ...     load_environment_image, set_environment_intensity
    ... )
    >>> load_environment_image("sky.png")
    >>> set_environment_intensity(1.2)
"""

import logging
from collections.abc import Sequence
from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm
from PIL import Image as PILImage

vec2 = tm.vec2
vec3 = tm.vec3

logger = logging.getLogger(__name__)

# Preallocated capacity (larger images are downsampled on upload)
MAX_ENVIRONMENT_WIDTH = 2048
MAX_ENVIRONMENT_HEIGHT = 1024

# Environment texels indexed [x, y] with y = 0 at the bottom row
_environment = ti.Vector.field(
    3, dtype=ti.f32, shape=(MAX_ENVIRONMENT_WIDTH, MAX_ENVIRONMENT_HEIGHT)
)
_environment_width = ti.field(dtype=ti.i32, shape=())
_environment_height = ti.field(dtype=ti.i32, shape=())
_environment_intensity = ti.field(dtype=ti.f32, shape=())


# =============================================================================
# Host-side Setup
# =============================================================================


def srgb_to_linear(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Convert sRGB-encoded values in [0, 1] to linear light."""
    image = np.clip(image, 0.0, 1.0)
    low = image / 12.92
    high = np.power((image + 0.055) / 1.055, 2.4)
    return np.where(image <= 0.04045, low, high).astype(np.float32)


def _fit_to_capacity(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Downsample an image that does not fit the preallocated field."""
    height, width = image.shape[:2]
    if width <= MAX_ENVIRONMENT_WIDTH and height <= MAX_ENVIRONMENT_HEIGHT:
        return image

    scale = min(MAX_ENVIRONMENT_WIDTH / width, MAX_ENVIRONMENT_HEIGHT / height)
    new_size = (max(1, int(width * scale)), max(1, int(height * scale)))
    logger.warning(
        "Environment image %dx%d exceeds capacity %dx%d, resizing to %dx%d",
        width,
        height,
        MAX_ENVIRONMENT_WIDTH,
        MAX_ENVIRONMENT_HEIGHT,
        new_size[0],
        new_size[1],
    )

    # Resize each channel as a 32-bit float image to keep HDR values intact
    channels = [
        np.asarray(
            PILImage.fromarray(np.ascontiguousarray(image[:, :, c]), mode="F").resize(
                new_size, PILImage.BILINEAR
            ),
            dtype=np.float32,
        )
        for c in range(3)
    ]
    return np.stack(channels, axis=-1)


def set_environment_image(
    image: npt.ArrayLike,
    *,
    linearize: bool | None = None,
) -> tuple[int, int]:
    """Upload an equirectangular environment image.

    Args:
        image: Array of shape (H, W, 3) or (H, W, 4), top row first. Float
            arrays are taken as linear radiance; uint8 arrays are scaled to
            [0, 1]. An alpha channel is ignored.
        linearize: Convert from sRGB to linear. Defaults to True for uint8
            input and False for float input.

    Returns:
        The stored (width, height), after any downsampling.

    Raises:
        ValueError: If the array does not have shape (H, W, 3) or (H, W, 4).
    """
    array = np.asarray(image)
    if array.ndim != 3 or array.shape[2] not in (3, 4) or array.shape[0] == 0 or array.shape[1] == 0:
        raise ValueError(f"Environment image must have shape (H, W, 3) or (H, W, 4), got {array.shape}")

    is_8bit = array.dtype == np.uint8
    data = array[:, :, :3].astype(np.float32)
    if is_8bit:
        data /= 255.0
    if linearize is None:
        linearize = is_8bit
    if linearize:
        data = srgb_to_linear(data)

    data = _fit_to_capacity(data)
    height, width = data.shape[:2]

    # (H, W, 3) top-first -> (W, H, 3) bottom-first, padded to the field shape
    texels = np.zeros((MAX_ENVIRONMENT_WIDTH, MAX_ENVIRONMENT_HEIGHT, 3), dtype=np.float32)
    texels[:width, :height] = np.transpose(np.flipud(data), (1, 0, 2))
    _environment.from_numpy(texels)
    _environment_width[None] = width
    _environment_height[None] = height

    logger.debug("Environment image set to %dx%d", width, height)
    return width, height


def load_environment_image(
    filepath: str | Path,
    *,
    linearize: bool = True,
) -> tuple[int, int]:
    """Load an environment image from disk with Pillow.

    Args:
        filepath: Path to an image file Pillow can read.
        linearize: Convert 8-bit sRGB data to linear light (default True).

    Returns:
        The stored (width, height).

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Environment image not found: {path}")

    with PILImage.open(path) as img:
        rgb = np.asarray(img.convert("RGB"), dtype=np.uint8)

    logger.info("Loaded environment image %s (%dx%d)", path, rgb.shape[1], rgb.shape[0])
    return set_environment_image(rgb, linearize=linearize)


def set_environment_color(color: Sequence[float]) -> None:
    """Use a constant (linear) color as the environment."""
    set_environment_image(np.array([[color[:3]]], dtype=np.float32), linearize=False)


def set_environment_intensity(intensity: float) -> None:
    """Set the multiplier applied to every environment lookup.

    Raises:
        ValueError: If intensity is negative.
    """
    if intensity < 0.0:
        raise ValueError(f"Environment intensity must be non-negative, got {intensity}")
    _environment_intensity[None] = intensity


def get_environment_intensity() -> float:
    return float(_environment_intensity[None])


def get_environment_size() -> tuple[int, int]:
    """Get the stored environment image size as (width, height)."""
    return int(_environment_width[None]), int(_environment_height[None])


def clear_environment() -> None:
    """Reset to a black environment with intensity 1."""
    set_environment_color((0.0, 0.0, 0.0))
    _environment_intensity[None] = 1.0


def create_gradient_sky(
    width: int = 256,
    height: int = 128,
    *,
    zenith: Sequence[float] = (0.25, 0.45, 0.9),
    horizon: Sequence[float] = (0.85, 0.9, 1.0),
    ground: Sequence[float] = (0.3, 0.27, 0.25),
) -> npt.NDArray[np.float32]:
    """Build a simple equirectangular sky for scenes without an image.

    Rows above the horizon blend from horizon to zenith color with the
    elevation; rows below the horizon use the ground color.

    Returns:
        Linear float32 array of shape (height, width, 3), top row first.
    """
    rows = (np.arange(height, dtype=np.float32) + 0.5) / height
    # Row r (top first) corresponds to direction.y = cos(pi * r / height)
    up = np.cos(np.pi * rows)
    t = np.clip(up, 0.0, 1.0)[:, None]

    sky = (1.0 - t) * np.asarray(horizon, dtype=np.float32) + t * np.asarray(zenith, dtype=np.float32)
    column = np.where((up > 0.0)[:, None], sky, np.asarray(ground, dtype=np.float32))
    return np.repeat(column[:, None, :], width, axis=1).astype(np.float32)


# =============================================================================
# Environment Lookup (Taichi-compatible)
# =============================================================================


@ti.func
def direction_to_uv(direction: vec3) -> vec2:
    """Map a unit direction to environment texture coordinates (phi, theta)."""
    theta = ti.acos(tm.clamp(direction.y, -1.0, 1.0)) / -tm.pi
    phi = ti.atan2(direction.x, -direction.z) / -tm.pi * 0.5
    return vec2(phi, theta)


@ti.func
def _texel(x: ti.i32, y: ti.i32) -> vec3:
    # Repeat addressing; Taichi's % follows Python semantics (non-negative result)
    return _environment[x % _environment_width[None], y % _environment_height[None]]


@ti.func
def sample_environment_uv(uv: vec2) -> vec3:
    """Bilinearly sample the environment image with repeat addressing.

    Returns black while no environment image has been uploaded.
    """
    result = vec3(0.0, 0.0, 0.0)
    if _environment_width[None] > 0 and _environment_height[None] > 0:
        w = ti.cast(_environment_width[None], ti.f32)
        h = ti.cast(_environment_height[None], ti.f32)

        x = uv.x * w - 0.5
        y = uv.y * h - 0.5
        x0f = ti.floor(x)
        y0f = ti.floor(y)
        fx = x - x0f
        fy = y - y0f
        x0 = ti.cast(x0f, ti.i32)
        y0 = ti.cast(y0f, ti.i32)

        bottom = tm.mix(_texel(x0, y0), _texel(x0 + 1, y0), fx)
        top = tm.mix(_texel(x0, y0 + 1), _texel(x0 + 1, y0 + 1), fx)
        result = tm.mix(bottom, top, fy)
    return result


@ti.func
def sample_environment(direction: vec3) -> vec3:
    """Radiance arriving from the environment along a direction.

    Args:
        direction: Unit direction of the escaping ray.

    Returns:
        The filtered environment color scaled by the environment intensity.
    """
    return sample_environment_uv(direction_to_uv(direction)) * _environment_intensity[None]
