"""Image export utilities for rendered images.

Supported formats:
    - PNG (8-bit sRGB via Pillow), tone mapped and gamma encoded
    - NPY (raw float32 linear radiance, for HDR dumps and reference images)

Example:
    >>> from gpu_raytracing.preview.export import save_png, save_npy
    >>> save_png(renderer, "spheres.png", tone_map="reinhard")
    >>> save_npy(renderer, "spheres.npy")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from gpu_raytracing.preview.display import ToneMapMethod, process_image_for_display

if TYPE_CHECKING:
    from gpu_raytracing.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8-bit RGB after tone mapping and gamma.

    Values are rounded to the nearest 8-bit level.

    Args:
        image: Linear image of shape (H, W, 3) or (H, W, 4).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping.

    Returns:
        Array of shape (H, W, 3) with dtype uint8.
    """
    processed = process_image_for_display(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    return np.round(processed * 255.0).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.float32],
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Save a linear float image as an 8-bit sRGB PNG."""
    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(image_uint8, mode="RGB").save(filepath)
    logger.debug("Wrote %s", filepath)


def save_png(
    renderer: ProgressiveRenderer,
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Save the renderer's converged image as a PNG file.

    Tone mapping is applied to the unclamped converged radiance, so HDR
    highlights keep their detail with "reinhard" or "exposure".

    Example:
        >>> save_png(renderer, "output.png", tone_map="exposure", exposure=0.8)
    """
    save_png_from_array(
        renderer.get_converged_numpy(),
        filepath,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )


def save_npy(renderer: ProgressiveRenderer, filepath: str | Path) -> None:
    """Save the converged linear RGB radiance as a float32 .npy array."""
    image = renderer.get_converged_numpy()[:, :, :3].astype(np.float32)
    np.save(filepath, image)
    logger.debug("Wrote %s", filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating[npt.NBitBase]],
    image_b: npt.NDArray[np.floating[npt.NBitBase]],
) -> float:
    """Compute root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
