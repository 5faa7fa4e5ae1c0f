"""Matplotlib-based preview display for rendered images.

The converged buffer holds unbounded linear radiance (sky intensities above
one are common), so the display pipeline is: tone map the HDR values into
[0, 1], gamma encode, clamp.

Example:
    >>> from gpu_raytracing.preview.display import show_preview
    >>> from gpu_raytracing.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(512, 288)
    >>> renderer.render(64)
    >>> show_preview(renderer, tone_map="reinhard")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from gpu_raytracing.core.progressive import ProgressiveRenderer


# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.float32]:
    """Apply Reinhard tone mapping per channel: c / (1 + c).

    Args:
        image: Linear HDR image array of shape (H, W, 3).

    Returns:
        Tone mapped image in [0, 1).
    """
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply exposure tone mapping: 1 - exp(-c * exposure).

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        exposure: Higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1).
    """
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Gamma encode a [0, 1] image (out = in^(1/gamma)); gamma 1.0 is a no-op."""
    if gamma == 1.0:
        return image

    # Negative values would produce NaN under the power
    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Run the display pipeline on a linear image.

    Args:
        image: Linear HDR image of shape (H, W, 3) or (H, W, 4); an alpha
            channel is dropped.
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping.

    Returns:
        RGB image ready for display, in [0, 1].

    Raises:
        ValueError: If tone_map is not a known method.
    """
    result = np.array(image[..., :3], dtype=np.float32)

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def show_preview(
    renderer: ProgressiveRenderer,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
    title: str | None = None,
    figsize: tuple[float, float] = (10, 6),
    block: bool = True,
) -> None:
    """Display the renderer's converged image in a Matplotlib figure.

    The title shows the number of accumulated frames unless one is given.
    """
    import matplotlib.pyplot as plt

    display_image = process_image_for_display(
        renderer.get_converged_numpy(),
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")

    if title is None:
        title = f"{renderer.width}x{renderer.height} - {renderer.frame_count} frames"
        if tone_map != "none":
            title += f" ({tone_map})"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    image_a: npt.NDArray[np.float32],
    image_b: npt.NDArray[np.float32],
    *,
    labels: tuple[str, str] = ("A", "B"),
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    diff_scale: float = 10.0,
    figsize: tuple[float, float] = (16, 6),
    block: bool = True,
) -> float:
    """Show two renders side by side with their amplified difference.

    Returns:
        RMSE between the two images in display space.
    """
    import matplotlib.pyplot as plt

    display_a = process_image_for_display(image_a, tone_map=tone_map, gamma=gamma)
    display_b = process_image_for_display(image_b, tone_map=tone_map, gamma=gamma)

    diff = display_a.astype(np.float64) - display_b.astype(np.float64)
    rmse = float(np.sqrt(np.mean(diff**2)))
    diff_amplified = np.clip(np.abs(diff) * diff_scale, 0.0, 1.0)

    fig, axes = plt.subplots(1, 3, figsize=figsize)
    panels = [
        (display_a, labels[0]),
        (display_b, labels[1]),
        (diff_amplified, f"Difference ({diff_scale}x) - RMSE: {rmse:.6f}"),
    ]
    for ax, (panel, label) in zip(axes, panels):
        ax.imshow(panel)
        ax.set_title(label)
        ax.axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return rmse
