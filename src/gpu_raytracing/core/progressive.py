"""Progressive renderer for iterative frame accumulation.

This module provides a convenient wrapper around the core integrator that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple frames in one call)
- Progress callbacks for UI updates
- Accumulation that restarts only when the camera, light or size changes

Every frame traces one sample per pixel with a fresh sub-pixel jitter offset
and frame seed, both drawn from the renderer's NumPy generator, and is then
averaged into the converged image.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from gpu_raytracing.core.progressive import ProgressiveRenderer
    >>> from gpu_raytracing.scene.random_spheres import (
    ...     create_default_camera, create_random_sphere_scene
    ... )
    >>>
    >>> create_random_sphere_scene()
    >>> renderer = ProgressiveRenderer(512, 512, seed=7)
    >>> renderer.set_camera(create_default_camera(1.0))
    >>> renderer.render(100)  # Accumulate 100 frames
    >>> image = renderer.get_image_numpy()
"""

import logging
from collections.abc import Callable, Generator, Sequence
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from gpu_raytracing.camera.pinhole import PinholeCamera, setup_camera
from gpu_raytracing.core.integrator import (
    clear_render_target,
    get_converged_numpy,
    get_directional_light,
    get_frame_count,
    get_normalized_image_numpy,
    get_result_numpy,
    render_image,
    set_directional_light,
    setup_render_target,
)
from gpu_raytracing.materials.phong import get_energy_clamp, set_energy_clamp

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_frames, total_target_frames)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates frames over time.

    The renderer maintains its own state for width/height, camera and light
    and delegates to the global integrator buffers (which are Taichi fields).

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(self, width: int, height: int, seed: int | None = None) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).
            seed: Seed for the jitter/frame-seed generator. None draws
                fresh entropy.

        Raises:
            ValueError: If dimensions exceed maximum supported size.
        """
        self._width = width
        self._height = height
        self._rng = np.random.default_rng(seed)
        self._camera: PinholeCamera | None = None
        self._light: tuple[tuple[float, float, float], float] | None = None
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def frame_count(self) -> int:
        """Get the number of frames in the converged image."""
        return get_frame_count()

    @property
    def camera(self) -> PinholeCamera | None:
        return self._camera

    def reset(self) -> None:
        """Restart accumulation without changing the image dimensions."""
        logger.debug("Resetting accumulation after %d frames", self.frame_count)
        clear_render_target()

    def resize(self, width: int, height: int) -> bool:
        """Resize the render target if the size changed.

        Args:
            width: New image width in pixels.
            height: New image height in pixels.

        Returns:
            True if the render target was reallocated (and accumulation reset).

        Raises:
            ValueError: If dimensions exceed maximum supported size.
        """
        if (width, height) == (self._width, self._height):
            return False

        setup_render_target(width, height)
        self._width = width
        self._height = height
        logger.info("Render target resized to %dx%d", width, height)
        return True

    def set_camera(self, camera: PinholeCamera) -> bool:
        """Upload a camera, resetting accumulation if it differs from the current one.

        Returns:
            True if the camera changed.
        """
        if camera == self._camera:
            return False

        setup_camera(camera)
        self._camera = camera
        self.reset()
        return True

    def set_directional_light(self, direction: Sequence[float], intensity: float = 1.0) -> bool:
        """Store the directional light, resetting accumulation if it changed.

        Returns:
            True if the light changed.
        """
        set_directional_light(direction, intensity)
        light = get_directional_light()
        if light == self._light:
            return False

        self._light = light
        self.reset()
        return True

    def set_energy_clamp(self, enabled: bool) -> bool:
        """Switch the per-bounce weight clamp, resetting accumulation if it changed.

        Returns:
            True if the setting changed.
        """
        if bool(enabled) == get_energy_clamp():
            return False

        set_energy_clamp(enabled)
        self.reset()
        return True

    def render(
        self,
        num_frames: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render frames progressively with optional progress callback.

        Accumulates the specified number of frames into the converged
        image. Can be called multiple times to continue refining the image.

        Args:
            num_frames: Total number of frames to add.
            batch_size: Number of frames to render before each callback.
            callback: Optional callback function called after each batch.
                Receives (current_total_frames, target_total_frames).

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} frames")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_frames, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_frames: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render frames progressively, yielding progress after each batch.

        Args:
            num_frames: Total number of frames to add.
            batch_size: Number of frames to render before each yield.

        Yields:
            Tuple of (current_total_frames, target_total_frames).

        Raises:
            ValueError: If batch_size is not positive.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if num_frames <= 0:
            return

        target_frames = self.frame_count + num_frames

        remaining = num_frames
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_image(batch, rng=self._rng)
            remaining -= batch
            yield (self.frame_count, target_frames)

    def get_result_numpy(self) -> npt.NDArray[np.float32]:
        """Get the latest (single-sample) frame as RGBA, shape (height, width, 4)."""
        return get_result_numpy()

    def get_converged_numpy(self) -> npt.NDArray[np.float32]:
        """Get the unclamped converged image as RGBA, shape (height, width, 4)."""
        return get_converged_numpy()

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the converged image clamped to [0, 1], shape (height, width, 3).

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).
                Use 2.2 for sRGB display.
        """
        image = get_normalized_image_numpy()

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)

        return image

    def get_image_uint8(self, gamma: float = 2.2) -> npt.NDArray[np.uint8]:
        """Get the converged image as an 8-bit array, gamma corrected for display."""
        image = self.get_image_numpy(gamma=gamma)
        return (image * 255).astype(np.uint8)

    def save_image(self, filepath: str | Path, gamma: float = 2.2) -> None:
        """Save the converged image to a file (format from the extension)."""
        image_uint8 = self.get_image_uint8(gamma=gamma)
        PILImage.fromarray(image_uint8, mode="RGB").save(filepath)
        logger.info("Saved %d-frame image to %s", self.frame_count, filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"frames={self.frame_count})"
        )
