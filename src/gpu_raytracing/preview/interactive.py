"""Interactive preview window using Taichi GGUI.

The window shows the converged image of a ProgressiveRenderer and adds one
frame per window refresh. Keyboard controls:

    W / S        orbit the camera up / down
    A / D        orbit the camera left / right
    Q / E        move the camera closer / farther
    Arrow keys   rotate the directional light

Every control goes through the renderer's change detection, so moving the
camera or light restarts accumulation while an idle view keeps converging.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from gpu_raytracing.preview.interactive import InteractivePreview
    >>> from gpu_raytracing.scene.random_spheres import create_random_sphere_scene
    >>>
    >>> create_random_sphere_scene()
    >>> preview = InteractivePreview(960, 540)
    >>> preview.run_reactive()  # Renders continuously until window closed
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti

from gpu_raytracing.camera.pinhole import PinholeCamera

if TYPE_CHECKING:
    import numpy.typing as npt

    from gpu_raytracing.core.progressive import ProgressiveRenderer
    from gpu_raytracing.preview.display import ToneMapMethod

logger = logging.getLogger(__name__)

# Camera orbit step per key press frame (radians) and zoom factor
ORBIT_STEP = math.radians(2.0)
ZOOM_STEP = 1.03

# Keep the camera off the poles so vup is never parallel to the view direction
MAX_PITCH = math.radians(89.0)


def spherical_direction(yaw: float, pitch: float) -> tuple[float, float, float]:
    """Unit vector for a yaw around +Y (0 = toward -Z) and a pitch above the XZ plane."""
    cos_pitch = math.cos(pitch)
    return (
        cos_pitch * math.sin(yaw),
        math.sin(pitch),
        -cos_pitch * math.cos(yaw),
    )


@dataclass
class OrbitCamera:
    """Camera orbiting a target point at a fixed distance.

    Attributes:
        target: Point the camera looks at.
        distance: Distance from the target.
        yaw: Angle around +Y in radians; 0 places the camera on the -Z side.
        pitch: Elevation above the ground in radians.
        vfov: Vertical field of view in degrees.
    """

    target: tuple[float, float, float] = (0.0, 0.0, 0.0)
    distance: float = 170.0
    yaw: float = 0.0
    pitch: float = math.radians(20.0)
    vfov: float = 60.0

    @classmethod
    def from_camera(cls, camera: PinholeCamera) -> OrbitCamera:
        """Orbit parameters reproducing a look-at camera."""
        offset = np.subtract(camera.lookfrom, camera.lookat)
        distance = float(np.linalg.norm(offset))
        pitch = math.asin(max(-1.0, min(1.0, offset[1] / distance)))
        yaw = math.atan2(offset[0], -offset[2])
        return cls(
            target=tuple(float(c) for c in camera.lookat),
            distance=distance,
            yaw=yaw,
            pitch=pitch,
            vfov=camera.vfov,
        )

    def rotate(self, delta_yaw: float, delta_pitch: float) -> None:
        self.yaw = (self.yaw + delta_yaw) % (2.0 * math.pi)
        self.pitch = max(-MAX_PITCH, min(MAX_PITCH, self.pitch + delta_pitch))

    def zoom(self, factor: float) -> None:
        self.distance = max(1e-3, self.distance * factor)

    def to_camera(self, aspect_ratio: float) -> PinholeCamera:
        direction = spherical_direction(self.yaw, self.pitch)
        lookfrom = tuple(t + self.distance * d for t, d in zip(self.target, direction))
        return PinholeCamera(
            lookfrom=lookfrom,
            lookat=self.target,
            vup=(0.0, 1.0, 0.0),
            vfov=self.vfov,
            aspect_ratio=aspect_ratio,
        )


@dataclass
class LightRig:
    """Directional light steered by yaw and pitch of its travel direction."""

    yaw: float = math.radians(30.0)
    pitch: float = math.radians(-45.0)
    intensity: float = 1.0

    def rotate(self, delta_yaw: float, delta_pitch: float) -> None:
        self.yaw = (self.yaw + delta_yaw) % (2.0 * math.pi)
        self.pitch = max(-MAX_PITCH, min(MAX_PITCH, self.pitch + delta_pitch))

    @property
    def direction(self) -> tuple[float, float, float]:
        return spherical_direction(self.yaw, self.pitch)


class InteractivePreview:
    """Interactive preview window using Taichi GGUI.

    The window and canvas are created lazily on the first call that needs
    them, so the object can be built (and its controls tested) without a
    display.

    Attributes:
        width: Window width in pixels.
        height: Window height in pixels.
        orbit: Camera orbit controller.
        light: Directional light controller.
        display_image: Taichi field holding the displayed RGB image.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        title: str = "GPU Ray Tracing - Interactive Preview",
        camera: PinholeCamera | None = None,
        renderer: ProgressiveRenderer | None = None,
        tone_map: ToneMapMethod = "reinhard",
    ) -> None:
        self.width = width
        self.height = height
        self._title = title
        self._renderer = renderer
        self.tone_map = tone_map
        self.exposure = 1.0

        self.orbit = OrbitCamera.from_camera(camera) if camera is not None else OrbitCamera()
        self.light = LightRig()

        self._window: ti.ui.Window | None = None
        self._canvas: ti.ui.Canvas | None = None

        # Shape is (width, height) for Taichi field, RGB values stored as vec3
        self.display_image: ti.MatrixField = ti.Vector.field(3, dtype=ti.f32, shape=(width, height))

    def _initialize_window(self) -> None:
        if self._window is not None:
            return

        self._window = ti.ui.Window(name=self._title, res=(self.width, self.height), vsync=True)
        self._canvas = self._window.get_canvas()

    @property
    def window(self) -> ti.ui.Window:
        """Get the Taichi GGUI window, initializing if needed."""
        self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def canvas(self) -> ti.ui.Canvas:
        self._initialize_window()
        assert self._canvas is not None
        return self._canvas

    @property
    def renderer(self) -> ProgressiveRenderer:
        """The progressive renderer, created on first use."""
        if self._renderer is None:
            from gpu_raytracing.core.progressive import ProgressiveRenderer

            self._renderer = ProgressiveRenderer(self.width, self.height)
        return self._renderer

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def update_image(self, image: npt.NDArray[np.float32]) -> None:
        """Update the display image from a (height, width, 3) array in [0, 1].

        Raises:
            ValueError: If image shape doesn't match (height, width, 3).
        """
        expected_shape = (self.height, self.width, 3)
        if image.shape != expected_shape:
            raise ValueError(f"Image shape {image.shape} doesn't match expected {expected_shape}")

        # (H, W, 3) top-first -> (W, H, 3) bottom-first
        self.display_image.from_numpy(
            np.ascontiguousarray(np.transpose(np.flipud(image), (1, 0, 2)), dtype=np.float32)
        )

    def apply_controls(self, pressed: set[str]) -> None:
        """Move the camera and light for the keys held this frame.

        Args:
            pressed: Held keys, as lowercase letters or "up", "down",
                "left", "right".
        """
        if "a" in pressed:
            self.orbit.rotate(-ORBIT_STEP, 0.0)
        if "d" in pressed:
            self.orbit.rotate(ORBIT_STEP, 0.0)
        if "w" in pressed:
            self.orbit.rotate(0.0, ORBIT_STEP)
        if "s" in pressed:
            self.orbit.rotate(0.0, -ORBIT_STEP)
        if "q" in pressed:
            self.orbit.zoom(1.0 / ZOOM_STEP)
        if "e" in pressed:
            self.orbit.zoom(ZOOM_STEP)

        if "left" in pressed:
            self.light.rotate(-ORBIT_STEP, 0.0)
        if "right" in pressed:
            self.light.rotate(ORBIT_STEP, 0.0)
        if "up" in pressed:
            self.light.rotate(0.0, ORBIT_STEP)
        if "down" in pressed:
            self.light.rotate(0.0, -ORBIT_STEP)

    def sync_renderer(self) -> bool:
        """Push the current camera and light to the renderer.

        Returns:
            True if either changed (accumulation was restarted).
        """
        camera_changed = self.renderer.set_camera(self.orbit.to_camera(self.aspect_ratio))
        light_changed = self.renderer.set_directional_light(
            self.light.direction, self.light.intensity
        )
        return camera_changed or light_changed

    def step(self) -> None:
        """Render one frame and refresh the display image."""
        from gpu_raytracing.preview.display import process_image_for_display

        self.sync_renderer()
        self.renderer.render(num_frames=1)
        self.update_image(
            process_image_for_display(
                self.renderer.get_converged_numpy(),
                tone_map=self.tone_map,
                exposure=self.exposure,
            )
        )

    def _pressed_keys(self) -> set[str]:
        keys = {
            "w": "w",
            "a": "a",
            "s": "s",
            "d": "d",
            "q": "q",
            "e": "e",
            "up": ti.ui.UP,
            "down": ti.ui.DOWN,
            "left": ti.ui.LEFT,
            "right": ti.ui.RIGHT,
        }
        return {name for name, key in keys.items() if self.window.is_pressed(key)}

    def is_running(self) -> bool:
        return self.window.running

    def show_frame(self) -> None:
        self.canvas.set_image(self.display_image)
        self.window.show()

    def run_reactive(self) -> None:
        """Render continuously until the window is closed."""
        self._initialize_window()

        while self.is_running():
            self.apply_controls(self._pressed_keys())
            self.step()
            self._draw_gui_panel()
            self.show_frame()

    def _draw_gui_panel(self) -> None:
        with self.window.GUI.sub_window("Render", 0.02, 0.02, 0.28, 0.2) as gui:
            gui.text(f"Frames: {self.renderer.frame_count}")
            self.exposure = gui.slider_float("Exposure", self.exposure, minimum=0.1, maximum=4.0)
            intensity = gui.slider_float(
                "Light intensity", self.light.intensity, minimum=0.0, maximum=5.0
            )
            if abs(intensity - self.light.intensity) > 1e-6:
                self.light.intensity = intensity
            if gui.button("Export PNG"):
                self.export_png()

    def export_png(self, filename: str | None = None) -> str:
        """Save the converged image to a (timestamped by default) PNG file.

        Returns:
            The path written.
        """
        from gpu_raytracing.preview.export import save_png

        if filename is None:
            filename = f"random_spheres_{datetime.now().strftime('%Y%m%d_%H%M%S')}.png"
        save_png(self.renderer, filename, tone_map=self.tone_map, exposure=self.exposure)
        logger.info("Exported %s (%d frames)", filename, self.renderer.frame_count)
        return filename

    def close(self) -> None:
        if self._window is not None:
            self._window.running = False

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering."""
        display = os.environ.get("DISPLAY")
        wayland = os.environ.get("WAYLAND_DISPLAY")

        if os.name == "nt":
            return True

        if os.uname().sysname == "Darwin":
            # SSH session without X forwarding
            return not (os.environ.get("SSH_CONNECTION") and not display)

        return bool(display or wayland)
