"""Preview module for output and visualization.

Components:
    display: Tone mapping, gamma and Matplotlib preview
    export: PNG (Pillow) and raw NumPy export
    interactive: Taichi GGUI window with orbit camera and light controls

Example:
    >>> from gpu_raytracing.preview import show_preview, save_png
    >>> from gpu_raytracing.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(512, 288)
    >>> renderer.render(64)
    >>> show_preview(renderer, tone_map="reinhard")
    >>> save_png(renderer, "output.png", tone_map="reinhard")
"""

from gpu_raytracing.preview.display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    show_comparison,
    show_preview,
    tone_map_exposure,
    tone_map_reinhard,
)
from gpu_raytracing.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_npy,
    save_png,
    save_png_from_array,
)
from gpu_raytracing.preview.interactive import InteractivePreview, LightRig, OrbitCamera

__all__ = [
    # Interactive preview
    "InteractivePreview",
    "LightRig",
    "OrbitCamera",
    # Display functions
    "show_preview",
    "show_comparison",
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    # Export functions
    "save_png",
    "save_png_from_array",
    "save_npy",
    "image_to_uint8",
    "compute_rmse",
]
