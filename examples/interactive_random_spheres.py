#!/usr/bin/env python3
"""Interactive random sphere renderer.

Opens a GGUI window that keeps refining the random sphere scene while the
view is still and restarts accumulation whenever the camera or light moves.

Usage:
    python -m examples.interactive_random_spheres [--environment sky.png]

Controls:
    W/S, A/D     orbit the camera
    Q/E          zoom in / out
    Arrow keys   rotate the directional light
    Export PNG   save the current image with a timestamp
"""

from __future__ import annotations

import argparse
import logging
import sys

logger = logging.getLogger("interactive_random_spheres")


def main() -> int:
    """Main entry point for the interactive renderer.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = argparse.ArgumentParser(description="Interactive random sphere renderer.")
    parser.add_argument("--width", type=int, default=960)
    parser.add_argument("--height", type=int, default=540)
    parser.add_argument("--environment", type=str, default=None, help="Equirectangular sky image")
    parser.add_argument("--scene-seed", type=int, default=0)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    from gpu_raytracing.config import RuntimeConfig, init_taichi

    init_taichi(RuntimeConfig.from_env())

    # Import after Taichi initialization
    from gpu_raytracing.preview.interactive import InteractivePreview
    from gpu_raytracing.scene.environment import (
        create_gradient_sky,
        load_environment_image,
        set_environment_image,
    )
    from gpu_raytracing.scene.random_spheres import (
        RandomSphereParams,
        create_default_camera,
        create_random_sphere_scene,
    )

    if not InteractivePreview.is_display_available():
        logger.error("No display available; the interactive preview needs a graphical environment")
        return 1

    create_random_sphere_scene(RandomSphereParams(seed=args.scene_seed))
    if args.environment is not None:
        load_environment_image(args.environment)
    else:
        set_environment_image(create_gradient_sky())

    preview = InteractivePreview(
        args.width,
        args.height,
        camera=create_default_camera(args.width / args.height),
    )

    logger.info("WASD/QE move the camera, arrow keys rotate the light; close the window to exit")
    try:
        preview.run_reactive()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        preview.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
