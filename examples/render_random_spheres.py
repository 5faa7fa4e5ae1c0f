#!/usr/bin/env python3
"""Render the random sphere scene to a PNG file.

Generates a field of non-overlapping spheres on the ground plane, lights it
with an environment image (or a procedural gradient sky) and accumulates
jittered frames into a converged image.

Usage:
    python -m examples.render_random_spheres [options]

Options:
    --width WIDTH         Image width in pixels (default: 640)
    --height HEIGHT       Image height in pixels (default: 360)
    --frames FRAMES       Number of accumulated frames (default: 64)
    --output OUTPUT       Output file path (default: random_spheres.png)
    --environment PATH    Equirectangular sky image (default: gradient sky)
    --scene-seed SEED     Seed of the sphere layout (default: 0)
    --metal-probability P Chance a sphere is metallic (default: 1.0)
    --no-energy-clamp     Keep the raw Phong weight per bounce
    --arch ARCH           Taichi backend (default: gpu)
    --quiet               Suppress progress output

Example:
    python -m examples.render_random_spheres --frames 256 --metal-probability 0.5
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

logger = logging.getLogger("render_random_spheres")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the random sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=640, help="Image width in pixels (default: 640)")
    parser.add_argument("--height", type=int, default=360, help="Image height in pixels (default: 360)")
    parser.add_argument("--frames", type=int, default=64, help="Number of accumulated frames (default: 64)")
    parser.add_argument(
        "--output",
        type=str,
        default="random_spheres.png",
        help="Output file path (default: random_spheres.png)",
    )
    parser.add_argument(
        "--environment",
        type=str,
        default=None,
        help="Equirectangular environment image (default: procedural gradient sky)",
    )
    parser.add_argument(
        "--environment-intensity",
        type=float,
        default=1.0,
        help="Multiplier applied to the environment (default: 1.0)",
    )
    parser.add_argument("--scene-seed", type=int, default=0, help="Seed of the sphere layout (default: 0)")
    parser.add_argument(
        "--metal-probability",
        type=float,
        default=1.0,
        help="Chance a sphere is metallic (default: 1.0)",
    )
    parser.add_argument(
        "--no-energy-clamp",
        action="store_true",
        help="Keep the raw Phong weight per bounce (brighter metals, more noise)",
    )
    parser.add_argument("--batch-size", type=int, default=8, help="Frames per progress update (default: 8)")
    parser.add_argument("--arch", type=str, default="gpu", help="Taichi backend (default: gpu)")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_random_spheres(
    width: int = 640,
    height: int = 360,
    num_frames: int = 64,
    output_path: str = "random_spheres.png",
    environment: str | None = None,
    environment_intensity: float = 1.0,
    scene_seed: int = 0,
    metal_probability: float = 1.0,
    batch_size: int = 8,
    energy_clamp: bool = True,
    quiet: bool = False,
) -> Path:
    """Render the random sphere scene and save it as a PNG.

    Returns:
        Path to the saved image file.
    """
    # Imported after init_taichi() so the Taichi fields land on the chosen backend
    from gpu_raytracing.core.progressive import ProgressiveRenderer
    from gpu_raytracing.preview.export import save_png
    from gpu_raytracing.scene.environment import (
        create_gradient_sky,
        load_environment_image,
        set_environment_image,
        set_environment_intensity,
    )
    from gpu_raytracing.scene.random_spheres import (
        RandomSphereParams,
        create_default_camera,
        create_random_sphere_scene,
    )

    scene = create_random_sphere_scene(
        RandomSphereParams(seed=scene_seed, metal_probability=metal_probability)
    )
    logger.info("Scene has %d spheres", scene.get_sphere_count())

    if environment is not None:
        load_environment_image(environment)
    else:
        set_environment_image(create_gradient_sky())
    set_environment_intensity(environment_intensity)

    renderer = ProgressiveRenderer(width, height, seed=scene_seed)
    renderer.set_camera(create_default_camera(width / height))
    renderer.set_directional_light((-0.3, -1.0, 0.4), 1.0)
    renderer.set_energy_clamp(energy_clamp)

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            frames_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} frames "
                f"({progress_pct:.1f}%) - {frames_per_sec:.1f} fps",
                end="",
                flush=True,
            )

    renderer.render(num_frames=num_frames, batch_size=batch_size, callback=progress_callback)
    if not quiet:
        print()

    output_file = Path(output_path)
    save_png(renderer, output_file, tone_map="reinhard", gamma=2.2)

    logger.info("Saved %s in %.2fs", output_file.absolute(), time.time() - start_time)
    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from gpu_raytracing.config import RuntimeConfig, init_taichi

    try:
        init_taichi(RuntimeConfig(arch=args.arch))
        render_random_spheres(
            width=args.width,
            height=args.height,
            num_frames=args.frames,
            output_path=args.output,
            environment=args.environment,
            environment_intensity=args.environment_intensity,
            scene_seed=args.scene_seed,
            metal_probability=args.metal_probability,
            batch_size=args.batch_size,
            energy_clamp=not args.no_energy_clamp,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
