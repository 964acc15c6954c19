#!/usr/bin/env python3
"""Render one of the preset scenes to an image file.

Builds the chosen scene, renders it with progressive refinement and writes a
PNG, or a plain-text PPM when the output path ends in ``.ppm``.

Usage:
    python -m examples.render_random_spheres [options]

Options:
    --scene NAME        random, showcase or ground (default: random)
    --width WIDTH       Image width in pixels (default: 600)
    --height HEIGHT     Image height in pixels (default: width / aspect ratio)
    --samples SAMPLES   Number of samples per pixel (default: 100)
    --max-depth DEPTH   Maximum bounces per path (default: 50)
    --seed SEED         Seed for both the scene layout and the render (default: 0)
    --motion-blur       Let the small diffuse spheres bounce (random scene only)
    --output OUTPUT     Output file path (default: random_spheres.png)
    --batch-size SIZE   Samples per progress update (default: 10)
    --preview           Show the result in a Matplotlib window
    --quiet             Suppress progress output
    --verbose           Enable debug logging

Example:
    python -m examples.render_random_spheres --width 300 --samples 20 --output spheres.ppm
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti

SCENES = ("random", "showcase", "ground")
DEFAULT_ASPECT = {"random": 3.0 / 2.0, "showcase": 16.0 / 9.0, "ground": 1.0}


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a preset scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--scene", choices=SCENES, default="random", help="Scene to render")
    parser.add_argument("--width", type=int, default=600, help="Image width in pixels")
    parser.add_argument(
        "--height",
        type=int,
        default=None,
        help="Image height in pixels (default: width / scene aspect ratio)",
    )
    parser.add_argument("--samples", type=int, default=100, help="Samples per pixel")
    parser.add_argument("--max-depth", type=int, default=50, help="Maximum bounces per path")
    parser.add_argument("--seed", type=int, default=0, help="Scene and render seed")
    parser.add_argument(
        "--motion-blur", action="store_true", help="Animate small diffuse spheres"
    )
    parser.add_argument(
        "--output", type=str, default="random_spheres.png", help="Output file (.png or .ppm)"
    )
    parser.add_argument(
        "--batch-size", type=int, default=10, help="Samples per progress update"
    )
    parser.add_argument("--preview", action="store_true", help="Show a Matplotlib preview")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def render_preset(
    scene_name: str = "random",
    width: int = 600,
    height: int | None = None,
    num_samples: int = 100,
    max_depth: int = 50,
    seed: int = 0,
    motion_blur: bool = False,
    output_path: str = "random_spheres.png",
    batch_size: int = 10,
    preview: bool = False,
    quiet: bool = False,
) -> Path:
    """Render a preset scene and save it to a file.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.raytracer.core.integrator import RenderSettings
    from src.raytracer.core.progressive import render_scene
    from src.raytracer.preview.display import show_preview
    from src.raytracer.preview.export import save_image
    from src.raytracer.scene.presets import (
        create_ground_scene,
        create_material_showcase_scene,
        create_random_spheres_scene,
    )

    aspect = DEFAULT_ASPECT[scene_name]
    if height is None:
        height = max(1, int(width / aspect))
    aspect = width / height

    settings = RenderSettings(
        image_width=width,
        image_height=height,
        samples_per_pixel=num_samples,
        max_depth=max_depth,
        seed=seed,
    )

    if not quiet:
        print(f"Creating {scene_name} scene ({width}x{height})...")

    if scene_name == "random":
        scene, camera = create_random_spheres_scene(
            seed=seed, motion_blur=motion_blur, aspect_ratio=aspect
        )
    elif scene_name == "showcase":
        scene, camera = create_material_showcase_scene(aspect_ratio=aspect)
    else:
        scene, camera = create_ground_scene(aspect_ratio=aspect)

    if not quiet:
        print(f"Rendering {num_samples} samples per pixel...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    pixels = render_scene(
        scene, camera, settings, callback=progress_callback, batch_size=batch_size
    )

    if not quiet:
        print()

    output_file = Path(output_path)
    save_image(pixels, output_file)

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    if preview:
        show_preview(pixels, title=f"{scene_name} - {num_samples} SPP")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_preset(
            scene_name=args.scene,
            width=args.width,
            height=args.height,
            num_samples=args.samples,
            max_depth=args.max_depth,
            seed=args.seed,
            motion_blur=args.motion_blur,
            output_path=args.output,
            batch_size=args.batch_size,
            preview=args.preview,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
