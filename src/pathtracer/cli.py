"""Command-line entry point: render a preset or JSON scene to PPM or PNG.

Usage:
    python -m pathtracer [options] > image.ppm

Options:
    --scene NAME        Scene preset (default: two_spheres)
    --scene-file PATH   Load spheres from a JSON scene file instead
    --width WIDTH       Image width in pixels (default: from the preset)
    --samples SAMPLES   Samples per pixel (default: from the preset)
    --max-depth DEPTH   Maximum ray bounces (default: from the preset)
    --seed SEED         Random seed for sampling and random scenes (default: 0)
    --arch ARCH         Taichi backend: cpu, gpu, cuda, vulkan, metal (default: cpu)
    --output PATH       Output file, "-" for stdout (default: -)
    --format FORMAT     ppm or png (default: from the output extension)
    --batch-size SIZE   Samples per progress update (default: 1)
    --quiet             Only log warnings and errors

The image goes to stdout or the output file; progress and errors are logged
to stderr.

Example:
    python -m pathtracer --scene materials --width 200 --samples 20 --output materials.png
"""

import argparse
import contextlib
import dataclasses
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from pathtracer.errors import ConfigurationError

logger = logging.getLogger("pathtracer")

ARCHES = ("cpu", "gpu", "cuda", "vulkan", "metal")
FORMATS = ("ppm", "png")

# Output extensions and the format they select; no extension writes PPM
SUFFIX_FORMATS = {".ppm": "ppm", ".png": "png", "": "ppm"}

SCENES = ("two_spheres", "materials", "defocus", "final")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="pathtracer",
        description="Render a scene of spheres with a Monte Carlo path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        choices=SCENES,
        default="two_spheres",
        help="Scene preset (default: two_spheres)",
    )
    parser.add_argument(
        "--scene-file",
        type=str,
        default=None,
        help="JSON scene file; the camera still comes from --scene",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=None,
        help="Image width in pixels (default: from the preset)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=None,
        help="Samples per pixel (default: from the preset)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum ray bounces (default: from the preset)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed for sampling and random scenes (default: 0)",
    )
    parser.add_argument(
        "--arch",
        choices=ARCHES,
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="-",
        help='Output file path, "-" for stdout (default: -)',
    )
    parser.add_argument(
        "--format",
        choices=FORMATS,
        default=None,
        help="Output format (default: from the output extension, ppm for stdout)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=1,
        help="Samples per progress update (default: 1)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only log warnings and errors",
    )
    return parser.parse_args(argv)


def configure_logging(quiet: bool = False) -> None:
    """Send log records to stderr so stdout only carries the image."""
    logging.basicConfig(
        level=logging.WARNING if quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def init_taichi(arch: str = "cpu") -> None:
    """Initialize the Taichi runtime.

    Must run before any pathtracer module that declares Taichi fields is
    imported.

    Args:
        arch: Backend name, one of ARCHES. "gpu" picks any available GPU
            backend and falls back to the CPU.
    """
    if arch not in ARCHES:
        raise ConfigurationError(f"Unknown Taichi arch {arch!r}; choose from {', '.join(ARCHES)}")

    # The Taichi banner is printed on import; keep it off stdout
    with contextlib.redirect_stdout(sys.stderr):
        import taichi as ti

    ti.init(arch=getattr(ti, arch), log_level=ti.WARN)
    logger.info("Taichi initialized (arch=%s)", arch)


def _resolve_format(output: str, fmt: str | None) -> str:
    if fmt is not None:
        if output == "-" and fmt != "ppm":
            raise ConfigurationError("Only PPM can be written to stdout; pass --output")
        return fmt
    if output == "-":
        return "ppm"
    suffix = Path(output).suffix.lower()
    if suffix not in SUFFIX_FORMATS:
        raise ConfigurationError(
            f"Cannot tell the image format from {suffix!r}; use .ppm or .png, or pass --format"
        )
    return SUFFIX_FORMATS[suffix]


def render_scene(args: argparse.Namespace) -> None:
    """Build the scene and camera from the arguments, render and write the image."""
    # Lazy imports to allow Taichi initialization first
    from pathtracer.core.renderer import Renderer
    from pathtracer.output.export import save_png, save_ppm, write_ppm
    from pathtracer.scene.manager import Scene
    from pathtracer.scene.presets import final, get_preset

    fmt = _resolve_format(args.output, args.format)

    # The seed drives both the random sphere field and the sample streams
    preset = get_preset(args.scene)
    scene, camera = final(seed=args.seed) if preset is final else preset()

    if args.scene_file is not None:
        scene = Scene.load_json(args.scene_file)
        logger.info("Loaded %d spheres from %s", len(scene), args.scene_file)

    overrides = {}
    if args.width is not None:
        overrides["image_width"] = args.width
    if args.samples is not None:
        overrides["samples_per_pixel"] = args.samples
    if args.max_depth is not None:
        overrides["max_depth"] = args.max_depth
    camera = dataclasses.replace(camera, **overrides)

    renderer = Renderer(camera, seed=args.seed)
    start_time = time.perf_counter()

    def progress_callback(current: int, target: int) -> None:
        elapsed = time.perf_counter() - start_time
        progress_pct = (current / target) * 100 if target > 0 else 0
        logger.info(
            "Progress: %d/%d samples (%.1f%%) - %.1fs elapsed",
            current,
            target,
            progress_pct,
            elapsed,
        )

    image = renderer.render(scene, batch_size=args.batch_size, callback=progress_callback)

    if args.output == "-":
        write_ppm(image, sys.stdout)
        sys.stdout.flush()
    elif fmt == "png":
        save_png(image, args.output)
    else:
        save_ppm(image, args.output)

    logger.info(
        "Done: %dx%d in %.2fs -> %s",
        camera.image_width,
        camera.image_height,
        time.perf_counter() - start_time,
        "stdout" if args.output == "-" else Path(args.output).absolute(),
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args.quiet)

    try:
        init_taichi(args.arch)
        render_scene(args)
        return 0
    except Exception as e:
        logger.error("Error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
