"""Command-line entry point for sprite slicing workflows."""

from __future__ import annotations

import argparse
import logging
import math
import sys
from pathlib import Path

from .core import GradientSettings, GradientStop, GridSpec, PipelineSettings, VideoSampleSpec
from .core import manifest_writer, pipeline, video_loader
from .core.errors import ProcessingError, ValidationError, describe_error
from .core.grid_slicer import scale_dimensions, slice_image
from .core.trimmer import trim_alpha
from .main import configure_logging
from .utils import file_tools, validators

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spritesplitter",
        description="Slice sprite sheets into frames, or pack GIFs and videos into sheets.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")
    common.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse arguments and show plan without rendering outputs",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    slicer = commands.add_parser("slice", help="Cut an image into a rows x columns grid of frames", parents=[common])
    slicer.add_argument("input", type=Path, help="Source image (PNG/JPEG/GIF)")
    slicer.add_argument("output", type=Path, help="Directory receiving the frames")
    slicer.add_argument("--rows", type=int, default=4, help="Grid rows (default: 4)")
    slicer.add_argument("--columns", type=int, default=4, help="Grid columns (default: 4)")
    slicer.add_argument("--width", type=int, help="Resample width before slicing (px)")
    slicer.add_argument("--height", type=int, help="Resample height before slicing (px)")
    slicer.add_argument(
        "--stop",
        dest="stops",
        action="append",
        metavar="OFFSET:#RRGGBB",
        help="Gradient-map colour stop; pass at least two to enable the gradient map",
    )
    slicer.add_argument("--spine", action="store_true", help="Write a Spine skeleton instead of plain frames")
    slicer.add_argument("--trim", action="store_true", help="Trim transparent borders in the Spine export")
    slicer.add_argument("--name", help="Export name (default: input file stem)")

    sheet = commands.add_parser("sheet", help="Pack a GIF or video into a sprite sheet", parents=[common])
    sheet.add_argument("input", type=Path, help="Source GIF or video clip")
    sheet.add_argument("output", type=Path, help="Destination sprite sheet path (PNG)")
    sheet.add_argument(
        "--fps",
        type=float,
        default=12.0,
        help="Frames per second sampled from videos (default: 12)",
    )
    sheet.add_argument("--seek-timeout", type=float, default=1.0, help="Seconds to wait per video seek")
    sheet.add_argument(
        "--manifest",
        type=Path,
        help="Optional JSON manifest output for frame positions",
    )

    probe = commands.add_parser("probe", help="Show video metadata and the planned frame count", parents=[common])
    probe.add_argument("input", type=Path, help="Source video clip")
    probe.add_argument("--fps", type=float, default=12.0, help="Sampling rate to plan for (default: 12)")

    trim = commands.add_parser("trim", help="Crop a frame to its visible pixels", parents=[common])
    trim.add_argument("input", type=Path, help="Frame image (PNG)")
    trim.add_argument("output", type=Path, help="Destination PNG")
    return parser


def _gradient_from_args(stops: list[str] | None) -> GradientSettings | None:
    if not stops:
        return None
    parsed = [validators.parse_stop(value) for value in stops]
    return GradientSettings(enabled=True, stops=[GradientStop(offset, color) for offset, color in parsed])


def _run_slice(args: argparse.Namespace) -> int:
    path = validators.validate_media_path(args.input)
    image = pipeline.load_still_image(path.read_bytes())
    width, height = scale_dimensions(image.size, args.width, args.height)
    grid = GridSpec(rows=args.rows, columns=args.columns, width=width, height=height)
    frames = slice_image(image, grid, _gradient_from_args(args.stops))

    if args.spine:
        name = args.name or file_tools.source_name(path)
        target = manifest_writer.write_spine_export(frames, args.output, name, trim=args.trim)
        print(f"Wrote {len(frames)} frames and skeleton {target}")
    else:
        manifest_writer.write_frame_images(frames, args.output)
        print(f"Wrote {len(frames)} frames to {args.output}")
    return 0


def _run_sheet(args: argparse.Namespace) -> int:
    path = validators.validate_media_path(args.input)
    settings = PipelineSettings(fps=args.fps, seek_timeout=args.seek_timeout)
    if path.suffix.lower() in validators.GIF_EXTENSIONS:
        result = pipeline.process_sheet_source(path.read_bytes(), settings)
    else:
        result = pipeline.process_video(path, settings)

    output = args.output.with_suffix(".png")
    file_tools.ensure_directory(output.parent)
    result.sheet.image.save(output)
    if args.manifest:
        manifest_writer.write_sheet_manifest(result.sheet, args.manifest, str(path))

    meta = result.describe()
    print(
        f"Wrote {output}: {meta['frameCount']} frames in {meta['columns']}x{meta['rows']} "
        f"({meta['width']}x{meta['height']}px)"
    )
    for warning in result.warnings:
        logger.warning("%s", warning)
    return 0


def _run_probe(args: argparse.Namespace) -> int:
    metadata = video_loader.load_metadata(args.input)
    validators.validate_fps(args.fps)
    summary = f"{metadata.width}x{metadata.height} @ {metadata.fps:g}fps"
    if not math.isfinite(metadata.duration_seconds):
        print(f"{summary}, unknown duration (resolved while sampling)")
        return 0
    plan = VideoSampleSpec(duration=metadata.duration_seconds, fps=args.fps)
    print(f"{summary}, {metadata.duration_seconds:.2f}s -> {plan.frame_count} frames at {args.fps:g}fps")
    return 0


def _run_trim(args: argparse.Namespace) -> int:
    image = pipeline.load_still_image(args.input.read_bytes())
    trimmed = trim_alpha(image)
    file_tools.ensure_directory(args.output.parent)
    trimmed.image.save(args.output)
    print(f"Trimmed to {trimmed.width}x{trimmed.height} at offset ({trimmed.x}, {trimmed.y})")
    return 0


_COMMANDS = {"slice": _run_slice, "sheet": _run_sheet, "probe": _run_probe, "trim": _run_trim}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.dry_run:
        parser.print_help()
        return 0

    try:
        return _COMMANDS[args.command](args)
    except (ValidationError, ProcessingError) as exc:
        print(describe_error(exc), file=sys.stderr)
        return 1
    except FileNotFoundError as exc:
        print(f"io error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
