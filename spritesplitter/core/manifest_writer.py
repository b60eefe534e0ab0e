"""Manifest and frame export writing logic."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

from . import FrameDescriptor, SpriteSheet
from .errors import EmptyResultError
from .trimmer import trim_alpha
from ..utils import file_tools

logger = logging.getLogger(__name__)

SPINE_VERSION = "3.8.99"
SPINE_FPS = 30
SLOT_NAME = "sprite_slot"


def write_frame_images(frames: Sequence[FrameDescriptor], output_dir: Path) -> list[Path]:
    """Write each frame as frame_000.png, frame_001.png, ..."""

    file_tools.ensure_directory(output_dir)
    paths = []
    for position, frame in enumerate(frames):
        path = output_dir / file_tools.frame_filename(position)
        path.write_bytes(frame.to_png_bytes())
        paths.append(path)
    logger.info("Wrote %s frames to %s", len(paths), output_dir)
    return paths


def build_spine_skeleton(
    frames: Sequence[FrameDescriptor],
    images_dir: Path,
    trim: bool = False,
    fps: int = SPINE_FPS,
) -> dict[str, Any]:
    """Write attachment images and return the Spine skeleton payload.

    With ``trim`` each attachment is cropped to its visible pixels and shifted
    so it stays where it was drawn inside the original frame.
    """

    if not frames:
        raise EmptyResultError("No frames to export.")

    frame_width, frame_height = frames[0].width, frames[0].height
    fx_dir = file_tools.ensure_directory(images_dir / "fx")
    attachments: dict[str, dict[str, float]] = {}
    timeline: list[dict[str, Any]] = []

    for position, frame in enumerate(frames):
        image = frame.image
        width, height = frame.width, frame.height
        offset_x = offset_y = 0.0
        if trim:
            trimmed = trim_alpha(frame.image)
            image, width, height = trimmed.image, trimmed.width, trimmed.height
            offset_x, offset_y = trimmed.spine_offset(frame_width, frame_height)

        stem = Path(file_tools.frame_filename(position)).stem
        image.save(fx_dir / f"{stem}.png", format="PNG")
        attachment = f"fx/{stem}"
        attachments[attachment] = {"x": offset_x, "y": offset_y, "width": width, "height": height}
        timeline.append({"time": round(position / fps, 4), "name": attachment})

    return {
        "skeleton": {
            "hash": "sprite-splitter",
            "spine": SPINE_VERSION,
            "width": frame_width,
            "height": frame_height,
            "images": "./images",
            "audio": "",
        },
        "bones": [{"name": "root"}],
        "slots": [{"name": SLOT_NAME, "bone": "root", "attachment": "fx/frame_000"}],
        "skins": [{"name": "default", "attachments": {SLOT_NAME: attachments}}],
        "animations": {"animation": {"slots": {SLOT_NAME: {"attachment": timeline}}}},
    }


def write_spine_export(
    frames: Sequence[FrameDescriptor],
    output_dir: Path,
    name: str,
    trim: bool = False,
    fps: int = SPINE_FPS,
) -> Path:
    """Lay out images/fx/*.png plus <name>.json under output_dir."""

    file_tools.ensure_directory(output_dir)
    skeleton = build_spine_skeleton(frames, output_dir / "images", trim=trim, fps=fps)
    skeleton_path = output_dir / f"{name}.json"
    skeleton_path.write_text(json.dumps(skeleton, indent=2), encoding="utf-8")
    logger.info("Wrote Spine skeleton to %s", skeleton_path)
    return skeleton_path


def write_sheet_manifest(sheet: SpriteSheet, manifest_path: Path, source: str) -> Path:
    """Create a JSON manifest describing frame coordinates on the sheet."""

    file_tools.ensure_directory(manifest_path.parent)

    frames_payload = {}
    for frame in sheet.frames:
        frames_payload[f"frame_{frame.index:04d}"] = {
            "x": frame.column * sheet.frame_width,
            "y": frame.row * sheet.frame_height,
            "width": frame.width,
            "height": frame.height,
        }

    manifest = {
        "source": source,
        "frames": frames_payload,
        "meta": sheet.describe(),
    }

    manifest_path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    logger.info("Wrote manifest to %s", manifest_path)
    return manifest_path
