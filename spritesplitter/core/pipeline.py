"""Top-level jobs: slice a still image, composite a GIF, sample a video.

Each job runs start to finish on the calling thread and either returns a
complete result or raises; nothing partial is handed back.
"""

from __future__ import annotations

import io
import logging
import threading
from pathlib import Path
from typing import List, Optional

from PIL import Image, UnidentifiedImageError

from . import FrameDescriptor, GradientSettings, GridSpec, PipelineSettings, SpriteSheet
from .errors import DecodeError
from .gif_compositor import iter_composited_frames
from .gif_loader import decode_gif, is_gif
from .grid_slicer import slice_image
from .spritesheet_builder import assemble_sprite_sheet
from .video_loader import open_video, open_video_bytes
from .video_sampler import SheetResult, sample_video

logger = logging.getLogger(__name__)

_IMAGE_SIGNATURES = (b"\x89PNG\r\n\x1a\n", b"\xff\xd8\xff")


def detect_source_kind(data: bytes) -> str:
    """Classify encoded bytes as 'gif', 'image' or 'video'."""

    if is_gif(data):
        return "gif"
    if data.startswith(_IMAGE_SIGNATURES) or (data[:4] == b"RIFF" and data[8:12] == b"WEBP"):
        return "image"
    return "video"


def load_still_image(data: bytes) -> Image.Image:
    """Decode still-image bytes into an RGBA raster."""

    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise DecodeError(f"Could not decode image: {exc}") from exc


def slice_source(
    data: bytes,
    grid: GridSpec,
    gradient: Optional[GradientSettings] = None,
) -> List[FrameDescriptor]:
    """Decode a still image (first frame for GIFs) and slice it into a grid."""

    return slice_image(load_still_image(data), grid, gradient)


def process_gif(data: bytes, cancel_event: Optional[threading.Event] = None) -> SpriteSheet:
    """Composite every GIF frame and pack them into a near-square sheet."""

    document = decode_gif(data)
    # Frames are composited lazily so only the sheet and one snapshot are live.
    composited = iter_composited_frames(document.frames, document.width, document.height, cancel_event)
    return assemble_sprite_sheet(
        lambda _index: next(composited),
        len(document.frames),
        document.width,
        document.height,
        cancel_event,
    )


def process_video(
    video_path: Path,
    settings: Optional[PipelineSettings] = None,
    cancel_event: Optional[threading.Event] = None,
) -> SheetResult:
    """Sample a video file at fixed fps into a sheet."""

    settings = settings or PipelineSettings()
    with open_video(video_path) as handle:
        return _sample(handle, settings, cancel_event)


def process_video_bytes(
    data: bytes,
    settings: Optional[PipelineSettings] = None,
    cancel_event: Optional[threading.Event] = None,
    suffix: str = ".mp4",
) -> SheetResult:
    """Sample encoded video bytes; the temporary file is removed afterwards."""

    settings = settings or PipelineSettings()
    with open_video_bytes(data, suffix=suffix) as handle:
        return _sample(handle, settings, cancel_event)


def _sample(handle, settings: PipelineSettings, cancel_event: Optional[threading.Event]) -> SheetResult:
    result = sample_video(
        handle,
        fps=settings.fps,
        seek_timeout=settings.seek_timeout,
        probe_wait=settings.probe_wait,
        max_frames=settings.max_frames,
        cancel_event=cancel_event,
    )
    if result.warnings:
        logger.info("Video sampled with %s seek timeouts", len(result.warnings))
    return result


def process_sheet_source(
    data: bytes,
    settings: Optional[PipelineSettings] = None,
    cancel_event: Optional[threading.Event] = None,
    suffix: str = ".mp4",
) -> SheetResult:
    """Build a sheet from GIF or video bytes; GIFs never carry warnings."""

    kind = detect_source_kind(data)
    if kind == "gif":
        return SheetResult(sheet=process_gif(data, cancel_event))
    if kind == "image":
        raise DecodeError("Still images are sliced directly; expected a GIF or a video")
    return process_video_bytes(data, settings, cancel_event, suffix=suffix)
