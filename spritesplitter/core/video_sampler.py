"""Fixed-fps video sampling driven by seek-and-wait on a single decode head."""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import List, Optional

from . import DEFAULT_FPS, MAX_VIDEO_FRAMES, FrameDescriptor, SpriteSheet, VideoSampleSpec
from .errors import DecodeError, EmptyResultError, SeekTimeoutError
from .spritesheet_builder import allocate_sheet, cell_origin, check_cancelled, resolve_grid
from .video_loader import VideoHandle
from ..utils import validators

logger = logging.getLogger(__name__)

PROBE_SEEK_TIME = 1e4
START_TOLERANCE = 0.1


@dataclass
class SheetResult:
    """A packed sheet plus any recovered seek timeouts."""

    sheet: SpriteSheet
    warnings: List[SeekTimeoutError] = field(default_factory=list)

    def describe(self) -> dict[str, int]:
        return self.sheet.describe()


def _is_bounded(duration: Optional[float]) -> bool:
    return duration is not None and math.isfinite(duration) and duration > 0


def _wait(future: Future, timeout: float) -> bool:
    """Block until the seek settles; False means it timed out."""

    try:
        future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        return False
    except Exception as exc:
        raise DecodeError(f"Video decoding failed: {exc}") from exc
    return True


def resolve_duration(handle: VideoHandle, probe_wait: float = 0.2) -> float:
    """Return a finite duration, nudging the decoder with a far seek if needed."""

    duration = handle.duration
    if _is_bounded(duration):
        return duration

    logger.info("Video reports unbounded duration; probing with a far seek")
    _wait(handle.seek(PROBE_SEEK_TIME), probe_wait)
    duration = handle.duration
    if not _is_bounded(duration):
        raise DecodeError("Could not determine video duration. Try converting to a standard MP4.")

    _wait(handle.seek(0.0), probe_wait)
    logger.debug("Resolved duration to %.3fs", duration)
    return duration


def _at_start(handle: VideoHandle) -> bool:
    position = handle.position
    return position is not None and position < START_TOLERANCE and handle.current_frame() is not None


def sample_video(
    handle: VideoHandle,
    fps: float = DEFAULT_FPS,
    seek_timeout: float = 1.0,
    probe_wait: float = 0.2,
    max_frames: int = MAX_VIDEO_FRAMES,
    cancel_event: Optional[threading.Event] = None,
) -> SheetResult:
    """Capture ``floor(duration * fps)`` frames (1..max_frames) into a sheet.

    A seek that does not settle within ``seek_timeout`` is not retried: the
    frame currently decoded is captured in its place and the timeout is
    attached to the result.
    """

    validators.validate_fps(fps)
    width, height = handle.width, handle.height
    if not width or not height:
        raise DecodeError("Invalid video dimensions.")

    check_cancelled(cancel_event)
    spec = VideoSampleSpec(duration=resolve_duration(handle, probe_wait), fps=fps, max_frames=max_frames)
    frame_count = spec.frame_count
    columns, rows = resolve_grid(frame_count)
    sheet = allocate_sheet(columns, rows, width, height)
    logger.info(
        "Sampling %s frames at %sfps from %.3fs video into %sx%s grid",
        frame_count,
        fps,
        spec.duration,
        columns,
        rows,
    )

    warnings: list[SeekTimeoutError] = []
    descriptors: list[FrameDescriptor] = []
    captured = 0
    for idx in range(frame_count):
        check_cancelled(cancel_event)
        target = spec.sample_time(idx)
        if idx == 0 and _at_start(handle):
            logger.debug("Decode head already at start; skipping first seek")
        elif not _wait(handle.seek(target), seek_timeout):
            timeout = SeekTimeoutError(idx, target, seek_timeout)
            logger.warning("%s; reusing the current picture", timeout)
            warnings.append(timeout)

        x, y = cell_origin(idx, columns, width, height)
        frame = handle.current_frame()
        if frame is None:
            logger.warning("No picture decoded yet for frame %s; leaving cell empty", idx)
        else:
            sheet.paste(frame.crop((0, 0, width, height)), (x, y))
            captured += 1
        descriptors.append(
            FrameDescriptor(
                index=idx,
                row=idx // columns,
                column=idx % columns,
                width=width,
                height=height,
                image=sheet.crop((x, y, x + width, y + height)),
            )
        )

    if captured == 0:
        raise EmptyResultError("No frames could be extracted from the video.")

    return SheetResult(
        sheet=SpriteSheet(
            image=sheet,
            columns=columns,
            rows=rows,
            frame_count=frame_count,
            frame_width=width,
            frame_height=height,
            frames=descriptors,
        ),
        warnings=warnings,
    )
