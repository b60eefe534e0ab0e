"""Video loading, metadata discovery and a seekable decode handle (moviepy)."""

from __future__ import annotations

import logging
import math
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from PIL import Image

from . import VideoMetadata
from .errors import DecodeError, InvalidMediaError, ProcessingError
from ..utils import validators

logger = logging.getLogger(__name__)


class VideoHandle(ABC):
    """A single decode head that can be seeked and read back.

    ``seek`` returns a future resolved once the picture at the requested time
    is decoded; ``current_frame`` returns whatever picture was decoded last.
    """

    width: int = 0
    height: int = 0

    @property
    @abstractmethod
    def duration(self) -> float:
        ...

    @property
    @abstractmethod
    def position(self) -> Optional[float]:
        ...

    @abstractmethod
    def seek(self, timestamp: float) -> Future:
        ...

    @abstractmethod
    def current_frame(self) -> Optional[Image.Image]:
        ...

    def close(self) -> None:
        pass

    def __enter__(self) -> "VideoHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class MoviepyVideoHandle(VideoHandle):
    """Decode frames from a moviepy clip on one background worker."""

    def __init__(self, path: Path, cleanup_path: bool = False):
        clip_class = _resolve_video_file_clip()
        _ensure_ffmpeg_available()
        try:
            self._clip = clip_class(str(path), audio=False)
        except Exception as exc:  # pragma: no cover - backend dependent
            raise InvalidMediaError(path, reason=f"Could not open video: {exc}") from exc

        self.path = path
        self.width, self.height = self._clip.size
        self._cleanup_path = cleanup_path
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="video-decode")
        self._lock = threading.Lock()
        self._frame: Optional[Image.Image] = None
        self._position: Optional[float] = None

    @property
    def duration(self) -> float:
        value = getattr(self._clip, "duration", None)
        return float(value) if value else math.inf

    @property
    def position(self) -> Optional[float]:
        with self._lock:
            return self._position

    def seek(self, timestamp: float) -> Future:
        return self._executor.submit(self._decode_at, timestamp)

    def _decode_at(self, timestamp: float) -> None:
        frame = Image.fromarray(self._clip.get_frame(timestamp)).convert("RGBA")
        with self._lock:
            self._frame = frame
            self._position = timestamp

    def current_frame(self) -> Optional[Image.Image]:
        with self._lock:
            return self._frame

    def close(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)
        try:
            self._clip.close()
        except Exception:  # pragma: no cover - moviepy internals
            logger.debug("Clip close failed for %s", self.path)
        if self._cleanup_path:
            Path(self.path).unlink(missing_ok=True)


def load_metadata(video_path: Path) -> VideoMetadata:
    """Return basic metadata for the selected video."""

    validated_path = validators.validate_media_path(video_path)
    _ensure_ffmpeg_available()
    clip_class = _resolve_video_file_clip()

    try:
        with clip_class(str(validated_path), audio=False) as clip:
            width, height = clip.size
            fps = float(getattr(clip, "fps", 24.0) or 24.0)
            duration_seconds = float(getattr(clip, "duration", 0.0) or math.inf)
    except Exception as exc:  # pragma: no cover - backend dependent
        raise InvalidMediaError(validated_path, reason=f"Could not read metadata: {exc}") from exc

    logger.debug(
        "Loaded metadata for %s -> %sx%s @ %sfps, %ss",
        validated_path,
        width,
        height,
        fps,
        duration_seconds,
    )
    return VideoMetadata(width=width, height=height, fps=fps, duration_seconds=duration_seconds)


def open_video(video_path: Path) -> MoviepyVideoHandle:
    """Open a validated video file for seeking."""

    validated_path = validators.validate_media_path(video_path)
    return MoviepyVideoHandle(validated_path)


def open_video_bytes(data: bytes, suffix: str = ".mp4") -> MoviepyVideoHandle:
    """Spill encoded video bytes to a temp file owned by the returned handle."""

    if not data:
        raise DecodeError("Video payload is empty")
    fd, name = tempfile.mkstemp(suffix=suffix, prefix="spritesplitter-")
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)
    try:
        return MoviepyVideoHandle(Path(name), cleanup_path=True)
    except BaseException:
        Path(name).unlink(missing_ok=True)
        raise


def _ensure_ffmpeg_available() -> None:
    """Raise a friendly error if ffmpeg is missing."""

    try:
        from moviepy.config import FFMPEG_BINARY  # type: ignore
    except ModuleNotFoundError as exc:  # pragma: no cover
        raise ProcessingError("moviepy is not installed. Run pip install -e .") from exc

    if not FFMPEG_BINARY:
        raise ProcessingError("ffmpeg not found. Install ffmpeg and ensure it is on PATH.")


def _resolve_video_file_clip():
    """Import VideoFileClip from supported moviepy locations."""

    try:
        from moviepy.editor import VideoFileClip  # type: ignore
        return VideoFileClip
    except ModuleNotFoundError:
        try:
            from moviepy.video.io.VideoFileClip import VideoFileClip  # type: ignore
            return VideoFileClip
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise ProcessingError("moviepy is not installed. Run pip install -e .") from exc
