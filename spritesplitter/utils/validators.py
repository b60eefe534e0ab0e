"""Validation helpers for user inputs."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from ..core.errors import ConfigError, GeometryError, InvalidMediaError


IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}
GIF_EXTENSIONS = {".gif"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".mkv", ".webm"}
ALLOWED_MEDIA_EXTENSIONS = IMAGE_EXTENSIONS | GIF_EXTENSIONS | VIDEO_EXTENSIONS

_HEX_COLOR = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)


def validate_media_path(path: Path) -> Path:
    """Ensure the media path exists and appears to be a supported format."""

    if not path:
        raise InvalidMediaError(Path("<unset>"), reason="No path provided")
    if not path.exists():
        raise InvalidMediaError(path, reason="File not found")
    if path.suffix.lower() not in ALLOWED_MEDIA_EXTENSIONS:
        raise InvalidMediaError(path, reason="Unsupported format")
    return path


def parse_hex_color(value: str) -> tuple[int, int, int]:
    """Parse '#RRGGBB' (hash optional) into an RGB tuple."""

    match = _HEX_COLOR.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ConfigError(f"Color must be #RRGGBB, got {value!r}")
    return tuple(int(part, 16) for part in match.groups())  # type: ignore


def parse_stop(value: str) -> tuple[float, str]:
    """Parse a CLI gradient stop written as 'OFFSET:#RRGGBB'."""

    offset_text, sep, color = value.partition(":")
    if not sep:
        raise ConfigError(f"Gradient stop must be OFFSET:#RRGGBB, got {value!r}")
    try:
        offset = float(offset_text)
    except ValueError as exc:
        raise ConfigError(f"Gradient stop offset must be a number, got {offset_text!r}") from exc
    validate_stop_offset(offset)
    parse_hex_color(color)
    return offset, color


def validate_stop_offset(offset: float) -> None:
    if offset < 0 or offset > 100:
        raise ConfigError("Gradient stop offsets must be between 0 and 100")


def validate_stop_count(count: int) -> None:
    if count < 2:
        raise ConfigError(f"A gradient needs at least two stops, got {count}")


def validate_grid(rows: int, columns: int, width: int, height: int) -> None:
    """Ensure grid layout and target size are all at least one."""

    if rows < 1:
        raise GeometryError("Rows must be at least 1")
    if columns < 1:
        raise GeometryError("Columns must be at least 1")
    if width < 1 or height < 1:
        raise GeometryError(f"Target size must be at least 1x1, got {width}x{height}")


def validate_frame_size(width: int, height: int) -> None:
    if width < 1 or height < 1:
        raise GeometryError(f"Frame size must be at least 1x1, got {width}x{height}")


def validate_fps(fps: float) -> None:
    if fps <= 0:
        raise ConfigError("fps must be greater than zero")


def validate_dimensions(width: Optional[int], height: Optional[int]) -> None:
    """Reject explicit dimensions below one pixel."""

    for name, value in (("Width", width), ("Height", height)):
        if value is not None and value < 1:
            raise GeometryError(f"{name} must be at least 1")
