"""Filesystem helpers."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def ensure_directory(path: Path) -> Path:
    """Create a directory if it does not exist."""

    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)
    return path


def frame_filename(index: int, suffix: str = ".png") -> str:
    """Zero-padded frame name, e.g. frame_007.png."""

    return f"frame_{index:03d}{suffix}"


def source_name(path: Path) -> str:
    """Strip the extension from an uploaded file name."""

    return Path(path.name).stem or "sprite"
