"""Spritesheet composition using Pillow."""

from __future__ import annotations

import logging
import math
import threading
from typing import Callable, Optional, Sequence, Union

from PIL import Image

from . import FrameDescriptor, SpriteSheet
from .errors import EmptyResultError, JobCancelledError, ResourceError
from ..utils import validators

logger = logging.getLogger(__name__)

FrameSource = Union[Sequence[Image.Image], Callable[[int], Image.Image]]


def resolve_grid(frame_count: int) -> tuple[int, int]:
    """Near-square layout: ceil(sqrt(n)) columns, as many rows as needed."""

    columns = math.ceil(math.sqrt(frame_count))
    rows = math.ceil(frame_count / columns)
    return columns, rows


def cell_origin(index: int, columns: int, width: int, height: int) -> tuple[int, int]:
    return (index % columns) * width, (index // columns) * height


def allocate_sheet(columns: int, rows: int, width: int, height: int) -> Image.Image:
    """Create a fully transparent sheet, surfacing allocation failures."""

    size = (columns * width, rows * height)
    try:
        return Image.new("RGBA", size, (0, 0, 0, 0))
    except (MemoryError, ValueError) as exc:
        raise ResourceError(f"Could not allocate a {size[0]}x{size[1]} sheet: {exc}") from exc


def check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise JobCancelledError("Job cancelled by caller")


def assemble_sprite_sheet(
    frames: FrameSource,
    frame_count: int,
    width: int,
    height: int,
    cancel_event: Optional[threading.Event] = None,
) -> SpriteSheet:
    """Pack frames into a near-square grid by direct pixel copy."""

    if frame_count < 1:
        raise EmptyResultError("No frames provided to pack.")
    validators.validate_frame_size(width, height)

    fetch = frames if callable(frames) else frames.__getitem__
    columns, rows = resolve_grid(frame_count)
    sheet = allocate_sheet(columns, rows, width, height)

    descriptors: list[FrameDescriptor] = []
    for idx in range(frame_count):
        check_cancelled(cancel_event)
        frame = fetch(idx).convert("RGBA")
        if frame.size != (width, height):
            frame = frame.crop((0, 0, width, height))
        x, y = cell_origin(idx, columns, width, height)
        sheet.paste(frame, (x, y))
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

    logger.info("Packed %s frames into a %sx%s grid", frame_count, columns, rows)
    return SpriteSheet(
        image=sheet,
        columns=columns,
        rows=rows,
        frame_count=frame_count,
        frame_width=width,
        frame_height=height,
        frames=descriptors,
    )
