"""Rebuild full GIF frames from optimised patches and disposal methods.

Only restore-to-background (disposal 2) clears the render buffer. Every
other disposal, restore-to-previous included, leaves the buffer as drawn.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterator, List, Optional, Sequence

from PIL import Image

from . import GifFrame
from .errors import EmptyResultError
from .spritesheet_builder import check_cancelled
from ..utils import validators

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def iter_composited_frames(
    frames: Sequence[GifFrame],
    width: int,
    height: int,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[Image.Image]:
    """Yield one full logical-screen snapshot per input frame, in order."""

    if not frames:
        raise EmptyResultError("No frames found in GIF")
    validators.validate_frame_size(width, height)

    render = Image.new("RGBA", (width, height), TRANSPARENT)
    previous: GifFrame | None = None
    for idx, frame in enumerate(frames):
        check_cancelled(cancel_event)
        if previous is not None and previous.restores_background:
            render.paste(TRANSPARENT, (0, 0, width, height))

        if frame.width > 0 and frame.height > 0:
            # Overwrite the footprint; paste() without a mask does not blend.
            render.paste(frame.patch.convert("RGBA"), (frame.left, frame.top))
        else:
            logger.debug("Frame %s has an empty patch", idx)

        yield render.copy()
        previous = frame


def composite_gif_frames(
    frames: Sequence[GifFrame],
    width: int,
    height: int,
    cancel_event: Optional[threading.Event] = None,
) -> List[Image.Image]:
    """Composite every frame eagerly."""

    composited = list(iter_composited_frames(frames, width, height, cancel_event))
    logger.info("Composited %s GIF frames at %sx%s", len(composited), width, height)
    return composited
