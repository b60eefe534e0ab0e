"""Crop frames to the bounding box of their visible pixels."""

from __future__ import annotations

from PIL import Image

from . import TrimResult


def trim_alpha(image: Image.Image) -> TrimResult:
    """Return the inclusive crop around every pixel with alpha > 0.

    A fully transparent frame collapses to a single transparent pixel at (0, 0).
    """

    rgba = image.convert("RGBA")
    bbox = rgba.getchannel("A").getbbox()
    if bbox is None:
        return TrimResult(image=Image.new("RGBA", (1, 1), (0, 0, 0, 0)), x=0, y=0, width=1, height=1)

    left, top, right, bottom = bbox
    return TrimResult(
        image=rgba.crop(bbox),
        x=left,
        y=top,
        width=right - left,
        height=bottom - top,
    )
