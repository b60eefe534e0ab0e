"""Gradient-map colour grading using a 256-level lookup table."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Iterable, Optional

import numpy as np
from PIL import Image

from . import GradientSettings, GradientStop
from ..utils import validators

logger = logging.getLogger(__name__)

# Rec. 709 luma weights applied to 8-bit sRGB values.
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)


def _color_at(t: float, offsets: list[float], colors: np.ndarray) -> np.ndarray:
    """Interpolate the ramp colour at position t in [0, 1]."""

    if t < offsets[0]:
        return colors[0]
    if t > offsets[-1]:
        return colors[-1]

    for i in range(len(offsets) - 1):
        o1, o2 = offsets[i], offsets[i + 1]
        if o1 <= t <= o2:
            span = o2 - o1
            local_t = 0.0 if span == 0 else (t - o1) / span
            return colors[i] + (colors[i + 1] - colors[i]) * local_t
    return colors[-1]


def build_gradient_lut(stops: Iterable[GradientStop]) -> np.ndarray:
    """Return a (256, 3) uint8 table mapping luminance level to RGB."""

    ordered = sorted(stops, key=lambda stop: stop.offset)
    validators.validate_stop_count(len(ordered))
    return _cached_lut(tuple((float(stop.offset), stop.color) for stop in ordered)).copy()


@lru_cache(maxsize=32)
def _cached_lut(key: tuple[tuple[float, str], ...]) -> np.ndarray:
    offsets = [offset / 100 for offset, _ in key]
    colors = np.array([validators.parse_hex_color(color) for _, color in key], dtype=np.float64)

    lut = np.empty((256, 3), dtype=np.float64)
    for level in range(256):
        lut[level] = _color_at(level / 255, offsets, colors)
    logger.debug("Built gradient LUT for %s stops", len(key))
    return np.clip(np.rint(lut), 0, 255).astype(np.uint8)


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Per-pixel luminance level (0-255), rounded half up."""

    weighted = rgb.astype(np.float64) @ LUMA_WEIGHTS
    return np.clip(np.floor(weighted + 0.5), 0, 255).astype(np.uint8)


def apply_gradient_map(
    image: Image.Image,
    settings: GradientSettings,
    lut: Optional[np.ndarray] = None,
) -> Image.Image:
    """Recolour visible pixels by luminance; transparent pixels are left as-is."""

    if not settings.is_active:
        return image.convert("RGBA")

    table = lut if lut is not None else build_gradient_lut(settings.stops)
    pixels = np.array(image.convert("RGBA"), dtype=np.uint8)
    visible = pixels[..., 3] > 0
    if visible.any():
        levels = luminance(pixels[..., :3][visible])
        pixels[..., :3][visible] = table[levels]
    return Image.fromarray(pixels)
