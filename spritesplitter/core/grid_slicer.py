"""Cut a resampled raster into a rows x columns grid of frames."""

from __future__ import annotations

import logging
from typing import List, Optional

from PIL import Image

from . import FrameDescriptor, GradientSettings, GridSpec
from .errors import GeometryError
from .gradient import apply_gradient_map
from ..utils import validators

logger = logging.getLogger(__name__)


def scale_dimensions(
    original: tuple[int, int], width: Optional[int] = None, height: Optional[int] = None
) -> tuple[int, int]:
    """Fill in a missing target dimension from the source aspect ratio."""

    validators.validate_dimensions(width, height)
    orig_w, orig_h = original
    if width is None and height is None:
        return orig_w, orig_h
    if width is None:
        width = max(1, round(height * orig_w / orig_h))
    if height is None:
        height = max(1, round(width * orig_h / orig_w))
    return int(width), int(height)


def resample(source: Image.Image, size: tuple[int, int]) -> Image.Image:
    """Resize into the target size with Lanczos filtering."""

    image = source.convert("RGBA")
    if image.size == size:
        return image
    logger.debug("Resampling %sx%s -> %sx%s", image.width, image.height, size[0], size[1])
    return image.resize(size, Image.Resampling.LANCZOS)


def cell_size(grid: GridSpec, width: int, height: int) -> tuple[int, int]:
    validators.validate_grid(grid.rows, grid.columns, width, height)
    cell_w = width // grid.columns
    cell_h = height // grid.rows
    if cell_w < 1 or cell_h < 1:
        raise GeometryError(
            f"A {grid.rows}x{grid.columns} grid leaves no pixels per cell at {width}x{height}"
        )
    return cell_w, cell_h


def slice_image(
    source: Image.Image,
    grid: GridSpec,
    gradient: Optional[GradientSettings] = None,
) -> List[FrameDescriptor]:
    """Resample, optionally gradient-map, then split into row-major frames.

    Pixels past ``rows * cell_height`` or ``columns * cell_width`` are dropped.
    """

    width, height = grid.resolve(source.size)
    cell_w, cell_h = cell_size(grid, width, height)

    full = resample(source, (width, height))
    if gradient is not None and gradient.is_active:
        full = apply_gradient_map(full, gradient)

    frames: list[FrameDescriptor] = []
    for row in range(grid.rows):
        for column in range(grid.columns):
            x = column * cell_w
            y = row * cell_h
            frames.append(
                FrameDescriptor(
                    index=row * grid.columns + column,
                    row=row,
                    column=column,
                    width=cell_w,
                    height=cell_h,
                    image=full.crop((x, y, x + cell_w, y + cell_h)),
                )
            )

    logger.info(
        "Sliced %sx%s into %s frames of %sx%s", width, height, len(frames), cell_w, cell_h
    )
    return frames
