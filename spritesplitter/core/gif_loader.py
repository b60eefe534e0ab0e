"""GIF decoding into per-frame patches.

The block structure (screen descriptor, graphic control extensions, image
descriptors) is walked here so each frame keeps its own rectangle and
pixels. Pillow only decodes the LZW data of one frame at a time, so the
patches never contain pixels from earlier frames.
"""

from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass
from typing import Iterator, Optional

from PIL import Image, UnidentifiedImageError

from . import GifDocument, GifFrame
from .errors import DecodeError, EmptyResultError

logger = logging.getLogger(__name__)

GIF_SIGNATURES = (b"GIF87a", b"GIF89a")

EXTENSION_INTRODUCER = 0x21
IMAGE_SEPARATOR = 0x2C
TRAILER = 0x3B
GRAPHIC_CONTROL_LABEL = 0xF9

TRANSPARENT = (0, 0, 0, 0)


def is_gif(data: bytes) -> bool:
    return data[:6] in GIF_SIGNATURES


class _Reader:
    """Little-endian cursor over the GIF bitstream."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, count: int) -> bytes:
        chunk = self.data[self.pos : self.pos + count]
        if len(chunk) < count:
            raise DecodeError(f"GIF ended early at byte {self.pos}")
        self.pos += count
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u16(self) -> int:
        return struct.unpack("<H", self.take(2))[0]

    def sub_blocks(self) -> bytes:
        """Raw data sub-blocks including their length bytes and terminator."""

        start = self.pos
        while True:
            size = self.u8()
            if size == 0:
                return self.data[start : self.pos]
            self.take(size)


@dataclass
class _RawFrame:
    left: int
    top: int
    width: int
    height: int
    disposal: int
    delay_cs: int
    bitstream: bytes


def _color_table(packed: int) -> int:
    """Byte length of the colour table announced by a packed field."""

    if not packed & 0x80:
        return 0
    return 3 * (2 ** ((packed & 0x07) + 1))


def _graphic_control(reader: _Reader) -> tuple[int, int, Optional[int]]:
    block = reader.sub_blocks()
    if len(block) < 6 or block[0] != 4:
        raise DecodeError("Malformed graphic control extension")
    packed = block[1]
    delay_cs = block[2] | (block[3] << 8)
    transparent = block[4] if packed & 0x01 else None
    return (packed >> 2) & 0x07, delay_cs, transparent


def _iter_raw_frames(data: bytes) -> Iterator[tuple[int, int, _RawFrame]]:
    reader = _Reader(data)
    reader.take(6)
    screen_width, screen_height = reader.u16(), reader.u16()
    screen_packed, background, aspect = reader.u8(), reader.u8(), reader.u8()
    global_table = reader.take(_color_table(screen_packed))

    disposal, delay_cs, transparent = 0, 0, None
    while True:
        if reader.pos >= len(data):
            return
        introducer = reader.u8()
        if introducer == TRAILER:
            return
        if introducer == EXTENSION_INTRODUCER:
            label = reader.u8()
            if label == GRAPHIC_CONTROL_LABEL:
                disposal, delay_cs, transparent = _graphic_control(reader)
            else:
                reader.sub_blocks()
            continue
        if introducer != IMAGE_SEPARATOR:
            raise DecodeError(f"Unknown GIF block 0x{introducer:02X} at byte {reader.pos - 1}")

        left, top, width, height = reader.u16(), reader.u16(), reader.u16(), reader.u16()
        image_packed = reader.u8()
        local_table = reader.take(_color_table(image_packed))
        min_code_size = reader.take(1)
        pixels = reader.sub_blocks()

        # The frame alone, placed at the origin of a screen of its own size.
        control = b""
        if transparent is not None:
            control = b"\x21\xf9\x04\x01\x00\x00" + bytes([transparent]) + b"\x00"
        bitstream = b"".join(
            (
                b"GIF89a",
                struct.pack("<HHBBB", width, height, screen_packed, background, aspect),
                global_table,
                control,
                struct.pack("<BHHHHB", IMAGE_SEPARATOR, 0, 0, width, height, image_packed),
                local_table,
                min_code_size,
                pixels,
                bytes([TRAILER]),
            )
        )
        yield screen_width, screen_height, _RawFrame(left, top, width, height, disposal, delay_cs, bitstream)
        disposal, delay_cs, transparent = 0, 0, None


def _decode_patch(raw: _RawFrame) -> Image.Image:
    """Frame pixels as RGBA; transparent-index pixels become (0, 0, 0, 0)."""

    if raw.width == 0 or raw.height == 0:
        return Image.new("RGBA", (raw.width, raw.height), TRANSPARENT)
    with Image.open(io.BytesIO(raw.bitstream)) as im:
        im.load()
        rgba = im.convert("RGBA")
    clear = Image.new("RGBA", rgba.size, TRANSPARENT)
    return Image.composite(rgba, clear, rgba.getchannel("A"))


def decode_gif(data: bytes) -> GifDocument:
    """Read the logical screen size and every frame's patch and disposal."""

    if not is_gif(data):
        raise DecodeError("Not a GIF bitstream")

    width = height = 0
    frames: list[GifFrame] = []
    try:
        for width, height, raw in _iter_raw_frames(data):
            frames.append(
                GifFrame(
                    patch=_decode_patch(raw),
                    left=raw.left,
                    top=raw.top,
                    disposal=raw.disposal,
                    duration_ms=raw.delay_cs * 10,
                )
            )
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise DecodeError(f"GIF frame {len(frames)} could not be decoded: {exc}") from exc

    if not frames:
        raise EmptyResultError("No frames found in GIF")
    logger.info("Decoded GIF %sx%s with %s frames", width, height, len(frames))
    return GifDocument(width=width, height=height, frames=frames)
