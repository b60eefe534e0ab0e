"""Core data model for slicing, compositing and sampling sprite frames."""

__all__ = [
    "GradientStop",
    "GradientSettings",
    "GridSpec",
    "FrameDescriptor",
    "GifFrame",
    "GifDocument",
    "VideoMetadata",
    "VideoSampleSpec",
    "SpriteSheet",
    "TrimResult",
    "PipelineSettings",
    "MAX_VIDEO_FRAMES",
    "DEFAULT_FPS",
]

import base64
import io
import math
from dataclasses import dataclass, field
from typing import Optional

from PIL import Image

from .errors import ConfigError
from ..utils import validators

MAX_VIDEO_FRAMES = 300
DEFAULT_FPS = 12.0
RESTORE_TO_BACKGROUND = 2


@dataclass
class GradientStop:
    """A single colour stop on the gradient ramp."""

    offset: float
    color: str


def _default_stops() -> list[GradientStop]:
    return [GradientStop(0, "#000000"), GradientStop(100, "#ffffff")]


@dataclass
class GradientSettings:
    """Gradient-map configuration; stops stay sorted and never drop below two."""

    enabled: bool = False
    stops: list[GradientStop] = field(default_factory=_default_stops)

    def __post_init__(self) -> None:
        validators.validate_stop_count(len(self.stops))
        for stop in self.stops:
            validators.validate_stop_offset(stop.offset)
        self._resort()

    @property
    def is_active(self) -> bool:
        return self.enabled and len(self.stops) >= 2

    def add_stop(self, offset: float = 50, color: str = "#FF9500") -> GradientStop:
        validators.validate_stop_offset(offset)
        stop = GradientStop(offset, color)
        self.stops.append(stop)
        self._resort()
        return stop

    def update_stop(self, index: int, offset: Optional[float] = None, color: Optional[str] = None) -> None:
        stop = self.stops[index]
        if offset is not None:
            validators.validate_stop_offset(offset)
            stop.offset = offset
        if color is not None:
            stop.color = color
        self._resort()

    def remove_stop(self, index: int) -> GradientStop:
        if len(self.stops) <= 2:
            raise ConfigError("A gradient needs at least two stops")
        removed = self.stops.pop(index)
        self._resort()
        return removed

    def _resort(self) -> None:
        self.stops.sort(key=lambda stop: stop.offset)


@dataclass
class GridSpec:
    """Rows/columns layout plus the size the source is resampled to first."""

    rows: int
    columns: int
    width: Optional[int] = None
    height: Optional[int] = None

    def resolve(self, source_size: tuple[int, int]) -> tuple[int, int]:
        width = self.width if self.width is not None else source_size[0]
        height = self.height if self.height is not None else source_size[1]
        return width, height


@dataclass
class FrameDescriptor:
    """One cell cut out of a sheet, in row-major order."""

    index: int
    row: int
    column: int
    width: int
    height: int
    image: Image.Image

    def to_png_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.to_png_bytes()).decode("ascii")
        return f"data:image/png;base64,{encoded}"


@dataclass
class GifFrame:
    """A decoded GIF patch with its placement and disposal method."""

    patch: Image.Image
    left: int = 0
    top: int = 0
    disposal: int = 0
    duration_ms: int = 0

    @property
    def width(self) -> int:
        return self.patch.width

    @property
    def height(self) -> int:
        return self.patch.height

    @property
    def restores_background(self) -> bool:
        return self.disposal == RESTORE_TO_BACKGROUND


@dataclass
class GifDocument:
    """Logical screen size and frame list of a decoded GIF."""

    width: int
    height: int
    frames: list[GifFrame]


@dataclass
class VideoMetadata:
    """Basic metadata for a source video."""

    width: int
    height: int
    fps: float
    duration_seconds: float


@dataclass
class VideoSampleSpec:
    """Fixed-rate sampling plan for a video of known duration."""

    duration: float
    fps: float = DEFAULT_FPS
    max_frames: int = MAX_VIDEO_FRAMES

    @property
    def frame_count(self) -> int:
        total = math.floor(self.duration * self.fps)
        return min(max(1, total), self.max_frames)

    def sample_time(self, index: int) -> float:
        return max(0.0, min(index / self.fps, self.duration - 0.05))


@dataclass
class SpriteSheet:
    """A grid of equally sized frames packed into one raster."""

    image: Image.Image
    columns: int
    rows: int
    frame_count: int
    frame_width: int
    frame_height: int
    frames: list[FrameDescriptor] = field(default_factory=list)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def describe(self) -> dict[str, int]:
        return {
            "columns": self.columns,
            "rows": self.rows,
            "frameCount": self.frame_count,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class TrimResult:
    """A frame cropped to its opaque bounding box and where it came from."""

    image: Image.Image
    x: int
    y: int
    width: int
    height: int

    def spine_offset(self, frame_width: int, frame_height: int) -> tuple[float, float]:
        """Centre shift of the crop relative to the full frame, y pointing up."""

        offset_x = (self.x + self.width / 2) - frame_width / 2
        offset_y = -((self.y + self.height / 2) - frame_height / 2)
        return round(offset_x, 2), round(offset_y, 2)


@dataclass
class PipelineSettings:
    """User-configurable settings used by the video and GIF jobs."""

    fps: float = DEFAULT_FPS
    seek_timeout: float = 1.0
    probe_wait: float = 0.2
    max_frames: int = MAX_VIDEO_FRAMES
