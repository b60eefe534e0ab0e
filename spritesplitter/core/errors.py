"""Domain-specific exceptions for the sprite splitter."""

from pathlib import Path


class ValidationError(ValueError):
    """Raised when user-provided settings fail validation."""

    stage = "validation"


class GeometryError(ValidationError):
    """Raised when grid rows, columns or target dimensions are below one."""

    stage = "geometry"


class ConfigError(ValidationError):
    """Raised when gradient or sampling settings are unusable."""

    stage = "config"


class ProcessingError(RuntimeError):
    """Raised when the pipeline fails unexpectedly."""

    stage = "processing"


class DecodeError(ProcessingError):
    """Raised when a container is malformed, unsupported or yields nothing."""

    stage = "decode"


class EmptyResultError(DecodeError):
    """Raised when a GIF or video produced zero usable frames."""


class InvalidMediaError(DecodeError):
    """Raised when the selected media file is missing or unreadable."""

    def __init__(self, path: Path, reason: str | None = None):
        message = f"Invalid media file: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.path = path


class ResourceError(ProcessingError):
    """Raised when a rendering surface cannot be allocated."""

    stage = "resource"


class JobCancelledError(ProcessingError):
    """Raised when the caller cancels a running job."""

    stage = "cancelled"


class SeekTimeoutError(TimeoutError):
    """A single video seek did not settle in time; recorded, never raised."""

    def __init__(self, index: int, timestamp: float, timeout: float):
        super().__init__(f"Seek to {timestamp:.3f}s for frame {index} did not settle within {timeout:g}s")
        self.index = index
        self.timestamp = timestamp
        self.timeout = timeout


def describe_error(exc: Exception) -> str:
    """Render a one-line message naming the failing stage."""

    stage = getattr(exc, "stage", "unexpected")
    return f"{stage} error: {exc}"
