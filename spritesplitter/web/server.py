"""FastAPI surface for Sprite Splitter processing."""

from __future__ import annotations

import base64
import io
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from PIL import Image
from pydantic import BaseModel, Field, field_validator, model_validator
from starlette.concurrency import run_in_threadpool

from ..core import GradientSettings, GradientStop, GridSpec, PipelineSettings
from ..core import pipeline
from ..core.errors import (
    DecodeError,
    JobCancelledError,
    ProcessingError,
    ResourceError,
    ValidationError,
    describe_error,
)
from ..core.trimmer import trim_alpha
from ..utils import validators

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = int(os.environ.get("SPLITTER_MAX_UPLOAD_MB", "50")) * 1024 * 1024
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("SPLITTER_ALLOWED_ORIGINS", "http://localhost:8000").split(",")
    if origin.strip()
]


class StopPayload(BaseModel):
    """One gradient stop as sent by clients."""

    offset: float = Field(..., ge=0, le=100)
    color: str

    @field_validator("color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        validators.parse_hex_color(value)
        return value


class GradientPayload(BaseModel):
    """Gradient-map settings; at least two stops."""

    enabled: bool = False
    stops: list[StopPayload] = Field(
        default_factory=lambda: [StopPayload(offset=0, color="#000000"), StopPayload(offset=100, color="#ffffff")],
        min_length=2,
    )

    def to_settings(self) -> GradientSettings:
        return GradientSettings(
            enabled=self.enabled,
            stops=[GradientStop(stop.offset, stop.color) for stop in self.stops],
        )


class SliceRequest(BaseModel):
    """Incoming settings payload for slicing an image into a grid."""

    rows: int = Field(4, ge=1)
    columns: int = Field(4, ge=1)
    width: Optional[int] = Field(None, ge=1)
    height: Optional[int] = Field(None, ge=1)
    gradient: Optional[GradientPayload] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            data.setdefault("width", data.pop("imageWidth", None))
            data.setdefault("height", data.pop("imageHeight", None))
        return data


class SheetRequest(BaseModel):
    """Sampling options for GIF/video uploads."""

    fps: float = Field(12.0, gt=0, le=60)
    seek_timeout: float = Field(1.0, gt=0, le=10)


class FramePayload(BaseModel):
    index: int
    row: int
    column: int
    width: int
    height: int
    url: str


class SheetResponse(BaseModel):
    """Payload returned after a GIF/video has been packed."""

    src: str
    columns: int
    rows: int
    frame_count: int
    width: int
    height: int
    frame_width: int
    frame_height: int
    warnings: list[str] = Field(default_factory=list)


class TrimResponse(BaseModel):
    url: str
    x: int
    y: int
    width: int
    height: int


def _data_url(image: Image.Image) -> str:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


async def _read_upload(file: UploadFile) -> bytes:
    data = await file.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    if not data:
        raise HTTPException(status_code=400, detail="Empty upload")
    return data


def _parse_settings(raw: str, model: type[BaseModel]) -> Any:
    try:
        payload = json.loads(raw) if raw else {}
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid settings JSON: {exc}") from exc
    try:
        return model.model_validate(payload)
    except Exception as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _http_error(exc: Exception) -> HTTPException:
    """Map pipeline failures onto status codes with a stage-named message."""

    if isinstance(exc, (ValidationError, DecodeError)):
        status = 400
    elif isinstance(exc, JobCancelledError):
        status = 409
    elif isinstance(exc, ResourceError):
        status = 507
    else:
        status = 500
    return HTTPException(status_code=status, detail=describe_error(exc))


def _run_slice(data: bytes, request: SliceRequest) -> list[FramePayload]:
    grid = GridSpec(rows=request.rows, columns=request.columns, width=request.width, height=request.height)
    gradient = request.gradient.to_settings() if request.gradient else None
    frames = pipeline.slice_source(data, grid, gradient)
    return [
        FramePayload(
            index=frame.index,
            row=frame.row,
            column=frame.column,
            width=frame.width,
            height=frame.height,
            url=frame.to_data_url(),
        )
        for frame in frames
    ]


def _run_sheet(data: bytes, request: SheetRequest, suffix: str) -> SheetResponse:
    settings = PipelineSettings(fps=request.fps, seek_timeout=request.seek_timeout)
    result = pipeline.process_sheet_source(data, settings, suffix=suffix)
    sheet = result.sheet
    return SheetResponse(
        src=_data_url(sheet.image),
        columns=sheet.columns,
        rows=sheet.rows,
        frame_count=sheet.frame_count,
        width=sheet.width,
        height=sheet.height,
        frame_width=sheet.frame_width,
        frame_height=sheet.frame_height,
        warnings=[str(warning) for warning in result.warnings],
    )


def _run_trim(data: bytes) -> TrimResponse:
    trimmed = trim_alpha(pipeline.load_still_image(data))
    return TrimResponse(
        url=_data_url(trimmed.image),
        x=trimmed.x,
        y=trimmed.y,
        width=trimmed.width,
        height=trimmed.height,
    )


def create_app() -> FastAPI:
    app = FastAPI(title="Sprite Splitter", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def size_gate(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > MAX_UPLOAD_BYTES:
            return JSONResponse(status_code=413, content={"detail": "Upload exceeds limit"})
        return await call_next(request)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/slice")
    async def slice_upload(
        image: UploadFile = File(...),
        settings: str = Form("{}"),
    ) -> dict[str, Any]:
        request_settings = _parse_settings(settings, SliceRequest)
        data = await _read_upload(image)
        try:
            frames = await run_in_threadpool(_run_slice, data, request_settings)
        except (ValidationError, ProcessingError) as exc:
            raise _http_error(exc) from exc
        return {"frames": [frame.model_dump() for frame in frames]}

    @app.post("/api/sheet", response_model=SheetResponse)
    async def sheet_upload(
        media: UploadFile = File(...),
        settings: str = Form("{}"),
    ) -> SheetResponse:
        request_settings = _parse_settings(settings, SheetRequest)
        data = await _read_upload(media)
        suffix = Path(media.filename or "").suffix.lower() or ".mp4"
        try:
            return await run_in_threadpool(_run_sheet, data, request_settings, suffix)
        except (ValidationError, ProcessingError) as exc:
            logger.info("Sheet generation failed: %s", exc)
            raise _http_error(exc) from exc
        except Exception as exc:  # pragma: no cover - backend dependent
            logger.exception("Unexpected failure during sheet generation")
            raise HTTPException(status_code=500, detail="Unexpected error") from exc

    @app.post("/api/trim", response_model=TrimResponse)
    async def trim_upload(image: UploadFile = File(...)) -> TrimResponse:
        data = await _read_upload(image)
        try:
            return await run_in_threadpool(_run_trim, data)
        except (ValidationError, ProcessingError) as exc:
            raise _http_error(exc) from exc

    return app


app = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("spritesplitter.web.server:app", host="0.0.0.0", port=8000, reload=True)
