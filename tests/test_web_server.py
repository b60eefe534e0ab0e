import io
import json

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from spritesplitter.web.server import GradientPayload, SheetRequest, SliceRequest, create_app


@pytest.fixture()
def client():
    return TestClient(create_app())


def _png(size=(4, 4), color=(255, 255, 255, 255)):
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def _gif(count=2):
    frames = [Image.new("RGB", (2, 2), (0, index * 100, 0)) for index in range(count)]
    buffer = io.BytesIO()
    frames[0].save(buffer, format="GIF", save_all=True, append_images=frames[1:], duration=50, loop=0)
    return buffer.getvalue()


def test_slice_request_accepts_camel_case_dimensions():
    req = SliceRequest.model_validate(
        {
            "rows": 2,
            "columns": 3,
            "imageWidth": 120,
            "imageHeight": 80,
            "gradient": {"enabled": True, "stops": [{"offset": 0, "color": "#000000"}, {"offset": 100, "color": "#FF9500"}]},
        }
    )
    assert (req.width, req.height) == (120, 80)
    settings = req.gradient.to_settings()
    assert settings.is_active
    assert [stop.offset for stop in settings.stops] == [0, 100]


def test_gradient_payload_needs_two_valid_stops():
    with pytest.raises(Exception):
        GradientPayload.model_validate({"enabled": True, "stops": [{"offset": 0, "color": "#000000"}]})
    with pytest.raises(Exception):
        GradientPayload.model_validate(
            {"stops": [{"offset": 0, "color": "orange"}, {"offset": 100, "color": "#ffffff"}]}
        )


def test_sheet_request_defaults():
    req = SheetRequest.model_validate({})
    assert req.fps == 12.0
    assert req.seek_timeout == 1.0


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_slice_endpoint_returns_frames(client):
    settings = {"rows": 2, "columns": 2, "gradient": {"enabled": True, "stops": [
        {"offset": 0, "color": "#000000"}, {"offset": 100, "color": "#ff0000"}]}}
    response = client.post(
        "/api/slice",
        files={"image": ("sheet.png", _png(), "image/png")},
        data={"settings": json.dumps(settings)},
    )

    assert response.status_code == 200
    frames = response.json()["frames"]
    assert [frame["index"] for frame in frames] == [0, 1, 2, 3]
    assert all(frame["width"] == 2 and frame["height"] == 2 for frame in frames)
    assert frames[0]["url"].startswith("data:image/png;base64,")


def test_slice_endpoint_rejects_bad_settings(client):
    files = {"image": ("sheet.png", _png(), "image/png")}

    assert client.post("/api/slice", files=files, data={"settings": "{nope"}).status_code == 400
    assert client.post("/api/slice", files=files, data={"settings": '{"rows": 0}'}).status_code == 422


def test_slice_endpoint_reports_geometry_stage(client):
    response = client.post(
        "/api/slice",
        files={"image": ("sheet.png", _png(size=(2, 2)), "image/png")},
        data={"settings": json.dumps({"rows": 1, "columns": 3})},
    )

    assert response.status_code == 400
    assert response.json()["detail"].startswith("geometry error")


def test_sheet_endpoint_packs_gif(client):
    response = client.post("/api/sheet", files={"media": ("anim.gif", _gif(2), "image/gif")})

    assert response.status_code == 200
    body = response.json()
    assert (body["columns"], body["rows"], body["frame_count"]) == (2, 1, 2)
    assert (body["width"], body["height"]) == (4, 2)
    assert body["warnings"] == []


def test_sheet_endpoint_rejects_still_images(client):
    response = client.post("/api/sheet", files={"media": ("still.png", _png(), "image/png")})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("decode error")


def test_trim_endpoint(client):
    image = Image.new("RGBA", (5, 5), (0, 0, 0, 0))
    image.putpixel((4, 1), (255, 0, 0, 255))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")

    response = client.post("/api/trim", files={"image": ("frame.png", buffer.getvalue(), "image/png")})

    assert response.status_code == 200
    body = response.json()
    assert (body["x"], body["y"], body["width"], body["height"]) == (4, 1, 1, 1)
