import numpy as np
import pytest
from PIL import Image

from spritesplitter.core import GradientSettings, GradientStop
from spritesplitter.core.errors import ConfigError
from spritesplitter.core.gradient import apply_gradient_map, build_gradient_lut, luminance


def _grayscale_ramp():
    return [GradientStop(0, "#000000"), GradientStop(100, "#ffffff")]


def test_lut_endpoints_match_end_stops():
    lut = build_gradient_lut([GradientStop(0, "#ff0000"), GradientStop(100, "#0000ff")])
    assert lut.shape == (256, 3)
    assert tuple(lut[0]) == (255, 0, 0)
    assert tuple(lut[255]) == (0, 0, 255)


def test_grayscale_ramp_is_identity():
    lut = build_gradient_lut(_grayscale_ramp())
    expected = np.repeat(np.arange(256, dtype=np.uint8)[:, None], 3, axis=1)
    assert np.array_equal(lut, expected)


def test_lut_sorts_stops_before_interpolating():
    lut = build_gradient_lut([GradientStop(100, "#ffffff"), GradientStop(0, "#000000")])
    assert tuple(lut[0]) == (0, 0, 0)
    assert tuple(lut[255]) == (255, 255, 255)


def test_levels_outside_stop_range_clamp_to_end_colors():
    lut = build_gradient_lut([GradientStop(25, "#ff0000"), GradientStop(75, "#0000ff")])
    assert tuple(lut[0]) == (255, 0, 0)
    assert tuple(lut[51]) == (255, 0, 0)
    assert tuple(lut[204]) == (0, 0, 255)
    assert tuple(lut[255]) == (0, 0, 255)


def test_degenerate_stop_pair_uses_first_color():
    lut = build_gradient_lut(
        [GradientStop(0, "#112233"), GradientStop(0, "#445566"), GradientStop(100, "#ffffff")]
    )
    assert tuple(lut[0]) == (0x11, 0x22, 0x33)


def test_lut_requires_two_stops():
    with pytest.raises(ConfigError):
        build_gradient_lut([GradientStop(0, "#000000")])


def test_lut_rejects_malformed_color():
    with pytest.raises(ConfigError):
        build_gradient_lut([GradientStop(0, "black"), GradientStop(100, "#ffffff")])


def test_luminance_rounds_to_nearest_level():
    pixels = np.array([[128, 128, 128], [255, 255, 255], [0, 0, 0], [255, 0, 0]], dtype=np.uint8)
    assert luminance(pixels).tolist() == [128, 255, 0, 54]


def test_mid_gray_survives_grayscale_ramp():
    image = Image.new("RGBA", (1, 1), (128, 128, 128, 255))
    mapped = apply_gradient_map(image, GradientSettings(enabled=True, stops=_grayscale_ramp()))
    assert mapped.getpixel((0, 0)) == (128, 128, 128, 255)


def test_alpha_is_preserved_and_transparent_pixels_untouched():
    image = Image.new("RGBA", (2, 1))
    image.putpixel((0, 0), (10, 200, 30, 0))
    image.putpixel((1, 0), (10, 200, 30, 77))
    settings = GradientSettings(enabled=True, stops=[GradientStop(0, "#ff0000"), GradientStop(100, "#0000ff")])

    mapped = apply_gradient_map(image, settings)

    assert mapped.getpixel((0, 0)) == (10, 200, 30, 0)
    r, g, b, a = mapped.getpixel((1, 0))
    assert a == 77
    assert g == 0
    assert (r, b) != (10, 30)


def test_disabled_gradient_is_a_noop():
    image = Image.new("RGBA", (3, 3), (40, 90, 160, 255))
    mapped = apply_gradient_map(image, GradientSettings(enabled=False))
    assert mapped.tobytes() == image.tobytes()
    assert mapped is not image


def test_gradient_settings_keep_stops_sorted():
    settings = GradientSettings(enabled=True)
    settings.add_stop(50, "#ff9500")
    assert [stop.offset for stop in settings.stops] == [0, 50, 100]

    settings.update_stop(1, offset=100)
    settings.update_stop(0, offset=75)
    assert [stop.offset for stop in settings.stops] == [75, 100, 100]


def test_gradient_settings_refuse_to_drop_below_two_stops():
    settings = GradientSettings(enabled=True)
    with pytest.raises(ConfigError):
        settings.remove_stop(0)

    settings.add_stop()
    settings.remove_stop(1)
    assert len(settings.stops) == 2


def test_gradient_settings_need_two_stops_up_front():
    with pytest.raises(ConfigError):
        GradientSettings(enabled=True, stops=[GradientStop(0, "#000000")])


def test_gradient_settings_keep_offsets_in_range():
    with pytest.raises(ConfigError):
        GradientSettings(stops=[GradientStop(-1, "#000000"), GradientStop(100, "#ffffff")])

    settings = GradientSettings(enabled=True)
    with pytest.raises(ConfigError):
        settings.update_stop(0, offset=150)
    with pytest.raises(ConfigError):
        settings.add_stop(-5)
    assert [stop.offset for stop in settings.stops] == [0, 100]
