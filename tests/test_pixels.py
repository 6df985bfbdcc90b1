import pytest

from framepipe.pixels import PixelFormat, hsl_to_rgb24, hsv_to_rgb24


@pytest.mark.parametrize(
    "fmt, width, height, expected",
    [
        (PixelFormat.RGB24, 64, 64, 12288),
        (PixelFormat.BGR24, 2, 3, 18),
        (PixelFormat.GRAY, 10, 10, 100),
        (PixelFormat.RGBA, 2, 2, 16),
        (PixelFormat.BGRA, 3, 1, 12),
        (PixelFormat.YUV420P, 64, 64, 6144),
        (PixelFormat.YUV420P, 5, 3, 27),  # odd sizes round chroma up
        (PixelFormat.YUV444P, 4, 4, 48),
    ],
)
def test_frame_size(fmt, width, height, expected):
    assert fmt.frame_size(width, height) == expected


def test_parse_accepts_names_values_and_members():
    assert PixelFormat.parse("rgb24") is PixelFormat.RGB24
    assert PixelFormat.parse("RGB24") is PixelFormat.RGB24
    assert PixelFormat.parse(" yuv420p ") is PixelFormat.YUV420P
    assert PixelFormat.parse(PixelFormat.GRAY) is PixelFormat.GRAY


def test_parse_rejects_unknown_format():
    with pytest.raises(ValueError, match="Unsupported pixel format"):
        PixelFormat.parse("rgb48")


def test_channels():
    assert PixelFormat.RGBA.channels == 4
    assert PixelFormat.GRAY.channels == 1
    assert PixelFormat.YUV420P.channels is None
    assert not PixelFormat.YUV444P.is_packed


def test_hsv_primaries():
    assert hsv_to_rgb24(0.0, 1.0, 1.0) == (255, 0, 0)
    assert hsv_to_rgb24(0.5, 1.0, 1.0) == (0, 255, 255)
    assert hsv_to_rgb24(0.25, 0.0, 0.0) == (0, 0, 0)
    assert hsv_to_rgb24(0.75, 0.0, 0.5) == (127, 127, 127)


def test_hsl_primaries():
    assert hsl_to_rgb24(0.0, 1.0, 0.5) == (255, 0, 0)
    assert hsl_to_rgb24(0.3, 0.7, 1.0) == (255, 255, 255)
    assert hsl_to_rgb24(0.3, 0.7, 0.0) == (0, 0, 0)
