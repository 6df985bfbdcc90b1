"""Pixel formats understood by the raw-video input, and colour conversions."""

import math
from enum import Enum
from typing import Optional, Union

# FFmpeg name -> bytes per pixel for packed formats
_PACKED_BYTES = {
    "gray": 1,
    "rgb24": 3,
    "bgr24": 3,
    "rgba": 4,
    "bgra": 4,
}


class PixelFormat(Enum):
    """Raw frame layouts, valued by their FFmpeg ``-pix_fmt`` names."""

    GRAY = "gray"
    RGB24 = "rgb24"
    BGR24 = "bgr24"
    RGBA = "rgba"
    BGRA = "bgra"
    YUV420P = "yuv420p"
    YUV444P = "yuv444p"

    @classmethod
    def parse(cls, value: Union["PixelFormat", str]) -> "PixelFormat":
        """Accept a member, its name or its FFmpeg value (case-insensitive)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for fmt in cls:
                if key in (fmt.value, fmt.name.lower()):
                    return fmt
        raise ValueError(f"Unsupported pixel format: {value!r}")

    @property
    def channels(self) -> Optional[int]:
        """Interleaved channels per pixel, or None for planar formats."""
        return _PACKED_BYTES.get(self.value)

    @property
    def is_packed(self) -> bool:
        return self.value in _PACKED_BYTES

    def frame_size(self, width: int, height: int) -> int:
        """Exact number of bytes in one frame of this format."""
        if self.is_packed:
            return width * height * _PACKED_BYTES[self.value]
        if self is PixelFormat.YUV420P:
            # Chroma planes are subsampled 2x2, rounding odd sizes up
            chroma = math.ceil(width / 2) * math.ceil(height / 2)
            return width * height + 2 * chroma
        return 3 * width * height


def _to_u8(value: float) -> int:
    return min(255, max(0, int(value * 255.0)))


def hsl_to_rgb24(h: float, s: float, l: float) -> tuple[int, int, int]:
    """Convert HSL (all components in [0, 1]) to an 8-bit RGB triple."""
    hue = h * 360.0
    a = s * min(l, 1.0 - l)

    def f(n: float) -> int:
        k = (n + hue / 30.0) % 12.0
        return _to_u8(l - a * max(-1.0, min(k - 3.0, 9.0 - k, 1.0)))

    return f(0.0), f(8.0), f(4.0)


def hsv_to_rgb24(h: float, s: float, v: float) -> tuple[int, int, int]:
    """Convert HSV (all components in [0, 1]) to an 8-bit RGB triple."""
    hue = h * 360.0

    def f(n: float) -> int:
        k = (n + hue / 60.0) % 6.0
        return _to_u8(v * (1.0 - s * max(0.0, min(k, 4.0 - k, 1.0))))

    return f(5.0), f(3.0), f(1.0)
