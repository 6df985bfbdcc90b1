"""Reusable per-pixel frame buffer."""

from typing import Optional, Sequence, Union

import numpy as np

from .pixels import PixelFormat

PixelValue = Union[int, Sequence[int]]


class Canvas:
    """A packed-format frame that can be addressed pixel by pixel.

    Pixels are indexed as ``canvas[x, y]`` with ``x`` along the width. The
    backing array is ``[height, width, channels]`` uint8, which is exactly the
    row-major layout FFmpeg expects for raw video.
    """

    def __init__(self, width: int, height: int, pixel_format: PixelFormat = PixelFormat.RGB24):
        pixel_format = PixelFormat.parse(pixel_format)
        if not pixel_format.is_packed:
            raise ValueError(
                f"Canvas needs a packed pixel format, got {pixel_format.value}"
            )
        self.width = width
        self.height = height
        self.pixel_format = pixel_format
        self.array = np.zeros((height, width, pixel_format.channels), dtype=np.uint8)

    @property
    def resolution(self) -> tuple[int, int]:
        return self.width, self.height

    def _check(self, x: int, y: int) -> None:
        if not 0 <= x < self.width:
            raise IndexError(
                f"frame index out of bounds: the x value is {x} but the width is {self.width}"
            )
        if not 0 <= y < self.height:
            raise IndexError(
                f"frame index out of bounds: the y value is {y} but the height is {self.height}"
            )

    def __getitem__(self, index: tuple[int, int]) -> tuple[int, ...]:
        x, y = index
        self._check(x, y)
        return tuple(int(v) for v in self.array[y, x])

    def __setitem__(self, index: tuple[int, int], value: PixelValue) -> None:
        x, y = index
        self._check(x, y)
        self.array[y, x] = value

    def get(self, x: int, y: int) -> Optional[tuple[int, ...]]:
        """Like ``canvas[x, y]`` but returns None outside the frame."""
        if 0 <= x < self.width and 0 <= y < self.height:
            return self[x, y]
        return None

    def fill(self, value: PixelValue) -> None:
        self.array[...] = value

    def reset(self) -> "Canvas":
        self.array.fill(0)
        return self

    def tobytes(self) -> bytes:
        return self.array.tobytes()
