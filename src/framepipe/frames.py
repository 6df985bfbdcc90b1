"""Frame validation and helpers for turning images into raw frame bytes."""

from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image

from .errors import FrameSizeMismatch
from .pixels import PixelFormat

FrameLike = Union[bytes, bytearray, memoryview, np.ndarray]

_PIL_MODES = {
    PixelFormat.GRAY: "L",
    PixelFormat.RGB24: "RGB",
    PixelFormat.BGR24: "RGB",
    PixelFormat.RGBA: "RGBA",
    PixelFormat.BGRA: "RGBA",
}


def _as_byte_view(frame: FrameLike) -> memoryview:
    if isinstance(frame, np.ndarray):
        if frame.dtype != np.uint8:
            raise TypeError(f"Frame arrays must be uint8, got {frame.dtype}")
        frame = np.ascontiguousarray(frame)
    try:
        view = memoryview(frame)
    except TypeError:
        raise TypeError(
            f"Frame must be a bytes-like object, got {type(frame).__name__}"
        ) from None
    if view.ndim != 1 or view.format != "B":
        view = view.cast("B")
    return view


def validate_frame(frame: FrameLike, expected_size: int) -> memoryview:
    """Return a flat byte view of ``frame`` if it is exactly one frame long.

    Raw video has no frame delimiters, so a short or long frame would shift
    every frame after it. Anything that is not exactly ``expected_size``
    bytes is rejected before it can reach the encoder.
    """
    view = _as_byte_view(frame)
    if view.nbytes != expected_size:
        raise FrameSizeMismatch(expected_size, view.nbytes)
    return view


def frame_from_array(array: np.ndarray, pixel_format: PixelFormat) -> bytes:
    """Convert an ``[H, W]`` or ``[H, W, C]`` array to raw frame bytes."""
    pixel_format = PixelFormat.parse(pixel_format)
    if not pixel_format.is_packed:
        raise ValueError(f"Cannot build {pixel_format.value} frames from arrays")

    if array.dtype in (np.float32, np.float64):
        array = (array * 255).clip(0, 255).astype(np.uint8)
    elif array.dtype != np.uint8:
        array = array.astype(np.uint8)

    channels = pixel_format.channels
    if array.ndim == 2 and channels == 1:
        pass
    elif array.ndim != 3 or array.shape[-1] != channels:
        raise ValueError(
            f"Array of shape {array.shape} does not match {pixel_format.value} "
            f"({channels} channel(s))"
        )
    return np.ascontiguousarray(array).tobytes()


def frame_from_image(
    image: Image.Image,
    pixel_format: PixelFormat = PixelFormat.RGB24,
    size: Optional[tuple[int, int]] = None,
) -> bytes:
    """Convert a Pillow image to raw frame bytes, resizing to ``size`` if given."""
    pixel_format = PixelFormat.parse(pixel_format)
    mode = _PIL_MODES.get(pixel_format)
    if mode is None:
        raise ValueError(f"Cannot build {pixel_format.value} frames from images")

    if image.mode != mode:
        image = image.convert(mode)
    if size is not None and image.size != tuple(size):
        image = image.resize(tuple(size), Image.LANCZOS)

    arr = np.asarray(image)
    if pixel_format is PixelFormat.BGR24:
        arr = arr[..., ::-1]
    elif pixel_format is PixelFormat.BGRA:
        arr = arr[..., [2, 1, 0, 3]]
    return np.ascontiguousarray(arr).tobytes()


def load_frame(
    path: Union[str, Path],
    pixel_format: PixelFormat = PixelFormat.RGB24,
    size: Optional[tuple[int, int]] = None,
) -> bytes:
    """Read an image file and return it as raw frame bytes."""
    with Image.open(path) as img:
        img.load()
        return frame_from_image(img, pixel_format, size)
