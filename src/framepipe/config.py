"""Session configuration: frame geometry, timing, output and encoder settings."""

from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import Optional, Union

from .errors import InvalidConfig
from .pixels import PixelFormat

QUALITY_PRESETS = {
    "fast": {"preset": "veryfast", "crf": 23},
    "medium": {"preset": "medium", "crf": 18},
    "high": {"preset": "slow", "crf": 15},
    "lossless": {"preset": "veryslow", "crf": 0},
}

FrameRate = Union[int, float, str, Fraction]


@dataclass(frozen=True)
class EncoderSettings:
    """Codec and container choices passed through to FFmpeg."""

    codec: str = "libx264"
    container: Optional[str] = None  # FFmpeg muxer name; None = infer from extension
    output_pixel_format: str = "yuv420p"
    crf: Optional[int] = 23
    preset: Optional[str] = "medium"
    bitrate: Optional[str] = None  # e.g. "8M"; replaces CRF when set
    faststart: bool = True
    loglevel: str = "error"
    extra_args: tuple[str, ...] = ()

    @classmethod
    def from_preset(cls, name: str, **overrides) -> "EncoderSettings":
        if name not in QUALITY_PRESETS:
            raise ValueError(
                f"Unknown quality preset {name!r} (choose from {', '.join(QUALITY_PRESETS)})"
            )
        return cls(**{**QUALITY_PRESETS[name], **overrides})


def _parse_frame_rate(value: FrameRate) -> Fraction:
    try:
        if isinstance(value, float):
            rate = Fraction(str(value))
        else:
            rate = Fraction(value)
    except (TypeError, ValueError, ZeroDivisionError):
        raise InvalidConfig(f"Invalid frame rate: {value!r}") from None
    if rate <= 0:
        raise InvalidConfig(f"Frame rate must be positive, got {value!r}")
    return rate


@dataclass(frozen=True)
class SessionConfig:
    """Everything needed to start one encoding session.

    ``frame_size`` is derived from the geometry once, at construction, and
    every frame fed to the session must be exactly that many bytes.
    """

    width: int
    height: int
    pixel_format: PixelFormat = PixelFormat.RGB24
    frame_rate: FrameRate = 24
    output_path: Union[str, Path] = "output.mp4"
    encoder_path: str = "ffmpeg"
    settings: EncoderSettings = field(default_factory=EncoderSettings)
    overwrite: bool = True
    frame_size: int = field(init=False)

    def __post_init__(self):
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidConfig(f"{name} must be a positive integer, got {value!r}")

        try:
            pixel_format = PixelFormat.parse(self.pixel_format)
        except ValueError as e:
            raise InvalidConfig(str(e)) from None

        # Path("") and "." both collapse to the current directory, not a file
        if not str(self.output_path).strip() or not Path(self.output_path).name:
            raise InvalidConfig(f"output_path must name a file, got {self.output_path!r}")
        if not self.encoder_path or not str(self.encoder_path).strip():
            raise InvalidConfig("encoder_path must not be empty")

        # Frozen dataclass: normalise fields in place
        object.__setattr__(self, "pixel_format", pixel_format)
        object.__setattr__(self, "frame_rate", _parse_frame_rate(self.frame_rate))
        object.__setattr__(self, "output_path", Path(self.output_path))
        object.__setattr__(
            self, "frame_size", pixel_format.frame_size(self.width, self.height)
        )
