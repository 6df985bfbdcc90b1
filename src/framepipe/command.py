"""Build the FFmpeg command line for a raw-video encoding session."""

import shutil

from .config import SessionConfig
from .errors import SpawnError

# Encoders that understand -crf / -preset
_X26X_CODECS = {"libx264", "libx264rgb", "libx265"}
_FASTSTART_SUFFIXES = {".mp4", ".m4v", ".mov"}


def resolve_executable(encoder_path: str) -> str:
    """Locate the encoder executable, raising SpawnError if it is missing."""
    exe = shutil.which(encoder_path)
    if exe is None:
        raise SpawnError(
            f"Encoder executable not found: {encoder_path!r}. Install FFmpeg:\n"
            "  macOS:   brew install ffmpeg\n"
            "  Ubuntu:  sudo apt install ffmpeg\n"
            "  Windows: https://ffmpeg.org/download.html"
        )
    return exe


def format_frame_rate(config: SessionConfig) -> str:
    rate = config.frame_rate
    if rate.denominator == 1:
        return str(rate.numerator)
    return f"{rate.numerator}/{rate.denominator}"


def build_ffmpeg_args(config: SessionConfig, executable: str) -> list[str]:
    """Return the argv that reads raw frames on stdin and writes ``config.output_path``."""
    settings = config.settings
    args = [
        executable,
        "-hide_banner",
        "-loglevel", settings.loglevel,
        "-y" if config.overwrite else "-n",
        "-f", "rawvideo",
        "-pix_fmt", config.pixel_format.value,
        "-s", f"{config.width}x{config.height}",
        "-framerate", format_frame_rate(config),
        "-i", "-",  # stdin
        "-an",
        "-c:v", settings.codec,
    ]

    if settings.bitrate:
        args += ["-b:v", settings.bitrate]
    elif settings.crf is not None and settings.codec in _X26X_CODECS:
        args += ["-crf", str(settings.crf)]
    if settings.preset and settings.codec in _X26X_CODECS:
        args += ["-preset", settings.preset]

    if settings.output_pixel_format:
        args += ["-pix_fmt", settings.output_pixel_format]

    suffix = config.output_path.suffix.lower()
    if settings.faststart and (
        suffix in _FASTSTART_SUFFIXES or settings.container in ("mp4", "mov")
    ):
        args += ["-movflags", "+faststart"]
    if settings.container:
        args += ["-f", settings.container]

    args += list(settings.extra_args)
    args.append(str(config.output_path))
    return args
