"""Exceptions raised by the frame-feeding pipeline."""

from typing import Optional


class FramePipeError(Exception):
    """Base class for every error raised by framepipe."""


class InvalidConfig(FramePipeError, ValueError):
    """Session configuration is out of range or incomplete."""


class SpawnError(FramePipeError):
    """The encoder executable could not be located or started."""


class FrameSizeMismatch(FramePipeError, ValueError):
    """A frame's byte length disagrees with the configured geometry."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Frame is {actual} bytes, expected exactly {expected} bytes"
        )
        self.expected = expected
        self.actual = actual


class SessionClosed(FramePipeError):
    """The session no longer accepts frames."""


class _EncoderFailure(FramePipeError):
    def __init__(self, message: str, returncode: Optional[int], diagnostics: str):
        if diagnostics:
            message = f"{message}:\n{diagnostics}"
        super().__init__(message)
        self.returncode = returncode
        self.diagnostics = diagnostics


class EncoderDied(_EncoderFailure):
    """The encoder exited or closed its input before the stream was finished."""

    def __init__(self, returncode: Optional[int] = None, diagnostics: str = ""):
        super().__init__(
            f"Encoder terminated before end of stream (exit status {returncode})",
            returncode,
            diagnostics,
        )


class EncoderExitedWithError(_EncoderFailure):
    """The encoder ran to completion but reported a non-zero exit status."""

    def __init__(self, returncode: int, diagnostics: str = ""):
        super().__init__(
            f"FFmpeg encoding failed with exit status {returncode}",
            returncode,
            diagnostics,
        )
