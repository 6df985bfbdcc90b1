"""Deliver whole frames to the encoder's input pipe."""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class ByteSink(Protocol):
    def write_chunk(self, data: memoryview) -> int:
        ...


class FrameWriter:
    """Writes frames one after another, never leaving a frame half-sent.

    A pipe may accept only part of a buffer in a single write. The remainder
    is retried until the frame is complete, so the next frame always starts
    on a frame boundary. Writes block while the pipe is full, which throttles
    the caller to the encoder's pace.
    """

    def __init__(self, sink: ByteSink):
        self.sink = sink
        self.frames_written = 0
        self.bytes_written = 0

    def write_frame(self, frame: memoryview) -> None:
        view = memoryview(frame)
        total = view.nbytes
        offset = 0
        while offset < total:
            offset += self.sink.write_chunk(view[offset:])
        self.frames_written += 1
        self.bytes_written += total
        logger.debug("Wrote frame %d (%d bytes)", self.frames_written, total)
