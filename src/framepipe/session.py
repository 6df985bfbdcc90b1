"""Encoding sessions: feed raw frames to an external encoder and collect the result.

Typical use::

    config = SessionConfig(width=64, height=64, frame_rate=30, output_path="out.mp4")
    with EncoderSession.open(config) as session:
        for frame in frames:
            session.add_frame(frame)
    # leaving the block calls finish()

``add_frame`` blocks while the encoder's input pipe is full. That is the
flow control: the caller runs at the encoder's pace and no frames are queued
in memory. Event-driven callers can use ``submit_frame`` or
``add_frame_async`` instead, which run the same path on a private writer
thread.
"""

import asyncio
import logging
import threading
import weakref
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from fractions import Fraction
from pathlib import Path
from typing import Optional

from .canvas import Canvas
from .command import build_ffmpeg_args, resolve_executable
from .config import SessionConfig
from .errors import EncoderDied, EncoderExitedWithError, SessionClosed
from .frames import FrameLike, validate_frame
from .process import EncoderProcess
from .writer import FrameWriter

logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING = 4


class SessionState(Enum):
    CREATED = "created"
    OPEN = "open"
    CLOSING = "closing"
    FINALIZED = "finalized"


def _release_process(process: EncoderProcess) -> None:
    # Must not reference the session, or the session could never be collected
    process.release()


class EncoderSession:
    """One encoder subprocess fed with frames of a fixed size."""

    def __init__(
        self,
        config: SessionConfig,
        process: EncoderProcess,
        max_pending: int = DEFAULT_MAX_PENDING,
    ):
        if max_pending < 1:
            raise ValueError(f"max_pending must be at least 1, got {max_pending}")
        self.config = config
        self.process = process
        self.state = SessionState.CREATED
        self.succeeded: Optional[bool] = None
        self._writer = FrameWriter(process)
        self._canvas: Optional[Canvas] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        # Frames handed to the writer thread but not yet written
        self._pending = threading.BoundedSemaphore(max_pending)
        # Single release path shared by finish(), close(), GC and interpreter exit
        self._release = weakref.finalize(self, _release_process, process)

    @classmethod
    def open(cls, config: SessionConfig, max_pending: int = DEFAULT_MAX_PENDING) -> "EncoderSession":
        """Start the encoder for ``config`` and return an open session.

        ``max_pending`` bounds how many frames ``submit_frame`` and
        ``add_frame_async`` may have queued before they wait.
        Raises SpawnError if the encoder cannot be found or started.
        """
        executable = resolve_executable(config.encoder_path)
        process = EncoderProcess(build_ffmpeg_args(config, executable))
        session = cls(config, process, max_pending)
        session.process.start()
        session.state = SessionState.OPEN
        logger.info(
            "Opened session %dx%d %s @ %s fps -> %s",
            config.width, config.height, config.pixel_format.value,
            config.frame_rate, config.output_path,
        )
        return session

    @property
    def frames_written(self) -> int:
        return self._writer.frames_written

    @property
    def resolution(self) -> tuple[int, int]:
        return self.config.width, self.config.height

    @property
    def frame_rate(self) -> Fraction:
        return self.config.frame_rate

    def _check_open(self) -> None:
        if self.state is SessionState.CREATED:
            raise SessionClosed("Session has not been opened")
        if self.state is not SessionState.OPEN:
            raise SessionClosed(f"Session is {self.state.value} and accepts no more frames")

    def _encoder_died(self, cause: Optional[BaseException] = None) -> None:
        if self.state is SessionState.OPEN:
            self.state = SessionState.CLOSING
        if self.process.process.poll() is not None:
            status = self.process.wait()
            err = EncoderDied(status.returncode, status.diagnostics)
        else:
            err = EncoderDied(None, self.process.diagnostics)
        if self.state is not SessionState.FINALIZED:
            logger.error("Encoder died after %d frames", self.frames_written)
        raise err from cause

    def add_frame(self, frame: FrameLike) -> None:
        """Validate ``frame`` and write it to the encoder.

        Blocks while the encoder is busy. A frame of the wrong size raises
        FrameSizeMismatch and leaves the session untouched; a dead encoder
        raises EncoderDied and the session stops accepting frames.
        """
        self._check_open()
        view = validate_frame(frame, self.config.frame_size)
        if not self.process.is_alive():
            self._encoder_died()
        try:
            self._writer.write_frame(view)
        except BrokenPipeError as e:
            self._encoder_died(e)

    def _enqueue(self, data: bytes) -> "Future[None]":
        # Caller holds one pending slot; it is returned when the write settles
        try:
            self._check_open()
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="framepipe-writer"
                )
            future = self._executor.submit(self.add_frame, data)
        except BaseException:
            self._pending.release()
            raise
        future.add_done_callback(lambda _: self._pending.release())
        return future

    def submit_frame(self, frame: FrameLike) -> "Future[None]":
        """Queue a copy of ``frame`` for writing.

        Frames are written in submission order by a single worker thread.
        At most ``max_pending`` frames are queued at once; beyond that this
        call blocks until the writer catches up, so memory stays bounded.
        Write errors are reported through the returned future.
        """
        self._check_open()
        view = validate_frame(frame, self.config.frame_size)
        self._pending.acquire()
        return self._enqueue(view.tobytes())

    async def add_frame_async(self, frame: FrameLike) -> None:
        """Write ``frame`` without blocking the event loop.

        Waits (asynchronously) for a free slot when ``max_pending`` frames
        are already queued.
        """
        self._check_open()
        view = validate_frame(frame, self.config.frame_size)
        if not self._pending.acquire(blocking=False):
            acquired = asyncio.get_running_loop().run_in_executor(None, self._pending.acquire)
            try:
                await asyncio.shield(acquired)
            except asyncio.CancelledError:
                acquired.add_done_callback(lambda _: self._pending.release())
                raise
        await asyncio.wrap_future(self._enqueue(view.tobytes()))

    @property
    def canvas(self) -> Canvas:
        """Reusable frame buffer matching this session's geometry."""
        if self._canvas is None:
            self._canvas = Canvas(self.config.width, self.config.height, self.config.pixel_format)
        return self._canvas

    def reset_frame(self) -> Canvas:
        return self.canvas.reset()

    def save_frame(self) -> None:
        """Feed the current canvas contents as the next frame."""
        self.add_frame(self.canvas.array)

    def _shutdown_executor(self, wait: bool) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait, cancel_futures=not wait)
            self._executor = None

    def finish(self) -> Path:
        """Signal end of stream, wait for the encoder and return the output path."""
        if self.state is SessionState.FINALIZED:
            raise SessionClosed("Session has already been finalized")
        if self.state is SessionState.CREATED:
            raise SessionClosed("Session has not been opened")

        self._shutdown_executor(wait=True)
        died = self.state is SessionState.CLOSING or not self.process.is_alive()
        self.state = SessionState.CLOSING
        self.succeeded = False
        try:
            self.process.close_input()
            status = self.process.wait()
        finally:
            self.state = SessionState.FINALIZED
            self._release()

        if died:
            raise EncoderDied(status.returncode, status.diagnostics)
        if not status.ok:
            logger.error("Encoder exited with status %d", status.returncode)
            raise EncoderExitedWithError(status.returncode, status.diagnostics)

        self.succeeded = True
        logger.info("Encoded %d frames to %s", self.frames_written, self.config.output_path)
        return self.config.output_path

    def close(self) -> None:
        """Abandon the session, terminating the encoder if it is still running."""
        if self.state is SessionState.FINALIZED:
            return
        self.state = SessionState.FINALIZED
        self._shutdown_executor(wait=False)
        self._release()
        if self.succeeded is None:
            self.succeeded = False

    def __enter__(self) -> "EncoderSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.close()
        elif self.state is not SessionState.FINALIZED:
            self.finish()


def open_session(config: Optional[SessionConfig] = None, **kwargs) -> EncoderSession:
    """Open a session from a SessionConfig or from SessionConfig keyword fields."""
    if config is None:
        config = SessionConfig(**kwargs)
    elif kwargs:
        raise TypeError("Pass either a SessionConfig or keyword fields, not both")
    return EncoderSession.open(config)
