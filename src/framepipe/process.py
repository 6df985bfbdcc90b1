"""Encoder process supervision: own the FFmpeg subprocess and its pipes."""

import errno
import logging
import shlex
import subprocess
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .errors import SpawnError

logger = logging.getLogger(__name__)

MAX_DIAGNOSTICS = 1024 * 1024  # 1 MB cap, oldest output is dropped first
_STDERR_JOIN_TIMEOUT = 5.0


class ProcessState(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class ExitStatus:
    returncode: int
    diagnostics: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class EncoderProcess:
    """An external encoder reading raw bytes on stdin.

    stdin is unbuffered so every ``write_chunk`` reports exactly how many
    bytes the pipe accepted. stderr is drained by a background thread for the
    whole life of the process so the encoder never blocks on a full
    diagnostic pipe while we are blocked writing to it.
    """

    def __init__(self, argv: Sequence[str]):
        self.argv = list(argv)
        self.state = ProcessState.NOT_STARTED
        self.process: Optional[subprocess.Popen] = None
        self._stderr = bytearray()
        self._stderr_lock = threading.Lock()
        self._stderr_thread: Optional[threading.Thread] = None
        self._status: Optional[ExitStatus] = None

    @classmethod
    def spawn(cls, argv: Sequence[str]) -> "EncoderProcess":
        """Start ``argv`` and return the running handle."""
        proc = cls(argv)
        proc.start()
        return proc

    def start(self) -> None:
        if self.state is not ProcessState.NOT_STARTED:
            raise RuntimeError("Encoder process has already been started")
        logger.debug("Encoder command: %s", shlex.join(self.argv))
        try:
            self.process = subprocess.Popen(
                self.argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                bufsize=0,
            )
        except OSError as e:
            raise SpawnError(f"Failed to start encoder {self.argv[0]!r}: {e}") from e
        self.state = ProcessState.RUNNING

        self._stderr_thread = threading.Thread(
            target=self._drain_stderr,
            name=f"encoder-stderr-{self.process.pid}",
            daemon=True,
        )
        try:
            self._stderr_thread.start()
        except RuntimeError as e:
            self.process.kill()
            self.process.communicate()
            self.state = ProcessState.TERMINATED
            raise SpawnError(f"Failed to start stderr reader: {e}") from e
        logger.info("Started encoder %s (pid %d)", self.argv[0], self.process.pid)

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode if self.process else None

    @property
    def diagnostics(self) -> str:
        with self._stderr_lock:
            return self._stderr.decode(errors="replace")

    def _drain_stderr(self) -> None:
        """Read stderr continuously so the encoder never blocks on a full pipe."""
        stream = self.process.stderr
        for chunk in iter(lambda: stream.read(4096), b""):
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "encoder[%d]: %s", self.process.pid, chunk.decode(errors="replace").rstrip()
                )
            with self._stderr_lock:
                self._stderr += chunk
                overflow = len(self._stderr) - MAX_DIAGNOSTICS
                if overflow > 0:
                    del self._stderr[:overflow]

    def is_alive(self) -> bool:
        """Non-blocking liveness check."""
        return self.state is ProcessState.RUNNING and self.process.poll() is None

    def write_chunk(self, data: memoryview) -> int:
        """Make one write attempt and return how many bytes the pipe took."""
        stdin = self.process.stdin if self.process else None
        if self.state is not ProcessState.RUNNING or stdin is None or stdin.closed:
            raise BrokenPipeError("Encoder input channel is closed")
        try:
            written = stdin.write(data)
        except OSError as e:
            # Windows reports a dead reader as EINVAL rather than EPIPE
            if isinstance(e, BrokenPipeError) or e.errno in (errno.EPIPE, errno.EINVAL):
                raise BrokenPipeError(e.errno, "Encoder closed its input") from e
            raise
        return written or 0

    def close_input(self) -> None:
        """Signal end of stream. Safe to call more than once."""
        stdin = self.process.stdin if self.process else None
        if stdin is None or stdin.closed:
            return
        try:
            stdin.close()
        except BrokenPipeError:
            # Reader is already gone; the exit status says why
            logger.debug("Encoder input was already broken at close")

    def wait(self, timeout: Optional[float] = None) -> ExitStatus:
        """Block until the encoder exits and return its status.

        Close the input first: an encoder reading stdin will not exit while
        the stream is still open.
        """
        if self._status is not None:
            return self._status
        if self.process is None:
            raise RuntimeError("Encoder process was never started")

        returncode = self.process.wait(timeout=timeout)
        self._stderr_thread.join(timeout=_STDERR_JOIN_TIMEOUT)
        self.close_input()
        if not self._stderr_thread.is_alive():
            self.process.stderr.close()
        self.state = ProcessState.TERMINATED
        self._status = ExitStatus(returncode, self.diagnostics)
        logger.debug("Encoder (pid %d) exited with status %d", self.process.pid, returncode)
        return self._status

    def terminate(self, timeout: float = 5.0) -> ExitStatus:
        """Forcibly end the encoder: SIGTERM, then SIGKILL after ``timeout``."""
        if self.process is None:
            raise RuntimeError("Encoder process was never started")
        if self.process.poll() is None:
            logger.warning("Terminating encoder (pid %d)", self.process.pid)
            self.process.terminate()
            try:
                self.process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning("Encoder (pid %d) ignored SIGTERM, killing", self.process.pid)
                self.process.kill()
        self.close_input()
        return self.wait()

    def release(self) -> None:
        """Free the process and its pipes, whatever state it is in."""
        if self.state is not ProcessState.RUNNING:
            self.close_input()
            return
        # terminate() and wait() close the input themselves
        if self.process.poll() is None:
            self.terminate()
        else:
            self.wait()
