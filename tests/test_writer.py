import pytest

from framepipe.writer import FrameWriter


class TrickleSink:
    """Accepts at most ``limit`` bytes per write, sometimes none."""

    def __init__(self, limit):
        self.limit = limit
        self.calls = 0
        self.data = bytearray()

    def write_chunk(self, data):
        self.calls += 1
        if self.calls % 3 == 0:
            return 0
        chunk = bytes(data[:self.limit])
        self.data += chunk
        return len(chunk)


class BrokenSink:
    def __init__(self, accept_first):
        self.accept_first = accept_first

    def write_chunk(self, data):
        if self.accept_first:
            n, self.accept_first = min(self.accept_first, len(data)), 0
            return n
        raise BrokenPipeError("gone")


def test_partial_writes_are_completed():
    sink = TrickleSink(limit=1000)
    writer = FrameWriter(sink)
    frame = bytes(range(256)) * 48  # 12288 bytes

    writer.write_frame(memoryview(frame))

    assert bytes(sink.data) == frame
    assert sink.calls > 12
    assert writer.frames_written == 1
    assert writer.bytes_written == len(frame)


def test_frames_are_written_in_order():
    sink = TrickleSink(limit=7)
    writer = FrameWriter(sink)
    frames = [bytes([i]) * 50 for i in range(3)]
    for frame in frames:
        writer.write_frame(frame)
    assert bytes(sink.data) == b"".join(frames)
    assert writer.frames_written == 3


def test_broken_pipe_propagates_without_counting_frame():
    writer = FrameWriter(BrokenSink(accept_first=10))
    with pytest.raises(BrokenPipeError):
        writer.write_frame(bytes(100))
    assert writer.frames_written == 0
