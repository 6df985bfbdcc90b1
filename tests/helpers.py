import sys
import time

import pytest

needs_posix = pytest.mark.skipif(
    sys.platform == "win32", reason="fake encoder is started through a shebang"
)


def make_frame(index, size=64 * 64 * 3):
    return bytes([index % 256]) * size


def wait_for_exit(process, timeout=10.0):
    deadline = time.monotonic() + timeout
    while process.is_alive():
        if time.monotonic() > deadline:
            raise AssertionError("encoder did not exit")
        time.sleep(0.01)
