import stat
import sys

import pytest

from framepipe.config import SessionConfig

# Stand-in for ffmpeg: copies stdin to the output path (last argument).
# FAKE_ENCODER_MODE switches it into failure modes.
FAKE_ENCODER = """\
import os
import sys
import time

args = sys.argv[1:]
out = args[-1]
mode = os.environ.get("FAKE_ENCODER_MODE", "copy")

with open(out + ".args", "w") as f:
    f.write("\\n".join(args))

if mode == "die":
    sys.stderr.write("fake encoder: refusing input\\n")
    sys.exit(3)

if mode == "chatty":
    # Far more than a pipe buffer holds, before reading any input
    for i in range(20000):
        sys.stderr.write("frame=%d fps=30.0 q=28.0 size=1kB\\n" % i)
    sys.stderr.flush()

if mode == "closed":
    # Stop reading but stay alive
    os.close(0)
    time.sleep(2)
    sys.exit(0)

if mode == "slow":
    time.sleep(1.5)

data = sys.stdin.buffer.read()

if mode == "fail":
    sys.stderr.write("fake encoder: Invalid data found when processing input\\n")
    sys.exit(1)

with open(out, "wb") as f:
    f.write(data)
"""


@pytest.fixture
def fake_encoder(tmp_path):
    path = tmp_path / "fake-ffmpeg"
    path.write_text(f"#!{sys.executable}\n{FAKE_ENCODER}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture
def make_config(tmp_path, fake_encoder):
    def factory(**overrides):
        fields = {
            "width": 64,
            "height": 64,
            "pixel_format": "rgb24",
            "frame_rate": 30,
            "output_path": tmp_path / "out.mp4",
            "encoder_path": fake_encoder,
        }
        fields.update(overrides)
        return SessionConfig(**fields)

    return factory


@pytest.fixture(autouse=True)
def _clear_encoder_mode(monkeypatch):
    monkeypatch.delenv("FAKE_ENCODER_MODE", raising=False)
