import sys

import pytest

from framepipe.command import build_ffmpeg_args, resolve_executable
from framepipe.config import EncoderSettings, SessionConfig
from framepipe.errors import SpawnError


def _value_after(args, flag):
    return args[args.index(flag) + 1]


def test_default_command():
    config = SessionConfig(width=64, height=48, frame_rate=30, output_path="clip.mp4")
    args = build_ffmpeg_args(config, "/usr/bin/ffmpeg")

    assert args[0] == "/usr/bin/ffmpeg"
    assert args[-1] == "clip.mp4"
    assert "-y" in args
    assert _value_after(args, "-f") == "rawvideo"
    assert _value_after(args, "-s") == "64x48"
    assert _value_after(args, "-framerate") == "30"
    assert _value_after(args, "-i") == "-"
    assert _value_after(args, "-c:v") == "libx264"
    assert _value_after(args, "-crf") == "23"
    assert _value_after(args, "-preset") == "medium"
    assert _value_after(args, "-movflags") == "+faststart"
    # input format first, output format second
    pix_fmts = [args[i + 1] for i, a in enumerate(args) if a == "-pix_fmt"]
    assert pix_fmts == ["rgb24", "yuv420p"]


def test_fractional_rate_and_no_overwrite():
    config = SessionConfig(
        width=2, height=2, frame_rate="30000/1001", output_path="a.mkv", overwrite=False
    )
    args = build_ffmpeg_args(config, "ffmpeg")
    assert _value_after(args, "-framerate") == "30000/1001"
    assert "-n" in args and "-y" not in args
    assert "-movflags" not in args


def test_bitrate_replaces_crf_and_container_and_extra_args():
    settings = EncoderSettings(
        codec="libvpx-vp9", bitrate="2M", container="webm", extra_args=("-row-mt", "1")
    )
    config = SessionConfig(width=2, height=2, output_path="out.bin", settings=settings)
    args = build_ffmpeg_args(config, "ffmpeg")
    assert _value_after(args, "-b:v") == "2M"
    assert "-crf" not in args
    assert "-preset" not in args
    assert args[-4:] == ["webm", "-row-mt", "1", "out.bin"]


def test_resolve_executable_finds_python():
    assert resolve_executable(sys.executable)


def test_resolve_executable_missing(tmp_path):
    with pytest.raises(SpawnError, match="not found"):
        resolve_executable(str(tmp_path / "no-such-ffmpeg"))
