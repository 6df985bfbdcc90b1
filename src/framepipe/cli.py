"""CLI entry point for framepipe."""

import logging

import click
from PIL import Image
from tqdm import tqdm

from .config import QUALITY_PRESETS, EncoderSettings, SessionConfig
from .errors import EncoderDied, EncoderExitedWithError, InvalidConfig, SpawnError
from .frames import load_frame
from .pixels import PixelFormat, hsv_to_rgb24
from .session import EncoderSession

PACKED_FORMATS = [f.value for f in PixelFormat if f.is_packed]

ffmpeg_option = click.option(
    "--ffmpeg", "ffmpeg_path", default="ffmpeg", envvar="FRAMEPIPE_FFMPEG",
    show_envvar=True, help="FFmpeg executable name or path.",
)


def _parse_size(value: str) -> tuple[int, int]:
    try:
        w, h = value.lower().split("x")
        return int(w), int(h)
    except ValueError:
        raise click.BadParameter(f"expected WIDTHxHEIGHT, got {value!r}", param_hint="--size")


def _open_session(config: SessionConfig) -> EncoderSession:
    try:
        return EncoderSession.open(config)
    except SpawnError as e:
        raise click.UsageError(str(e))


def _make_config(**kwargs) -> SessionConfig:
    try:
        return SessionConfig(**kwargs)
    except InvalidConfig as e:
        raise click.UsageError(str(e))


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log encoder commands and diagnostics.")
def main(verbose: bool) -> None:
    """Assemble videos from raw frames using FFmpeg."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("images", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(), default="output.mp4", show_default=True,
              help="Output video file.")
@click.option("--fps", default="24", show_default=True, help="Frame rate, e.g. 30 or 30000/1001.")
@click.option("--quality", type=click.Choice(list(QUALITY_PRESETS)), default="medium",
              show_default=True, help="Encoder quality preset.")
@click.option("--codec", default="libx264", show_default=True, help="FFmpeg video encoder.")
@click.option("--pixel-format", type=click.Choice(PACKED_FORMATS), default="rgb24",
              show_default=True, help="Raw pixel format sent to FFmpeg.")
@click.option("--size", default=None, help="Output size WIDTHxHEIGHT (default: size of the first image).")
@ffmpeg_option
def encode(
    images: tuple[str, ...],
    output: str,
    fps: str,
    quality: str,
    codec: str,
    pixel_format: str,
    size: str | None,
    ffmpeg_path: str,
) -> None:
    """Encode IMAGES, in the order given, into a video."""
    if size:
        width, height = _parse_size(size)
    else:
        try:
            with Image.open(images[0]) as first:
                width, height = first.size
        except OSError as e:
            raise click.ClickException(f"Cannot read image {images[0]}: {e}")

    config = _make_config(
        width=width,
        height=height,
        pixel_format=pixel_format,
        frame_rate=fps,
        output_path=output,
        encoder_path=ffmpeg_path,
        settings=EncoderSettings.from_preset(quality, codec=codec),
    )
    click.echo(f"Encoding {len(images)} frames at {width}x{height} ({config.frame_rate} fps)")

    try:
        with _open_session(config) as session:
            for path in tqdm(images, unit="frame", desc="Encoding"):
                try:
                    frame = load_frame(path, config.pixel_format, size=(width, height))
                except OSError as e:
                    raise click.ClickException(f"Cannot read image {path}: {e}")
                session.add_frame(frame)
    except (EncoderDied, EncoderExitedWithError) as e:
        raise click.ClickException(str(e))

    click.echo(f"Video saved to: {output}")


@main.command()
@click.argument("output", type=click.Path(), default="demo.mp4")
@click.option("--width", default=320, show_default=True, help="Video width in pixels.")
@click.option("--height", default=240, show_default=True, help="Video height in pixels.")
@click.option("--fps", default="24", show_default=True, help="Frame rate.")
@click.option("--duration", default=3.0, show_default=True, help="Video duration in seconds.")
@ffmpeg_option
def demo(output: str, width: int, height: int, fps: str, duration: float, ffmpeg_path: str) -> None:
    """Render a synthetic hue sweep to OUTPUT, e.g. to check an FFmpeg install."""
    config = _make_config(
        width=width,
        height=height,
        pixel_format=PixelFormat.RGB24,
        frame_rate=fps,
        output_path=output,
        encoder_path=ffmpeg_path,
        settings=EncoderSettings.from_preset("fast"),
    )
    total_frames = max(1, round(float(config.frame_rate) * duration))

    try:
        with _open_session(config) as session:
            for i in tqdm(range(total_frames), unit="frame", desc="Rendering"):
                t = i / total_frames
                canvas = session.reset_frame()
                for x in range(width):
                    canvas.array[:, x] = hsv_to_rgb24((t + x / width) % 1.0, 1.0, 1.0)

                # White marker travelling left to right
                cx, cy = int(t * (width - 1)), height // 2
                for dx in range(-2, 3):
                    for dy in range(-2, 3):
                        if canvas.get(cx + dx, cy + dy) is not None:
                            canvas[cx + dx, cy + dy] = (255, 255, 255)
                session.save_frame()
    except (EncoderDied, EncoderExitedWithError) as e:
        raise click.ClickException(str(e))

    click.echo(f"Video saved to: {output}")


if __name__ == "__main__":
    main()
