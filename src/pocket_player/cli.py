"""Command-line interface for pocket-player."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .app import PocketPlayerApp
from .logging_utils import setup_logging
from .paths import log_dir
from .runtime_config import (
    BACKENDS,
    meter_interval_s,
    normalize_repeat_mode,
    resolve_backend_name,
    resolve_log_level,
)
from .services.audio_output import AudioDevice
from .services.fake_output import FakeAudioDevice
from .services.playback_engine import PlaybackEngine
from .services.track_catalog import demo_tracks, tracks_from_paths
from .services.vlc_output import VLCAudioDevice
from .version import build_help_epilog

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pocket-player",
        description="Single-screen music player with a live level meter.",
        epilog=build_help_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "paths",
        nargs="*",
        help="Audio files or directories forming the playlist (demo playlist if omitted).",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        help="Audio output to use (default: vlc for files, fake for the demo).",
    )
    parser.add_argument(
        "--meter-hz",
        type=float,
        default=None,
        help="Level meter sampling rate in Hz (1-30, default 10).",
    )
    parser.add_argument("--shuffle", action="store_true", help="Start shuffled")
    parser.add_argument(
        "--repeat",
        choices=("off", "all", "one"),
        default="off",
        help="Initial repeat mode.",
    )
    parser.add_argument("--artwork", help="Artwork label shown on the screen.")
    parser.add_argument(
        "--autoplay", action="store_true", help="Start playing immediately."
    )
    return parser


def build_device(name: str, paths: list[str]) -> AudioDevice:
    logger.info("Audio output selected: %s", name)
    if name == "vlc":
        search_dirs = [Path(raw) for raw in paths if Path(raw).is_dir()]
        return VLCAudioDevice(search_dirs=search_dirs)
    return FakeAudioDevice()


def build_engine(args: argparse.Namespace) -> PlaybackEngine:
    tracks = tracks_from_paths(args.paths) if args.paths else demo_tracks()
    backend = resolve_backend_name(args.backend, has_paths=bool(args.paths))
    return PlaybackEngine(
        device=build_device(backend, args.paths),
        tracks=tracks,
        shuffle=args.shuffle,
        repeat_mode=normalize_repeat_mode(args.repeat),
        artwork=args.artwork,
        meter_interval_s=meter_interval_s(args.meter_hz),
    )


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    try:
        level = resolve_log_level(verbose=args.verbose, quiet=args.quiet)
        setup_logging(
            log_dir=log_dir(),
            level=level,
            log_file=Path(args.log_file) if args.log_file else None,
            console=False,
        )
        logger.info("Starting pocket-player %s", __version__)
        engine = build_engine(args)
        PocketPlayerApp(
            engine, artwork_label=args.artwork, autoplay=args.autoplay
        ).run()
        return 0
    except Exception as exc:  # pragma: no cover - top-level safety net
        logger.exception("Unhandled error: %s", exc)
        print("Unexpected error. Re-run with --verbose for details.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
