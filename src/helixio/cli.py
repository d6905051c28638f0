"""
CLI entry point for offline engine runs.

Replays an audio file through an emulated analyser node, advances the
motion engine once per frame and writes the per-frame state to a
manifest that a renderer (or a notebook) can consume.

Usage:
    helixio-simulate <audio_file> [options]
    python -m helixio <audio_file> [options]
"""

import argparse
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

from helixio.config import EngineConfig, load_config
from helixio.errors import ConfigurationError
from helixio.io.exporter import FrameExporter
from helixio.io.source import AnalyserEmulator
from helixio.scene.driver import MotionDriver


def _progress_bar(current: int, total: int, width: int = 35):
    """Print a progress bar to stdout."""
    pct = current / max(total, 1) * 100
    filled = int(width * current / max(total, 1))
    bar = "#" * filled + "-" * (width - filled)
    if sys.stdout.isatty():
        sys.stdout.write(f"\r[{bar}] {pct:5.1f}%  frame {current}/{total}")
        sys.stdout.flush()
        if current >= total:
            sys.stdout.write("\n")
    else:
        if current % max(1, total // 20) == 0 or current >= total:
            print(f"{pct:5.1f}%  frame {current}/{total}", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helixio-simulate",
        description="Run the audio-reactive helix engine over an audio file and export per-frame state",
    )
    parser.add_argument("audio", type=Path, help="Input audio file (wav, mp3, flac)")
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output manifest path (default: <audio>_helixio.json / .npz)",
    )
    parser.add_argument("-c", "--config", type=Path, default=None, help="JSON engine config file")
    parser.add_argument("-f", "--fps", type=int, default=None, help="Frames per second (overrides config)")
    parser.add_argument("--seed", type=int, default=None, help="Particle layout seed (overrides config)")
    parser.add_argument(
        "--format", choices=["json", "numpy"], default="json",
        help="Manifest format (default: json)",
    )
    parser.add_argument(
        "--geometry", action="store_true",
        help="Include helix, satellite and ribbon geometry in the JSON manifest",
    )
    parser.add_argument("--max-duration", type=float, default=None, help="Limit the run to N seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args.config) if args.config else EngineConfig()
        overrides = {}
        if args.fps is not None:
            overrides["fps"] = args.fps
        if args.seed is not None:
            overrides["seed"] = args.seed
        if overrides:
            config = replace(config, **overrides)
        if config.n_bins != config.analyser.n_bins:
            raise ConfigurationError(
                f"n_bins ({config.n_bins}) must equal analyser fft_size / 2 ({config.analyser.n_bins})"
            )
        driver = MotionDriver(config)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    suffix = ".npz" if args.format == "numpy" else ".json"
    output = args.output or args.audio.with_name(f"{args.audio.stem}_helixio{suffix}")

    print(f"Loading audio: {args.audio}")
    t0 = time.time()
    source = AnalyserEmulator.from_file(args.audio, fps=config.fps, config=config.analyser)
    print(f"  Duration: {source.duration:.1f}s")

    total_frames = source.n_frames
    if args.max_duration is not None:
        max_frames = int(args.max_duration * config.fps)
        if max_frames < total_frames:
            total_frames = max_frames
            print(f"  Limiting to {args.max_duration}s ({max_frames} frames)")

    print(f"\nSimulating {total_frames} frames @ {config.fps}fps")
    exporter = FrameExporter(include_geometry=args.geometry)
    records = [
        exporter.frame_record(state, driver)
        for state in driver.run(source, total_frames, progress_callback=_progress_bar)
    ]

    if args.format == "numpy":
        written = exporter.export_numpy(records, config.fps, output)
    else:
        static = None
        if args.geometry:
            static = {"ribbon_indices": [b.geometry.indices.tolist() for b in driver.satellites.builders]}
        written = exporter.export_json(records, config.fps, output, static=static)

    elapsed = time.time() - t0
    print(f"\nDone! {driver.beat_tracker.state.beat_count} beats, final estimate {driver.bpm:.1f} BPM")
    print(f"  Took {elapsed:.1f}s ({total_frames / max(elapsed, 0.01):.1f} fps)")
    print(f"  Output: {written}")


if __name__ == "__main__":
    main()
