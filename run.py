#!/usr/bin/env python3
"""
peakdetect - replay an energy sequence through the peak detector

Reads one normalized band energy value per frame (one per line, or the first
column of a CSV file) and logs the frames on which a peak fires.
"""

import argparse
import cProfile
import sys
from pathlib import Path

import numpy as np

from config import Config
from config_persistence import load_config
from logging_utils import log_event, set_log_level
from peak_detect import PeakDetector, frames_per_peak_for_bpm
from peak_session_reporter import PeakSessionReporter, PeakSessionStats


def load_energies(path: Path) -> np.ndarray:
    """Load per-frame energies from a text/CSV file (first column only)."""
    return np.loadtxt(path, delimiter=",", usecols=0, ndmin=1, dtype=np.float64)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay band energies through the peak detector")
    parser.add_argument("energy_file", type=Path, help="File with one energy value (0-1) per frame")
    parser.add_argument("--config", type=Path, default=None, help="JSON config file to start from")
    parser.add_argument("--freq-low", type=float, default=None, help="Low band bound (Hz)")
    parser.add_argument("--freq-high", type=float, default=None, help="High band bound (Hz)")
    parser.add_argument("--threshold", type=float, default=None, help="Absolute peak floor (0-1)")
    window = parser.add_mutually_exclusive_group()
    window.add_argument("--frames-per-peak", type=int, default=None, help="Debounce window in frames")
    window.add_argument("--bpm", type=float, default=None,
                        help="Derive frames-per-peak from an estimated tempo")
    parser.add_argument("--frame-rate", type=float, default=None,
                        help="Frames per second for --bpm (default: 60)")
    parser.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR")
    parser.add_argument("--report-dir", type=Path, default=None,
                        help="Write peak_session_report.json/.csv into this directory")
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable cProfile and save stats to --profile-out",
    )
    parser.add_argument(
        "--profile-out",
        default="profile.prof",
        help="Path to save cProfile stats (default: profile.prof)",
    )
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command-line values on top of the loaded configuration."""
    peak = config.peak
    if args.freq_low is not None:
        peak.freq_low = args.freq_low
    if args.freq_high is not None:
        peak.freq_high = args.freq_high
    if args.threshold is not None:
        peak.threshold = args.threshold
    if args.bpm is not None:
        frame_rate = args.frame_rate if args.frame_rate is not None else 60.0
        peak.frames_per_peak = frames_per_peak_for_bpm(frame_rate, args.bpm)
    elif args.frames_per_peak is not None:
        peak.frames_per_peak = args.frames_per_peak
    if args.log_level:
        config.log_level = args.log_level
    return config


def replay(detector: PeakDetector, energies, stats: PeakSessionStats | None = None) -> list[int]:
    """Feed *energies* frame by frame; return the indices of frames that fired."""
    peak_frames: list[int] = []
    for frame, energy in enumerate(energies):
        if detector.update(float(energy)):
            peak_frames.append(frame)
            log_event("INFO", "Replay", "Peak", frame=frame, energy=detector.energy)
        if stats is not None:
            stats.record(detector)
    return peak_frames


def run_replay(args: argparse.Namespace) -> int:
    if args.config is None:
        config = Config()
    elif not args.config.exists():
        log_event("ERROR", "Replay", "Config file not found", path=args.config)
        return 1
    else:
        # Read-only: a replay never rewrites the user's config file
        config = load_config(args.config, autosave=False)
    try:
        apply_overrides(config, args)
    except ValueError as e:
        log_event("ERROR", "Replay", "Invalid tempo settings", error=e)
        return 1
    set_log_level(config.log_level)

    try:
        energies = load_energies(args.energy_file)
    except (OSError, ValueError) as e:
        log_event("ERROR", "Replay", "Could not read energy file", path=args.energy_file, error=e)
        return 1

    detector = PeakDetector.from_config(config.peak)
    stats = PeakSessionStats()
    peak_frames = replay(detector, energies, stats)

    summary = stats.summary(detector)
    log_event(
        "INFO",
        "Replay",
        "Replay summary",
        frames=summary["frames"],
        peaks=summary["peaks"],
        energy_mean=summary["energy_mean"],
        cutoff_max=summary["cutoff_max"],
    )
    print(" ".join(str(frame) for frame in peak_frames))

    if args.report_dir is not None and config.report_generation_enabled:
        try:
            PeakSessionReporter(args.report_dir).save_session(summary)
        except OSError as e:
            log_event("WARNING", "Replay", "Could not write session report", error=e)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.frame_rate is not None and args.bpm is None:
        parser.error("--frame-rate only applies together with --bpm")

    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        exit_code = run_replay(args)
        profiler.disable()
        profiler.dump_stats(args.profile_out)
    else:
        exit_code = run_replay(args)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
