from __future__ import annotations

import argparse

from phonosim.audio_io import load_audio, save_pcm
from phonosim.config import (
    GRID_HEIGHT,
    GRID_WIDTH,
    SAMPLE_RATE,
    SIM_AMPLITUDE,
    SIM_DURATION_S,
    SIM_FREQUENCY_HZ,
    AnalysisThresholds,
)
from phonosim.pipeline.clip_analyzer import ClipAnalyzer
from phonosim.pipeline.emitter import Emitter
from phonosim.pipeline.feature_extractor import FeatureExtractor
from phonosim.pipeline.simulation_runner import run_simulation
from phonosim.pipeline.sound_classifier import SoundClassifier
from phonosim.sources import WAVEFORMS


def _analyzer(sample_rate: int, verbose: bool) -> ClipAnalyzer:
    thresholds = AnalysisThresholds.from_env()
    return ClipAnalyzer(
        FeatureExtractor(sample_rate=sample_rate, thresholds=thresholds),
        SoundClassifier(thresholds),
        verbose=verbose,
    )


def _cmd_simulate(args, p: argparse.ArgumentParser) -> int:
    if args.duration <= 0:
        p.error("--duration must be positive")
    if not (0.0 <= args.source_x <= 1.0 and 0.0 <= args.source_y <= 1.0):
        p.error("--source-x/--source-y are fractions of the grid in [0, 1]")
    emitter = Emitter(mode=args.format)
    result = run_simulation(
        duration=args.duration,
        grid_width=args.width,
        grid_height=args.height,
        sample_rate=args.sample_rate,
        frequency=args.frequency,
        source_x=args.source_x,
        source_y=args.source_y,
        amplitude=args.amplitude,
        source_type=args.source_type,
        on_progress=emitter.emit_progress,
        verbose=args.verbose,
    )
    emitter.emit_state(result.state)
    if args.out:
        save_pcm(args.out, result.samples, result.sample_rate)
    if args.analyze:
        emitter.emit_features(_analyzer(result.sample_rate, args.verbose).analyze(result.samples), include_series=args.series)
    return 0


def _cmd_analyze(args, p: argparse.ArgumentParser) -> int:
    clip, sr = load_audio(args.audio_file, args.sample_rate)
    if clip.size == 0:
        p.error(f"{args.audio_file} contains no samples")
    record = _analyzer(sr, args.verbose).analyze(clip)
    Emitter(mode=args.format).emit_features(record, include_series=args.series)
    return 0


def main() -> int:
    p = argparse.ArgumentParser(description="2D acoustic field simulation and phonetic clip analysis")
    sub = p.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Run the wave-field solver and record the microphone cell")
    sim.add_argument("--duration", type=float, default=SIM_DURATION_S, help="Simulated seconds (one step per audio sample)")
    sim.add_argument("--width", type=int, default=GRID_WIDTH)
    sim.add_argument("--height", type=int, default=GRID_HEIGHT)
    sim.add_argument("--sample-rate", type=int, default=SAMPLE_RATE)
    sim.add_argument("--frequency", type=float, default=SIM_FREQUENCY_HZ)
    sim.add_argument("--amplitude", type=float, default=SIM_AMPLITUDE)
    sim.add_argument("--source-x", type=float, default=0.5, help="Source position as a fraction of the grid width")
    sim.add_argument("--source-y", type=float, default=0.5, help="Source position as a fraction of the grid height")
    sim.add_argument("--source-type", choices=list(WAVEFORMS) + ["string", "membrane"], default="sine")
    sim.add_argument("--out", type=str, default="", help="Write the normalized microphone trace to this WAV file")
    sim.add_argument("--analyze", action="store_true", help="Run feature extraction on the recorded trace")

    ana = sub.add_parser("analyze", help="Extract phonetic features from an audio file")
    ana.add_argument("audio_file", type=str, help="Path to a WAV/FLAC/OGG clip (mixed down to mono)")
    ana.add_argument("--sample-rate", type=int, default=SAMPLE_RATE, help="Resample to this rate before analysis")

    for sp in (sim, ana):
        sp.add_argument("--format", choices=["print", "json"], default="print")
        sp.add_argument("--series", action="store_true", help="Include per-frame series in feature output")
        sp.add_argument("--verbose", action="store_true", help="Print [sim]/[perf] timing lines")

    args = p.parse_args()
    if args.sample_rate <= 0:
        p.error("--sample-rate must be positive")
    if args.command == "simulate":
        return _cmd_simulate(args, p)
    return _cmd_analyze(args, p)


if __name__ == "__main__":
    raise SystemExit(main())
