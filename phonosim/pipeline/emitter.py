from __future__ import annotations

import json
import os
import sys
from typing import Optional, TextIO

from phonosim.messages import FeatureRecord, SimulationProgress, SimulationState


class Emitter:
    """Writes simulation progress and feature records for a presentation layer.

    mode="print": human-readable lines with a bracketed tag.
    mode="json": one JSON object per line ({"type": ..., "payload": ...}).
    """

    def __init__(self, mode: str = "print", stream: Optional[TextIO] = None):
        if mode not in ("print", "json"):
            raise ValueError(f"Unknown emitter mode '{mode}'; expected 'print' or 'json'")
        self.mode = mode
        self.stream = stream
        # Throttle progress lines: every N-th report (default 10). First and final reports always go out.
        try:
            self._print_every = max(1, int(os.environ.get('PRINT_PROGRESS_EVERY', '10')))
        except ValueError:
            self._print_every = 10
        self._progress_count = 0

    def _write(self, line: str) -> None:
        out = self.stream or sys.stdout
        out.write(line + "\n")
        out.flush()

    def _write_json(self, kind: str, payload: dict) -> None:
        self._write(json.dumps({"type": kind, "payload": payload}, ensure_ascii=False))

    def emit_progress(self, progress: SimulationProgress) -> None:
        self._progress_count += 1
        final = progress.done or progress.cancelled
        if not final and self._progress_count > 1 and (self._progress_count % self._print_every) != 0:
            return
        if self.mode == "json":
            self._write_json("progress", {
                "current_step": progress.current_step,
                "total_steps": progress.total_steps,
                "max_pressure": progress.max_pressure,
                "energy": progress.energy,
                "done": progress.done,
                "cancelled": progress.cancelled,
            })
            return
        pct = 100.0 * progress.current_step / max(1, progress.total_steps)
        tag = " done" if progress.done else (" cancelled" if progress.cancelled else "")
        self._write(
            f"[sim] step {progress.current_step}/{progress.total_steps} ({pct:.0f}%) | "
            f"max_p={progress.max_pressure:.4g} | energy={progress.energy:.4g}{tag}"
        )

    def emit_state(self, state: SimulationState) -> None:
        if self.mode == "json":
            self._write_json("state", {
                "max_pressure": state.max_pressure,
                "energy": state.energy,
                "total_steps": state.total_steps,
                "grid_width": state.grid_width,
                "grid_height": state.grid_height,
                "audio_duration": state.audio_duration,
            })
            return
        self._write(
            f"[sim] grid={state.grid_width}x{state.grid_height} | steps={state.total_steps} | "
            f"audio={state.audio_duration:.3f}s | max_p={state.max_pressure:.4g} | energy={state.energy:.4g}"
        )

    def emit_features(self, record: FeatureRecord, include_series: bool = False) -> None:
        payload = record.to_dict()
        if not include_series:
            # Per-frame series can be thousands of values; keep the summary view compact.
            for key in ("energy", "voicing", "pitch", "zero_crossing_rate"):
                for series in ("values", "frames", "contour"):
                    payload[key].pop(series, None)
            payload.pop("time_series", None)
            payload["mfcc"].pop("mel_spectrum", None)
        if self.mode == "json":
            self._write_json("features", payload)
            return

        s = record.summary
        f = record.formants
        self._write(
            f"[analyze] duration={record.duration:.3f}s | sr={record.sample_rate} | "
            f"energy_db={record.energy.db:.1f} | voicing={record.voicing.voicing_ratio:.2f} | "
            f"pitch={record.pitch.mean:.1f}Hz | zcr={record.zero_crossing_rate.mean:.3f} | "
            f"centroid={record.spectral_centroid.centroid:.0f}Hz"
        )
        self._write(
            "[analyze] formants: " + ", ".join(
                f"F{i + 1}={fm.frequency:.0f}Hz (bw {fm.bandwidth:.0f})" for i, fm in enumerate((f.f1, f.f2, f.f3))
            )
        )
        self._write("[analyze] mfcc: " + " ".join(f"{c:.2f}" for c in record.mfcc.coefficients))
        if s is None:
            return
        self._write(f"[analyze] sound type: {s.sound_type} | quality={s.quality.score}"
                    + (f" ({', '.join(s.quality.issues)})" if s.quality.issues else ""))
        if s.phoneme_guess is not None:
            g = s.phoneme_guess
            alts = ", ".join(f"{p} {c:.2f}" for p, c in g.alternatives)
            self._write(f"[analyze] guess: {g.phoneme} ({g.confidence:.2f})" + (f" | alternatives: {alts}" if alts else ""))
        for hint in s.phoneme_hints:
            self._write(f"[analyze]   - {hint}")
