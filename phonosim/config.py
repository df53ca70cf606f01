"""
Central configuration for the phonosim engine.

Exports constants used across the solver, the analysis pipeline and the CLI.
"""
from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields

# --- Core sampling and frame configuration ---
SAMPLE_RATE: int = 44100
FRAME_MS: float = 25.0           # analysis frame length
HOP_MS: float = 10.0             # analysis hop
TIME_SERIES_FRAME: int = 512     # coarse display trace frame (samples)

# --- Spectral analysis ---
SPECTRAL_WINDOW: int = 1024      # SpectralEngine default window (Hann)
CLIP_MIN_FFT: int = 256          # smallest whole-clip transform length
DB_FLOOR: float = -100.0
PEAK_THRESHOLD_DB: float = -30.0
PEAK_MIN_DISTANCE: int = 10
BAND_COUNT: int = 8
BAND_FMIN: float = 20.0
EPS: float = 1e-10

# --- MFCC ---
NUM_MFCC: int = 13
NUM_MELS: int = 40
MEL_FMIN: float = 50.0

# --- Physical constants ---
SPEED_OF_SOUND_MPS: float = 343.0
AIR_DENSITY_KGM3: float = 1.2

# --- Solver defaults ---
GRID_WIDTH: int = 128
GRID_HEIGHT: int = 128
CELL_SIZE_M: float = 0.01
TIME_STEP_S: float = 1e-5
DAMPING_FACTOR: float = 0.9995
CFL_LIMIT: float = 1.0 / math.sqrt(2.0)  # 2D five-point stability bound
CFL_CLAMP_FRACTION: float = 0.9  # clamped dt = fraction * limit * dx / c

# --- Simulation runner pacing ---
REPORT_INTERVAL: int = 100       # steps between progress reports

# --- Convenience one-shot simulation defaults ---
SIM_DURATION_S: float = 1.0
SIM_FREQUENCY_HZ: float = 440.0
SIM_AMPLITUDE: float = 1000.0


@dataclass(frozen=True)
class AnalysisThresholds:
    """Hand-tuned decision constants for voicing, fricative and quality checks.

    Each field can be overridden through an environment variable named
    ``PHONO_<FIELD_NAME_UPPER>`` (see :meth:`from_env`).
    """

    energy_floor: float = 0.001          # frame mean square below this is silence
    voicing_zcr: float = 0.2             # frame ZCR above this is unvoiced
    periodicity: float = 0.5             # normalized autocorrelation for voicing
    voiced_ratio: float = 0.5            # clip is voiced above this frame ratio
    fricative_zcr: float = 0.15          # clip mean ZCR above this is fricative
    pitch_min_hz: float = 50.0
    pitch_max_hz: float = 400.0
    octave_tolerance: float = 0.9        # first lag region reaching this share of the best
    formant_fraction: float = 0.1        # formant peaks must exceed this share of the max
    quiet_level: float = 0.3
    clipping_level: float = 0.95
    voiced_pitch_hz: float = 80.0
    hint_f1_hz: float = 200.0
    hint_pitch_min_hz: float = 80.0
    hint_pitch_max_hz: float = 250.0
    brightness_split: float = 0.5

    @classmethod
    def from_env(cls, prefix: str = "PHONO_") -> "AnalysisThresholds":
        values = {}
        for f in fields(cls):
            raw = os.environ.get(prefix + f.name.upper())
            if raw is None:
                continue
            try:
                values[f.name] = float(raw)
            except ValueError:
                print(f"[config][warn] ignoring {prefix + f.name.upper()}={raw!r} (not a number)")
        return cls(**values)


DEFAULT_THRESHOLDS = AnalysisThresholds()
