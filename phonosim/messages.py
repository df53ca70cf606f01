from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, Optional, Tuple
import numpy as np


# --- Solver side ---

@dataclass(frozen=True)
class SimulationStats:
    max_pressure: float = 0.0
    energy_content: float = 0.0
    elapsed_time: float = 0.0


@dataclass
class SimulationSnapshot:
    time: float
    pressure: np.ndarray            # (height, width) copy
    velocity_magnitude: np.ndarray  # (height, width) copy
    stats: SimulationStats
    microphone: float


@dataclass(frozen=True)
class VelocityVector:
    x: float  # metres
    y: float
    vx: float
    vy: float
    magnitude: float


@dataclass(frozen=True)
class SimulationProgress:
    current_step: int
    total_steps: int
    max_pressure: float
    energy: float
    done: bool = False
    cancelled: bool = False


@dataclass(frozen=True)
class SimulationState:
    max_pressure: float
    energy: float
    total_steps: int
    grid_width: int
    grid_height: int
    audio_duration: float


# --- Spectral side ---

@dataclass(frozen=True)
class SpectralPeak:
    bin_index: int
    magnitude: float
    magnitude_db: float
    frequency: float


@dataclass(frozen=True)
class FrequencyBand:
    center_frequency: int
    bin_index: int
    magnitude: float
    magnitude_db: float


@dataclass(frozen=True)
class RangeAnalysis:
    energy_rms: float
    peak_magnitude: float
    peak_frequency: float
    energy_db: float


# --- Feature record ---

@dataclass(frozen=True)
class EnergyFeatures:
    values: Tuple[float, ...]  # per-frame mean square, normalized to the clip max
    mean: float
    min: float
    max: float
    db: float                  # peak frame RMS in dBFS
    peak_amplitude: float      # max |sample|


@dataclass(frozen=True)
class VoicedSegment:
    start: float
    end: float
    duration: float


@dataclass(frozen=True)
class VoicingFeatures:
    frames: Tuple[bool, ...]
    voicing_ratio: float
    is_voiced: bool
    voiced_segments: Tuple[VoicedSegment, ...]


@dataclass(frozen=True)
class PitchFeatures:
    values: Tuple[float, ...]   # raw per-frame estimate, 0.0 where none
    contour: Tuple[float, ...]  # estimates inside the plausible range
    mean: float
    min: float
    max: float


@dataclass(frozen=True)
class Formant:
    frequency: float = 0.0
    magnitude: float = 0.0
    bandwidth: float = 0.0


@dataclass(frozen=True)
class FormantFeatures:
    f1: Formant
    f2: Formant
    f3: Formant

    @property
    def all_formants(self) -> Tuple[Formant, ...]:
        return tuple(f for f in (self.f1, self.f2, self.f3) if f.frequency > 0)


@dataclass(frozen=True)
class SpectralCentroid:
    centroid: float    # Hz
    brightness: float  # centroid / Nyquist


@dataclass(frozen=True)
class ZeroCrossingFeatures:
    values: Tuple[float, ...]
    mean: float
    is_fricative: bool


@dataclass(frozen=True)
class MFCCFeatures:
    coefficients: Tuple[float, ...]
    mel_spectrum: Tuple[float, ...]


@dataclass(frozen=True)
class TimeSeriesPoint:
    time: float
    energy: float  # frame RMS
    sample: float  # first sample of the frame


@dataclass(frozen=True)
class Quality:
    score: int
    issues: Tuple[str, ...]
    is_good: bool


@dataclass(frozen=True)
class Characteristics:
    voicing: str
    is_fricative: bool
    brightness: str
    pitch: str
    energy: str


@dataclass(frozen=True)
class PhonemeGuess:
    phoneme: str
    confidence: float
    alternatives: Tuple[Tuple[str, float], ...] = ()


@dataclass(frozen=True)
class Summary:
    sound_type: str
    quality: Quality
    characteristics: Characteristics
    phoneme_hints: Tuple[str, ...]
    phoneme_guess: Optional[PhonemeGuess] = None


@dataclass(frozen=True)
class FeatureRecord:
    duration: float
    sample_rate: int
    energy: EnergyFeatures
    voicing: VoicingFeatures
    pitch: PitchFeatures
    formants: FormantFeatures
    spectral_centroid: SpectralCentroid
    zero_crossing_rate: ZeroCrossingFeatures
    mfcc: MFCCFeatures
    time_series: Tuple[TimeSeriesPoint, ...] = field(default_factory=tuple)
    summary: Optional[Summary] = None

    def to_dict(self) -> Dict:
        """Plain-container view for JSON output."""
        out = asdict(self)
        out["formants"]["all_formants"] = [asdict(f) for f in self.formants.all_formants]
        return out
