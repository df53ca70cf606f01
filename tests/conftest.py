"""
Shared fixtures for the test suite.

Synthetic numpy signals only; no audio files are read.
"""

import numpy as np
import pytest

from phonosim.messages import (
    EnergyFeatures,
    FeatureRecord,
    Formant,
    FormantFeatures,
    MFCCFeatures,
    PitchFeatures,
    SpectralCentroid,
    VoicingFeatures,
    ZeroCrossingFeatures,
)

SR = 44100


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------


@pytest.fixture
def tone_150hz() -> np.ndarray:
    """0.5 s, 150 Hz sine at amplitude 0.5 (period of exactly 294 samples)."""
    t = np.arange(int(0.5 * SR)) / SR
    return 0.5 * np.sin(2 * np.pi * 150.0 * t)


@pytest.fixture
def white_noise() -> np.ndarray:
    """0.5 s of seeded Gaussian noise, std 0.3."""
    rng = np.random.default_rng(1234)
    return rng.normal(0.0, 0.3, int(0.5 * SR))


# ---------------------------------------------------------------------------
# Record builder
# ---------------------------------------------------------------------------


def make_record(
    voiced: bool = False,
    fricative: bool = False,
    pitch_mean: float = 0.0,
    peak_amplitude: float = 0.5,
    f1: float = 0.0,
    f2: float = 0.0,
    brightness: float = 0.2,
    energy_db: float = -12.0,
) -> FeatureRecord:
    """Minimal FeatureRecord carrying just the fields the classifier reads."""
    return FeatureRecord(
        duration=0.5,
        sample_rate=SR,
        energy=EnergyFeatures(values=(1.0,), mean=1.0, min=1.0, max=1.0, db=energy_db, peak_amplitude=peak_amplitude),
        voicing=VoicingFeatures(frames=(voiced,), voicing_ratio=1.0 if voiced else 0.0, is_voiced=voiced, voiced_segments=()),
        pitch=PitchFeatures(values=(pitch_mean,), contour=(pitch_mean,) if pitch_mean else (), mean=pitch_mean, min=pitch_mean, max=pitch_mean),
        formants=FormantFeatures(f1=Formant(frequency=f1), f2=Formant(frequency=f2), f3=Formant()),
        spectral_centroid=SpectralCentroid(centroid=brightness * SR / 2, brightness=brightness),
        zero_crossing_rate=ZeroCrossingFeatures(values=(0.3 if fricative else 0.01,), mean=0.3 if fricative else 0.01, is_fricative=fricative),
        mfcc=MFCCFeatures(coefficients=(0.0,) * 13, mel_spectrum=(0.0,) * 40),
    )
