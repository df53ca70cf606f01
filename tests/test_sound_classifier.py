"""
Tests for phonosim/pipeline/sound_classifier.py: decision table, quality, hints.
"""

import pytest

from phonosim.config import AnalysisThresholds
from phonosim.pipeline.sound_classifier import SoundClassifier
from tests.conftest import make_record


@pytest.fixture
def classifier() -> SoundClassifier:
    return SoundClassifier()


# ---------------------------------------------------------------------------
# Decision table
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("kwargs, label", [
    ({"voiced": False, "fricative": True}, "unvoiced fricative"),
    ({"voiced": True, "fricative": True}, "voiced fricative"),
    ({"voiced": False, "fricative": False}, "unvoiced stop"),
    ({"voiced": True, "fricative": False, "pitch_mean": 120.0}, "voiced sound (vowel/nasal/voiced stop)"),
    ({"voiced": True, "fricative": False, "pitch_mean": 60.0}, "unknown"),
])
def test_classify_branches(classifier, kwargs, label):
    assert classifier.classify(make_record(**kwargs)) == label


def test_pitch_boundary_is_exclusive(classifier):
    assert classifier.classify(make_record(voiced=True, pitch_mean=80.0)) == "unknown"


# ---------------------------------------------------------------------------
# Quality
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("peak, score, issues", [
    (0.5, 100, ()),
    (0.1, 80, ("too quiet",)),
    (0.99, 80, ("clipping/distortion",)),
])
def test_quality(classifier, peak, score, issues):
    quality = classifier.assess_quality(make_record(peak_amplitude=peak))
    assert quality.score == score
    assert quality.issues == issues
    assert quality.is_good == (not issues)


def test_quality_thresholds_configurable():
    classifier = SoundClassifier(AnalysisThresholds(quiet_level=0.6))
    assert classifier.assess_quality(make_record(peak_amplitude=0.5)).issues == ("too quiet",)


# ---------------------------------------------------------------------------
# Hints and characteristics
# ---------------------------------------------------------------------------


def test_hints_for_voiced_vowel(classifier):
    hints = classifier.hints(make_record(voiced=True, pitch_mean=150.0, f1=700.0))
    assert hints[0] == "This is VOICED (vocal cords vibrating)"
    assert "F1 at ~700Hz suggests vowel-like sound" in hints
    assert "Pitch around 150Hz detected" in hints
    assert not any("friction" in h for h in hints)


def test_hints_for_unvoiced_fricative(classifier):
    hints = classifier.hints(make_record(voiced=False, fricative=True))
    assert hints == (
        "This is UNVOICED (no vocal cord vibration)",
        "High friction noise - could be fricative or affricate",
    )


def test_characteristics(classifier):
    c = classifier.characteristics(make_record(voiced=True, pitch_mean=149.6, brightness=0.7, energy_db=-9.04))
    assert c.voicing == "voiced"
    assert c.brightness == "bright"
    assert c.pitch == "~150Hz"
    assert c.energy == "-9.0dB"
    assert classifier.characteristics(make_record()).pitch == "no pitch"


# ---------------------------------------------------------------------------
# Phoneme guess / summary
# ---------------------------------------------------------------------------


def test_guess_fixed_classes(classifier):
    guess = classifier.guess_phoneme(make_record(voiced=False, fricative=True))
    assert guess.phoneme == "f"
    assert guess.alternatives[0][0] == "s"
    assert classifier.guess_phoneme(make_record(voiced=True, fricative=True)).phoneme == "v"
    assert classifier.guess_phoneme(make_record()).phoneme == "p"


def test_guess_vowel_by_formants(classifier):
    guess = classifier.guess_phoneme(make_record(voiced=True, pitch_mean=120.0, f1=240.0, f2=2400.0))
    assert guess.phoneme == "i"
    assert guess.confidence == pytest.approx(1.0)
    assert len(guess.alternatives) == 2
    assert all(c <= guess.confidence for _, c in guess.alternatives)


def test_guess_unknown_is_none(classifier):
    assert classifier.guess_phoneme(make_record(voiced=True, pitch_mean=50.0)) is None


def test_guess_is_deterministic(classifier):
    record = make_record(voiced=True, pitch_mean=120.0, f1=500.0, f2=1400.0)
    assert classifier.guess_phoneme(record) == classifier.guess_phoneme(record)


def test_summarize(classifier):
    summary = classifier.summarize(make_record(voiced=False, fricative=True, peak_amplitude=0.1))
    assert summary.sound_type == "unvoiced fricative"
    assert summary.quality.score == 80
    assert summary.phoneme_guess.phoneme == "f"
    assert summary.characteristics.voicing == "unvoiced"
