"""
Tests for phonosim/dsp_utils.py: framing, ZCR, autocorrelation, mel and DCT helpers.
"""

import librosa
import numpy as np
import pytest

from phonosim.dsp_utils import (
    autocorrelation_matrix,
    dct_ii,
    frame_energy,
    frame_signal,
    lag_range,
    mel_band_frequencies,
    next_pow2,
    runs_of_true,
    zero_crossing_rate,
)

# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("n, expected", [(0, 1), (1, 1), (2, 2), (3, 4), (1024, 1024), (1025, 2048)])
def test_next_pow2(n, expected):
    assert next_pow2(n) == expected


def test_frame_signal_shape():
    frames = frame_signal(np.arange(100, dtype=float), frame_length=20, hop_length=10)
    assert frames.shape == (9, 20)
    assert frames[1, 0] == 10.0


def test_short_signal_padded_to_one_frame():
    frames = frame_signal(np.ones(5), frame_length=20, hop_length=10)
    assert frames.shape == (1, 20)
    assert frames[0, :5].tolist() == [1.0] * 5
    assert np.all(frames[0, 5:] == 0.0)


def test_frame_energy():
    frames = np.array([[1.0, -1.0], [0.0, 2.0]])
    assert frame_energy(frames).tolist() == [1.0, 2.0]


# ---------------------------------------------------------------------------
# Zero crossings / autocorrelation
# ---------------------------------------------------------------------------


def test_zero_crossing_rate():
    frames = np.array([[1.0, -1.0, 1.0, -1.0], [1.0, 1.0, 1.0, 1.0]])
    assert zero_crossing_rate(frames).tolist() == [0.75, 0.0]


def test_zero_counts_as_positive():
    assert zero_crossing_rate(np.array([[0.0, 0.0, 1.0, 0.0]]))[0] == 0.0


def test_lag_range():
    assert lag_range(44100, 50, 400, 1102) == (110, 882)
    assert lag_range(8000, 50, 400, 100) == (20, 99)


def test_autocorrelation_periodic_signal():
    """A signal exactly periodic at L scores 1 at lag L."""
    n = 600
    x = np.sin(2 * np.pi * np.arange(n) / 100.0)
    r = autocorrelation_matrix(x[None, :], 50, 250)
    assert r.shape == (1, 200)
    assert r[0, 100 - 50] == pytest.approx(1.0, abs=1e-9)
    assert r[0, 150 - 50] == pytest.approx(-1.0, abs=1e-9)


def test_autocorrelation_matches_direct_sum():
    x = np.random.default_rng(3).normal(size=(2, 64))
    r = autocorrelation_matrix(x, 5, 20)
    for f in range(2):
        for j, lag in enumerate(range(5, 20)):
            a, b = x[f, :-lag], x[f, lag:]
            expected = 2 * np.sum(a * b) / (np.sum(a * a) + np.sum(b * b))
            assert r[f, j] == pytest.approx(expected, rel=1e-6, abs=1e-9)


def test_autocorrelation_silence_is_zero():
    r = autocorrelation_matrix(np.zeros((3, 128)), 10, 50)
    assert np.all(r == 0.0)


def test_autocorrelation_empty_lag_range():
    assert autocorrelation_matrix(np.ones((2, 10)), 20, 30).shape == (2, 0)


# ---------------------------------------------------------------------------
# Mel / DCT / runs
# ---------------------------------------------------------------------------


def test_mel_band_frequencies_endpoints():
    centres = mel_band_frequencies(40, 50.0, 22050.0)
    assert centres.size == 40
    assert centres[0] == pytest.approx(50.0)
    assert centres[-1] == pytest.approx(22050.0)
    mels = librosa.hz_to_mel(centres, htk=True)
    assert np.allclose(np.diff(mels), np.diff(mels)[0])


def test_dct_ii_constant_input():
    out = dct_ii(np.ones(8), 4)
    assert out[0] == pytest.approx(8.0)
    assert np.allclose(out[1:], 0.0, atol=1e-12)


def test_dct_ii_length():
    assert dct_ii(np.arange(40.0), 13).shape == (13,)


def test_runs_of_true():
    flags = np.array([False, True, True, False, True, False, True, True, True])
    assert runs_of_true(flags) == [(1, 3), (4, 5), (6, 9)]
    assert runs_of_true(np.array([], dtype=bool)) == []
    assert runs_of_true(np.array([False, False])) == []
