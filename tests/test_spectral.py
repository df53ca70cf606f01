"""
Tests for phonosim/spectral.py: SpectralEngine and Spectrum queries.
"""

import numpy as np
import pytest
from scipy.signal.windows import hann as hann_window

from phonosim.phonemes import PHONEMES
from phonosim.spectral import Spectrum, SpectralEngine

SR = 44100


def _tone(freq, n=1024, amp=1.0):
    return amp * np.sin(2 * np.pi * freq * np.arange(n) / SR)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class TestSpectralEngine:
    def test_window_too_small(self):
        with pytest.raises(ValueError):
            SpectralEngine(window_size=1)

    def test_hann_window_shape(self):
        eng = SpectralEngine(window_size=8)
        i = np.arange(8)
        assert np.allclose(eng.window, 0.5 * (1 - np.cos(2 * np.pi * i / 7)))

    def test_output_length_and_readonly(self):
        spec = SpectralEngine(window_size=1024).analyze(_tone(1000.0))
        assert len(spec) == 512
        with pytest.raises(ValueError):
            spec.magnitude[0] = 1.0

    def test_matches_direct_dft(self):
        eng = SpectralEngine(window_size=64, sample_rate=SR)
        x = np.random.default_rng(0).normal(size=64)
        spec = eng.analyze(x)
        xw = x * eng.window
        n = np.arange(64)
        direct = np.array([abs(np.sum(xw * np.exp(-2j * np.pi * k * n / 64))) / 64 for k in range(32)])
        assert np.allclose(spec.magnitude, direct)

    def test_short_buffer_is_zero_padded(self):
        eng = SpectralEngine(window_size=256)
        a = eng.analyze(np.ones(100))
        b = eng.analyze(np.concatenate([np.ones(100), np.zeros(156)]))
        assert np.allclose(a.magnitude, b.magnitude)

    def test_long_buffer_is_truncated(self):
        eng = SpectralEngine(window_size=256)
        x = np.random.default_rng(1).normal(size=1000)
        assert np.allclose(eng.analyze(x).magnitude, eng.analyze(x[:256]).magnitude)

    def test_fft_size_pads_after_windowing(self):
        eng = SpectralEngine(window_size=100, fft_size=256)
        x = np.random.default_rng(2).normal(size=100)
        spec = eng.analyze(x)
        assert len(spec) == 128
        assert spec.window_size == 256
        padded = np.concatenate([x * hann_window(100), np.zeros(156)])
        assert np.allclose(spec.magnitude, np.abs(np.fft.rfft(padded))[:128] / 256)

    def test_fft_size_shorter_than_window(self):
        with pytest.raises(ValueError):
            SpectralEngine(window_size=512, fft_size=256)

    def test_padded_sine_peak_is_symmetric(self):
        """A 1 s sine on an FFT bin: the taper ends at the last sample and the lobe is symmetric."""
        n_fft = 65536
        k = 1486
        eng = SpectralEngine(window_size=SR, fft_size=n_fft)
        assert eng.window[0] == 0.0
        assert eng.window[-1] == pytest.approx(0.0)
        mag = eng.analyze(_tone(k * SR / n_fft, n=SR)).magnitude
        assert int(np.argmax(mag)) == k
        for j in (1, 2):
            assert mag[k - j] == pytest.approx(mag[k + j], rel=1e-2)

    def test_tone_peak_bin(self):
        spec = SpectralEngine(window_size=1024).analyze(_tone(43 * SR / 1024))
        assert int(np.argmax(spec.magnitude)) == 43


# ---------------------------------------------------------------------------
# Spectrum queries
# ---------------------------------------------------------------------------


class TestSpectrum:
    def test_bin_frequency_mapping(self):
        spec = Spectrum(np.zeros(512), 1024, SR)
        assert spec.frequency_for_bin(10) == pytest.approx(10 * SR / 1024)
        assert spec.bin_for_frequency(spec.frequency_for_bin(37)) == 37
        assert spec.nyquist == SR / 2

    def test_magnitude_db_floor(self):
        spec = Spectrum(np.array([0.0, 1e-9, 1.0, 0.1]), 8, SR)
        db = spec.magnitude_db()
        assert db[0] == -100.0
        assert db[1] == -100.0
        assert db[2] == pytest.approx(0.0)
        assert spec.magnitude_db(3) == pytest.approx(-20.0)

    def test_find_peaks_sorted_and_separated(self):
        mag = np.full(100, 1e-4)
        mag[30] = 0.5
        mag[60] = 0.9
        mag[65] = 0.2  # within min_distance of 60
        peaks = Spectrum(mag, 200, SR).find_peaks(threshold_db=-30, min_distance=10)
        assert [p.bin_index for p in peaks] == [60, 30]
        assert peaks[0].magnitude_db == pytest.approx(20 * np.log10(0.9))

    def test_find_peaks_skips_edges(self):
        mag = np.full(100, 1e-4)
        mag[3] = 1.0
        mag[97] = 1.0
        assert Spectrum(mag, 200, SR).find_peaks() == []

    def test_find_peaks_threshold(self):
        mag = np.full(100, 1e-4)
        mag[50] = 0.01  # -40 dB
        assert Spectrum(mag, 200, SR).find_peaks(threshold_db=-30) == []

    def test_frequency_bands(self):
        spec = SpectralEngine(window_size=1024).analyze(_tone(1000.0))
        bands = spec.frequency_bands(8)
        assert len(bands) == 8
        assert bands[0].center_frequency == 20
        assert bands[-1].bin_index == len(spec) - 1
        freqs = [b.center_frequency for b in bands]
        assert freqs == sorted(freqs)

    def test_analyze_frequency_range(self):
        mag = np.zeros(512)
        mag[100] = 0.5
        spec = Spectrum(mag, 1024, SR)
        lo = spec.frequency_for_bin(95)
        hi = spec.frequency_for_bin(104)
        result = spec.analyze_frequency_range(lo, hi)
        assert result.peak_magnitude == pytest.approx(0.5)
        assert result.peak_frequency == pytest.approx(spec.frequency_for_bin(100))
        assert result.energy_rms == pytest.approx(np.sqrt(0.25 / 10))

    def test_empty_range(self):
        result = Spectrum(np.ones(16), 32, SR).analyze_frequency_range(5000.0, 100.0)
        assert result.energy_rms == 0.0
        assert result.peak_magnitude == 0.0

    def test_compare_with_phoneme(self):
        spec = SpectralEngine(window_size=4096).analyze(_tone(700.0, n=4096))
        vowel = spec.compare_with_phoneme(PHONEMES["ɑ"].target_frequencies)
        assert set(vowel) == {"formant1", "formant2"}
        assert vowel["formant1"].peak_frequency == pytest.approx(700.0, abs=SR / 4096)
        assert vowel["formant1"].energy_rms > vowel["formant2"].energy_rms
        fric = spec.compare_with_phoneme(PHONEMES["f"].target_frequencies)
        assert set(fric) == {"peak_frequency"}
