"""
Windowed magnitude spectra for visualization and feature extraction.

SpectralEngine holds only its configuration (window length, sample rate and
the precomputed Hann window); every call to analyze() returns a fresh,
read-only Spectrum, so one engine can serve several threads at once.

The magnitude of bin k is |sum_n w[n] x[n] exp(-2j*pi*k*n/N)| / N for the
first N/2 bins, i.e. the direct DFT. scipy's real FFT computes the same sums.
"""
from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional
import numpy as np
from scipy import fft as sp_fft
from scipy.signal.windows import hann

from phonosim.config import (
    BAND_COUNT,
    BAND_FMIN,
    DB_FLOOR,
    EPS,
    PEAK_MIN_DISTANCE,
    PEAK_THRESHOLD_DB,
    SAMPLE_RATE,
    SPECTRAL_WINDOW,
)
from phonosim.messages import FrequencyBand, RangeAnalysis, SpectralPeak


class Spectrum:
    """Magnitude spectrum of one analysis window."""

    def __init__(self, magnitude: np.ndarray, window_size: int, sample_rate: float):
        self.magnitude = np.asarray(magnitude, dtype=np.float64)
        self.magnitude.setflags(write=False)
        self.window_size = int(window_size)
        self.sample_rate = float(sample_rate)

    def __len__(self) -> int:
        return int(self.magnitude.size)

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2.0

    @property
    def frequencies(self) -> np.ndarray:
        return np.arange(self.magnitude.size) * self.sample_rate / self.window_size

    def frequency_for_bin(self, bin_index: int) -> float:
        return bin_index * self.sample_rate / self.window_size

    def bin_for_frequency(self, frequency: float) -> int:
        return int(round(frequency * self.window_size / self.sample_rate))

    def magnitude_db(self, bin_index: Optional[int] = None):
        """20*log10(magnitude) floored at -100 dB; whole array when bin_index is None."""
        mag = self.magnitude if bin_index is None else self.magnitude[bin_index]
        with np.errstate(divide='ignore'):
            db = np.where(mag > 0, 20.0 * np.log10(np.maximum(mag, np.finfo(float).tiny)), DB_FLOOR)
        db = np.maximum(db, DB_FLOOR)
        return float(db) if bin_index is not None else db

    def find_peaks(self, threshold_db: float = PEAK_THRESHOLD_DB, min_distance: int = PEAK_MIN_DISTANCE) -> List[SpectralPeak]:
        """Bins above threshold_db that strictly dominate every bin within +/-min_distance.

        Bins closer than min_distance to either end have an incomplete
        neighbourhood and are never reported. Sorted by descending magnitude.
        """
        m = int(min_distance)
        db = self.magnitude_db()
        if m < 1:
            candidates = np.flatnonzero(db > threshold_db)
        else:
            if db.size < 2 * m + 1:
                return []
            windows = np.lib.stride_tricks.sliding_window_view(db, 2 * m + 1)
            centre = windows[:, m]
            others = np.delete(windows, m, axis=1)
            dominant = np.all(centre[:, None] > others, axis=1) & (centre > threshold_db)
            candidates = np.flatnonzero(dominant) + m
        order = np.argsort(-self.magnitude[candidates], kind='stable')
        return [
            SpectralPeak(
                bin_index=int(i),
                magnitude=float(self.magnitude[i]),
                magnitude_db=float(db[i]),
                frequency=self.frequency_for_bin(int(i)),
            )
            for i in candidates[order]
        ]

    def frequency_bands(self, count: int = BAND_COUNT) -> List[FrequencyBand]:
        """count log-spaced band centres between 20 Hz and Nyquist, sampled at the nearest bin."""
        if count < 1 or self.magnitude.size == 0:
            return []
        last = self.magnitude.size - 1
        bands = []
        for freq in np.geomspace(BAND_FMIN, self.nyquist, int(count)):
            idx = min(self.bin_for_frequency(freq), last)
            bands.append(FrequencyBand(
                center_frequency=int(round(freq)),
                bin_index=idx,
                magnitude=float(self.magnitude[idx]),
                magnitude_db=self.magnitude_db(idx),
            ))
        return bands

    def analyze_frequency_range(self, min_freq: float, max_freq: float) -> RangeAnalysis:
        """RMS energy and the strongest bin between min_freq and max_freq (inclusive bins)."""
        lo = max(0, self.bin_for_frequency(min_freq))
        hi = self.bin_for_frequency(max_freq)
        if hi < lo:
            return RangeAnalysis(energy_rms=0.0, peak_magnitude=0.0, peak_frequency=float(min_freq), energy_db=20.0 * math.log10(EPS))
        seg = self.magnitude[lo:min(hi, self.magnitude.size - 1) + 1]
        energy_rms = math.sqrt(float(np.sum(np.square(seg))) / (hi - lo + 1))
        if seg.size and float(seg.max()) > 0:
            k = int(np.argmax(seg))
            peak_mag = float(seg[k])
            peak_freq = self.frequency_for_bin(lo + k)
        else:
            peak_mag = 0.0
            peak_freq = float(min_freq)
        return RangeAnalysis(
            energy_rms=energy_rms,
            peak_magnitude=peak_mag,
            peak_frequency=peak_freq,
            energy_db=20.0 * math.log10(energy_rms + EPS),
        )

    def compare_with_phoneme(self, target: Mapping[str, float]) -> Dict[str, RangeAnalysis]:
        """Energy around a phoneme's reference frequencies.

        target uses the keys of phonosim.phonemes tables: 'peak' (+/-500 Hz),
        'F1' and 'F2' (+/-200 Hz). Missing keys are skipped.
        """
        out: Dict[str, RangeAnalysis] = {}
        if target.get('peak'):
            out['peak_frequency'] = self.analyze_frequency_range(target['peak'] - 500, target['peak'] + 500)
        if target.get('F1'):
            out['formant1'] = self.analyze_frequency_range(target['F1'] - 200, target['F1'] + 200)
        if target.get('F2'):
            out['formant2'] = self.analyze_frequency_range(target['F2'] - 200, target['F2'] + 200)
        return out


class SpectralEngine:
    """Hann-windowed magnitude spectrum of a fixed window length.

    fft_size (default: window_size) is the transform length; a longer
    transform zero-pads after windowing, so the taper spans only the
    window_size samples of real data.
    """

    def __init__(self, window_size: int = SPECTRAL_WINDOW, sample_rate: float = SAMPLE_RATE, fft_size: Optional[int] = None):
        if int(window_size) < 2:
            raise ValueError(f"window_size must be >= 2, got {window_size}")
        self.window_size = int(window_size)
        self.fft_size = self.window_size if fft_size is None else int(fft_size)
        if self.fft_size < self.window_size:
            raise ValueError(f"fft_size {self.fft_size} is shorter than window_size {self.window_size}")
        self.sample_rate = float(sample_rate)
        # 0.5 * (1 - cos(2*pi*i / (N-1)))
        self.window = hann(self.window_size, sym=True)
        self.window.setflags(write=False)

    def analyze(self, buffer) -> Spectrum:
        """Window (truncating or zero-padding to window_size) and transform a buffer."""
        x = np.zeros(self.window_size, dtype=np.float64)
        data = np.asarray(buffer, dtype=np.float64).ravel()[: self.window_size]
        x[: data.size] = data
        x *= self.window
        n = self.fft_size
        spec = sp_fft.rfft(x, n=n)[: n // 2]
        return Spectrum(np.abs(spec) / n, n, self.sample_rate)
