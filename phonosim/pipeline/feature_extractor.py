from __future__ import annotations

from typing import Optional, Tuple
import numpy as np

from phonosim.config import (
    CLIP_MIN_FFT,
    DEFAULT_THRESHOLDS,
    EPS,
    FRAME_MS,
    HOP_MS,
    MEL_FMIN,
    NUM_MELS,
    NUM_MFCC,
    SAMPLE_RATE,
    TIME_SERIES_FRAME,
    AnalysisThresholds,
)
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
from phonosim.messages import (
    EnergyFeatures,
    FeatureRecord,
    Formant,
    FormantFeatures,
    MFCCFeatures,
    PitchFeatures,
    SpectralCentroid,
    TimeSeriesPoint,
    VoicedSegment,
    VoicingFeatures,
    ZeroCrossingFeatures,
)
from phonosim.spectral import Spectrum, SpectralEngine


class FeatureExtractor:
    """Phonetic descriptors of a mono clip.

    Frame-based analyses use 25 ms frames at a 10 ms hop. Whole-clip analyses
    (formants, centroid, MFCC) use one Hann-windowed spectrum of the clip,
    zero-padded to a power of two.

    Holds configuration only; every analyze_* call is a pure function of
    its input.
    """

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        thresholds: Optional[AnalysisThresholds] = None,
        frame_ms: float = FRAME_MS,
        hop_ms: float = HOP_MS,
        num_mfcc: int = NUM_MFCC,
        num_mels: int = NUM_MELS,
        mel_fmin: float = MEL_FMIN,
    ):
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        self.sample_rate = int(sample_rate)
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self.frame_size = max(2, int(self.sample_rate * frame_ms / 1000.0))
        self.hop_size = max(1, int(self.sample_rate * hop_ms / 1000.0))
        self.frame_time = hop_ms / 1000.0
        self.num_mfcc = int(num_mfcc)
        self.num_mels = int(num_mels)
        self.mel_fmin = float(mel_fmin)

    # --- Input handling ---
    def _check(self, clip) -> np.ndarray:
        x = np.asarray(clip, dtype=np.float64).ravel()
        if x.size == 0:
            raise ValueError("clip is empty")
        if not np.all(np.isfinite(x)):
            raise ValueError("clip contains NaN or infinite samples")
        return x

    def _frames(self, x: np.ndarray) -> np.ndarray:
        return frame_signal(x, self.frame_size, self.hop_size)

    def _periodicity(self, frames: np.ndarray) -> Tuple[np.ndarray, int]:
        th = self.thresholds
        min_lag, max_lag = lag_range(self.sample_rate, th.pitch_min_hz, th.pitch_max_hz, frames.shape[1])
        return autocorrelation_matrix(frames, min_lag, max_lag), min_lag

    def clip_spectrum(self, clip) -> Spectrum:
        x = self._check(clip)
        n = max(next_pow2(x.size), CLIP_MIN_FFT)
        engine = SpectralEngine(window_size=max(x.size, 2), sample_rate=self.sample_rate, fft_size=n)
        return engine.analyze(x)

    # --- Frame-based analyses ---
    def analyze_energy(self, clip) -> EnergyFeatures:
        x = self._check(clip)
        energy = frame_energy(self._frames(x))
        peak = float(energy.max())
        normalized = energy / peak if peak > 0 else np.zeros_like(energy)
        return EnergyFeatures(
            values=tuple(float(e) for e in normalized),
            mean=float(normalized.mean()),
            min=float(normalized.min()),
            max=float(normalized.max()),
            db=float(20.0 * np.log10(np.sqrt(peak) + EPS)),
            peak_amplitude=float(np.max(np.abs(x))),
        )

    def voiced_frames(self, clip) -> np.ndarray:
        """Per-frame voicing decision: loud enough, low ZCR and periodic."""
        th = self.thresholds
        frames = self._frames(self._check(clip))
        energy = frame_energy(frames)
        zcr = zero_crossing_rate(frames)
        corr, _ = self._periodicity(frames)
        periodicity = corr.max(axis=1) if corr.shape[1] else np.zeros(len(frames))
        return (energy >= th.energy_floor) & (zcr <= th.voicing_zcr) & (periodicity > th.periodicity)

    def analyze_voicing(self, clip) -> VoicingFeatures:
        voiced = self.voiced_frames(clip)
        ratio = float(np.mean(voiced))
        segments = tuple(
            VoicedSegment(start=s * self.frame_time, end=e * self.frame_time, duration=(e - s) * self.frame_time)
            for s, e in runs_of_true(voiced)
        )
        return VoicingFeatures(
            frames=tuple(bool(v) for v in voiced),
            voicing_ratio=ratio,
            is_voiced=ratio > self.thresholds.voiced_ratio,
            voiced_segments=segments,
        )

    def _best_lag(self, corr_row: np.ndarray) -> Optional[int]:
        # First lag region reaching octave_tolerance * best, then its maximum.
        # Taking the first region keeps period multiples (octave errors) out.
        if corr_row.size == 0:
            return None
        best = float(corr_row.max())
        if best <= 0:
            return None
        above = corr_row >= self.thresholds.octave_tolerance * best
        start = int(np.argmax(above))
        below = np.flatnonzero(~above[start:])
        end = start + int(below[0]) if below.size else corr_row.size
        return start + int(np.argmax(corr_row[start:end]))

    def estimate_pitch(self, frames: np.ndarray) -> np.ndarray:
        """Autocorrelation F0 estimate per frame (0.0 where there is no periodicity)."""
        corr, min_lag = self._periodicity(np.atleast_2d(frames))
        pitches = np.zeros(corr.shape[0])
        for i, row in enumerate(corr):
            idx = self._best_lag(row)
            if idx is not None:
                pitches[i] = self.sample_rate / float(min_lag + idx)
        return pitches

    def analyze_pitch(self, clip) -> PitchFeatures:
        th = self.thresholds
        pitches = self.estimate_pitch(self._frames(self._check(clip)))
        valid = pitches[(pitches >= th.pitch_min_hz) & (pitches <= th.pitch_max_hz)]
        if valid.size:
            mean, lo, hi = float(valid.mean()), float(valid.min()), float(valid.max())
        else:
            mean = lo = hi = 0.0
        return PitchFeatures(
            values=tuple(float(p) for p in pitches),
            contour=tuple(float(p) for p in valid),
            mean=mean,
            min=lo,
            max=hi,
        )

    def analyze_zero_crossing_rate(self, clip) -> ZeroCrossingFeatures:
        zcr = zero_crossing_rate(self._frames(self._check(clip)))
        mean = float(zcr.mean())
        return ZeroCrossingFeatures(
            values=tuple(float(z) for z in zcr),
            mean=mean,
            is_fricative=mean > self.thresholds.fricative_zcr,
        )

    # --- Whole-clip spectral analyses ---
    def analyze_formants(self, clip, spectrum: Optional[Spectrum] = None) -> FormantFeatures:
        if spectrum is None:
            spectrum = self.clip_spectrum(clip)
        mag = spectrum.magnitude
        freqs = spectrum.frequencies
        peak_mag = float(mag.max()) if mag.size else 0.0
        formants = []
        if mag.size >= 3 and peak_mag > 0:
            inner = mag[1:-1]
            is_peak = (inner > self.thresholds.formant_fraction * peak_mag) & (inner > mag[:-2]) & (inner > mag[2:])
            idx = np.flatnonzero(is_peak) + 1
            idx = idx[np.argsort(-mag[idx], kind='stable')][:3]
            for i in idx:
                formants.append(Formant(
                    frequency=float(freqs[i]),
                    magnitude=float(mag[i]),
                    bandwidth=self._half_power_bandwidth(mag, freqs, int(i)),
                ))
        while len(formants) < 3:
            formants.append(Formant())
        return FormantFeatures(f1=formants[0], f2=formants[1], f3=formants[2])

    @staticmethod
    def _half_power_bandwidth(mag: np.ndarray, freqs: np.ndarray, peak: int) -> float:
        half = mag[peak] / np.sqrt(2.0)
        below = np.flatnonzero(mag[:peak] < half)
        above = np.flatnonzero(mag[peak:] < half)
        lo = int(below[-1]) if below.size else peak
        hi = peak + int(above[0]) if above.size else peak
        return float(freqs[hi] - freqs[lo])

    def analyze_spectral_centroid(self, clip, spectrum: Optional[Spectrum] = None) -> SpectralCentroid:
        if spectrum is None:
            spectrum = self.clip_spectrum(clip)
        mag = spectrum.magnitude
        centroid = float(np.sum(spectrum.frequencies * mag) / (np.sum(mag) + EPS))
        return SpectralCentroid(centroid=centroid, brightness=centroid / spectrum.nyquist)

    def analyze_mfcc(self, clip, num_coeffs: Optional[int] = None, spectrum: Optional[Spectrum] = None) -> MFCCFeatures:
        num_coeffs = self.num_mfcc if num_coeffs is None else int(num_coeffs)
        if num_coeffs < 1:
            raise ValueError(f"num_coeffs must be >= 1, got {num_coeffs}")
        if spectrum is None:
            spectrum = self.clip_spectrum(clip)
        mag = spectrum.magnitude
        centres = mel_band_frequencies(self.num_mels, self.mel_fmin, spectrum.nyquist)
        bins = np.minimum((centres * spectrum.window_size / spectrum.sample_rate).astype(int), mag.size - 1)
        mel_spectrum = mag[bins]
        coeffs = dct_ii(np.log(mel_spectrum + EPS), num_coeffs)
        return MFCCFeatures(
            coefficients=tuple(float(c) for c in coeffs),
            mel_spectrum=tuple(float(m) for m in mel_spectrum),
        )

    def extract_time_series(self, clip, frame_size: int = TIME_SERIES_FRAME) -> Tuple[TimeSeriesPoint, ...]:
        x = self._check(clip)
        points = []
        for i in range(0, x.size, frame_size):
            frame = x[i:i + frame_size]
            points.append(TimeSeriesPoint(
                time=i / float(self.sample_rate),
                energy=float(np.sqrt(np.mean(np.square(frame)))),
                sample=float(frame[0]),
            ))
        return tuple(points)

    # --- Aggregate ---
    def analyze(self, clip) -> FeatureRecord:
        """Run every analysis over one clip; summary is left for the classifier."""
        x = self._check(clip)
        spectrum = self.clip_spectrum(x)
        return FeatureRecord(
            duration=x.size / float(self.sample_rate),
            sample_rate=self.sample_rate,
            energy=self.analyze_energy(x),
            voicing=self.analyze_voicing(x),
            pitch=self.analyze_pitch(x),
            formants=self.analyze_formants(x, spectrum=spectrum),
            spectral_centroid=self.analyze_spectral_centroid(x, spectrum=spectrum),
            zero_crossing_rate=self.analyze_zero_crossing_rate(x),
            mfcc=self.analyze_mfcc(x, spectrum=spectrum),
            time_series=self.extract_time_series(x),
        )
