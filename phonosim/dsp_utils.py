from __future__ import annotations

from typing import List, Tuple
import numpy as np
import librosa
from scipy import fft as sp_fft

from phonosim.config import EPS


def next_pow2(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    n = int(n)
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def frame_signal(x: np.ndarray, frame_length: int, hop_length: int) -> np.ndarray:
    """Slice a 1-D signal into overlapping frames, shape (n_frames, frame_length).

    Signals shorter than one frame are zero-padded to a single frame.
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size < frame_length:
        x = np.pad(x, (0, frame_length - x.size), mode='constant')
    return librosa.util.frame(x, frame_length=frame_length, hop_length=hop_length, axis=0)


def frame_energy(frames: np.ndarray) -> np.ndarray:
    """Mean squared amplitude of each frame."""
    return np.mean(np.square(frames), axis=-1)


def zero_crossing_rate(frames: np.ndarray) -> np.ndarray:
    """Sign changes per sample for each frame (>=0 counts as positive)."""
    frames = np.atleast_2d(frames)
    positive = frames >= 0
    crossings = np.count_nonzero(positive[:, 1:] != positive[:, :-1], axis=1)
    return crossings / float(frames.shape[1])


def lag_range(sample_rate: float, fmin: float, fmax: float, frame_length: int) -> Tuple[int, int]:
    """Autocorrelation lag search window [min_lag, max_lag) for fmax..fmin."""
    min_lag = max(1, int(sample_rate / fmax))
    max_lag = min(int(sample_rate / fmin), frame_length - 1)
    return min_lag, max_lag


def autocorrelation_matrix(frames: np.ndarray, min_lag: int, max_lag: int) -> np.ndarray:
    """Signed normalized autocorrelation per frame for lags in [min_lag, max_lag).

    r(L) = 2*sum(x[i]*x[i+L]) / (sum(x[i]^2) + sum(x[i+L]^2)) over the overlap,
    so r is in [-1, 1] and equals 1 for a signal exactly periodic at L.
    Returns shape (n_frames, max_lag - min_lag).
    """
    frames = np.atleast_2d(np.asarray(frames, dtype=np.float64))
    n_frames, n = frames.shape
    min_lag = max(1, int(min_lag))
    max_lag = min(int(max_lag), n - 1)
    if max_lag <= min_lag:
        return np.zeros((n_frames, 0), dtype=np.float64)

    nfft = next_pow2(2 * n - 1)
    spec = sp_fft.rfft(frames, n=nfft, axis=1)
    acf = sp_fft.irfft(spec * np.conj(spec), n=nfft, axis=1)

    lags = np.arange(min_lag, max_lag)
    csum = np.cumsum(np.square(frames), axis=1)
    total = csum[:, -1:]
    head = csum[:, n - lags - 1]       # sum of x[0 : n-L]^2
    tail = total - csum[:, lags - 1]   # sum of x[L : n]^2
    return 2.0 * acf[:, lags] / (head + tail + EPS)


def mel_band_frequencies(n_mels: int, fmin: float, fmax: float) -> np.ndarray:
    """n_mels centre frequencies evenly spaced on the HTK mel scale, fmin..fmax inclusive."""
    return librosa.mel_frequencies(n_mels=n_mels, fmin=fmin, fmax=fmax, htk=True)


def dct_ii(x: np.ndarray, num_coeffs: int) -> np.ndarray:
    """Unnormalized type-II DCT: y[k] = sum_n x[n] * cos(pi/N * (n + 0.5) * k)."""
    x = np.asarray(x, dtype=np.float64)
    n = x.size
    k = np.arange(num_coeffs)[:, None]
    basis = np.cos((np.pi / n) * (np.arange(n)[None, :] + 0.5) * k)
    return basis @ x


def runs_of_true(flags: np.ndarray) -> List[Tuple[int, int]]:
    """Contiguous True runs as (start, end) index pairs, end exclusive."""
    flags = np.asarray(flags, dtype=bool)
    if flags.size == 0:
        return []
    padded = np.concatenate(([False], flags, [False]))
    edges = np.flatnonzero(padded[1:] != padded[:-1])
    return [(int(s), int(e)) for s, e in zip(edges[::2], edges[1::2])]
