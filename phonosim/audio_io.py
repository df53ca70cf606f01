from __future__ import annotations

from math import gcd
from typing import Tuple

import numpy as np
import soundfile as sf
from scipy import signal
from scipy.io.wavfile import read as wav_read

from phonosim.config import SAMPLE_RATE


def _to_float(audio: np.ndarray) -> np.ndarray:
    if audio.dtype == np.int16:
        return audio.astype(np.float64) / 32768.0
    if audio.dtype == np.int32:
        return audio.astype(np.float64) / 2147483648.0
    if audio.dtype == np.uint8:
        return (audio.astype(np.float64) - 128.0) / 128.0
    return audio.astype(np.float64)


def _resample_if_needed(clip: np.ndarray, in_sr: int, target_sr: int) -> np.ndarray:
    if in_sr == target_sr:
        return clip
    g = gcd(in_sr, target_sr)
    return signal.resample_poly(clip, target_sr // g, in_sr // g)


def load_audio(audio_path: str, target_sr: int = SAMPLE_RATE) -> Tuple[np.ndarray, int]:
    """Load a clip as a mono float64 array resampled to target_sr.

    Returns (clip, target_sr). Multi-channel files are averaged to mono.
    Tries scipy.io.wavfile first; falls back to soundfile for other formats.
    """
    p = str(audio_path)
    try:
        sr, audio = wav_read(p)
        audio = _to_float(audio)
    except ValueError as e:
        print(f"[io] scipy could not read {p} ({e}); trying soundfile")
        audio, sr = sf.read(p, always_2d=True, dtype='float64')
    if audio.ndim == 2:
        audio = audio.mean(axis=1)
    clip = _resample_if_needed(audio, int(sr), int(target_sr))
    return np.asarray(clip, dtype=np.float64), int(target_sr)


def save_pcm(audio_path: str, samples, sample_rate: int = SAMPLE_RATE, subtype: str = 'PCM_16') -> None:
    """Write a mono clip (expected in [-1, 1]) as a PCM WAV file."""
    data = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    sf.write(str(audio_path), data, int(sample_rate), subtype=subtype)
    print(f"[io] wrote {len(data)} samples ({len(data) / float(sample_rate):.3f}s @ {sample_rate} Hz) to {audio_path}")
