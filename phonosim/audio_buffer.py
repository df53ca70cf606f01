from __future__ import annotations

from typing import Iterable, List
import numpy as np

from phonosim.config import SAMPLE_RATE


class AudioAccumulator:
    """Collects microphone pressure samples into a playable buffer.

    Samples are appended in order and the running peak |sample| is tracked so
    normalize() can scale to [-1, 1] with 10% headroom in one pass.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE, headroom: float = 1.1):
        self.sample_rate = int(sample_rate)
        self.headroom = float(headroom)
        self._samples: List[float] = []
        self.peak = 0.0

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def duration(self) -> float:
        return len(self._samples) / float(self.sample_rate)

    @property
    def samples(self) -> np.ndarray:
        return np.asarray(self._samples, dtype=np.float64)

    def add_sample(self, value: float) -> None:
        value = float(value)
        self._samples.append(value)
        self.peak = max(self.peak, abs(value))

    def extend(self, values: Iterable[float]) -> None:
        for v in values:
            self.add_sample(v)

    def normalize(self) -> np.ndarray:
        samples = self.samples
        if self.peak == 0:
            return samples
        return samples / (self.peak * self.headroom)

    def to_pcm(self) -> np.ndarray:
        """Normalized samples as float32, ready for playback or export."""
        return self.normalize().astype(np.float32)

    def clear(self) -> None:
        self._samples = []
        self.peak = 0.0
