"""
Excitation sources for the wave-field solver.

Three variants share a schedule (start_time, duration) and a sinusoidal
drive amplitude*sin(2*pi*f*t + phase):

- PointSource     one cell, optional non-sine waveform
- LineSource      cells along a Bresenham line (vibrating string, vocal fold)
- MembraneSource  disc of cells weighted by cos(pi*d / (2*r)) (drumhead, speaker)

source_footprint() resolves the variant to the cells it drives on a given
grid; cells outside the grid are dropped here and never reach the solver.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple, Union
import numpy as np
from scipy import signal

WAVEFORMS = ("sine", "square", "sawtooth", "triangle")


@dataclass(frozen=True)
class _Schedule:
    frequency: float
    amplitude: float
    start_time: float = 0.0
    duration: float = math.inf

    def __post_init__(self):
        if self.duration < 0:
            raise ValueError(f"duration must be >= 0, got {self.duration}")

    def is_active(self, time: float) -> bool:
        return self.start_time <= time < self.start_time + self.duration

    def value_at(self, time: float) -> float:
        return self.amplitude * math.sin(2.0 * math.pi * self.frequency * time)


@dataclass(frozen=True)
class PointSource(_Schedule):
    x: int = 0
    y: int = 0
    waveform: str = "sine"
    phase: float = 0.0

    def __post_init__(self):
        super().__post_init__()
        if self.waveform not in WAVEFORMS:
            raise ValueError(f"Unknown waveform '{self.waveform}'; expected one of {WAVEFORMS}")

    def value_at(self, time: float) -> float:
        arg = 2.0 * math.pi * self.frequency * time + self.phase
        if self.waveform == "sine":
            return self.amplitude * math.sin(arg)
        if self.waveform == "square":
            return self.amplitude * float(signal.square(arg))
        if self.waveform == "sawtooth":
            return self.amplitude * float(signal.sawtooth(arg))
        return self.amplitude * float(signal.sawtooth(arg, width=0.5))


@dataclass(frozen=True)
class LineSource(_Schedule):
    x0: int = 0
    y0: int = 0
    x1: int = 0
    y1: int = 0


@dataclass(frozen=True)
class MembraneSource(_Schedule):
    cx: int = 0
    cy: int = 0
    radius: float = 1.0


SourceDescriptor = Union[PointSource, LineSource, MembraneSource]


def bresenham_line(x0: int, y0: int, x1: int, y1: int) -> List[Tuple[int, int]]:
    """Integer cells on the segment (x0, y0) -> (x1, y1), both ends included."""
    points = []
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx - dy
    x, y = x0, y0
    while True:
        points.append((x, y))
        if x == x1 and y == y1:
            break
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x += sx
        if e2 < dx:
            err += dx
            y += sy
    return points


def _disc(cx: int, cy: int, radius: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    if radius <= 0:
        return np.array([cy]), np.array([cx]), np.array([1.0])
    r = int(math.floor(radius))
    dy, dx = np.mgrid[-r:r + 1, -r:r + 1]
    dist = np.sqrt(dx * dx + dy * dy)
    inside = dist <= radius
    weights = np.cos(np.pi * dist[inside] / (2.0 * radius))
    return cy + dy[inside], cx + dx[inside], weights


def source_footprint(source: SourceDescriptor, width: int, height: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """(rows, cols, weights) of the in-grid cells driven by a source."""
    if isinstance(source, PointSource):
        ys, xs, w = np.array([source.y]), np.array([source.x]), np.array([1.0])
    elif isinstance(source, LineSource):
        pts = np.array(bresenham_line(source.x0, source.y0, source.x1, source.y1), dtype=int)
        xs, ys = pts[:, 0], pts[:, 1]
        w = np.ones(len(pts))
    elif isinstance(source, MembraneSource):
        ys, xs, w = _disc(source.cx, source.cy, source.radius)
    else:
        raise TypeError(f"Unsupported source type: {type(source).__name__}")
    keep = (xs >= 0) & (xs < width) & (ys >= 0) & (ys < height)
    return ys[keep].astype(int), xs[keep].astype(int), w[keep].astype(np.float64)
