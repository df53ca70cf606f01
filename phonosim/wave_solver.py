"""
2D acoustic wave equation, explicit finite differences.

    d2p/dt2 = c^2 * laplacian(p)

Discretized as

    p[n+1] = damping * (2 p[n] - p[n-1] + coeff * lap(p[n]) + s[n]),   coeff = (c dt / dx)^2

with the 5-point stencil and zero pressure outside the grid. Pressure lives
in one (3, H, W) array; the previous/current/next planes are selected by a
rotating index, so a step never copies a grid. Particle velocity is derived
from the pressure gradient after each step: v = -grad(p) / (rho * dx).

Grids are indexed [y, x]. The solver is single-writer: anything reading
while another thread steps should use snapshot().
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple
import numpy as np

from phonosim.config import (
    AIR_DENSITY_KGM3,
    CELL_SIZE_M,
    CFL_CLAMP_FRACTION,
    CFL_LIMIT,
    DAMPING_FACTOR,
    GRID_HEIGHT,
    GRID_WIDTH,
    SPEED_OF_SOUND_MPS,
    TIME_STEP_S,
)
from phonosim.messages import SimulationSnapshot, SimulationStats, VelocityVector
from phonosim.sources import (
    LineSource,
    MembraneSource,
    PointSource,
    SourceDescriptor,
    source_footprint,
)


@dataclass(frozen=True)
class SimulationConfig:
    width: int = GRID_WIDTH
    height: int = GRID_HEIGHT
    cell_size: float = CELL_SIZE_M
    speed_of_sound: float = SPEED_OF_SOUND_MPS
    air_density: float = AIR_DENSITY_KGM3
    time_step: float = TIME_STEP_S
    damping_factor: float = DAMPING_FACTOR
    cfl_limit: float = CFL_LIMIT

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    @property
    def courant(self) -> float:
        return self.speed_of_sound * self.time_step / self.cell_size


def stable_config(cfg: SimulationConfig) -> Tuple[SimulationConfig, bool]:
    """Return cfg with its time step clamped to satisfy the CFL limit, and whether it was clamped."""
    # Allow a tiny epsilon to avoid false positives from floating-point rounding.
    if cfg.courant <= cfg.cfl_limit + 1e-12:
        return cfg, False
    dt = CFL_CLAMP_FRACTION * cfg.cfl_limit * cfg.cell_size / cfg.speed_of_sound
    return replace(cfg, time_step=dt), True


class WaveFieldSolver:
    def __init__(self, cfg: Optional[SimulationConfig] = None, **overrides):
        cfg = cfg or SimulationConfig()
        if overrides:
            cfg = replace(cfg, **overrides)
        if cfg.width < 1 or cfg.height < 1:
            raise ValueError(f"Grid must be at least 1x1, got {cfg.width}x{cfg.height}")
        if cfg.cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cfg.cell_size}")
        if cfg.air_density * cfg.cell_size == 0:
            raise ValueError("air_density * cell_size must be nonzero")

        requested = cfg.courant
        self.config, self.time_step_clamped = stable_config(cfg)
        if self.time_step_clamped:
            print(
                f"[solver][warn] CFL number {requested:.3f} > {cfg.cfl_limit:.3f}; "
                f"time step reduced to {self.config.time_step:.3e} s"
            )
        self.coeff = self.config.courant ** 2

        shape = self.config.shape
        self._p = np.zeros((3,) + shape, dtype=np.float64)
        self._cur = 1  # previous = cur-1, next = cur+1 (mod 3)
        self.velocity_x = np.zeros(shape, dtype=np.float64)
        self.velocity_y = np.zeros(shape, dtype=np.float64)
        self._source_values = np.zeros(shape, dtype=np.float64)
        self._sources: List[Tuple[SourceDescriptor, np.ndarray, np.ndarray, np.ndarray]] = []

        self.microphone_x = self.config.width // 2
        self.microphone_y = self.config.height // 2
        self.time = 0.0
        self.stats = SimulationStats()

    # --- Geometry / buffers ---
    @property
    def width(self) -> int:
        return self.config.width

    @property
    def height(self) -> int:
        return self.config.height

    @property
    def pressure(self) -> np.ndarray:
        """Current pressure plane (live view, mutated by step())."""
        return self._p[self._cur]

    @property
    def pressure_prev(self) -> np.ndarray:
        return self._p[(self._cur - 1) % 3]

    @property
    def sources(self) -> Tuple[SourceDescriptor, ...]:
        return tuple(s for s, _, _, _ in self._sources)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    # --- Sources ---
    def add(self, source: SourceDescriptor) -> SourceDescriptor:
        ys, xs, weights = source_footprint(source, self.width, self.height)
        self._sources.append((source, ys, xs, weights))
        return source

    def add_source(self, x, y, frequency, amplitude, waveform="sine", duration=math.inf, start_time=None, phase=0.0) -> PointSource:
        return self.add(PointSource(
            frequency=frequency, amplitude=amplitude,
            start_time=self.time if start_time is None else start_time, duration=duration,
            x=int(math.floor(x)), y=int(math.floor(y)), waveform=waveform, phase=phase,
        ))

    def add_string_source(self, x0, y0, x1, y1, frequency, amplitude, duration=math.inf, start_time=None) -> LineSource:
        return self.add(LineSource(
            frequency=frequency, amplitude=amplitude,
            start_time=self.time if start_time is None else start_time, duration=duration,
            x0=int(math.floor(x0)), y0=int(math.floor(y0)), x1=int(math.floor(x1)), y1=int(math.floor(y1)),
        ))

    def add_membrane_source(self, cx, cy, radius, frequency, amplitude, duration=math.inf, start_time=None) -> MembraneSource:
        return self.add(MembraneSource(
            frequency=frequency, amplitude=amplitude,
            start_time=self.time if start_time is None else start_time, duration=duration,
            cx=int(math.floor(cx)), cy=int(math.floor(cy)), radius=float(radius),
        ))

    def _update_sources(self, time: float) -> None:
        src = self._source_values
        src.fill(0.0)
        for source, ys, xs, weights in self._sources:
            if ys.size == 0 or not source.is_active(time):
                continue
            np.add.at(src, (ys, xs), source.value_at(time) * weights)

    # --- Stepping ---
    def seed_pressure(self, field: np.ndarray) -> None:
        """Install an initial pressure distribution released from rest."""
        field = np.asarray(field, dtype=np.float64)
        if field.shape != self.config.shape:
            raise ValueError(f"field shape {field.shape} != grid shape {self.config.shape}")
        self._p[self._cur] = field
        self._p[(self._cur - 1) % 3] = field
        self._calculate_velocity()
        self._update_stats()

    def _laplacian(self, p: np.ndarray) -> np.ndarray:
        lap = -4.0 * p
        lap[1:, :] += p[:-1, :]
        lap[:-1, :] += p[1:, :]
        lap[:, 1:] += p[:, :-1]
        lap[:, :-1] += p[:, 1:]
        return lap

    def step(self, time: float) -> None:
        self.time = float(time)
        self._update_sources(self.time)

        cur = self._p[self._cur]
        prev = self._p[(self._cur - 1) % 3]
        nxt = self._p[(self._cur + 1) % 3]
        nxt[...] = 2.0 * cur - prev + self.coeff * self._laplacian(cur) + self._source_values
        nxt *= self.config.damping_factor

        # Rotate buffers: the old "previous" plane becomes scratch for the next step
        self._cur = (self._cur + 1) % 3

        self._calculate_velocity()
        self._update_stats()

    def _calculate_velocity(self) -> None:
        p = self.pressure
        scale = -1.0 / (self.config.air_density * self.config.cell_size)
        self.velocity_x.fill(0.0)
        self.velocity_y.fill(0.0)
        self.velocity_x[:, :-1] = (p[:, 1:] - p[:, :-1]) * scale
        self.velocity_y[:-1, :] = (p[1:, :] - p[:-1, :]) * scale

    def _update_stats(self) -> None:
        p = self.pressure
        vx, vy = self.velocity_x, self.velocity_y
        self.stats = SimulationStats(
            max_pressure=float(np.max(np.abs(p))),
            energy_content=float(np.sum(p * p + 0.5 * self.config.air_density * (vx * vx + vy * vy))),
            elapsed_time=self.time,
        )

    # --- Outputs ---
    def set_microphone(self, x: int, y: int) -> None:
        self.microphone_x = int(math.floor(x))
        self.microphone_y = int(math.floor(y))

    def microphone_signal(self) -> float:
        if self.in_bounds(self.microphone_x, self.microphone_y):
            return float(self.pressure[self.microphone_y, self.microphone_x])
        return 0.0

    def pressure_field(self) -> np.ndarray:
        return self.pressure.copy()

    def velocity_magnitude(self) -> np.ndarray:
        return np.hypot(self.velocity_x, self.velocity_y)

    def velocity_vectors(self, scale: int = 4) -> List[VelocityVector]:
        """Velocity sampled every `scale` cells, positions in metres."""
        step = max(1, int(scale))
        dx = self.config.cell_size
        out = []
        for y in range(0, self.height, step):
            for x in range(0, self.width, step):
                vx = float(self.velocity_x[y, x])
                vy = float(self.velocity_y[y, x])
                out.append(VelocityVector(x=x * dx, y=y * dx, vx=vx, vy=vy, magnitude=math.hypot(vx, vy)))
        return out

    def snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot(
            time=self.time,
            pressure=self.pressure_field(),
            velocity_magnitude=self.velocity_magnitude(),
            stats=self.stats,
            microphone=self.microphone_signal(),
        )

    def reset(self) -> None:
        self._p.fill(0.0)
        self._cur = 1
        self.velocity_x.fill(0.0)
        self.velocity_y.fill(0.0)
        self._source_values.fill(0.0)
        self._sources.clear()
        self.time = 0.0
        self.stats = SimulationStats()
