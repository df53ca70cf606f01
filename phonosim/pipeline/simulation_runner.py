from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

import numpy as np

from phonosim.audio_buffer import AudioAccumulator
from phonosim.config import (
    GRID_HEIGHT,
    GRID_WIDTH,
    REPORT_INTERVAL,
    SAMPLE_RATE,
    SIM_AMPLITUDE,
    SIM_DURATION_S,
    SIM_FREQUENCY_HZ,
)
from phonosim.messages import SimulationProgress, SimulationState
from phonosim.sources import WAVEFORMS
from phonosim.wave_solver import SimulationConfig, WaveFieldSolver

ProgressCallback = Callable[[SimulationProgress], None]


class SimulationRunner:
    """Drives a WaveFieldSolver and records one audio sample per step.

    A step advances the field substeps times; field step n is evaluated at
    time n * solver.config.time_step, so source phase and field time agree.
    Counting continues across successive run() calls until reset(). The
    microphone reading after each step goes into the accumulator. Progress
    is reported every report_interval steps and once at the end, always on
    the stepping thread.
    """

    def __init__(
        self,
        solver: WaveFieldSolver,
        accumulator: Optional[AudioAccumulator] = None,
        sample_rate: int = SAMPLE_RATE,
        report_interval: int = REPORT_INTERVAL,
        on_progress: Optional[ProgressCallback] = None,
        verbose: bool = False,
        substeps: int = 1,
    ):
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        if substeps < 1:
            raise ValueError(f"substeps must be >= 1, got {substeps}")
        self.solver = solver
        self.accumulator = accumulator if accumulator is not None else AudioAccumulator(sample_rate)
        self.sample_rate = int(sample_rate)
        self.report_interval = max(1, int(report_interval))
        self.on_progress = on_progress
        self.verbose = verbose
        self.substeps = int(substeps)
        self.total_steps = 0
        self.field_steps = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None

    def _report(self, current: int, total: int, done: bool = False, cancelled: bool = False) -> None:
        stats = self.solver.stats
        progress = SimulationProgress(
            current_step=current,
            total_steps=total,
            max_pressure=stats.max_pressure,
            energy=stats.energy_content,
            done=done,
            cancelled=cancelled,
        )
        if self.on_progress is not None:
            self.on_progress(progress)

    def run(self, num_steps: int, cancel: Optional[threading.Event] = None) -> int:
        """Advance num_steps steps (or until cancelled). Returns the steps taken."""
        num_steps = int(num_steps)
        if num_steps < 0:
            raise ValueError(f"num_steps must be >= 0, got {num_steps}")
        if cancel is None:
            if not self.running:
                # a stop() aimed at a finished worker must not cancel this run
                self._stop.clear()
            cancel = self._stop
        dt = self.solver.config.time_step
        t0 = time.perf_counter()
        done = 0
        cancelled = False
        for i in range(num_steps):
            if cancel.is_set():
                cancelled = True
                break
            for _ in range(self.substeps):
                self.solver.step(self.field_steps * dt)
                self.field_steps += 1
            self.accumulator.add_sample(self.solver.microphone_signal())
            self.total_steps += 1
            done = i + 1
            if done % self.report_interval == 0 and done < num_steps:
                self._report(done, num_steps)
        self._report(done, num_steps, done=not cancelled, cancelled=cancelled)

        if self.verbose:
            elapsed = time.perf_counter() - t0
            sim_s = done / float(self.sample_rate)
            rtf = (elapsed / sim_s) if sim_s > 0 else 0.0
            state = "cancelled" if cancelled else "done"
            print(
                f"[sim] {state} steps={done}/{num_steps} | grid={self.solver.width}x{self.solver.height} | "
                f"max_p={self.solver.stats.max_pressure:.4g} | energy={self.solver.stats.energy_content:.4g}"
            )
            print(f"[perf] wall_s={elapsed:.3f} | sim_s={sim_s:.4f} | rtf={rtf:.2f} | steps_per_s={done / max(elapsed, 1e-9):.0f}")
        return done

    # --- Background thread ---
    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, num_steps: int) -> threading.Thread:
        if self.running:
            raise RuntimeError("simulation is already running")
        self._stop.clear()
        self._error = None
        self._thread = threading.Thread(target=self._worker, args=(num_steps,), name="SimulationRunner", daemon=True)
        self._thread.start()
        return self._thread

    def _worker(self, num_steps: int) -> None:
        try:
            self.run(num_steps, cancel=self._stop)
        except Exception as e:
            self._error = e
            print(f"[sim][error] stepping thread failed: {e}")

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the stepping thread; re-raises an error it hit."""
        if self._thread is not None:
            self._thread.join(timeout)
        if self._error is not None:
            err, self._error = self._error, None
            raise err

    # --- State ---
    def state(self) -> SimulationState:
        stats = self.solver.stats
        return SimulationState(
            max_pressure=stats.max_pressure,
            energy=stats.energy_content,
            total_steps=self.total_steps,
            grid_width=self.solver.width,
            grid_height=self.solver.height,
            audio_duration=self.accumulator.duration,
        )

    def reset(self) -> None:
        if self.running:
            raise RuntimeError("cannot reset while the simulation is running")
        self.solver.reset()
        self.accumulator.clear()
        self.total_steps = 0
        self.field_steps = 0


def audio_substeps(cfg: SimulationConfig, sample_rate: int) -> int:
    """Field steps per audio sample needed to keep c*dt/dx within cfg.cfl_limit."""
    courant = cfg.speed_of_sound / (sample_rate * cfg.cell_size)
    return max(1, math.ceil(courant / cfg.cfl_limit - 1e-9))


@dataclass
class SimulationResult:
    solver: WaveFieldSolver
    accumulator: AudioAccumulator
    samples: np.ndarray  # normalized microphone trace
    sample_rate: int
    state: SimulationState


def run_simulation(
    duration: float = SIM_DURATION_S,
    grid_width: int = GRID_WIDTH,
    grid_height: int = GRID_HEIGHT,
    sample_rate: int = SAMPLE_RATE,
    frequency: float = SIM_FREQUENCY_HZ,
    source_x: float = 0.5,
    source_y: float = 0.5,
    amplitude: float = SIM_AMPLITUDE,
    source_type: str = "sine",
    on_progress: Optional[ProgressCallback] = None,
    verbose: bool = False,
    **solver_overrides,
) -> SimulationResult:
    """One-shot simulation of a single source sampled at the microphone.

    source_x / source_y are fractions of the grid. source_type is a point
    waveform ("sine", "square", "sawtooth", "triangle") or a geometry
    ("string", "membrane"). The field time step is 1 / (sample_rate * m)
    with m the smallest substep count that satisfies the CFL limit, so each
    recorded sample covers exactly 1 / sample_rate of field time.
    """
    cfg = replace(SimulationConfig(), width=grid_width, height=grid_height, **solver_overrides)
    substeps = audio_substeps(cfg, sample_rate)
    solver = WaveFieldSolver(cfg, time_step=1.0 / (sample_rate * substeps))
    x = source_x * grid_width
    y = source_y * grid_height
    if source_type in WAVEFORMS:
        solver.add_source(x, y, frequency, amplitude, waveform=source_type, duration=duration)
    elif source_type == "string":
        half = grid_width * 0.2
        solver.add_string_source(x - half, y, x + half, y, frequency, amplitude)
    elif source_type == "membrane":
        solver.add_membrane_source(x, y, min(grid_width, grid_height) * 0.1, frequency, amplitude)
    else:
        raise ValueError(f"Unknown source_type '{source_type}'; expected one of {WAVEFORMS + ('string', 'membrane')}")

    accumulator = AudioAccumulator(sample_rate)
    runner = SimulationRunner(
        solver, accumulator, sample_rate=sample_rate,
        on_progress=on_progress, verbose=verbose, substeps=substeps,
    )
    runner.run(int(math.floor(duration * sample_rate)))
    return SimulationResult(
        solver=solver,
        accumulator=accumulator,
        samples=accumulator.normalize(),
        sample_rate=sample_rate,
        state=runner.state(),
    )
