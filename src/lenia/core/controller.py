"""Generation loop and run classification for Lenia simulations."""

import time
from dataclasses import dataclass, asdict, field as dataclass_field
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

from .errors import InvalidParameter, SinkFailure
from .field import ActivationField, FrameRecord, seed_field
from .kernel import Kernel, kernel_for
from .params import ParameterSet
from .sinks import FrameSink
from .step import MODES, SCATTER, next_generation


class Classification(str, Enum):
    """How a run ended."""

    DIED = "died"
    LIVED = "lived"
    UNSTABLE = "unstable"
    TIMED_OUT = "timed_out"


@dataclass
class RunResult:
    """Outcome and statistics of a single run."""

    classification: Classification
    actual_frame_count: int
    final_population: int = 0
    final_mass: float = 0.0
    duration_seconds: float = 0.0
    frame_durations: List[float] = dataclass_field(default_factory=list)
    population_history: List[int] = dataclass_field(default_factory=list)
    mass_history: List[float] = dataclass_field(default_factory=list)

    @property
    def mean_frame_duration(self) -> float:
        """Average step time in seconds (0.0 if no step ran)."""
        if not self.frame_durations:
            return 0.0
        return float(np.mean(self.frame_durations))

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a dictionary."""
        data = asdict(self)
        data["classification"] = self.classification.value
        return data


class RunController:
    """Drives the generation loop and classifies how the run ended.

    The controller keeps no state between runs: every call to run() starts
    from a fresh seeded field (or the one passed in) and returns everything
    it learned in the RunResult.
    """

    def __init__(
        self,
        params: ParameterSet,
        kernel: Optional[Kernel] = None,
        mode: str = SCATTER,
        workers: int = 1,
        verbose: bool = False,
    ) -> None:
        """Initialize the controller.

        Args:
            params: Simulation parameters
            kernel: Prebuilt kernel (built from params when omitted)
            mode: Convolution strategy, "scatter" or "gather"
            workers: Worker threads for the scatter strategy
            verbose: Print per-frame progress
        """
        if mode not in MODES:
            raise InvalidParameter(f"Unknown convolution mode '{mode}'. Use one of: {', '.join(MODES)}")
        if workers < 1:
            raise InvalidParameter(f"workers must be at least 1, got {workers}")

        self.params = params
        self.kernel = kernel if kernel is not None else kernel_for(params)
        if self.kernel.dimension != params.dimension:
            raise InvalidParameter(
                f"Kernel dimension {self.kernel.dimension} doesn't match parameter dimension {params.dimension}"
            )
        self.mode = mode
        self.workers = workers
        self.verbose = verbose

    def _classify_extinction(self, frame: int) -> Classification:
        if frame > self.params.lived_fraction * self.params.num_frames:
            return Classification.LIVED
        return Classification.DIED

    def _emit(self, sink: Optional[FrameSink], record: FrameRecord) -> None:
        if sink is None:
            return
        try:
            sink(record)
        except SinkFailure:
            raise
        except Exception as e:
            raise SinkFailure(f"Frame sink failed on generation {record.generation}: {e}") from e

    def run(self, sink: Optional[FrameSink] = None, field: Optional[ActivationField] = None) -> RunResult:
        """Run the simulation until a termination rule fires.

        Args:
            sink: Callable receiving a FrameRecord for each generation, in order
            field: Initial field (seeded from params when omitted)

        Returns:
            RunResult with classification and frame count

        Raises:
            InvalidParameter: If the initial field's dimension doesn't match params
            SinkFailure: If the sink raises while persisting a frame
        """
        params = self.params
        current = field if field is not None else seed_field(params)
        if current.dimension != params.dimension:
            raise InvalidParameter(
                f"Field dimension {current.dimension} doesn't match parameter dimension {params.dimension}"
            )

        frame_durations: List[float] = []
        population_history: List[int] = []
        mass_history: List[float] = []
        classification = Classification.UNSTABLE
        frame_count = params.num_frames

        if self.verbose:
            print(
                f"Starting {params.dimension}D run: {current.count()} cells, "
                f"kernel of {len(self.kernel)} offsets, {params.num_frames} frames"
            )

        start_time = time.perf_counter()

        for frame in range(params.num_frames):
            mass = current.total_mass()
            population_history.append(current.count())
            mass_history.append(mass)

            if mass > params.max_cell_mass:
                classification = Classification.TIMED_OUT
                frame_count = frame
                if self.verbose:
                    print(f"Frame {frame}: mass {mass:.2f} exceeds limit of {params.max_cell_mass}")
                break

            self._emit(sink, current.snapshot(frame))

            step_start = time.perf_counter()
            current = next_generation(current, self.kernel, params, mode=self.mode, workers=self.workers)
            elapsed = time.perf_counter() - step_start
            frame_durations.append(elapsed)

            if elapsed > params.max_frame_time_seconds:
                classification = Classification.TIMED_OUT
                frame_count = frame + 1
                if self.verbose:
                    print(
                        f"Frame {frame} took {elapsed:.2f} seconds, "
                        f"exceeding limit of {params.max_frame_time_seconds} seconds."
                    )
                break

            if current.count() == 0:
                classification = self._classify_extinction(frame)
                frame_count = frame + 1
                if self.verbose:
                    print(f"No cells remaining after {frame} frames.")
                break

            if self.verbose:
                print(f"Frame {frame + 1}/{params.num_frames} rendered in {elapsed:.2f} seconds.")

        duration = time.perf_counter() - start_time

        if self.verbose:
            print(f"{params.dimension}D Lenia run completed with behavior: {classification.value}")

        return RunResult(
            classification=classification,
            actual_frame_count=frame_count,
            final_population=current.count(),
            final_mass=current.total_mass(),
            duration_seconds=duration,
            frame_durations=frame_durations,
            population_history=population_history,
            mass_history=mass_history,
        )


def simulate(
    params: ParameterSet,
    sink: Optional[FrameSink] = None,
    mode: str = SCATTER,
    workers: int = 1,
    verbose: bool = False,
) -> RunResult:
    """Seed a field from params and run it to completion."""
    controller = RunController(params, mode=mode, workers=workers, verbose=verbose)
    return controller.run(sink)
