"""Tests for the RunController class."""

import pytest

from lenia.core.controller import Classification, RunController, RunResult, simulate
from lenia.core.errors import InvalidParameter, SinkFailure
from lenia.core.field import ActivationField
from lenia.core.kernel import build_kernel
from lenia.core.params import ParameterSet
from lenia.core.sinks import MemoryFrameSink, QueuedFrameSink


def decaying_params(**changes):
    """Parameters where growth is ~0 everywhere, so every cell loses delta_t per step."""
    values = dict(
        dimension=2,
        kernel_radius=2,
        kernel_sigma_multiplier=0.25,
        growth_sigma_multiplier=0.01,
        growth_center=0.9,
        delta_t=0.05,
        starting_area_size=6,
        cell_spawn_chance=1.0,
        min_initial_value=0.3,
        max_initial_value=0.6,
        num_frames=50,
        seed=2,
    )
    values.update(changes)
    return ParameterSet(**values)


class TestRunController:
    """Test cases for the RunController class."""

    def test_initialization(self):
        """Test controller builds its kernel from the parameters."""
        params = ParameterSet(dimension=2, kernel_radius=3)
        controller = RunController(params)
        assert controller.kernel.radius == 3
        assert controller.kernel.dimension == 2
        assert controller.mode == "scatter"
        assert controller.workers == 1

    def test_empty_seed_dies(self):
        """Test an empty starting area dies after the first generation."""
        params = ParameterSet(kernel_radius=5, starting_area_size=0, num_frames=10)
        sink = MemoryFrameSink()
        result = RunController(params).run(sink)

        assert result.classification == Classification.DIED
        assert result.actual_frame_count == 1
        assert sink.generations == [0]
        assert len(sink.frames[0]) == 0

    def test_mass_limit_times_out_at_frame_zero(self):
        """Test exceeding max_cell_mass stops before any frame is emitted."""
        params = decaying_params(max_cell_mass=1.0)
        sink = MemoryFrameSink()
        result = RunController(params).run(sink)

        assert result.classification == Classification.TIMED_OUT
        assert result.actual_frame_count == 0
        assert len(sink) == 0
        assert result.frame_durations == []

    def test_decay_dies_before_num_frames(self):
        """Test a monotonically decaying run is classified as died."""
        params = decaying_params()
        sink = MemoryFrameSink()
        result = RunController(params).run(sink)

        assert result.classification == Classification.DIED
        assert result.actual_frame_count < params.num_frames
        assert result.final_population == 0
        assert result.final_mass == 0.0

        masses = result.mass_history
        assert len(masses) == result.actual_frame_count
        assert all(later < earlier for earlier, later in zip(masses, masses[1:]))

    def test_late_extinction_lived(self):
        """Test dying after the lived fraction counts as lived."""
        params = decaying_params(num_frames=20, lived_fraction=0.1)
        result = RunController(params).run()

        assert result.classification == Classification.LIVED
        assert result.actual_frame_count > 2

    def test_exhausting_frames_is_unstable(self):
        """Test surviving every frame is classified as unstable."""
        params = decaying_params(num_frames=3)
        sink = MemoryFrameSink()
        result = RunController(params).run(sink)

        assert result.classification == Classification.UNSTABLE
        assert result.actual_frame_count == 3
        assert sink.generations == [0, 1, 2]
        assert result.final_population > 0

    def test_zero_frames(self):
        """Test a run with no frames ends immediately."""
        result = RunController(decaying_params(num_frames=0)).run()
        assert result.classification == Classification.UNSTABLE
        assert result.actual_frame_count == 0

    def test_slow_step_times_out(self):
        """Test a step slower than max_frame_time_seconds times out."""
        params = decaying_params(max_frame_time_seconds=1e-12)
        sink = MemoryFrameSink()
        result = RunController(params).run(sink)

        assert result.classification == Classification.TIMED_OUT
        assert result.actual_frame_count == 1
        assert sink.generations == [0]

    def test_frames_in_order(self):
        """Test frames arrive once per generation in increasing order."""
        params = decaying_params()
        sink = MemoryFrameSink()
        result = RunController(params).run(sink)

        assert sink.generations == list(range(result.actual_frame_count))
        assert [frame.total_mass for frame in sink.frames] == pytest.approx(result.mass_history)

    def test_first_frame_is_initial_field(self):
        """Test the first frame is the field passed in, before any step."""
        params = decaying_params(num_frames=2)
        field = ActivationField(2)
        field.set((0, 0), 0.5)
        sink = MemoryFrameSink()
        RunController(params).run(sink, field=field)

        assert sink.frames[0].to_field() == field
        assert sink.frames[1].cells[0][1] == pytest.approx(0.45)

    def test_runs_are_independent(self):
        """Test repeated runs with the same seed give the same result."""
        controller = RunController(decaying_params())
        first = controller.run()
        second = controller.run()
        assert first.classification == second.classification
        assert first.actual_frame_count == second.actual_frame_count
        assert first.mass_history == second.mass_history

    def test_gather_mode(self):
        """Test the gather strategy drives a full run."""
        result = RunController(decaying_params(), mode="gather").run()
        assert result.classification == Classification.DIED

    def test_threaded_scatter(self):
        """Test worker threads give the same classification."""
        sequential = RunController(decaying_params()).run()
        threaded = RunController(decaying_params(), workers=4).run()
        assert threaded.classification == sequential.classification
        assert threaded.actual_frame_count == sequential.actual_frame_count

    def test_sink_failure_propagates(self):
        """Test sink errors are raised as SinkFailure."""

        def broken_sink(frame):
            raise OSError("disk full")

        with pytest.raises(SinkFailure) as excinfo:
            RunController(decaying_params()).run(broken_sink)
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_invalid_mode(self):
        """Test unknown modes are rejected up front."""
        with pytest.raises(InvalidParameter):
            RunController(decaying_params(), mode="fft")

    def test_invalid_workers(self):
        """Test a worker count below one is rejected."""
        with pytest.raises(InvalidParameter):
            RunController(decaying_params(), workers=0)

    def test_kernel_dimension_mismatch(self):
        """Test a prebuilt kernel must match the parameter dimension."""
        with pytest.raises(InvalidParameter):
            RunController(decaying_params(), kernel=build_kernel(2, 3, 0.25))

    def test_field_dimension_mismatch(self):
        """Test an initial field of the wrong dimension is rejected before any frame."""
        field = ActivationField(3)
        field.set((0, 0, 0), 0.5)
        sink = MemoryFrameSink()

        with pytest.raises(InvalidParameter):
            RunController(decaying_params()).run(sink, field=field)
        assert len(sink) == 0

    def test_verbose_output(self, capsys):
        """Test verbose runs print progress."""
        RunController(decaying_params(num_frames=2), verbose=True).run()
        captured = capsys.readouterr()
        assert "Frame 1/2 rendered" in captured.out
        assert "completed with behavior: unstable" in captured.out

    def test_quiet_by_default(self, capsys):
        """Test runs print nothing unless verbose."""
        RunController(decaying_params(num_frames=2)).run()
        assert capsys.readouterr().out == ""


class TestRunResult:
    """Test cases for RunResult."""

    def test_to_dict(self):
        """Test conversion to a plain dictionary."""
        result = RunResult(Classification.DIED, 4, frame_durations=[0.5, 1.5])
        data = result.to_dict()
        assert data["classification"] == "died"
        assert data["actual_frame_count"] == 4
        assert result.mean_frame_duration == pytest.approx(1.0)

    def test_classification_is_str(self):
        """Test classifications compare equal to their tags."""
        assert Classification.TIMED_OUT == "timed_out"
        assert Classification("lived") is Classification.LIVED


class TestSimulate:
    """Test cases for the simulate helper."""

    def test_simulate_with_queued_sink(self):
        """Test a run through an asynchronous FIFO sink."""
        memory = MemoryFrameSink()
        with QueuedFrameSink(memory) as sink:
            result = simulate(decaying_params(), sink=sink)

        assert result.classification == Classification.DIED
        assert memory.generations == list(range(result.actual_frame_count))
