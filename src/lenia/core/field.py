"""Sparse activation field for N-dimensional Lenia."""

import itertools
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from .params import ParameterSet

Position = Tuple[int, ...]


@dataclass(frozen=True)
class FrameRecord:
    """Read-only snapshot of a field taken before a generation step."""

    generation: int
    dimension: int
    cells: Tuple[Tuple[Position, float], ...]
    prune_threshold: float = 0.01

    def __len__(self) -> int:
        return len(self.cells)

    @property
    def total_mass(self) -> float:
        """Sum of all activation values in the snapshot."""
        return float(sum(value for _, value in self.cells))

    def to_field(self, prune_threshold: Optional[float] = None) -> "ActivationField":
        """Rebuild a field from the snapshot, using its threshold unless one is given."""
        if prune_threshold is None:
            prune_threshold = self.prune_threshold
        return ActivationField.from_pairs(self.dimension, self.cells, prune_threshold)


class ActivationField:
    """Sparse mapping from integer positions to activation values.

    Only values above ``prune_threshold`` are stored; every other position
    is implicitly 0. Positions are tuples of ints with a fixed length.
    """

    def __init__(self, dimension: int, prune_threshold: float = 0.01) -> None:
        """Initialize an empty field.

        Args:
            dimension: Number of spatial axes
            prune_threshold: Values at or below this are not stored
        """
        if dimension < 1:
            raise ValueError(f"Dimension must be positive, got {dimension}")

        self.dimension = dimension
        self.prune_threshold = prune_threshold
        self._cells: Dict[Position, float] = {}

    @classmethod
    def from_pairs(
        cls,
        dimension: int,
        pairs: Iterable[Tuple[Sequence[int], float]],
        prune_threshold: float = 0.01,
    ) -> "ActivationField":
        """Build a field from (position, value) pairs, later pairs winning."""
        field = cls(dimension, prune_threshold)
        for position, value in pairs:
            field.set(position, value)
        return field

    @classmethod
    def from_arrays(
        cls,
        positions: np.ndarray,
        values: np.ndarray,
        prune_threshold: float = 0.01,
        dimension: Optional[int] = None,
    ) -> "ActivationField":
        """Build a field from an (N, D) position array and an (N,) value array.

        Positions must be unique. Values at or below the threshold are dropped.

        Raises:
            ValueError: If any value is outside [0, 1]
        """
        if not np.all((values >= 0.0) & (values <= 1.0)):
            raise ValueError("Field values must lie in [0, 1]")

        if dimension is None:
            dimension = positions.shape[1]

        field = cls(dimension, prune_threshold)
        keep = values > prune_threshold
        kept_positions = positions[keep].tolist()
        kept_values = values[keep].tolist()
        field._cells = dict(zip(map(tuple, kept_positions), kept_values))
        return field

    def _check_position(self, position: Sequence[int]) -> Position:
        if len(position) != self.dimension:
            raise ValueError(
                f"Position {tuple(position)} has {len(position)} axes, field has {self.dimension}"
            )
        return tuple(int(c) for c in position)

    def get(self, position: Sequence[int]) -> float:
        """Get the value at a position (0.0 if nothing is stored there)."""
        return self._cells.get(self._check_position(position), 0.0)

    def set(self, position: Sequence[int], value: float) -> None:
        """Store a value, or remove the position if value is at or below the threshold.

        Raises:
            ValueError: If the position has the wrong number of axes or the
                value is outside [0, 1]
        """
        key = self._check_position(position)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Value {value} at {key} is outside [0, 1]")
        if value > self.prune_threshold:
            self._cells[key] = float(value)
        else:
            self._cells.pop(key, None)

    def count(self) -> int:
        """Get the number of stored positions."""
        return len(self._cells)

    def total_mass(self) -> float:
        """Get the sum of all stored values."""
        return float(sum(self._cells.values()))

    def items(self) -> Iterator[Tuple[Position, float]]:
        """Iterate over stored (position, value) pairs."""
        return iter(self._cells.items())

    def positions(self) -> Iterator[Position]:
        """Iterate over stored positions."""
        return iter(self._cells)

    def to_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """Convert to an (N, D) int64 position array and an (N,) float64 value array."""
        positions = np.array(list(self._cells), dtype=np.int64).reshape(-1, self.dimension)
        values = np.fromiter(self._cells.values(), dtype=np.float64, count=len(self._cells))
        return positions, values

    def snapshot(self, generation: int) -> FrameRecord:
        """Take a read-only snapshot for a frame sink."""
        return FrameRecord(generation, self.dimension, tuple(self._cells.items()), self.prune_threshold)

    def copy(self) -> "ActivationField":
        """Return an independent copy of the field."""
        other = ActivationField(self.dimension, self.prune_threshold)
        other._cells = dict(self._cells)
        return other

    def get_bounding_box(self) -> Optional[Tuple[Position, Position]]:
        """Get the bounding box of stored positions.

        Returns:
            Tuple of (min_corner, max_corner) or None if the field is empty
        """
        if not self._cells:
            return None

        positions, _ = self.to_arrays()
        return (
            tuple(int(c) for c in positions.min(axis=0)),
            tuple(int(c) for c in positions.max(axis=0)),
        )

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Tuple[Position, float]]:
        return self.items()

    def __contains__(self, position: object) -> bool:
        try:
            key = tuple(int(c) for c in position)
        except (TypeError, ValueError):
            return False
        return key in self._cells

    def __eq__(self, other: object) -> bool:
        """Check if two fields store the same values."""
        if not isinstance(other, ActivationField):
            return False
        return (
            self.dimension == other.dimension
            and self.prune_threshold == other.prune_threshold
            and self._cells == other._cells
        )

    def __repr__(self) -> str:
        return (
            f"ActivationField(dimension={self.dimension}, cells={len(self._cells)}, "
            f"mass={self.total_mass():.3f})"
        )


def hypercube(lower: Sequence[int], side: int) -> Iterator[Position]:
    """Iterate over every position of a hypercube in row-major order.

    Args:
        lower: Lowest corner of the hypercube
        side: Number of positions along each axis

    Yields:
        Positions, last axis varying fastest
    """
    axes = [range(start, start + side) for start in lower]
    return itertools.product(*axes)


def seed_field(params: ParameterSet, rng: Optional[np.random.Generator] = None) -> ActivationField:
    """Create the initial field for a run.

    For each of ``starting_points`` clusters a random center is drawn per
    axis in [-random_offset_range // 2, random_offset_range // 2]. Every
    position of the ``starting_area_size``-wide hypercube around that center
    spawns with probability ``cell_spawn_chance`` and a value drawn uniformly
    in [min_initial_value, max_initial_value]. Overlapping clusters overwrite
    earlier values instead of adding to them.

    Args:
        params: Simulation parameters
        rng: Random generator (defaults to one seeded from ``params.seed``)

    Returns:
        Seeded field
    """
    if rng is None:
        rng = np.random.default_rng(params.seed)

    field = ActivationField(params.dimension, params.prune_threshold)
    half_range = params.random_offset_range // 2
    size = params.starting_area_size

    for _ in range(params.starting_points):
        center = rng.integers(-half_range, half_range, size=params.dimension, endpoint=True)
        lower = [int(c) - size // 2 for c in center]

        for position in hypercube(lower, size):
            if rng.random() < params.cell_spawn_chance:
                value = rng.uniform(params.min_initial_value, params.max_initial_value)
                field.set(position, value)

    return field
