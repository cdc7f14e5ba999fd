"""Radial convolution kernel for the Lenia engine."""

import itertools
from dataclasses import dataclass
from typing import Iterator, NamedTuple, Tuple

import numpy as np

from .errors import InvalidParameter, ResourceExhaustion
from .params import ParameterSet

# Default guard on (2r+1)^D, checked before anything is allocated
MAX_KERNEL_ENTRIES = 50_000_000


class KernelEntry(NamedTuple):
    """A single kernel offset and its normalized weight."""

    offset: Tuple[int, ...]
    weight: float


@dataclass(frozen=True, eq=False)
class Kernel:
    """Precomputed, normalized radial kernel.

    Offsets cover the full hypercube [-radius, radius]^dimension in
    row-major order, so ``weights`` reshapes directly into a dense block.
    Both arrays are read-only and can be shared between threads.
    """

    radius: int
    dimension: int
    offsets: np.ndarray
    weights: np.ndarray

    def __len__(self) -> int:
        return len(self.weights)

    @property
    def side(self) -> int:
        """Width of the kernel hypercube along each axis."""
        return 2 * self.radius + 1

    def entries(self) -> Iterator[KernelEntry]:
        """Iterate over (offset, weight) pairs."""
        for offset, weight in zip(self.offsets.tolist(), self.weights.tolist()):
            yield KernelEntry(tuple(offset), weight)

    def dense(self) -> np.ndarray:
        """Get the weights as a dense (2r+1, ..., 2r+1) array."""
        return self.weights.reshape((self.side,) * self.dimension)

    def weight_at(self, offset: Tuple[int, ...]) -> float:
        """Get the weight for a single offset.

        Raises:
            IndexError: If the offset lies outside the kernel hypercube
        """
        if len(offset) != self.dimension or any(abs(c) > self.radius for c in offset):
            raise IndexError(f"Offset {offset} outside kernel of radius {self.radius}")

        return float(self.dense()[tuple(c + self.radius for c in offset)])


def build_kernel(
    radius: int,
    dimension: int,
    sigma_multiplier: float,
    max_entries: int = MAX_KERNEL_ENTRIES,
) -> Kernel:
    """Build a normalized radial kernel.

    Each offset o in [-radius, radius]^dimension gets the weight
    exp(-(|o| - radius/2)^2 / (2 * sigma^2)) with sigma = radius * sigma_multiplier,
    and the weights are scaled to sum to 1.

    Args:
        radius: Kernel radius in cells
        dimension: Number of spatial axes
        sigma_multiplier: Ring width as a fraction of the radius
        max_entries: Largest kernel size that may be allocated

    Returns:
        Frozen Kernel

    Raises:
        InvalidParameter: If radius or dimension is not positive, or sigma <= 0
        ResourceExhaustion: If the kernel would exceed max_entries offsets
    """
    if radius <= 0:
        raise InvalidParameter(f"Kernel radius must be positive, got {radius}")
    if dimension < 1:
        raise InvalidParameter(f"Dimension must be positive, got {dimension}")

    sigma = radius * sigma_multiplier
    if not sigma > 0:
        raise InvalidParameter(f"Kernel sigma must be positive, got {sigma}")

    size = (2 * radius + 1) ** dimension
    if size > max_entries:
        raise ResourceExhaustion(
            f"Kernel of radius {radius} in {dimension}D needs {size} entries (limit {max_entries})"
        )

    axis = range(-radius, radius + 1)
    offsets = np.array(list(itertools.product(axis, repeat=dimension)), dtype=np.int64)
    offsets = offsets.reshape(size, dimension)

    distance = np.sqrt(np.sum(offsets.astype(np.float64) ** 2, axis=1))
    weights = np.exp(-((distance - radius / 2.0) ** 2) / (2.0 * sigma * sigma))
    weights /= weights.sum()

    offsets.setflags(write=False)
    weights.setflags(write=False)

    return Kernel(radius=radius, dimension=dimension, offsets=offsets, weights=weights)


def kernel_for(params: ParameterSet) -> Kernel:
    """Build the kernel described by a parameter set."""
    return build_kernel(params.kernel_radius, params.dimension, params.kernel_sigma_multiplier)
