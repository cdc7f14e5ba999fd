"""Kernel convolution and growth update for one Lenia generation."""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Tuple, Union

import numpy as np
import torch
import torch.nn.functional as F

from .errors import InvalidParameter
from .field import ActivationField
from .kernel import Kernel
from .params import ParameterSet

SCATTER = "scatter"
GATHER = "gather"
MODES = (SCATTER, GATHER)

# Alive cells handed to one worker at a time in scatter mode
DEFAULT_CHUNK_SIZE = 2048

ArrayLike = Union[float, np.ndarray]


def growth(x: ArrayLike, params: ParameterSet) -> ArrayLike:
    """Bell-shaped growth mapping of a convolution value into (0, 1]."""
    diff = np.asarray(x, dtype=np.float64) - params.growth_center
    sigma = params.growth_sigma
    result = np.exp(-params.growth_steepness * diff * diff / (2.0 * sigma * sigma))
    return float(result) if np.ndim(result) == 0 else result


def clamp01(x: ArrayLike) -> ArrayLike:
    """Clamp values into [0, 1]."""
    result = np.clip(x, 0.0, 1.0)
    return float(result) if np.ndim(result) == 0 else result


def update_values(current: np.ndarray, convolution: np.ndarray, params: ParameterSet) -> np.ndarray:
    """Apply the growth update to arrays of current and convolution values."""
    return np.clip(current + params.delta_t * (2.0 * growth(convolution, params) - 1.0), 0.0, 1.0)


def _reduce(targets: np.ndarray, *channels: np.ndarray) -> Tuple[np.ndarray, List[np.ndarray]]:
    """Sum each channel over duplicate target positions."""
    unique, inverse = np.unique(targets, axis=0, return_inverse=True)
    inverse = inverse.reshape(-1)
    sums = [np.bincount(inverse, weights=channel, minlength=len(unique)) for channel in channels]
    return unique, sums


def _scatter_chunk(positions: np.ndarray, values: np.ndarray, kernel: Kernel) -> Tuple[np.ndarray, np.ndarray]:
    """Accumulate the contributions of one chunk of alive cells locally."""
    targets = (positions[:, None, :] + kernel.offsets[None, :, :]).reshape(-1, kernel.dimension)
    contributions = (values[:, None] * kernel.weights[None, :]).reshape(-1)
    unique, (sums,) = _reduce(targets, contributions)
    return unique, sums


def scatter_convolution(
    field: ActivationField,
    kernel: Kernel,
    workers: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Convolve by scattering each alive cell's value through the kernel.

    Alive cells are split into chunks, each chunk is reduced on its own
    (optionally in a thread pool) and the partial sums are merged in chunk
    order, so the result does not depend on the number of workers.

    Args:
        field: Current field
        kernel: Frozen kernel
        workers: Number of worker threads
        chunk_size: Alive cells per chunk

    Returns:
        Tuple of (positions, convolution, current) arrays covering every
        position reachable from an alive cell
    """
    positions, values = field.to_arrays()
    dimension = field.dimension

    if len(values) == 0:
        empty = np.zeros(0, dtype=np.float64)
        return np.zeros((0, dimension), dtype=np.int64), empty, empty.copy()

    chunk_count = max(1, -(-len(values) // chunk_size))
    chunks = list(zip(np.array_split(positions, chunk_count), np.array_split(values, chunk_count)))

    if workers > 1 and chunk_count > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            partials = list(executor.map(lambda chunk: _scatter_chunk(chunk[0], chunk[1], kernel), chunks))
    else:
        partials = [_scatter_chunk(chunk_positions, chunk_values, kernel) for chunk_positions, chunk_values in chunks]

    # Alive cells join the merge with zero contribution to carry their current value
    targets = np.concatenate([p for p, _ in partials] + [positions])
    partial_count = sum(len(s) for _, s in partials)
    convolution = np.concatenate([s for _, s in partials] + [np.zeros(len(values))])
    current = np.concatenate([np.zeros(partial_count), values])

    unique, (convolution, current) = _reduce(targets, convolution, current)
    return unique, convolution, current


def _correlate(volume: torch.Tensor, weights: torch.Tensor) -> torch.Tensor:
    """Valid-mode cross-correlation of a D-dimensional volume with a weight block."""
    dims = volume.dim()
    if dims <= 3:
        conv = (F.conv1d, F.conv2d, F.conv3d)[dims - 1]
        return conv(volume[None, None], weights[None, None])[0, 0]

    # Decompose along the last axis until torch can handle the rest
    span = weights.shape[-1]
    out_len = volume.shape[-1] - span + 1
    slices = []
    for i in range(out_len):
        total = None
        for k in range(span):
            part = _correlate(volume[..., i + k].contiguous(), weights[..., k].contiguous())
            total = part if total is None else total + part
        slices.append(total)
    return torch.stack(slices, dim=-1)


def gather_convolution(field: ActivationField, kernel: Kernel) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Convolve every position of the bounding box expanded by the kernel radius.

    Each position p gets sum(field.get(p + offset) * weight). Unlike the
    scatter strategy this evaluates empty positions far from any alive cell,
    so a nonzero growth(0) can create mass anywhere inside the box.

    Returns:
        Tuple of (positions, convolution, current) arrays
    """
    positions, values = field.to_arrays()
    dimension = field.dimension

    if len(values) == 0:
        empty = np.zeros(0, dtype=np.float64)
        return np.zeros((0, dimension), dtype=np.int64), empty, empty.copy()

    radius = kernel.radius
    lower = positions.min(axis=0)
    upper = positions.max(axis=0)

    # Outputs span the box +- r, so inputs need the box +- 2r
    origin = lower - 2 * radius
    dense = np.zeros(tuple(upper - lower + 1 + 4 * radius), dtype=np.float64)
    dense[tuple((positions - origin).T)] = values

    convolution = _correlate(torch.from_numpy(dense), torch.from_numpy(np.array(kernel.dense())))
    convolution = convolution.numpy()

    inner = tuple(slice(radius, radius + n) for n in convolution.shape)
    current = dense[inner]

    grid = np.indices(convolution.shape).reshape(dimension, -1).T + (lower - radius)
    return grid.astype(np.int64), convolution.reshape(-1), current.reshape(-1)


def next_generation(
    field: ActivationField,
    kernel: Kernel,
    params: ParameterSet,
    mode: str = SCATTER,
    workers: int = 1,
) -> ActivationField:
    """Compute the next generation without modifying the current field.

    Args:
        field: Current field
        kernel: Frozen kernel with the same dimension as the field
        params: Simulation parameters
        mode: "scatter" (default) or "gather"
        workers: Worker threads for the scatter strategy

    Returns:
        New field

    Raises:
        InvalidParameter: If the mode is unknown or dimensions disagree
    """
    if mode not in MODES:
        raise InvalidParameter(f"Unknown convolution mode '{mode}'. Use one of: {', '.join(MODES)}")
    if kernel.dimension != field.dimension:
        raise InvalidParameter(
            f"Kernel dimension {kernel.dimension} doesn't match field dimension {field.dimension}"
        )

    if mode == SCATTER:
        positions, convolution, current = scatter_convolution(field, kernel, workers=workers)
    else:
        positions, convolution, current = gather_convolution(field, kernel)

    new_values = update_values(current, convolution, params)
    return ActivationField.from_arrays(
        positions, new_values, prune_threshold=params.prune_threshold, dimension=field.dimension
    )
