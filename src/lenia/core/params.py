"""Simulation parameters for the Lenia engine."""

import math
import numbers
from dataclasses import dataclass, asdict, fields, replace as _replace
from typing import Any, Dict, List, Mapping, Optional

from .errors import InvalidParameter


# Original generator flag names mapped to field names
_CAMEL_CASE_NAMES = {
    "dimension": "dimension",
    "kernelRadius": "kernel_radius",
    "kernelSigmaMultiplier": "kernel_sigma_multiplier",
    "growthSigmaMultiplier": "growth_sigma_multiplier",
    "center": "growth_center",
    "growthCenter": "growth_center",
    "growthSteepness": "growth_steepness",
    "deltaT": "delta_t",
    "startingAreaSize": "starting_area_size",
    "startingPoints": "starting_points",
    "randomOffsetRange": "random_offset_range",
    "cellSpawnChance": "cell_spawn_chance",
    "minInitialValue": "min_initial_value",
    "maxInitialValue": "max_initial_value",
    "maxCellMass": "max_cell_mass",
    "maxFrameTimeSeconds": "max_frame_time_seconds",
    "numFrames": "num_frames",
    "pruneThreshold": "prune_threshold",
    "livedFraction": "lived_fraction",
}

_REAL_FIELDS = (
    "kernel_sigma_multiplier",
    "growth_sigma_multiplier",
    "growth_center",
    "growth_steepness",
    "delta_t",
    "cell_spawn_chance",
    "min_initial_value",
    "max_initial_value",
    "max_cell_mass",
    "max_frame_time_seconds",
    "prune_threshold",
    "lived_fraction",
)


@dataclass(frozen=True)
class ParameterSet:
    """Immutable configuration for a single simulation run.

    All values are checked once when the instance is created; an invalid
    combination raises InvalidParameter listing every problem found.
    """

    dimension: int = 3
    kernel_radius: int = 2
    kernel_sigma_multiplier: float = 0.125
    growth_sigma_multiplier: float = 0.125
    growth_center: float = 0.15
    growth_steepness: float = 1.0
    delta_t: float = 0.1
    starting_area_size: int = 30
    starting_points: int = 1
    random_offset_range: int = 0
    cell_spawn_chance: float = 0.1
    min_initial_value: float = 0.1
    max_initial_value: float = 1.0
    max_cell_mass: float = math.inf
    max_frame_time_seconds: float = 1500.0
    num_frames: int = 100
    prune_threshold: float = 0.01
    lived_fraction: float = 0.6
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        errors = self._collect_errors()
        if errors:
            raise InvalidParameter("Invalid parameters: " + "; ".join(errors))

    def _collect_errors(self) -> List[str]:
        errors = [f"{name} must be a number" for name in _REAL_FIELDS if not _is_real(getattr(self, name))]
        # Range checks below compare against numbers
        if errors:
            return errors

        if not _is_int(self.dimension) or self.dimension < 1:
            errors.append("dimension must be a positive integer")

        if not _is_int(self.kernel_radius) or self.kernel_radius <= 0:
            errors.append("kernel_radius must be a positive integer")

        if not self.kernel_sigma_multiplier > 0:
            errors.append("kernel_sigma_multiplier must be positive")

        if not self.growth_sigma_multiplier > 0:
            errors.append("growth_sigma_multiplier must be positive")

        if not math.isfinite(self.growth_center):
            errors.append("growth_center must be finite")

        if not self.growth_steepness > 0:
            errors.append("growth_steepness must be positive")

        if not self.delta_t > 0:
            errors.append("delta_t must be positive")

        if not _is_int(self.starting_area_size) or self.starting_area_size < 0:
            errors.append("starting_area_size must be a non-negative integer")

        if not _is_int(self.starting_points) or self.starting_points < 1:
            errors.append("starting_points must be at least 1")

        if not _is_int(self.random_offset_range) or self.random_offset_range < 0:
            errors.append("random_offset_range must be a non-negative integer")

        if not 0.0 <= self.cell_spawn_chance <= 1.0:
            errors.append("cell_spawn_chance must be between 0.0 and 1.0")

        if not 0.0 <= self.min_initial_value <= 1.0:
            errors.append("min_initial_value must be between 0.0 and 1.0")

        if not 0.0 <= self.max_initial_value <= 1.0:
            errors.append("max_initial_value must be between 0.0 and 1.0")

        if self.min_initial_value > self.max_initial_value:
            errors.append("min_initial_value must not exceed max_initial_value")

        if not self.max_cell_mass > 0:
            errors.append("max_cell_mass must be positive")

        if not self.max_frame_time_seconds > 0:
            errors.append("max_frame_time_seconds must be positive")

        if not _is_int(self.num_frames) or self.num_frames < 0:
            errors.append("num_frames must be a non-negative integer")

        if not 0.0 <= self.prune_threshold < 1.0:
            errors.append("prune_threshold must be in [0.0, 1.0)")

        if not 0.0 <= self.lived_fraction <= 1.0:
            errors.append("lived_fraction must be between 0.0 and 1.0")

        if self.seed is not None and not _is_int(self.seed):
            errors.append("seed must be an integer or None")

        return errors

    @property
    def kernel_sigma(self) -> float:
        """Width of the kernel ring in cells."""
        return self.kernel_radius * self.kernel_sigma_multiplier

    @property
    def growth_sigma(self) -> float:
        """Width of the growth bell."""
        return self.kernel_radius * self.growth_sigma_multiplier

    def replace(self, **changes: Any) -> "ParameterSet":
        """Return a validated copy with some fields changed."""
        return _replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert parameters to a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ParameterSet":
        """Build parameters from a flat mapping.

        Keys may be field names or the camelCase flag names used by the
        original generators (``kernelRadius``, ``deltaT``, ``center`` ...).
        ``sigma`` is the 2D generator's absolute growth sigma and is divided by
        the kernel radius.

        Raises:
            InvalidParameter: If a key is unknown or a value is invalid
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        unknown = []

        for key, value in data.items():
            if key == "sigma":
                continue
            name = key if key in known else _CAMEL_CASE_NAMES.get(key)
            if name is None:
                unknown.append(key)
                continue
            kwargs[name] = value

        if unknown:
            raise InvalidParameter(f"Unknown parameters: {', '.join(sorted(unknown))}")

        if "sigma" in data:
            kwargs["growth_sigma_multiplier"] = _sigma_to_multiplier(data["sigma"], kwargs)

        return cls(**kwargs)

    @classmethod
    def preset(cls, name: str, **overrides: Any) -> "ParameterSet":
        """Create parameters from a named preset.

        Args:
            name: One of the names returned by list_presets()
            **overrides: Fields to change on top of the preset

        Raises:
            InvalidParameter: If the preset does not exist
        """
        try:
            values = dict(PRESETS[name.lower()])
        except KeyError:
            raise InvalidParameter(
                f"Unknown preset '{name}'. Available presets: {', '.join(list_presets())}"
            ) from None

        values.update(overrides)
        return cls(**values)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_real(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _sigma_to_multiplier(sigma: Any, kwargs: Mapping[str, Any]) -> float:
    if "growth_sigma_multiplier" in kwargs:
        raise InvalidParameter("sigma and growth_sigma_multiplier cannot both be given")

    radius = kwargs.get("kernel_radius", ParameterSet.kernel_radius)
    if not _is_real(sigma) or not _is_int(radius) or radius <= 0:
        raise InvalidParameter("sigma must be a number and kernel_radius a positive integer")
    return sigma / radius


# Parameter sets used by the original generator manager
PRESETS: Dict[str, Dict[str, Any]] = {
    "2d": {
        "dimension": 2,
        "num_frames": 40,
        "kernel_radius": 16,
        "kernel_sigma_multiplier": 0.25,
        # The 2D generator took an absolute growth sigma of 0.0125
        "growth_sigma_multiplier": 0.0125 / 16,
        "growth_center": 0.15,
        "delta_t": 0.1,
        "starting_area_size": 40,
        "cell_spawn_chance": 0.5,
        "min_initial_value": 0.1,
        "max_initial_value": 1.0,
    },
    "3d": {
        "dimension": 3,
        "num_frames": 30,
        "kernel_radius": 5,
        "kernel_sigma_multiplier": 0.125,
        "growth_sigma_multiplier": 0.0035,
        "growth_center": 0.15,
        "delta_t": 0.1,
        "starting_area_size": 5,
        "cell_spawn_chance": 0.7,
        "min_initial_value": 0.5,
        "max_initial_value": 1.0,
    },
    "4d": {
        "dimension": 4,
        "num_frames": 16,
        "kernel_radius": 3,
        "kernel_sigma_multiplier": 0.125,
        "growth_sigma_multiplier": 0.012,
        "growth_center": 0.15,
        "delta_t": 0.1,
        "starting_area_size": 4,
        "cell_spawn_chance": 0.4,
        "min_initial_value": 0.2,
        "max_initial_value": 1.0,
    },
}


def list_presets() -> List[str]:
    """Get the names of all presets."""
    return sorted(PRESETS)
