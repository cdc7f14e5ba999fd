"""N-dimensional sparse Lenia cellular automata."""

__version__ = "0.1.0"

from .core.params import ParameterSet
from .core.kernel import build_kernel
from .core.field import ActivationField, seed_field
from .core.step import next_generation
from .core.controller import Classification, RunController, RunResult, simulate

__all__ = [
    "ParameterSet",
    "build_kernel",
    "ActivationField",
    "seed_field",
    "next_generation",
    "Classification",
    "RunController",
    "RunResult",
    "simulate",
]
