"""Core Lenia engine: kernel, sparse field, generation step and run loop."""

from .errors import LeniaError, InvalidParameter, ResourceExhaustion, SinkFailure
from .params import ParameterSet, list_presets
from .kernel import Kernel, KernelEntry, build_kernel, kernel_for
from .field import ActivationField, FrameRecord, Position, hypercube, seed_field
from .step import growth, clamp01, next_generation, scatter_convolution, gather_convolution
from .sinks import MemoryFrameSink, QueuedFrameSink
from .controller import Classification, RunController, RunResult, simulate

__all__ = [
    "LeniaError",
    "InvalidParameter",
    "ResourceExhaustion",
    "SinkFailure",
    "ParameterSet",
    "list_presets",
    "Kernel",
    "KernelEntry",
    "build_kernel",
    "kernel_for",
    "ActivationField",
    "FrameRecord",
    "Position",
    "hypercube",
    "seed_field",
    "growth",
    "clamp01",
    "next_generation",
    "scatter_convolution",
    "gather_convolution",
    "MemoryFrameSink",
    "QueuedFrameSink",
    "Classification",
    "RunController",
    "RunResult",
    "simulate",
]
