"""Exceptions raised by the Lenia engine."""


class LeniaError(Exception):
    """Base class for engine errors."""


class InvalidParameter(LeniaError, ValueError):
    """A simulation parameter is out of its valid range."""


class ResourceExhaustion(LeniaError, MemoryError):
    """A kernel or field would grow beyond a practical size."""


class SinkFailure(LeniaError):
    """A frame sink failed to persist a frame."""
