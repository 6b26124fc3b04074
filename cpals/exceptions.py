"""
error types raised by the cp-als engine.

configuration mistakes are caught before any numeric work starts; numeric
failures of the linear-algebra primitives surface as decomposition errors.
"""

import functools

import numpy.linalg as la


class CPError(Exception):
    """base class for every error raised by cpals."""


class ConfigurationError(CPError, ValueError):
    """invalid rank, symmetry map, panel setup or input shape."""


class DecompositionError(CPError, RuntimeError):
    """the decomposition could not be carried out."""


class LinearAlgebraError(DecompositionError):
    """a dense linear-algebra primitive did not converge or hit a singular input."""

    def __init__(self, routine, cause=None):
        self.routine = routine
        self.cause = cause
        msg = f"[error] {routine} failed"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


def wrap_linalg(routine):
    """decorator turning numpy/scipy LinAlgError into LinearAlgebraError."""
    def decorate(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except la.LinAlgError as err:
                raise LinearAlgebraError(routine, err) from err
        return wrapper
    return decorate
