"""
Exception hierarchy shared by the smeltpy engines.

All errors derive from `SmeltError`, and each also derives from the closest
built-in exception so callers that already catch `ValueError` or
`RuntimeError` keep working.
"""

from typing import Optional

import numpy as np


class SmeltError(Exception):
    """Base class for all smeltpy errors."""


class NumericalError(SmeltError, ArithmeticError):
    """A matrix factorization or transform failed numerically.

    Parameters
    ----------
    message : str
        Description of the failure.
    frequency_index : int, optional
        Index of the frequency at which the cross-spectral density matrix
        could not be factorized, if applicable.
    """

    def __init__(self, message: str, frequency_index: Optional[int] = None):
        super().__init__(message)
        self.frequency_index = frequency_index


class ConvergenceError(SmeltError, RuntimeError):
    """The optimizer reached its evaluation cap before converging.

    The last best vertex is kept for diagnostics.
    """

    def __init__(self, message: str, best_point: np.ndarray,
                 best_value: float, num_evals: int):
        super().__init__(message)
        self.best_point = best_point
        self.best_value = best_value
        self.num_evals = num_evals


class BoundsViolation(SmeltError, ValueError):
    """A real-space parameter fell outside its declared physical bounds."""

    def __init__(self, message: str, dimension: int, value: float):
        super().__init__(message)
        self.dimension = dimension
        self.value = value


class DimensionMismatch(SmeltError, ValueError):
    """Input sizes are inconsistent."""
