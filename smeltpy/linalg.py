"""
Small linear-algebra layer used by the spectral generator and the parameter
sampler.

Only the operations the engines need are exposed (Hermitian check, lower
Cholesky factor, conjugate transpose), so the numpy backend can be swapped
for any library with the same numerical guarantees.
"""

import logging

import numpy as np

from .errors import DimensionMismatch, NumericalError

log = logging.getLogger(__name__)

# Eigenvalues above -EIG_RTOL * max|eigenvalue| count as round-off of zero
EIG_RTOL = 1e-10


def conjugate_transpose(matrix: np.ndarray) -> np.ndarray:
    """Returns the conjugate transpose of a 2D array."""
    return np.conj(np.asarray(matrix)).T


def is_hermitian(matrix: np.ndarray, rtol: float = 1e-10, atol: float = 1e-12) -> bool:
    """Checks whether a square matrix equals its conjugate transpose.

    Parameters
    ----------
    matrix : np.ndarray
        Square matrix (real or complex).
    rtol, atol : float, optional
        Relative and absolute tolerances passed to `np.allclose`.

    Returns
    -------
    bool
        True if the matrix is square and Hermitian within tolerance.
    """
    matrix = np.asarray(matrix)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        return False
    return bool(np.allclose(matrix, conjugate_transpose(matrix), rtol=rtol, atol=atol))


def lower_cholesky(matrix: np.ndarray) -> np.ndarray:
    """Lower Cholesky factor L of a Hermitian positive semi-definite matrix.

    Positive-definite matrices go through the standard Cholesky routine.
    Singular ones (fully coherent channels, a spectrum that vanishes at
    f = 0, ...) are factorized from their eigen-decomposition: round-off
    negative eigenvalues are set to zero and the square-root factor is
    brought to lower-triangular form with a QR decomposition.

    Parameters
    ----------
    matrix : np.ndarray
        Square Hermitian matrix, real or complex.

    Returns
    -------
    np.ndarray
        Lower-triangular L with a non-negative real diagonal such that
        ``L @ L.conj().T == matrix``.

    Raises
    ------
    DimensionMismatch
        If the input is not a square 2D array.
    NumericalError
        If the matrix is not Hermitian, contains non-finite values or has a
        negative eigenvalue beyond round-off.
    """
    matrix = np.asarray(matrix)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise DimensionMismatch(f"Cholesky factorization needs a square matrix, got shape {matrix.shape}.")
    if not np.all(np.isfinite(matrix)):
        raise NumericalError("Matrix contains non-finite entries.")
    if not is_hermitian(matrix):
        raise NumericalError("Matrix is not Hermitian.")
    try:
        return np.linalg.cholesky(matrix)
    except np.linalg.LinAlgError:
        log.debug("Matrix is not positive definite; trying the semi-definite factorization.")
    return _semidefinite_lower_factor(matrix)


def _semidefinite_lower_factor(matrix: np.ndarray) -> np.ndarray:
    """Lower factor of a singular Hermitian PSD matrix via eigh + QR."""
    eigvals, eigvecs = np.linalg.eigh(matrix)
    scale = np.max(np.abs(eigvals)) if eigvals.size else 0.0
    if eigvals.size and eigvals[0] < -EIG_RTOL * scale:
        raise NumericalError(f"Matrix is not positive semi-definite (smallest eigenvalue {eigvals[0]:.3e}).")
    eigvals = np.clip(eigvals, 0.0, None)

    # M = B B^H with B = V sqrt(D); B^H = Q R gives M = R^H R
    root = eigvecs * np.sqrt(eigvals)
    _, upper = np.linalg.qr(conjugate_transpose(root))
    diag = np.diag(upper)
    phase = np.where(np.abs(diag) > 0, diag / np.where(np.abs(diag) > 0, np.abs(diag), 1.0), 1.0)
    upper = np.conj(phase)[:, np.newaxis] * upper

    lower = conjugate_transpose(upper)
    return lower.real.copy() if not np.iscomplexobj(matrix) else lower
