"""
Derivative-free minimization with the downhill simplex method of Nelder and
Mead.

The implementation follows the classic "amoeba" formulation: the simplex is
moved by reflecting its worst vertex through the centroid of the others,
expanding or contracting that move, and shrinking the whole simplex toward the
best vertex when nothing else helps. It is used to back-calculate model
parameters that reproduce target statistics (see `smeltpy.ground_motion`).

References
----------
.. [1] Nelder, J. A., & Mead, R. (1965). A simplex method for function
       minimization. The Computer Journal, 7(4), 308-313.
.. [2] Press, W. H., Teukolsky, S. A., Vetterling, W. T., & Flannery, B. P.
       (2007). Numerical Recipes: The Art of Scientific Computing (3rd ed.),
       Section 10.5.
"""

import logging
from typing import Any, Callable, Optional, Tuple, Union

import numpy as np

from .errors import ConvergenceError, DimensionMismatch

log = logging.getLogger(__name__)

# Guards the relative convergence test against a zero denominator
TINY = 1.0e-10


# =============================================================================
# PUBLIC API
# =============================================================================

def initial_simplex(point: np.ndarray, deltas: Union[float, np.ndarray] = 1.0) -> np.ndarray:
    """Builds the N+1 starting vertices around an initial point.

    Parameters
    ----------
    point : np.ndarray
        Initial guess, length N.
    deltas : float or np.ndarray, optional
        Step along each coordinate axis. A scalar is used for every
        dimension. Default is 1.0.

    Returns
    -------
    np.ndarray
        Array of shape (N+1, N). Vertex 0 is `point`; vertex i is `point`
        with coordinate i-1 offset by ``deltas[i-1]``.

    Raises
    ------
    DimensionMismatch
        If `deltas` is neither a scalar nor of length N.
    """
    point = np.asarray(point, dtype=float).ravel()
    ndim = point.size
    if ndim == 0:
        raise DimensionMismatch("Initial point must have at least one coordinate.")
    deltas = np.asarray(deltas, dtype=float)
    if deltas.ndim == 0:
        deltas = np.full(ndim, float(deltas))
    elif deltas.shape != (ndim,):
        raise DimensionMismatch(f"Expected {ndim} simplex step sizes, got {deltas.size}.")

    simplex = np.tile(point, (ndim + 1, 1))
    simplex[1:, :] += np.diag(deltas)
    return simplex


def nelder_mead(
    x0: np.ndarray,
    func: Any,
    tol: float = 1e-8,
    max_evals: int = 5000,
    deltas: Optional[Union[float, np.ndarray]] = None,
    callback: Optional[Callable[[np.ndarray, float], None]] = None) -> Tuple[np.ndarray, float]:

    """Minimizes a scalar function with the Nelder-Mead downhill simplex.

    Parameters
    ----------
    x0 : np.ndarray
        Either an initial point of length N, or an explicit starting simplex
        of shape (N+1, N).
    func : callable or object
        Objective. Either a callable ``func(x) -> float`` or an object with an
        ``evaluate(x) -> float`` method. NaN values are treated as +inf.
    tol : float, optional
        Fractional convergence tolerance on the spread of objective values
        across the simplex. Default is 1e-8.
    max_evals : int, optional
        Cap on the objective evaluation counter. Default is 5000.
    deltas : float or np.ndarray, optional
        Per-dimension step sizes used to build the simplex when `x0` is a
        single point. Default is 1.0. Ignored when `x0` is a simplex.
    callback : callable, optional
        Called after every iteration as ``callback(best_point, best_value)``.

    Returns
    -------
    Tuple[np.ndarray, float]
        - best_point (np.ndarray): Vertex with the lowest objective value.
        - best_value (float): Objective value at `best_point`.

    Raises
    ------
    ConvergenceError
        If the evaluation counter reaches `max_evals` before the tolerance
        criterion is met. The exception carries the best vertex so far.
    DimensionMismatch
        If `x0` or `deltas` have inconsistent shapes.

    Notes
    -----
    The search stops when

        2 |f_worst - f_best| / (|f_worst| + |f_best| + TINY) < tol.

    Evaluation accounting: the initial simplex costs N+1 evaluations, every
    iteration is charged 2 evaluations (reflection plus one of expansion or
    contraction) and a shrink adds N more. The cap is checked against this
    counter before each iteration.
    """
    objective = _as_objective(func)

    x0 = np.asarray(x0, dtype=float)
    if x0.ndim == 1:
        simplex = initial_simplex(x0, 1.0 if deltas is None else deltas)
    elif x0.ndim == 2:
        if x0.shape[0] != x0.shape[1] + 1:
            raise DimensionMismatch(f"A simplex in {x0.shape[1]} dimensions needs {x0.shape[1] + 1} vertices, got {x0.shape[0]}.")
        if deltas is not None:
            log.warning("Explicit simplex supplied; ignoring deltas.")
        simplex = x0.copy()
    else:
        raise DimensionMismatch(f"x0 must be a point or a simplex, got an array with {x0.ndim} dimensions.")

    npts, ndim = simplex.shape
    values = np.array([objective(vertex) for vertex in simplex])
    num_evals = npts
    psum = simplex.sum(axis=0)
    iteration = 0

    while True:
        # Best, worst and next-worst in one pass
        ilo = 0
        if values[0] > values[1]:
            ihi, inhi = 0, 1
        else:
            ihi, inhi = 1, 0
        for i in range(npts):
            if values[i] < values[ilo]:
                ilo = i
            if values[i] > values[ihi]:
                inhi = ihi
                ihi = i
            elif values[i] > values[inhi] and i != ihi:
                inhi = i

        denom = abs(values[ihi]) + abs(values[ilo]) + TINY
        rtol = 2.0 * abs(values[ihi] - values[ilo]) / denom if np.isfinite(denom) else np.inf
        if rtol < tol:
            log.debug("Simplex converged after %d iterations (%d evaluations), f=%.6e", iteration, num_evals, values[ilo])
            return simplex[ilo].copy(), float(values[ilo])

        if num_evals >= max_evals:
            log.error("Simplex did not converge within %d evaluations (best f=%.6e).", max_evals, values[ilo])
            raise ConvergenceError(
                f"Nelder-Mead exceeded {max_evals} function evaluations.",
                best_point=simplex[ilo].copy(), best_value=float(values[ilo]),
                num_evals=num_evals)

        iteration += 1
        num_evals += 2
        next_worst = values[inhi]

        ytry = _amotry(simplex, values, psum, ihi, -1.0, objective)
        if ytry < values[ilo]:
            _amotry(simplex, values, psum, ihi, 2.0, objective)
        elif ytry >= next_worst:
            ytry = _amotry(simplex, values, psum, ihi, 0.5, objective)
            if ytry >= next_worst:
                for i in range(npts):
                    if i != ilo:
                        simplex[i] = 0.5 * (simplex[i] + simplex[ilo])
                        values[i] = objective(simplex[i])
                num_evals += ndim
                psum = simplex.sum(axis=0)

        if callback is not None:
            ibest = int(np.argmin(values))
            callback(simplex[ibest].copy(), float(values[ibest]))


# =============================================================================
# INTERNAL (HELPER) FUNCTIONS
# =============================================================================

def _as_objective(func: Any) -> Callable[[np.ndarray], float]:
    """Wraps a callable or an object with `evaluate` into f(x) -> float."""
    evaluate = getattr(func, 'evaluate', None)
    if callable(evaluate):
        target = evaluate
    elif callable(func):
        target = func
    else:
        raise TypeError("Objective must be callable or expose an evaluate(x) method.")

    def objective(x: np.ndarray) -> float:
        value = float(target(x))
        return np.inf if np.isnan(value) else value

    return objective


def _amotry(simplex: np.ndarray, values: np.ndarray, psum: np.ndarray,
            ihi: int, fac: float, objective: Callable[[np.ndarray], float]) -> float:
    """Tries a point on the line through the worst vertex and the centroid.

    ``fac=-1`` reflects, ``fac=2`` expands and ``fac=0.5`` contracts. The trial
    replaces the worst vertex (and `psum` is updated in place) only if it
    improves on it.
    """
    ndim = simplex.shape[1]
    fac1 = (1.0 - fac) / ndim
    fac2 = fac1 - fac
    ptry = psum * fac1 - simplex[ihi] * fac2
    ytry = objective(ptry)
    if ytry < values[ihi]:
        values[ihi] = ytry
        psum += ptry - simplex[ihi]
        simplex[ihi] = ptry
    return ytry
