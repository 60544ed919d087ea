"""
Correlated sampling of bounded model parameters.

Model parameters are drawn as a correlated Gaussian vector in "normal space"
and then mapped one dimension at a time to "real space" through the standard
normal CDF and the inverse CDF of each parameter's fitted marginal
distribution (Nataf transformation). The marginal tables themselves
(distribution family, shape parameters and bounds) are supplied by the caller.

References
----------
.. [1] Dabaghi, M., & Der Kiureghian, A. (2017). Stochastic model for
       simulation of near-fault ground motions. Earthquake Engineering &
       Structural Dynamics, 46(6), 963-984.
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np
from scipy import stats

from .errors import BoundsViolation, DimensionMismatch, NumericalError
from .linalg import lower_cholesky
from .spectral import SeedLike

log = logging.getLogger(__name__)

# Number of shape parameters expected by each marginal family
_FAMILY_NPARAMS = {
    'beta': 2,                 # (a, b) on [lower_bound, upper_bound]
    'double_exponential': 3,   # (a, b, c) above lower_bound
    'uniform': 0,              # on [lower_bound, upper_bound]
    'lognormal': 2,            # (mu, sigma) shifted by lower_bound
}


# =============================================================================
# MARGINAL DISTRIBUTIONS
# =============================================================================

def inv_beta(probability: np.ndarray, a: float, b: float, lower_bound: float, upper_bound: float) -> np.ndarray:
    """Inverse CDF of a beta distribution stretched over [lower_bound, upper_bound]."""
    return stats.beta.ppf(probability, a, b, loc=lower_bound, scale=upper_bound - lower_bound)


def inv_uniform(probability: np.ndarray, lower_bound: float, upper_bound: float) -> np.ndarray:
    """Inverse CDF of a uniform distribution on [lower_bound, upper_bound]."""
    return lower_bound + np.asarray(probability, dtype=float) * (upper_bound - lower_bound)


def inv_lognormal(probability: np.ndarray, mu: float, sigma: float, lower_bound: float) -> np.ndarray:
    """Inverse CDF of a lognormal distribution shifted to start at lower_bound."""
    return lower_bound + stats.lognorm.ppf(probability, s=sigma, scale=np.exp(mu))


def _double_exp_constants(param_a: float, param_b: float, param_c: float) -> Tuple[float, float, float]:
    if not 0.0 < param_a < 1.0:
        raise ValueError(f"Double exponential weight must lie in (0, 1), got {param_a}.")
    if param_b <= 0.0:
        raise ValueError(f"Double exponential rate must be positive, got {param_b}.")
    if param_c < 0.0:
        raise ValueError(f"Double exponential location must be non-negative, got {param_c}.")
    tail = np.exp(-param_b * param_c)
    param_d = 1.0 / (param_a / param_b * (1.0 - tail) + (1.0 - param_a) / param_b)
    p_mode = param_d * param_a / param_b * (1.0 - tail)
    return tail, param_d, p_mode


def cdf_double_exp(x: np.ndarray, param_a: float, param_b: float, param_c: float, lower_bound: float) -> np.ndarray:
    """CDF of the bounded double-exponential distribution.

    The density rises exponentially from `lower_bound` to the mode
    ``m = lower_bound + param_c`` and decays exponentially beyond it:

        f(x) = d * a * exp(b (x - m))          lower_bound <= x <= m
        f(x) = d * (1 - a) * exp(-b (x - m))   x > m

    with ``d`` chosen so that the density integrates to one.
    """
    tail, param_d, p_mode = _double_exp_constants(param_a, param_b, param_c)
    x = np.asarray(x, dtype=float)
    mode = lower_bound + param_c
    left = param_d * param_a / param_b * (np.exp(param_b * (np.minimum(x, mode) - mode)) - tail)
    right = p_mode + param_d * (1.0 - param_a) / param_b * (1.0 - np.exp(-param_b * (np.maximum(x, mode) - mode)))
    cdf = np.where(x <= mode, left, right)
    return np.where(x < lower_bound, 0.0, cdf)


def inv_double_exp(probability: np.ndarray, param_a: float, param_b: float, param_c: float,
                   lower_bound: float) -> np.ndarray:
    """Inverse CDF of the bounded double-exponential distribution.

    Parameters
    ----------
    probability : np.ndarray
        Probabilities in [0, 1].
    param_a : float
        Share of the probability mass below the mode, scaled by the truncation
        (0 < a < 1).
    param_b : float
        Exponential rate on both sides of the mode (> 0).
    param_c : float
        Distance from the lower bound to the mode (>= 0).
    lower_bound : float
        Lower bound of the support.

    Returns
    -------
    np.ndarray
        Quantiles. ``probability == 1`` maps to +inf.

    See Also
    --------
    cdf_double_exp : Definition of the distribution.
    """
    tail, param_d, p_mode = _double_exp_constants(param_a, param_b, param_c)
    p = np.asarray(probability, dtype=float)
    mode = lower_bound + param_c
    with np.errstate(divide='ignore', invalid='ignore'):
        x_left = mode + np.log(p * param_b / (param_d * param_a) + tail) / param_b
        x_right = mode - np.log(1.0 - (p - p_mode) * param_b / (param_d * (1.0 - param_a))) / param_b
    return np.where(p <= p_mode, x_left, x_right)


@dataclass(frozen=True)
class MarginalSpec:
    """Marginal distribution of one model parameter.

    Attributes
    ----------
    family : str
        One of 'beta', 'double_exponential', 'uniform', 'lognormal'.
    params : tuple of float
        Shape parameters of the family: (a, b) for beta, (a, b, c) for
        double_exponential, () for uniform, (mu, sigma) for lognormal.
    lower_bound, upper_bound : float
        Physical bounds of the parameter. Beta and uniform need both to be
        finite; double_exponential and lognormal need a finite lower bound.
    """
    family: str
    params: Tuple[float, ...] = ()
    lower_bound: float = 0.0
    upper_bound: float = np.inf

    def __post_init__(self):
        if self.family not in _FAMILY_NPARAMS:
            raise ValueError(f"Unknown marginal family '{self.family}'. Choose from {sorted(_FAMILY_NPARAMS)}.")
        params = tuple(float(p) for p in self.params)
        if len(params) != _FAMILY_NPARAMS[self.family]:
            raise ValueError(f"Family '{self.family}' takes {_FAMILY_NPARAMS[self.family]} parameters, got {len(params)}.")
        object.__setattr__(self, 'params', params)
        if not np.isfinite(self.lower_bound):
            raise ValueError("Lower bound must be finite.")
        if not self.lower_bound < self.upper_bound:
            raise ValueError(f"Lower bound {self.lower_bound} must be below upper bound {self.upper_bound}.")
        if self.family in ('beta', 'uniform') and not np.isfinite(self.upper_bound):
            raise ValueError(f"Family '{self.family}' needs a finite upper bound.")

    def inverse_cdf(self, probability: np.ndarray) -> np.ndarray:
        """Maps probabilities to real-space values of this parameter."""
        if self.family == 'beta':
            a, b = self.params
            return inv_beta(probability, a, b, self.lower_bound, self.upper_bound)
        if self.family == 'double_exponential':
            a, b, c = self.params
            return inv_double_exp(probability, a, b, c, self.lower_bound)
        if self.family == 'uniform':
            return inv_uniform(probability, self.lower_bound, self.upper_bound)
        mu, sigma = self.params
        return inv_lognormal(probability, mu, sigma, self.lower_bound)


# =============================================================================
# PUBLIC API
# =============================================================================

def transform_from_normal_space(
    normal: np.ndarray,
    marginals: Sequence[MarginalSpec],
    bounds_tol: float = 1e-9) -> np.ndarray:

    """Maps normal-space parameter vectors to bounded real-space values.

    Parameters
    ----------
    normal : np.ndarray
        Normal-space vectors, shape (n_params,) or (num_draws, n_params).
    marginals : sequence of MarginalSpec
        One marginal per parameter.
    bounds_tol : float, optional
        Round-off allowance (relative to ``max(1, |bound|)``) below which
        out-of-bounds values are clamped. Default is 1e-9.

    Returns
    -------
    np.ndarray
        Real-space values with the same shape as `normal`.

    Raises
    ------
    BoundsViolation
        If a value is non-finite or lies outside its bounds by more than the
        round-off allowance.
    DimensionMismatch
        If the number of marginals differs from the number of parameters.
    """
    normal = np.asarray(normal, dtype=float)
    draws = np.atleast_2d(normal)
    if draws.shape[1] != len(marginals):
        raise DimensionMismatch(f"{len(marginals)} marginals given for {draws.shape[1]} parameters.")

    probabilities = stats.norm.cdf(draws)
    real = np.empty_like(draws)
    for i, spec in enumerate(marginals):
        real[:, i] = _bounded(spec.inverse_cdf(probabilities[:, i]), spec, i, bounds_tol)

    return real.reshape(normal.shape)


def sample_parameters(
    corr_matrix: np.ndarray,
    mean: np.ndarray,
    std_dev: np.ndarray,
    marginals: Sequence[MarginalSpec],
    num_draws: int,
    seed: SeedLike = None,
    return_normal: bool = False,
    bounds_tol: float = 1e-9) -> Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]:

    """Draws correlated, physically bounded model parameter vectors.

    Normal-space draws are ``y = mean + std_dev * (L @ z)`` with L the lower
    Cholesky factor of `corr_matrix` and z standard normal. Each component is
    then mapped to real space with its marginal inverse CDF applied to
    ``Phi(y_i)``.

    Parameters
    ----------
    corr_matrix : np.ndarray
        Correlation matrix of the normal-space parameters (n x n).
    mean : np.ndarray
        Normal-space mean vector (n,).
    std_dev : np.ndarray
        Normal-space standard deviations (n,).
    marginals : sequence of MarginalSpec
        Real-space marginal distribution of each parameter.
    num_draws : int
        Number of parameter vectors.
    seed : int, SeedSequence or Generator, optional
        Source of randomness.
    return_normal : bool, optional
        Also return the normal-space draws. Default is False.
    bounds_tol : float, optional
        Round-off allowance for the bounds check, see
        `transform_from_normal_space`.

    Returns
    -------
    np.ndarray or Tuple[np.ndarray, np.ndarray]
        Real-space draws of shape (num_draws, n), followed by the normal-space
        draws when `return_normal` is True.

    Raises
    ------
    NumericalError
        If the correlation matrix is not positive semi-definite.
    BoundsViolation
        If a draw cannot be mapped inside its bounds.
    DimensionMismatch
        If the inputs have inconsistent sizes.
    """
    corr_matrix = np.atleast_2d(np.asarray(corr_matrix, dtype=float))
    nparams = corr_matrix.shape[0]
    if corr_matrix.shape != (nparams, nparams):
        raise DimensionMismatch(f"Correlation matrix must be square, got shape {corr_matrix.shape}.")
    mean = np.asarray(mean, dtype=float).ravel()
    std_dev = np.asarray(std_dev, dtype=float).ravel()
    if mean.size != nparams or std_dev.size != nparams or len(marginals) != nparams:
        raise DimensionMismatch(
            f"Correlation matrix is {nparams}x{nparams} but got {mean.size} means, "
            f"{std_dev.size} standard deviations and {len(marginals)} marginals.")
    if np.any(std_dev < 0):
        raise ValueError("Standard deviations must be non-negative.")
    if num_draws < 1:
        raise ValueError(f"Number of draws must be positive, got {num_draws}.")

    try:
        lower = lower_cholesky(corr_matrix)
    except NumericalError:
        log.error("Parameter correlation matrix is not positive semi-definite.")
        raise

    rng = np.random.default_rng(seed)
    z = rng.standard_normal((num_draws, nparams))
    normal = mean + std_dev * (z @ lower.T)

    real = transform_from_normal_space(normal, marginals, bounds_tol=bounds_tol)
    log.info("Sampled %d parameter vectors with %d parameters.", num_draws, nparams)

    if return_normal:
        return real, normal
    return real


# =============================================================================
# INTERNAL (HELPER) FUNCTIONS
# =============================================================================

def _bounded(values: np.ndarray, spec: MarginalSpec, dimension: int, bounds_tol: float) -> np.ndarray:
    """Clamps round-off excursions and rejects genuine bound violations."""
    lo, hi = spec.lower_bound, spec.upper_bound
    slack_lo = bounds_tol * max(1.0, abs(lo))
    slack_hi = bounds_tol * max(1.0, abs(hi)) if np.isfinite(hi) else 0.0

    invalid = ~np.isfinite(values) | (values < lo - slack_lo) | (values > hi + slack_hi)
    if np.any(invalid):
        j = int(np.argmax(invalid))
        log.error("Parameter %d mapped to %r outside [%g, %g].", dimension, values[j], lo, hi)
        raise BoundsViolation(
            f"Parameter {dimension} value {values[j]!r} lies outside [{lo}, {hi}].",
            dimension=dimension, value=float(values[j]))

    return np.clip(values, lo, hi)
