"""
Spectral representation of correlated multivariate random processes.

Two steps turn a cross-spectral density model into time histories:

1.  `complex_random_numbers` factorizes the cross-spectral density (CSD)
    matrix at every frequency of a uniform grid and colours complex white
    noise with the lower Cholesky factor, Eq. 5(a) in Wittig & Sinha (1975).
2.  `synthesize_time_history` places one channel's coefficients into a
    Hermitian-symmetric spectrum and returns the real inverse DFT,
    Eqs. 7 and 8 in the same reference.

Batches of simulations are independent of each other. `spawn_seeds` and
`simulate_batch` give every simulation its own random stream so a batch can be
run serially or on a process pool with identical results.

References
----------
.. [1] Wittig, L. E., & Sinha, A. K. (1975). Simulation of multicorrelated
       random processes using the FFT algorithm. The Journal of the Acoustical
       Society of America, 58(3), 630-634.
"""

import concurrent.futures
import logging
from typing import Any, Callable, List, Optional, Tuple, Union

import numpy as np

from .errors import DimensionMismatch, NumericalError
from .linalg import lower_cholesky

log = logging.getLogger(__name__)

SeedLike = Union[None, int, np.random.SeedSequence, np.random.Generator]

# Largest imaginary residue accepted after the inverse DFT, relative to the signal
IMAG_TOL = 1e-9


# =============================================================================
# FREQUENCY / TIME DISCRETIZATION
# =============================================================================

def frequency_grid(freq_cutoff: float, num_freqs: int) -> np.ndarray:
    """Uniform frequency grid ``f_k = k * freq_cutoff / num_freqs``, k = 0..num_freqs-1 (Hz)."""
    if num_freqs < 1:
        raise ValueError(f"Number of frequencies must be positive, got {num_freqs}.")
    if freq_cutoff <= 0:
        raise ValueError(f"Cutoff frequency must be positive, got {freq_cutoff}.")
    return np.arange(num_freqs) * freq_cutoff / num_freqs


def time_discretization(total_time: float, freq_cutoff: float) -> Tuple[float, int, int]:
    """Time step and record size implied by a cutoff frequency.

    Parameters
    ----------
    total_time : float
        Requested duration of the time histories (s).
    freq_cutoff : float
        Cutoff (Nyquist) frequency (Hz).

    Returns
    -------
    Tuple[float, int, int]
        - time_step (float): ``1 / (2 * freq_cutoff)`` (s).
        - num_times (int): Number of samples, padded up to an even number.
        - num_freqs (int): ``num_times / 2``.
    """
    if total_time <= 0:
        raise ValueError(f"Total time must be positive, got {total_time}.")
    if freq_cutoff <= 0:
        raise ValueError(f"Cutoff frequency must be positive, got {freq_cutoff}.")
    time_step = 1.0 / (2.0 * freq_cutoff)
    num_times = int(np.ceil(round(total_time / time_step, 9)))
    if num_times % 2 != 0:
        num_times += 1
    return time_step, num_times, num_times // 2


# =============================================================================
# CORRELATED RANDOM FIELD GENERATOR
# =============================================================================

def white_noise(num_channels: int, num_freqs: int, seed: SeedLike = None) -> np.ndarray:
    """Complex standard normal white noise.

    Real and imaginary parts are independent normal draws with variance 0.5
    each, so every entry has unit complex variance.

    Parameters
    ----------
    num_channels : int
        Number of correlated channels (rows).
    num_freqs : int
        Number of frequencies (columns).
    seed : int, SeedSequence or Generator, optional
        Source of randomness. Pass an explicit value for reproducible output.

    Returns
    -------
    np.ndarray
        Complex array of shape (num_channels, num_freqs).
    """
    rng = np.random.default_rng(seed)
    # channel-major, real part drawn before imaginary part
    draws = rng.standard_normal((num_channels, num_freqs, 2))
    return np.sqrt(0.5) * (draws[..., 0] + 1j * draws[..., 1])


def complex_random_numbers(
    frequencies: np.ndarray,
    csd_function: Callable[[float], np.ndarray],
    seed: SeedLike = None,
    freq_cutoff: Optional[float] = None,
    noise: Optional[np.ndarray] = None) -> np.ndarray:

    """Frequency-domain coefficients of a multicorrelated random process.

    For every frequency f_k the cross-spectral density matrix S(f_k) is
    factorized as ``L_k L_k^H`` and the coefficients are

        X[k, :] = N_f * sqrt(2 * df) * L_k @ w[:, k]

    where w is complex white noise and ``df = freq_cutoff / N_f``.

    Parameters
    ----------
    frequencies : np.ndarray
        Uniform, strictly increasing, non-negative frequency grid of length
        N_f (Hz), see `frequency_grid`.
    csd_function : callable
        ``csd_function(frequency) -> (m, m) array``; the Hermitian cross
        spectral density matrix of the m channels.
    seed : int, SeedSequence or Generator, optional
        Source of randomness for the white noise.
    freq_cutoff : float, optional
        Cutoff frequency (Hz). Defaults to ``N_f * (f_1 - f_0)``.
    noise : np.ndarray, optional
        Complex white noise of shape (m, N_f) to use instead of drawing it.

    Returns
    -------
    np.ndarray
        Complex array of shape (N_f, m).

    Raises
    ------
    NumericalError
        If S(f_k) cannot be Cholesky factorized; ``frequency_index`` is k.
    DimensionMismatch
        If the CSD matrices or the supplied noise have inconsistent shapes.
    """
    frequencies = np.asarray(frequencies, dtype=float).ravel()
    num_freqs = frequencies.size
    if num_freqs < 2:
        raise DimensionMismatch("At least two frequencies are needed to define the grid spacing.")
    if frequencies[0] < 0 or np.any(np.diff(frequencies) <= 0):
        raise ValueError("Frequencies must be non-negative and strictly increasing.")
    if freq_cutoff is None:
        freq_cutoff = num_freqs * (frequencies[1] - frequencies[0])
    dfreq = freq_cutoff / num_freqs
    amplitude = num_freqs * np.sqrt(2.0 * dfreq)

    coefs = None
    num_channels = 0
    for k, freq in enumerate(frequencies):
        csd_matrix = np.atleast_2d(np.asarray(csd_function(freq)))

        if coefs is None:
            num_channels = csd_matrix.shape[0]
            if noise is None:
                noise = white_noise(num_channels, num_freqs, seed)
            else:
                noise = np.asarray(noise, dtype=complex)
                if noise.shape != (num_channels, num_freqs):
                    raise DimensionMismatch(f"White noise must have shape {(num_channels, num_freqs)}, got {noise.shape}.")
            coefs = np.zeros((num_freqs, num_channels), dtype=complex)

        if csd_matrix.shape != (num_channels, num_channels):
            raise DimensionMismatch(f"CSD matrix at index {k} has shape {csd_matrix.shape}, expected {(num_channels, num_channels)}.")

        try:
            lower = lower_cholesky(csd_matrix)
        except NumericalError as e:
            log.error("CSD matrix is not positive semi-definite at f=%.4f Hz (index %d).", freq, k)
            raise NumericalError(f"CSD factorization failed at frequency index {k} ({freq:.4f} Hz): {e}",
                                 frequency_index=k) from e

        coefs[k, :] = amplitude * (lower @ noise[:, k])

    log.debug("Generated complex coefficients for %d channels at %d frequencies.", num_channels, num_freqs)
    return coefs


# =============================================================================
# SPECTRAL TIME SERIES SYNTHESIZER
# =============================================================================

def synthesize_time_history(
    coefficients: np.ndarray,
    num_freqs: int,
    total_length: Optional[int] = None) -> np.ndarray:

    """Real time history from one channel's frequency coefficients.

    The full spectrum X of length 2*N_f is assembled as

    - X[0] = 0 (no mean),
    - X[1:N_f] = coefficients[1:N_f],
    - X[N_f] = Re(coefficients[N_f-1]) (Nyquist bin),
    - X[2*N_f-k] = conj(X[k]) for k = 1..N_f-1,

    and the signal is the inverse DFT of X.

    Parameters
    ----------
    coefficients : np.ndarray
        Complex coefficients of one channel, length N_f (one column of the
        output of `complex_random_numbers`).
    num_freqs : int
        Number of frequencies N_f.
    total_length : int, optional
        Expected length of the time history; must equal 2*N_f. Defaults to
        2*N_f.

    Returns
    -------
    np.ndarray
        Real time history of length 2*N_f sampled at ``dt = 1/(2 f_c)``.

    Raises
    ------
    DimensionMismatch
        If the coefficient count or `total_length` disagree with `num_freqs`.
    NumericalError
        If the inverse transform leaves a non-negligible imaginary part.

    Notes
    -----
    numpy's inverse DFT carries the 1/N normalization, N = 2*N_f. Since
    ``1/N = dt * df`` this supplies the dt factor of the discrete sum, and with
    the ``N_f * sqrt(2 df)`` coefficient amplitude the mean square of the
    output equals the integral of the one-sided spectrum up to f_c.
    """
    coefficients = np.asarray(coefficients)
    if coefficients.ndim != 1:
        raise DimensionMismatch(f"Coefficients of a single channel must be 1D, got shape {coefficients.shape}.")
    if num_freqs < 1 or coefficients.size != num_freqs:
        raise DimensionMismatch(f"Expected {num_freqs} coefficients, got {coefficients.size}.")
    if total_length is None:
        total_length = 2 * num_freqs
    elif total_length != 2 * num_freqs:
        raise DimensionMismatch(f"Time history length must be {2 * num_freqs}, got {total_length}.")

    spectrum = np.zeros(total_length, dtype=complex)
    spectrum[1:num_freqs] = coefficients[1:]
    spectrum[num_freqs] = coefficients[-1].real
    spectrum[num_freqs + 1:] = np.conj(spectrum[num_freqs - 1:0:-1])

    history = np.fft.ifft(spectrum)

    residue = np.max(np.abs(history.imag))
    if residue > IMAG_TOL * max(1.0, np.max(np.abs(history.real))):
        log.error("Inverse DFT left an imaginary residue of %.3e.", residue)
        raise NumericalError(f"Time history is not real (max imaginary part {residue:.3e}).")

    return history.real.copy()


def synthesize_time_histories(coefficients: np.ndarray) -> np.ndarray:
    """Applies `synthesize_time_history` to every channel.

    Parameters
    ----------
    coefficients : np.ndarray
        Complex array of shape (N_f, m).

    Returns
    -------
    np.ndarray
        Real array of shape (m, 2*N_f).
    """
    coefficients = np.asarray(coefficients)
    if coefficients.ndim != 2:
        raise DimensionMismatch(f"Coefficient matrix must be 2D, got shape {coefficients.shape}.")
    num_freqs, num_channels = coefficients.shape
    histories = np.zeros((num_channels, 2 * num_freqs))
    for j in range(num_channels):
        histories[j, :] = synthesize_time_history(coefficients[:, j], num_freqs)
    return histories


# =============================================================================
# BATCH SIMULATION
# =============================================================================

def spawn_seeds(seed: SeedLike, n: int) -> List[Any]:
    """Independent child seeds, one per simulation index.

    Parameters
    ----------
    seed : int, SeedSequence or Generator, optional
        Parent seed. ``None`` draws fresh entropy from the operating system.
    n : int
        Number of children.

    Returns
    -------
    list
        `n` SeedSequence (or Generator, if `seed` is a Generator) objects that
        can be handed to any function taking a `seed` argument.
    """
    if isinstance(seed, np.random.Generator):
        return seed.spawn(n)
    if not isinstance(seed, np.random.SeedSequence):
        seed = np.random.SeedSequence(seed)
    return seed.spawn(n)


def simulate_batch(
    worker: Callable[..., Any],
    num_sims: int,
    seed: SeedLike = None,
    use_multiprocessing: bool = False,
    max_workers: Optional[int] = None,
    **kwargs: Any) -> List[Any]:

    """Runs ``worker(seed=child_seed, **kwargs)`` once per simulation.

    Parameters
    ----------
    worker : callable
        Module-level function (picklable when `use_multiprocessing` is True)
        accepting a `seed` keyword argument.
    num_sims : int
        Number of simulations.
    seed : int, SeedSequence or Generator, optional
        Parent seed; each simulation gets an independent child stream.
    use_multiprocessing : bool, optional
        Dispatch simulations to a `ProcessPoolExecutor`. Default is False.
    max_workers : int, optional
        Pool size. Defaults to the executor default.
    **kwargs
        Extra keyword arguments forwarded to `worker`.

    Returns
    -------
    list
        Worker results in simulation-index order. The results do not depend
        on `use_multiprocessing`.
    """
    if num_sims < 1:
        raise ValueError(f"Number of simulations must be positive, got {num_sims}.")
    child_seeds = spawn_seeds(seed, num_sims)

    if use_multiprocessing:
        log.info("Running %d simulations on a process pool.", num_sims)
        with concurrent.futures.ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(worker, seed=child, **kwargs) for child in child_seeds]
            return [f.result() for f in futures]

    return [worker(seed=child, **kwargs) for child in child_seeds]
