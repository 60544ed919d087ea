"""
Multi-point simulation of along-wind velocity fluctuations after Wittig &
Sinha (1975).

The mean wind profile follows the logarithmic law with a caller-supplied
roughness length, the auto-spectra follow Kaimal and the cross-spectra use an
exponential coherence model. Time histories are generated with the spectral
representation engine in `smeltpy.spectral`.

References
----------
.. [1] Wittig, L. E., & Sinha, A. K. (1975). Simulation of multicorrelated
       random processes using the FFT algorithm. The Journal of the Acoustical
       Society of America, 58(3), 630-634.
.. [2] Kaimal, J. C., Wyngaard, J. C., Izumi, Y., & Cote, O. R. (1972).
       Spectral characteristics of surface-layer turbulence. Quarterly Journal
       of the Royal Meteorological Society, 98(417), 563-589.
"""

import functools
import logging
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .spectral import (SeedLike, complex_random_numbers, frequency_grid,
                       simulate_batch, synthesize_time_histories,
                       time_discretization)

log = logging.getLogger(__name__)

VON_KARMAN = 0.4


# =============================================================================
# PUBLIC API
# =============================================================================

def floor_heights(building_height: float, num_floors: int) -> np.ndarray:
    """Heights of the floor levels of a building with equal storey heights (m)."""
    if num_floors < 1:
        raise ValueError(f"Number of floors must be positive, got {num_floors}.")
    if building_height <= 0:
        raise ValueError(f"Building height must be positive, got {building_height}.")
    return np.cumsum(np.full(num_floors, building_height / num_floors))


def log_law_profile(
    heights: np.ndarray,
    gust_speed: float,
    roughness_length: float,
    reference_height: float = 10.0,
    von_karman: float = VON_KARMAN) -> Tuple[float, np.ndarray]:

    """Friction velocity and mean wind speeds from the logarithmic law.

    Parameters
    ----------
    heights : np.ndarray
        Heights above ground (m). Must exceed `roughness_length`.
    gust_speed : float
        Mean wind speed at `reference_height` (m/s).
    roughness_length : float
        Terrain roughness length z0 (m).
    reference_height : float, optional
        Height at which `gust_speed` is given (m). Default is 10.
    von_karman : float, optional
        Von Karman constant. Default is 0.4.

    Returns
    -------
    Tuple[float, np.ndarray]
        - friction_velocity (float): Shear velocity u* (m/s).
        - velocities (np.ndarray): Mean wind speed at each height (m/s).
    """
    heights = np.atleast_1d(np.asarray(heights, dtype=float))
    if roughness_length <= 0:
        raise ValueError(f"Roughness length must be positive, got {roughness_length}.")
    if np.any(heights <= roughness_length) or reference_height <= roughness_length:
        raise ValueError("Heights must be above the roughness length.")

    friction_velocity = von_karman * gust_speed / np.log(reference_height / roughness_length)
    velocities = friction_velocity / von_karman * np.log(heights / roughness_length)
    return friction_velocity, velocities


def kaimal_spectrum(frequency: float, height: np.ndarray, velocity: np.ndarray,
                    friction_velocity: float) -> np.ndarray:
    """One-sided Kaimal spectrum of along-wind turbulence ((m/s)^2/Hz)."""
    return (200.0 * friction_velocity**2 * height
            / (velocity * (1.0 + 50.0 * frequency * height / velocity)**(5.0 / 3.0)))


def wittig_sinha_csd(
    frequency: float,
    heights: np.ndarray,
    velocities: np.ndarray,
    friction_velocity: float,
    coherence_coeff: float = 10.0,
    x_locations: Optional[np.ndarray] = None,
    y_locations: Optional[np.ndarray] = None) -> np.ndarray:

    """Cross-spectral density matrix of wind speeds at several points.

    Parameters
    ----------
    frequency : float
        Frequency (Hz).
    heights : np.ndarray
        Heights of the simulation points (m).
    velocities : np.ndarray
        Mean wind speeds at those heights (m/s).
    friction_velocity : float
        Shear velocity u* (m/s).
    coherence_coeff : float, optional
        Decay coefficient of the exponential coherence. Default is 10.
    x_locations, y_locations : np.ndarray, optional
        Horizontal coordinates of the points (m), one per height. Omitted
        coordinates are taken as zero, i.e. points on a vertical line.

    Returns
    -------
    np.ndarray
        Real symmetric (m x m) matrix. The diagonal holds the Kaimal spectra;
        off-diagonal terms are ``sqrt(S_ii S_jj) * coh_ij * 0.999`` with
        ``coh_ij = exp(-C f r_ij / (0.5 (U_i + U_j)))``, r_ij being the distance
        between points i and j. The 0.999 factor keeps the matrix positive
        definite at f = 0.
    """
    heights = np.atleast_1d(np.asarray(heights, dtype=float))
    velocities = np.atleast_1d(np.asarray(velocities, dtype=float))

    auto_spectra = kaimal_spectrum(frequency, heights, velocities, friction_velocity)
    points = [heights]
    for coords in (x_locations, y_locations):
        if coords is not None:
            coords = np.atleast_1d(np.asarray(coords, dtype=float))
            if coords.shape != heights.shape:
                raise ValueError(f"Expected {heights.size} horizontal coordinates, got {coords.size}.")
            points.append(coords)
    separation = np.sqrt(sum((p[:, np.newaxis] - p[np.newaxis, :])**2 for p in points))
    mean_speed = 0.5 * (velocities[:, np.newaxis] + velocities[np.newaxis, :])
    coherence = np.exp(-coherence_coeff * frequency * separation / mean_speed)

    csd = np.sqrt(np.outer(auto_spectra, auto_spectra)) * coherence * 0.999
    np.fill_diagonal(csd, auto_spectra)
    return csd


def wittig_sinha(
    heights: np.ndarray,
    gust_speed: float,
    roughness_length: float,
    total_time: float,
    freq_cutoff: float = 5.0,
    num_sims: int = 1,
    seed: SeedLike = None,
    coherence_coeff: float = 10.0,
    reference_height: float = 10.0,
    use_multiprocessing: bool = False,
    x_locations: Optional[np.ndarray] = None,
    y_locations: Optional[np.ndarray] = None) -> Dict[str, Any]:

    """Simulates correlated wind speed time histories at several heights.

    With `x_locations` and/or `y_locations` the points form the grid
    ``x_locations x y_locations x heights``, flattened with the heights
    varying fastest.

    Parameters
    ----------
    heights : np.ndarray
        Heights of the simulation points (m), e.g. from `floor_heights`.
    gust_speed : float
        Mean wind speed at `reference_height` (m/s).
    roughness_length : float
        Terrain roughness length z0 (m).
    total_time : float
        Duration of the time histories (s).
    freq_cutoff : float, optional
        Cutoff frequency (Hz). Sets ``dt = 1/(2 freq_cutoff)``. Default 5.
    num_sims : int, optional
        Number of independent realizations. Default is 1.
    seed : int, SeedSequence or Generator, optional
        Source of randomness. Realization k always uses the k-th child stream
        of `seed`.
    coherence_coeff : float, optional
        Decay coefficient of the coherence function. Default is 10.
    reference_height : float, optional
        Height of `gust_speed` (m). Default is 10.
    use_multiprocessing : bool, optional
        Run realizations on a process pool. Default is False.
    x_locations, y_locations : np.ndarray, optional
        Horizontal grid coordinates (m). Default is a single vertical line.

    Returns
    -------
    Dict[str, Any]
        - 'time' (np.ndarray): Time vector (s).
        - 'dt' (float): Time step (s).
        - 'heights' (np.ndarray): Height of each simulation point (m).
        - 'points' (np.ndarray): (x, y, z) of each point, shape (num_points, 3).
        - 'mean_velocity' (np.ndarray): Mean wind speed per point (m/s).
        - 'friction_velocity' (float): Shear velocity (m/s).
        - 'frequencies' (np.ndarray): Frequency grid (Hz).
        - 'fluctuations' (np.ndarray): Zero-mean turbulent components,
          shape (num_sims, num_points, num_times) (m/s).
        - 'velocities' (np.ndarray): Mean plus fluctuation, same shape (m/s).
    """
    heights = np.atleast_1d(np.asarray(heights, dtype=float))
    x_grid = np.zeros(1) if x_locations is None else np.atleast_1d(np.asarray(x_locations, dtype=float))
    y_grid = np.zeros(1) if y_locations is None else np.atleast_1d(np.asarray(y_locations, dtype=float))
    points = np.stack([g.ravel() for g in np.meshgrid(x_grid, y_grid, heights, indexing='ij')], axis=1)
    heights = points[:, 2]
    friction_velocity, mean_velocity = log_law_profile(
        heights, gust_speed, roughness_length, reference_height=reference_height)

    dt, num_times, num_freqs = time_discretization(total_time, freq_cutoff)
    frequencies = frequency_grid(freq_cutoff, num_freqs)
    log.info("Simulating %d wind field(s) at %d points: %d samples, dt=%.3fs.",
             num_sims, heights.size, num_times, dt)

    fluctuations = np.stack(simulate_batch(
        _wind_worker, num_sims, seed=seed, use_multiprocessing=use_multiprocessing,
        frequencies=frequencies, points=points, mean_velocity=mean_velocity,
        friction_velocity=friction_velocity, coherence_coeff=coherence_coeff,
        freq_cutoff=freq_cutoff))
    log.info("Wind simulation finished.")

    return {
        'time': np.arange(num_times) * dt, 'dt': dt,
        'heights': heights, 'points': points, 'mean_velocity': mean_velocity,
        'friction_velocity': friction_velocity, 'frequencies': frequencies,
        'fluctuations': fluctuations,
        'velocities': mean_velocity[np.newaxis, :, np.newaxis] + fluctuations,
    }


# =============================================================================
# INTERNAL (HELPER) FUNCTIONS
# =============================================================================

def _wind_worker(seed, frequencies, points, mean_velocity, friction_velocity,
                 coherence_coeff, freq_cutoff):
    """One realization of the wind field, shape (num_points, num_times)."""
    csd_function = functools.partial(
        wittig_sinha_csd, heights=points[:, 2], velocities=mean_velocity,
        friction_velocity=friction_velocity, coherence_coeff=coherence_coeff,
        x_locations=points[:, 0], y_locations=points[:, 1])
    coefs = complex_random_numbers(frequencies, csd_function, seed=seed, freq_cutoff=freq_cutoff)
    return synthesize_time_histories(coefs)
