"""
Near-fault ground motion building blocks after Dabaghi & Der Kiureghian.

- A four-parameter modulating function (power-law build-up to its peak at
  ``tmaxq``, exponential decay afterwards) with closed-form Arias intensity
  and significant durations.
- Back-calculation of the modulating parameters from the target Arias
  intensity and durations with the Nelder-Mead simplex.
- Modulated, time-varying filtered white noise (Rezaeian & Der Kiureghian),
  with an optional critically damped high-pass filter.
- A Mavroeidis-Papageorgiou velocity pulse added to the strike-normal
  component, and an optional second orthogonal component.
- Energy-based truncation and baseline correction of the records.

Regression tables linking the model parameters to earthquake source and site
characteristics are not included; parameters are drawn by the caller, e.g.
with `smeltpy.sampling.sample_parameters`.

References
----------
.. [1] Dabaghi, M., & Der Kiureghian, A. (2017). Stochastic model for
       simulation of near-fault ground motions. Earthquake Engineering &
       Structural Dynamics, 46(6), 963-984.
.. [2] Rezaeian, S., & Der Kiureghian, A. (2008). A stochastic ground motion
       model with separable temporal and spectral nonstationarities.
       Earthquake Engineering & Structural Dynamics, 37(13), 1565-1584.
.. [3] Rezaeian, S., & Der Kiureghian, A. (2010). Simulation of synthetic
       ground motions for specified earthquake and site characteristics.
       Earthquake Engineering & Structural Dynamics, 39(10), 1155-1180.
.. [4] Mavroeidis, G. P., & Papageorgiou, A. S. (2003). A mathematical
       representation of near-fault ground motions. Bulletin of the
       Seismological Society of America, 93(3), 1099-1131.
.. [5] Suarez, L. E., & Montejo, L. A. (2007). Applications of the wavelet
       transform in the generation and analysis of spectrum-compatible
       records. Structural Engineering and Mechanics, 27(2), 173-197.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
from numba import jit
from scipy import integrate, signal

from .optimize import nelder_mead
from .spectral import SeedLike, simulate_batch

log = logging.getLogger(__name__)

G = 9.81                  # gravity (m/s^2)
MIN_FILTER_FREQ = 0.1     # floor for the time-varying filter frequency (Hz)
TRUNCATE_LEVELS = (0.0005, 0.9995)   # energy fractions kept by truncation

# =============================================================================
# MODULATING FUNCTION
# =============================================================================

def modulating_function(
    t: np.ndarray,
    alpha: float,
    beta: float,
    c: float,
    tmaxq: float,
    t0: float = 0.0) -> np.ndarray:

    """Evaluates the time modulating function q(t).

    q(t) = 0                                   t < t0
    q(t) = alpha * ((t - t0)/(tmaxq - t0))^beta  t0 <= t <= tmaxq
    q(t) = alpha * exp(-c (t - tmaxq))         t > tmaxq

    Parameters
    ----------
    t : np.ndarray
        Time vector (s).
    alpha : float
        Peak value of q, reached at `tmaxq` (acceleration units).
    beta : float
        Exponent of the build-up phase (> 0).
    c : float
        Decay rate after the peak (1/s, > 0).
    tmaxq : float
        Time of the peak (s), must exceed `t0`.
    t0 : float, optional
        Start time (s). Default is 0.

    Returns
    -------
    np.ndarray
        q evaluated at `t`.
    """
    _check_shape_params(beta, c, tmaxq, t0)
    t = np.asarray(t, dtype=float)
    q = np.zeros_like(t)
    rise = (t >= t0) & (t <= tmaxq)
    q[rise] = alpha * ((t[rise] - t0) / (tmaxq - t0))**beta
    decay = t > tmaxq
    q[decay] = alpha * np.exp(-c * (t[decay] - tmaxq))
    return q

def modulating_statistics(params: Sequence[float], t0: float = 0.0, g: float = G) -> Tuple[float, float, float, float]:
    """Arias intensity and significant durations of q(t), in closed form.

    Parameters
    ----------
    params : sequence of float
        Modulating parameters (alpha, beta, c, tmaxq).
    t0 : float, optional
        Start time (s). Default is 0.
    g : float, optional
        Gravity in the acceleration units of alpha. Default 9.81.

    Returns
    -------
    Tuple[float, float, float, float]
        - Ia: Arias intensity ``pi/(2g) * integral(q^2)``.
        - D595: Time between 5% and 95% of Ia (s).
        - D05: Time from t0 to 5% of Ia (s).
        - D030: Time from t0 to 30% of Ia (s).
    """
    alpha, beta, c, tmaxq = params
    t05, t30, t95 = _arias_fraction_times(beta, c, tmaxq - t0, np.array([0.05, 0.30, 0.95]))
    arias = np.pi / (2.0 * g) * alpha**2 * _unit_energy(beta, c, tmaxq - t0)
    return arias, t95 - t05, t05, t30

def backcalculate_modulating_params(
    q_params: Sequence[float],
    t0: float = 0.0,
    tol: float = 1e-8,
    max_evals: int = 4000,
    g: float = G) -> np.ndarray:

    """Modulating parameters that reproduce target Arias intensity and durations.

    Parameters
    ----------
    q_params : sequence of float
        Targets (Ia, D595, D05, D030): Arias intensity and the 5-95%, 0-5%
        and 0-30% significant durations (s).
    t0 : float, optional
        Start time of the motion (s). Default is 0.
    tol : float, optional
        Convergence tolerance of the simplex search. Default is 1e-8.
    max_evals : int, optional
        Evaluation cap of each simplex run. Default is 4000.
    g : float, optional
        Gravity in the acceleration units wanted for alpha. Default 9.81.

    Returns
    -------
    np.ndarray
        Parameters [alpha, beta, c, tmaxq].

    Raises
    ------
    ValueError
        If the targets are not physically consistent
        (Ia > 0, D595 > 0 and 0 < D05 < D030 < D05 + D595).
    ConvergenceError
        If the simplex search exceeds `max_evals`.

    Notes
    -----
    The shape parameters (beta, c, tmaxq - t0) are found by minimizing the
    sum of squared relative duration errors over their logarithms, with one
    restart from the first optimum. alpha then follows in closed form from
    the Arias intensity.
    """
    arias, d595, d05, d030 = (float(v) for v in q_params)
    if arias <= 0 or d595 <= 0 or not 0 < d05 < d030 < d05 + d595:
        raise ValueError(
            f"Inconsistent targets: Ia={arias}, D595={d595}, D05={d05}, D030={d030}. "
            "Need Ia > 0, D595 > 0 and 0 < D05 < D030 < D05 + D595.")

    targets = np.array([d595, d05, d030])
    levels = np.array([0.05, 0.30, 0.95])

    def misfit(log_params):
        beta, c, rise = np.exp(log_params)
        t05, t30, t95 = _arias_fraction_times(beta, c, rise, levels)
        model = np.array([t95 - t05, t05, t30])
        return np.sum(((model - targets) / targets)**2)

    # Start: peak at the 30% time, decay matching the 30-95% window
    x0 = np.log([1.0, 1.32 / (d05 + d595 - d030), d030])
    xbest, fbest = nelder_mead(x0, misfit, tol=tol, max_evals=max_evals, deltas=0.5)
    log.debug("First simplex run: misfit=%.3e", fbest)
    xbest, fbest = nelder_mead(xbest, misfit, tol=tol, max_evals=max_evals, deltas=0.1)
    log.info("Modulating parameters back-calculated, misfit=%.3e", fbest)
    if fbest > 1e-4:
        log.warning("Target durations could only be matched approximately (misfit=%.3e).", fbest)

    beta, c, rise = np.exp(xbest)
    alpha = np.sqrt(arias * 2.0 * g / (np.pi * _unit_energy(beta, c, rise)))
    return np.array([alpha, beta, c, t0 + rise])

# =============================================================================
# RECORD STATISTICS
# =============================================================================

def arias_intensity(acc: np.ndarray, dt: float, g: float = G) -> float:
    """Arias intensity ``pi/(2g) * integral(a^2 dt)`` of an acceleration record."""
    return np.pi / (2.0 * g) * integrate.trapezoid(np.asarray(acc, dtype=float)**2, dx=dt)

def arias_times(acc: np.ndarray, dt: float, levels: Sequence[float]) -> np.ndarray:
    """Times at which the normalized cumulative Arias intensity reaches `levels` (%).

    Parameters
    ----------
    acc : np.ndarray
        Acceleration record.
    dt : float
        Time step (s).
    levels : sequence of float
        Percentages of the total Arias intensity, in [0, 100].

    Returns
    -------
    np.ndarray
        Times (s) measured from the first sample.
    """
    acc = np.asarray(acc, dtype=float)
    cumulative = integrate.cumulative_trapezoid(acc**2, dx=dt, initial=0)
    if cumulative[-1] <= 0:
        raise ValueError("Record has zero Arias intensity.")
    normalized = cumulative / cumulative[-1]
    levels = np.asarray(levels, dtype=float) / 100.0

    idx = np.searchsorted(normalized, levels, side='left')
    idx = np.clip(idx, 1, normalized.size - 1)
    lo = normalized[idx - 1]
    hi = normalized[idx]
    with np.errstate(divide='ignore', invalid='ignore'):
        frac = np.where(hi > lo, (levels - lo) / (hi - lo), 0.0)
    times = (idx - 1 + np.clip(frac, 0.0, 1.0)) * dt
    return np.where(levels <= 0, 0.0, times)

def significant_duration(acc: np.ndarray, dt: float, start: float = 5.0, end: float = 95.0) -> float:
    """Time between `start` % and `end` % of the Arias intensity (s)."""
    t_start, t_end = arias_times(acc, dt, [start, end])
    return t_end - t_start

# =============================================================================
# PULSE MODEL
# =============================================================================

def mavroeidis_papageorgiou_pulse(
    t: np.ndarray,
    vp: float,
    tp: float,
    gamma: float,
    nu: float,
    t_peak: float) -> Tuple[np.ndarray, np.ndarray]:

    """Mavroeidis-Papageorgiou velocity pulse and its acceleration.

    v(t) = vp/2 * (1 + cos(2 pi (t - t_peak) / (gamma tp))) * cos(2 pi (t - t_peak) / tp + nu)

    for ``|t - t_peak| <= gamma tp / 2`` and zero elsewhere [4]_.

    Parameters
    ----------
    t : np.ndarray
        Time vector (s).
    vp : float
        Pulse amplitude (velocity units).
    tp : float
        Pulse period (s, > 0).
    gamma : float
        Number of half-cycles controlling the envelope width (> 1).
    nu : float
        Phase angle (rad).
    t_peak : float
        Time of the envelope peak (s).

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        - acc (np.ndarray): Pulse acceleration (velocity units / s).
        - vel (np.ndarray): Pulse velocity.
    """
    if tp <= 0:
        raise ValueError(f"Pulse period must be positive, got {tp}.")
    if gamma <= 1:
        raise ValueError(f"Pulse gamma must exceed 1, got {gamma}.")
    t = np.asarray(t, dtype=float)
    tau = t - t_peak
    inside = np.abs(tau) <= 0.5 * gamma * tp

    w_env = 2.0 * np.pi / (gamma * tp)
    w_p = 2.0 * np.pi / tp
    envelope = 1.0 + np.cos(w_env * tau)
    carrier = np.cos(w_p * tau + nu)

    vel = np.where(inside, 0.5 * vp * envelope * carrier, 0.0)
    acc = np.where(inside, -0.5 * vp * (w_env * np.sin(w_env * tau) * carrier
                                        + w_p * envelope * np.sin(w_p * tau + nu)), 0.0)
    return acc, vel

# =============================================================================
# FILTERED WHITE NOISE SIMULATION
# =============================================================================

def simulate_ground_motion(
    modulating_params: Sequence[float],
    filter_params: Sequence[float],
    dt: float = 0.01,
    duration: Optional[float] = None,
    seed: SeedLike = None,
    num_sims: int = 1,
    t0: float = 0.0,
    high_pass_freq: Optional[float] = 0.2,
    use_multiprocessing: bool = False,
    modulating_params_2: Optional[Sequence[float]] = None,
    filter_params_2: Optional[Sequence[float]] = None,
    pulse_params: Optional[Sequence[float]] = None,
    truncate: bool = False,
    baseline: bool = False) -> Dict[str, Any]:

    """Modulated, time-varying filtered white noise acceleration records.

    Each record is ``a(t) = q(t) * x(t)`` where x is white noise filtered by a
    linear oscillator whose frequency varies with the arrival time of each
    pulse and normalized to unit variance [2]_. Near-fault records can carry a
    velocity pulse [4]_ on the first (strike-normal) component and a second,
    orthogonal component with its own modulating and filter parameters,
    driven by independent white noise.

    Parameters
    ----------
    modulating_params : sequence of float
        (alpha, beta, c, tmaxq), see `modulating_function`.
    filter_params : sequence of float
        (f_mid, f_slope, zeta_f): filter frequency at the time of 45% Arias
        intensity (Hz), its rate of change (Hz/s) and the filter damping
        ratio (0 < zeta_f < 1).
    dt : float, optional
        Time step (s). Default is 0.01.
    duration : float, optional
        Record length (s). Defaults to the latest time at which a modulating
        function reaches 99.9% of its Arias intensity, or the end of the
        pulse if that comes later.
    seed : int, SeedSequence or Generator, optional
        Source of randomness; record k uses the k-th child stream.
    num_sims : int, optional
        Number of records. Default is 1.
    t0 : float, optional
        Start time of the modulating functions (s). Default is 0.
    high_pass_freq : float, optional
        Corner frequency (Hz) of the critically damped high-pass filter [3]_
        applied to the filtered white noise. ``None`` skips the filter.
        Default is 0.2.
    use_multiprocessing : bool, optional
        Run records on a process pool. Default is False.
    modulating_params_2, filter_params_2 : sequence of float, optional
        Parameters of the second orthogonal component. Both or neither.
    pulse_params : sequence of float, optional
        (vp, tp, gamma, nu, t_peak) of the velocity pulse added to the first
        component, see `mavroeidis_papageorgiou_pulse`.
    truncate : bool, optional
        Keep only the samples between 0.05% and 99.95% of the expected
        cumulative energy (modulating functions plus pulse). Default is False.
    baseline : bool, optional
        Baseline correct every record so that its final velocity and
        displacement vanish (see `baseline_correct`). Default is False.

    Returns
    -------
    Dict[str, Any]
        - 'time' (np.ndarray): Time vector (s).
        - 'dt' (float): Time step (s).
        - 'acc' (np.ndarray): Records, shape (num_sims, num_times).
        - 'q' (np.ndarray): Modulating function on the time vector.
        - 't_mid' (float): Time of 45% Arias intensity of q (s).
        - 'filter_freq' (np.ndarray): Filter frequency at each time (Hz).
        - 'acc_2', 'q_2', 't_mid_2', 'filter_freq_2': Same for the second
          component, when requested.
        - 'pulse_acc', 'pulse_vel' (np.ndarray): The velocity pulse, when
          requested.
    """
    if (modulating_params_2 is None) != (filter_params_2 is None):
        raise ValueError("The second component needs both modulating and filter parameters.")
    if dt <= 0:
        raise ValueError(f"Time step must be positive, got {dt}.")

    specs = [(modulating_params, filter_params)]
    if modulating_params_2 is not None:
        specs.append((modulating_params_2, filter_params_2))
    for q_params, (_, _, zeta_f) in specs:
        _check_shape_params(q_params[1], q_params[2], q_params[3], t0)
        if not 0 < zeta_f < 1:
            raise ValueError(f"Filter damping ratio must lie in (0, 1), got {zeta_f}.")

    if duration is None:
        duration = max(t0 + _arias_fraction_times(q_params[1], q_params[2], q_params[3] - t0,
                                                  np.array([0.999]))[0]
                       for q_params, _ in specs)
        if pulse_params is not None:
            _, tp, gamma, _, t_peak = pulse_params
            duration = max(duration, t_peak + 0.5 * gamma * tp)
    num_times = int(np.floor(round(duration / dt, 9))) + 1
    t = np.arange(num_times) * dt

    components = []
    envelopes = []
    for q_params, (f_mid, f_slope, zeta_f) in specs:
        alpha, beta, c, tmaxq = q_params
        q = modulating_function(t, alpha, beta, c, tmaxq, t0=t0)
        t_mid = t0 + _arias_fraction_times(beta, c, tmaxq - t0, np.array([0.45]))[0]
        filter_freq = f_mid + f_slope * (t - t_mid)
        if np.any(filter_freq < MIN_FILTER_FREQ):
            log.warning("Filter frequency falls below %.2f Hz; clamping.", MIN_FILTER_FREQ)
            filter_freq = np.maximum(filter_freq, MIN_FILTER_FREQ)
        components.append((q, 2.0 * np.pi * filter_freq, zeta_f))
        envelopes.append((q, t_mid, filter_freq))

    pulse_acc = pulse_vel = None
    if pulse_params is not None:
        pulse_acc, pulse_vel = mavroeidis_papageorgiou_pulse(t, *pulse_params)

    window = slice(None)
    if truncate:
        energy = sum(q**2 for q, _, _ in components)
        if pulse_acc is not None:
            energy = energy + pulse_acc**2
        cumulative = integrate.cumulative_trapezoid(energy, dx=dt, initial=0)
        first, last = np.searchsorted(cumulative / cumulative[-1], TRUNCATE_LEVELS)
        window = slice(int(first), int(min(last, num_times - 1)) + 1)
        log.info("Truncating records to %.2f-%.2f s.", t[window][0], t[window][-1])

    log.info("Simulating %d ground motion(s) with %d component(s): %d samples, dt=%.4fs.",
             num_sims, len(components), num_times, dt)
    acc = np.stack(simulate_batch(
        _ground_motion_worker, num_sims, seed=seed, use_multiprocessing=use_multiprocessing,
        t=t, components=components, dt=dt, high_pass_freq=high_pass_freq,
        pulse_acc=pulse_acc, window=window, baseline=baseline))

    q, t_mid, filter_freq = envelopes[0]
    results = {'time': t[window], 'dt': dt, 'acc': acc[:, 0], 'q': q[window],
               't_mid': t_mid, 'filter_freq': filter_freq[window]}
    if len(envelopes) > 1:
        q, t_mid, filter_freq = envelopes[1]
        results.update({'acc_2': acc[:, 1], 'q_2': q[window], 't_mid_2': t_mid,
                        'filter_freq_2': filter_freq[window]})
    if pulse_acc is not None:
        results.update({'pulse_acc': pulse_acc[window], 'pulse_vel': pulse_vel[window]})
    return results

def high_pass_filter(acc: np.ndarray, dt: float, corner_freq: float) -> np.ndarray:
    """Critically damped oscillator high-pass filter.

    The corrected acceleration is the relative acceleration of an oscillator
    with frequency `corner_freq` and 100% damping driven by `acc`, i.e. the
    filter ``H(s) = s^2 / (s + w_c)^2`` discretized with the bilinear
    transform.
    """
    omega_c = 2.0 * np.pi * corner_freq
    b, a = signal.bilinear([1.0, 0.0, 0.0], [1.0, 2.0 * omega_c, omega_c**2], fs=1.0 / dt)
    return signal.lfilter(b, a, acc)

# =============================================================================
# BASELINE CORRECTION
# =============================================================================

def baseline_correct(
    acc: np.ndarray,
    t: np.ndarray,
    porder: int = -1,
    imax: int = 80,
    tol: float = 0.01) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:

    """Baseline correction that drives the final velocity and displacement to zero.

    The record is scaled piecewise-linearly inside a window at its start (to
    cancel the final displacement) and at its end (to cancel the final
    velocity) [5]_. If the correction breaks down, the window is widened
    until it would exceed half the record.

    Parameters
    ----------
    acc : np.ndarray
        Acceleration record.
    t : np.ndarray
        Uniform time vector of the record (s).
    porder : int, optional
        Order of a polynomial trend removed first. Default is -1 (none).
    imax : int, optional
        Maximum number of correction sweeps. Default is 80.
    tol : float, optional
        Accepted final velocity and displacement, in percent of their peak
        values. Default is 0.01.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, np.ndarray]
        - acc (np.ndarray): Corrected acceleration.
        - vel (np.ndarray): Its velocity.
        - disp (np.ndarray): Its displacement.
    """
    acc = np.asarray(acc, dtype=float)
    t = np.asarray(t, dtype=float)
    if porder >= 0:
        acc = acc - np.polyval(np.polyfit(t, acc, deg=porder), t)

    span = t[-1] - t[0]
    window = max(1.0, span / 20.0)
    corrected = _baseline_sweeps(acc, t, window, imax, tol)
    attempt = 1
    while corrected is None:
        attempt += 1
        if attempt * window >= 0.5 * span:
            log.error("Baseline correction failed; returning the uncorrected record.")
            corrected = acc.copy()
            break
        log.warning("Baseline correction failed with a %.1fs window. Retrying with %.1fs.",
                    (attempt - 1) * window, attempt * window)
        corrected = _baseline_sweeps(acc, t, attempt * window, imax, tol)

    vel = integrate.cumulative_trapezoid(corrected, x=t, initial=0)
    disp = integrate.cumulative_trapezoid(vel, x=t, initial=0)
    return corrected, vel, disp

# =============================================================================
# INTERNAL (HELPER) FUNCTIONS
# =============================================================================

def _check_shape_params(beta: float, c: float, tmaxq: float, t0: float) -> None:
    if beta <= 0 or c <= 0:
        raise ValueError(f"beta and c must be positive, got beta={beta}, c={c}.")
    if tmaxq <= t0:
        raise ValueError(f"tmaxq ({tmaxq}) must come after t0 ({t0}).")

def _unit_energy(beta: float, c: float, rise: float) -> float:
    """Integral of q^2 for alpha = 1."""
    return rise / (2.0 * beta + 1.0) + 1.0 / (2.0 * c)

def _arias_fraction_times(beta: float, c: float, rise: float, fractions: np.ndarray) -> np.ndarray:
    """Times after t0 at which q^2 accumulates the given fractions of its integral."""
    power = 2.0 * beta + 1.0
    e_rise = rise / power
    e_total = e_rise + 1.0 / (2.0 * c)
    energy = fractions * e_total
    with np.errstate(divide='ignore', invalid='ignore'):
        t_rise = rise * (energy / e_rise)**(1.0 / power)
        t_decay = rise - np.log(1.0 - 2.0 * c * (energy - e_rise)) / (2.0 * c)
    return np.where(energy <= e_rise, t_rise, t_decay)

def _baseline_sweeps(acc: np.ndarray, t: np.ndarray, window: float, imax: int, tol: float) -> Optional[np.ndarray]:
    """Iterative start/end window scaling [5]_. Returns None if it breaks down."""
    corrected = acc.copy()
    n = corrected.size
    dt = t[1] - t[0]

    last_start = int(np.ceil(window / dt)) - 1   # start window: 0..last_start
    first_end = n - last_start - 1               # end window: first_end..n-1
    if last_start < 1 or first_end <= last_start + 1:
        return None

    start = np.arange(last_start + 1)
    w_start = (last_start - start) / last_start
    lever = t[-1] - t[start]
    end = np.arange(first_end, n)
    w_end = (end - first_end) / (n - first_end - 1)

    for sweep in range(imax):
        # final displacement: scale the start window
        disp_end = integrate.cumulative_trapezoid(
            integrate.cumulative_trapezoid(corrected, x=t, initial=0), x=t, initial=0)[-1]
        aux = w_start * lever * corrected[start] * dt
        pos = 1e-15 + np.sum(aux[aux >= 0])
        neg = -1e-15 + np.sum(aux[aux < 0])
        scale = np.where(corrected[start] > 0, -disp_end / (2 * pos), -disp_end / (2 * neg))
        corrected[start] *= 1.0 + scale * w_start

        # final velocity: scale the end window
        vel_end = integrate.trapezoid(corrected, x=t)
        aux = w_end * corrected[end] * dt
        pos = 1e-15 + np.sum(aux[aux >= 0])
        neg = -1e-15 + np.sum(aux[aux < 0])
        scale = np.where(corrected[end] > 0, -vel_end / (2 * pos), -vel_end / (2 * neg))
        corrected[end] *= 1.0 + scale * w_end

        vel = integrate.cumulative_trapezoid(corrected, x=t, initial=0)
        disp = integrate.cumulative_trapezoid(vel, x=t, initial=0)
        peak_vel = np.max(np.abs(vel))
        peak_disp = np.max(np.abs(disp))
        err_vel = np.abs(vel[-1]) / peak_vel if peak_vel > 1e-12 else 0.0
        err_disp = np.abs(disp[-1]) / peak_disp if peak_disp > 1e-12 else 0.0
        log.debug("Baseline sweep %d: ErrV=%.4f%%, ErrD=%.4f%%", sweep + 1, 100 * err_vel, 100 * err_disp)
        if 100 * err_vel <= tol and 100 * err_disp <= tol:
            break
    else:
        log.warning("Baseline correction did not converge within %d sweeps.", imax)

    if np.isnan(corrected).any():
        return None
    return corrected

def _ground_motion_worker(seed, t, components, dt, high_pass_freq, pulse_acc, window, baseline):
    """One realization of every component, shape (num_components, num_times)."""
    rng = np.random.default_rng(seed)
    noise = rng.standard_normal((len(components), t.size))
    records = []
    for k, (q, omega, zeta_f) in enumerate(components):
        acc = q * _filtered_white_noise(t, noise[k], omega, zeta_f)
        if high_pass_freq is not None:
            acc = high_pass_filter(acc, dt, high_pass_freq)
        if k == 0 and pulse_acc is not None:
            acc = acc + pulse_acc
        acc = acc[window]
        if baseline:
            acc = baseline_correct(acc, t[window])[0]
        records.append(acc)
    return np.stack(records)

@jit(nopython=True, cache=True)
def _filtered_white_noise(t, noise, omega, zeta_f):
    """Unit-variance response of a time-varying oscillator to discrete pulses.

    The pulse at t_i excites an oscillator with frequency omega[i]; the sum of
    responses at t_j is divided by its standard deviation.
    """
    n = t.size
    out = np.zeros(n)
    sqz = np.sqrt(1.0 - zeta_f**2)
    for j in range(n):
        total = 0.0
        var = 0.0
        for i in range(j + 1):
            tau = t[j] - t[i]
            w = omega[i]
            h = w / sqz * np.exp(-zeta_f * w * tau) * np.sin(w * sqz * tau)
            total += h * noise[i]
            var += h * h
        if var > 0.0:
            out[j] = total / np.sqrt(var)
    return out
