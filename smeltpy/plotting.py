"""
Standard plots for simulated wind fields and ground motions.

The functions only build and return matplotlib figures; saving or showing
them is left to the caller.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple

import matplotlib as mpl
import matplotlib.pyplot as plt
import numpy as np
from scipy import integrate

from .ground_motion import arias_intensity

log = logging.getLogger(__name__)


def plot_wind_results(
    results: Dict[str, Any],
    sim: int = 0,
    channels: Optional[Sequence[int]] = None) -> Tuple[plt.Figure, plt.Figure]:

    """Mean wind profile and wind speed time histories of one realization.

    Parameters
    ----------
    results : Dict[str, Any]
        The dictionary returned by `smeltpy.wind.wittig_sinha`.
    sim : int, optional
        Index of the realization to plot. Default is 0.
    channels : sequence of int, optional
        Heights (by index) whose time histories are drawn. Defaults to the
        lowest, middle and highest point.

    Returns
    -------
    Tuple[plt.Figure, plt.Figure]
        - fig_profile: Mean profile with the min/max simulated speeds.
        - fig_hist: Velocity time histories.
    """
    t = results['time']
    heights = results['heights']
    mean_velocity = results['mean_velocity']
    velocities = results['velocities'][sim]

    if channels is None:
        channels = sorted({0, heights.size // 2, heights.size - 1})

    mpl.rcParams['font.size'] = 9
    mpl.rcParams['legend.frameon'] = False

    fig_profile, ax_profile = plt.subplots(figsize=(4.0, 6.0))
    ax_profile.fill_betweenx(heights, velocities.min(axis=1), velocities.max(axis=1),
                             color='cornflowerblue', alpha=0.3, label='Simulated range')
    ax_profile.plot(mean_velocity, heights, color='salmon', lw=2, marker='o', ms=3, label='Mean')
    ax_profile.set_xlabel('Wind speed [m/s]')
    ax_profile.set_ylabel('Height [m]')
    ax_profile.set_ylim(bottom=0)
    ax_profile.grid(True, linestyle=':', alpha=0.7)
    ax_profile.legend(loc='upper left')
    fig_profile.tight_layout()

    fig_hist, axs_hist = plt.subplots(len(channels), 1, figsize=(6.5, 2.0 * len(channels)),
                                      sharex=True, squeeze=False)
    for ax, ch in zip(axs_hist[:, 0], channels):
        ax.plot(t, velocities[ch], lw=0.8, color='cornflowerblue')
        ax.axhline(mean_velocity[ch], color='salmon', lw=1)
        ax.set_ylabel(f'U({heights[ch]:.1f} m)\n[m/s]')
        ax.grid(True, linestyle=':', alpha=0.7)
    axs_hist[-1, 0].set_xlabel('Time [s]')
    fig_hist.tight_layout()

    return fig_profile, fig_hist


def plot_ground_motion_results(results: Dict[str, Any], sim: int = 0) -> Tuple[plt.Figure, plt.Figure]:
    """Acceleration record with its modulating envelope and Husid plot.

    Parameters
    ----------
    results : Dict[str, Any]
        The dictionary returned by `smeltpy.ground_motion.simulate_ground_motion`.
    sim : int, optional
        Index of the record to plot. Default is 0.

    Returns
    -------
    Tuple[plt.Figure, plt.Figure]
        - fig_hist: Acceleration, velocity and displacement histories.
        - fig_arias: Normalized cumulative Arias intensity of the record and
          of the modulating function.
    """
    t = results['time']
    dt = results['dt']
    acc = results['acc'][sim]
    q = results['q']

    vel = integrate.cumulative_trapezoid(acc, x=t, initial=0)
    disp = integrate.cumulative_trapezoid(vel, x=t, initial=0)

    mpl.rcParams['font.size'] = 9
    mpl.rcParams['legend.frameon'] = False

    fig_hist, axs_hist = plt.subplots(3, 1, figsize=(6.5, 6.5), sharex=True)
    axs_hist[0].plot(t, acc, lw=0.8, color='cornflowerblue', label='Simulated')
    axs_hist[0].plot(t, q, lw=1, color='salmon', label='q(t)')
    axs_hist[0].plot(t, -q, lw=1, color='salmon')
    axs_hist[0].set_ylabel('Acc.')
    axs_hist[0].legend(loc='upper right')
    axs_hist[1].plot(t, vel, lw=1, color='cornflowerblue')
    axs_hist[1].set_ylabel('Vel.')
    axs_hist[2].plot(t, disp, lw=1, color='cornflowerblue')
    axs_hist[2].set_ylabel('Displ.')
    axs_hist[2].set_xlabel('Time [s]')
    for ax in axs_hist:
        ax.grid(True, linestyle=':', alpha=0.7)
    fig_hist.tight_layout()

    fig_arias, ax_arias = plt.subplots(figsize=(6.5, 3.5))
    for series, color, label in ((acc, 'cornflowerblue', 'Simulated'), (q, 'salmon', 'q(t)')):
        cumulative = integrate.cumulative_trapezoid(series**2, dx=dt, initial=0)
        if cumulative[-1] > 0:
            ax_arias.plot(t, cumulative / cumulative[-1], lw=1, color=color, label=label)
        else:
            log.warning("Zero Arias intensity for '%s'. Skipping curve.", label)
    ax_arias.set_xlabel('Time [s]')
    ax_arias.set_ylabel('Normalized Arias intensity')
    ax_arias.set_ylim(0, 1.02)
    ax_arias.set_title(f'Ia = {arias_intensity(acc, dt):.3f}')
    ax_arias.grid(True, linestyle=':', alpha=0.7)
    ax_arias.legend(loc='lower right')
    fig_arias.tight_layout()

    return fig_hist, fig_arias
