"""
smeltpy: stochastic simulation of wind and earthquake ground motion time histories.

The package is built around four numerical engines:

1.  A Nelder-Mead simplex optimizer used to calibrate model parameters
    against target statistics (`nelder_mead`).
2.  A spectral-representation generator of correlated complex frequency
    coefficients from a cross-spectral density model (`complex_random_numbers`).
3.  A synthesizer that turns those coefficients into real time histories
    through a Hermitian-symmetric inverse DFT (`synthesize_time_history`).
4.  A sampler of correlated, physically bounded model parameters
    (`sample_parameters`).

On top of them sit a Wittig & Sinha multi-point wind simulator
(`wittig_sinha`) and the near-fault ground motion tools of Dabaghi & Der
Kiureghian (`backcalculate_modulating_params`, `simulate_ground_motion`).

---
Quick Start
---

**Example 1: Wind speeds along the height of a building**

.. code-block:: python

    from smeltpy import wittig_sinha, floor_heights, plot_wind_results
    import matplotlib.pyplot as plt

    results = wittig_sinha(
        floor_heights(120.0, 30), gust_speed=30.0, roughness_length=0.3,
        total_time=600.0, freq_cutoff=5.0, num_sims=2, seed=100
    )
    fig_profile, fig_hist = plot_wind_results(results)
    plt.show()


**Example 2: Correlated model parameters and a synthetic ground motion**

.. code-block:: python

    import numpy as np
    from smeltpy import (MarginalSpec, sample_parameters,
                         backcalculate_modulating_params, simulate_ground_motion)

    marginals = [MarginalSpec('beta', (2.0, 5.0), 0.01, 2.0),          # Ia
                 MarginalSpec('double_exponential', (0.4, 0.3, 2.0), 2.0)]  # D595
    corr = np.array([[1.0, -0.4], [-0.4, 1.0]])
    params = sample_parameters(corr, np.zeros(2), np.ones(2), marginals, 10, seed=1)

    q_params = backcalculate_modulating_params((0.5, 12.0, 3.0, 6.0))
    gm = simulate_ground_motion(q_params, (4.0, -0.05, 0.3), dt=0.01, seed=7)

"""

__author__ = "smeltpy developers"
__license__ = "MIT"
__version__ = "0.1.0"

# =============================================================================
# IMPORTS
# =============================================================================
import logging

from .errors import (BoundsViolation, ConvergenceError, DimensionMismatch,
                     NumericalError, SmeltError)
from .linalg import conjugate_transpose, is_hermitian, lower_cholesky
from .optimize import initial_simplex, nelder_mead
from .spectral import (complex_random_numbers, frequency_grid, simulate_batch,
                       spawn_seeds, synthesize_time_histories,
                       synthesize_time_history, time_discretization,
                       white_noise)
from .sampling import (MarginalSpec, cdf_double_exp, inv_beta, inv_double_exp,
                       inv_lognormal, inv_uniform, sample_parameters,
                       transform_from_normal_space)
from .wind import (floor_heights, kaimal_spectrum, log_law_profile,
                   wittig_sinha, wittig_sinha_csd)
from .ground_motion import (arias_intensity, arias_times,
                            backcalculate_modulating_params, baseline_correct,
                            high_pass_filter, mavroeidis_papageorgiou_pulse,
                            modulating_function, modulating_statistics,
                            significant_duration, simulate_ground_motion)
from .plotting import plot_ground_motion_results, plot_wind_results

# The library never configures handlers; applications call logging.basicConfig
logging.getLogger(__name__).addHandler(logging.NullHandler())
