import matplotlib.pyplot as plt

from smeltpy.ground_motion import simulate_ground_motion
from smeltpy.plotting import plot_ground_motion_results, plot_wind_results
from smeltpy.wind import floor_heights, wittig_sinha


def test_wind_figures():
    results = wittig_sinha(floor_heights(40.0, 5), 20.0, 0.3, 60.0, freq_cutoff=2.0, seed=4)
    fig_profile, fig_hist = plot_wind_results(results)
    assert len(fig_hist.axes) == 3
    assert len(fig_profile.axes) == 1
    _, fig_single = plot_wind_results(results, channels=[4])
    assert len(fig_single.axes) == 1
    plt.close('all')


def test_ground_motion_figures():
    results = simulate_ground_motion((0.5, 2.0, 0.4, 5.0), (4.0, -0.05, 0.3), dt=0.02, seed=2)
    fig_hist, fig_arias = plot_ground_motion_results(results)
    assert len(fig_hist.axes) == 3
    assert fig_arias.axes[0].get_title().startswith('Ia = ')
    plt.close('all')
