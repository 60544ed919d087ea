import numpy as np
import pytest

from smeltpy.linalg import lower_cholesky
from smeltpy.wind import (floor_heights, kaimal_spectrum, log_law_profile,
                          wittig_sinha, wittig_sinha_csd)


@pytest.fixture(scope='module')
def wind_run():
    heights = floor_heights(60.0, 4)
    return wittig_sinha(heights, gust_speed=25.0, roughness_length=0.3,
                        total_time=3600.0, freq_cutoff=1.0, num_sims=4, seed=100)


def test_floor_heights():
    np.testing.assert_allclose(floor_heights(30.0, 3), [10.0, 20.0, 30.0])
    with pytest.raises(ValueError):
        floor_heights(30.0, 0)


def test_log_law_reference_speed():
    u_star, velocities = log_law_profile([10.0, 40.0], 30.0, 0.05)
    assert velocities[0] == pytest.approx(30.0)
    assert velocities[1] > velocities[0]
    assert u_star == pytest.approx(0.4 * 30.0 / np.log(10.0 / 0.05))


def test_log_law_rejects_heights_below_roughness():
    with pytest.raises(ValueError):
        log_law_profile([0.1, 10.0], 30.0, 0.3)


def test_csd_is_symmetric_positive_definite():
    heights = floor_heights(100.0, 10)
    u_star, velocities = log_law_profile(heights, 30.0, 0.3)
    for freq in (0.0, 0.05, 1.0, 4.9):
        csd = wittig_sinha_csd(freq, heights, velocities, u_star)
        np.testing.assert_allclose(csd, csd.T)
        np.testing.assert_allclose(np.diag(csd), kaimal_spectrum(freq, heights, velocities, u_star))
        lower_cholesky(csd)


def test_coherence_decays_with_separation_and_frequency():
    heights = np.array([10.0, 20.0, 80.0])
    u_star, velocities = log_law_profile(heights, 30.0, 0.3)
    csd = wittig_sinha_csd(0.5, heights, velocities, u_star)
    coherence = csd / np.sqrt(np.outer(np.diag(csd), np.diag(csd)))
    assert coherence[0, 1] > coherence[0, 2]
    at_zero = wittig_sinha_csd(0.0, heights, velocities, u_star)
    assert at_zero[0, 2] == pytest.approx(0.999 * np.sqrt(at_zero[0, 0] * at_zero[2, 2]))


def test_output_shapes(wind_run):
    assert wind_run['dt'] == pytest.approx(0.5)
    assert wind_run['time'].size == 7200
    assert wind_run['frequencies'].size == 3600
    assert wind_run['fluctuations'].shape == (4, 4, 7200)
    np.testing.assert_allclose(
        wind_run['velocities'] - wind_run['fluctuations'],
        np.broadcast_to(wind_run['mean_velocity'][None, :, None], (4, 4, 7200)))


def test_fluctuations_have_zero_mean(wind_run):
    np.testing.assert_allclose(wind_run['fluctuations'].mean(axis=-1), 0.0, atol=1e-10)


def test_variance_matches_target_spectrum(wind_run):
    freqs = wind_run['frequencies']
    df = freqs[1] - freqs[0]
    heights = wind_run['heights']
    target = np.array([
        np.sum(kaimal_spectrum(freqs[1:], z, u, wind_run['friction_velocity'])) * df
        for z, u in zip(heights, wind_run['mean_velocity'])
    ])
    variance = wind_run['fluctuations'].var(axis=-1).mean(axis=0)
    np.testing.assert_allclose(variance, target, rtol=0.15)


def test_neighbouring_heights_are_correlated(wind_run):
    fluct = wind_run['fluctuations'][0]
    assert np.corrcoef(fluct)[2, 3] > 0.3


def test_same_seed_same_field():
    heights = floor_heights(30.0, 2)
    first = wittig_sinha(heights, 20.0, 0.3, 60.0, freq_cutoff=2.0, num_sims=2, seed=5)
    second = wittig_sinha(heights, 20.0, 0.3, 60.0, freq_cutoff=2.0, num_sims=2, seed=5)
    np.testing.assert_array_equal(first['velocities'], second['velocities'])
    assert not np.allclose(first['fluctuations'][0], first['fluctuations'][1])


def test_horizontal_separation_reduces_coherence():
    heights = np.array([20.0, 20.0, 20.0])
    u_star, velocities = log_law_profile(heights, 30.0, 0.3)
    csd = wittig_sinha_csd(0.5, heights, velocities, u_star,
                           x_locations=[0.0, 3.0, 0.0], y_locations=[0.0, 0.0, 4.0])
    coherence = csd / np.sqrt(np.outer(np.diag(csd), np.diag(csd)))
    assert coherence[0, 1] > coherence[0, 2] > coherence[1, 2]
    # points 1 and 2 are 5 m apart
    assert coherence[1, 2] == pytest.approx(0.999 * np.exp(-10.0 * 0.5 * 5.0 / velocities[0]))


def test_csd_without_horizontal_coordinates_is_a_vertical_line():
    heights = floor_heights(40.0, 4)
    u_star, velocities = log_law_profile(heights, 25.0, 0.3)
    vertical = wittig_sinha_csd(0.3, heights, velocities, u_star)
    explicit = wittig_sinha_csd(0.3, heights, velocities, u_star,
                                x_locations=np.full(4, 7.0), y_locations=np.zeros(4))
    np.testing.assert_allclose(vertical, explicit)
    with pytest.raises(ValueError):
        wittig_sinha_csd(0.3, heights, velocities, u_star, x_locations=[0.0, 1.0])


def test_grid_run_shapes_and_points():
    heights = floor_heights(30.0, 3)
    results = wittig_sinha(heights, 20.0, 0.3, 60.0, freq_cutoff=2.0, num_sims=2, seed=8,
                           x_locations=[0.0, 10.0], y_locations=[0.0, 5.0])
    assert results['points'].shape == (12, 3)
    np.testing.assert_allclose(results['points'][:3], [[0, 0, 10], [0, 0, 20], [0, 0, 30]])
    np.testing.assert_allclose(results['points'][-1], [10.0, 5.0, 30.0])
    np.testing.assert_allclose(results['heights'], np.tile(heights, 4))
    np.testing.assert_allclose(results['mean_velocity'][:3], results['mean_velocity'][9:])
    assert results['fluctuations'].shape == (2, 12, 240)


def test_vertical_line_default_matches_explicit_origin():
    heights = floor_heights(30.0, 2)
    default = wittig_sinha(heights, 20.0, 0.3, 60.0, freq_cutoff=2.0, seed=3)
    origin = wittig_sinha(heights, 20.0, 0.3, 60.0, freq_cutoff=2.0, seed=3,
                          x_locations=[0.0], y_locations=[0.0])
    np.testing.assert_array_equal(default['fluctuations'], origin['fluctuations'])
    np.testing.assert_allclose(default['points'][:, :2], 0.0)
