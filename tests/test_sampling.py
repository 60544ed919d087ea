import numpy as np
import pytest
from scipy import stats

from smeltpy.errors import BoundsViolation, DimensionMismatch, NumericalError
from smeltpy.sampling import (MarginalSpec, cdf_double_exp, inv_double_exp,
                              sample_parameters, transform_from_normal_space)


class ShiftedSpec:
    """Marginal whose inverse CDF lands slightly outside its bounds."""

    lower_bound = 0.0
    upper_bound = 1.0

    def __init__(self, offset):
        self.offset = offset

    def inverse_cdf(self, probability):
        return np.full_like(probability, self.lower_bound - self.offset)


class TestSampleParameters:

    def test_beta_draws_respect_bounds_and_correlation(self):
        corr = np.array([[1.0, 0.5], [0.5, 1.0]])
        marginals = [MarginalSpec('beta', (2.0, 3.0), 0.0, 1.0),
                     MarginalSpec('beta', (5.0, 2.0), 1.0, 4.0)]
        real, normal = sample_parameters(corr, np.zeros(2), np.ones(2), marginals,
                                         100_000, seed=3, return_normal=True)
        assert real.shape == (100_000, 2)
        assert np.all((real[:, 0] >= 0.0) & (real[:, 0] <= 1.0))
        assert np.all((real[:, 1] >= 1.0) & (real[:, 1] <= 4.0))
        assert np.corrcoef(normal.T)[0, 1] == pytest.approx(0.5, abs=0.01)
        # the marginal transformation is monotone, so rank correlation survives
        rho_s = stats.spearmanr(real[:, 0], real[:, 1])[0]
        assert rho_s == pytest.approx(6.0 / np.pi * np.arcsin(0.25), abs=0.01)
        assert real[:, 0].mean() == pytest.approx(2.0 / 5.0, abs=0.005)

    def test_same_seed_same_draws(self):
        corr = np.eye(3)
        marginals = [MarginalSpec('uniform', (), 0.0, 1.0)] * 3
        first = sample_parameters(corr, np.zeros(3), np.ones(3), marginals, 50, seed=8)
        second = sample_parameters(corr, np.zeros(3), np.ones(3), marginals, 50, seed=8)
        np.testing.assert_array_equal(first, second)

    def test_uniform_with_mean_and_std(self):
        marginals = [MarginalSpec('uniform', (), 2.0, 4.0)]
        real = sample_parameters([[1.0]], [0.0], [1.0], marginals, 40_000, seed=1)
        assert real.mean() == pytest.approx(3.0, abs=0.01)
        shifted = sample_parameters([[1.0]], [1.0], [0.0], marginals, 5, seed=1)
        np.testing.assert_allclose(shifted, 2.0 + 2.0 * stats.norm.cdf(1.0))

    def test_lognormal_out_of_bounds_raises(self):
        marginals = [MarginalSpec('lognormal', (0.0, 1.0), 0.0, 1.0)]
        with pytest.raises(BoundsViolation) as excinfo:
            sample_parameters([[1.0]], [0.0], [1.0], marginals, 200, seed=2)
        assert excinfo.value.dimension == 0
        assert excinfo.value.value > 1.0

    def test_indefinite_correlation_raises(self):
        corr = np.array([[1.0, 1.2], [1.2, 1.0]])
        marginals = [MarginalSpec('uniform', (), 0.0, 1.0)] * 2
        with pytest.raises(NumericalError):
            sample_parameters(corr, np.zeros(2), np.ones(2), marginals, 10, seed=0)

    def test_inconsistent_sizes_raise(self):
        marginals = [MarginalSpec('uniform', (), 0.0, 1.0)] * 2
        with pytest.raises(DimensionMismatch):
            sample_parameters(np.eye(2), np.zeros(3), np.ones(2), marginals, 10)
        with pytest.raises(DimensionMismatch):
            sample_parameters(np.eye(2), np.zeros(2), np.ones(2), marginals[:1], 10)


class TestTransform:

    def test_round_off_is_clamped(self):
        result = transform_from_normal_space(np.zeros(1), [ShiftedSpec(1e-12)])
        assert result[0] == 0.0

    def test_large_excursion_raises(self):
        with pytest.raises(BoundsViolation):
            transform_from_normal_space(np.zeros(1), [ShiftedSpec(1e-3)])

    def test_shape_is_preserved(self):
        marginals = [MarginalSpec('uniform', (), -1.0, 1.0)] * 2
        single = transform_from_normal_space(np.zeros(2), marginals)
        assert single.shape == (2,)
        np.testing.assert_allclose(single, 0.0, atol=1e-12)
        batch = transform_from_normal_space(np.zeros((4, 2)), marginals)
        assert batch.shape == (4, 2)

    def test_wrong_marginal_count(self):
        with pytest.raises(DimensionMismatch):
            transform_from_normal_space(np.zeros((4, 3)), [MarginalSpec('uniform', (), 0.0, 1.0)])


class TestDoubleExponential:

    def test_inverse_is_consistent_with_cdf(self):
        p = np.linspace(0.001, 0.999, 99)
        x = inv_double_exp(p, 0.4, 0.8, 2.0, 1.5)
        assert np.all(np.diff(x) > 0)
        assert np.all(x >= 1.5)
        np.testing.assert_allclose(cdf_double_exp(x, 0.4, 0.8, 2.0, 1.5), p, atol=1e-12)

    def test_support_and_mode(self):
        a, b, c, lower = 0.3, 1.2, 1.0, 0.5
        assert inv_double_exp(0.0, a, b, c, lower) == pytest.approx(lower)
        assert inv_double_exp(0.999999, a, b, c, lower) > lower + c
        assert cdf_double_exp(lower - 1.0, a, b, c, lower) == 0.0
        density, _ = np.histogram(inv_double_exp(np.random.default_rng(0).random(200_000), a, b, c, lower),
                                  bins=np.linspace(lower, lower + 2 * c, 21))
        assert np.argmax(density) in (9, 10)

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            inv_double_exp(0.5, 1.5, 1.0, 1.0, 0.0)
        with pytest.raises(ValueError):
            inv_double_exp(0.5, 0.5, -1.0, 1.0, 0.0)


class TestMarginalSpec:

    def test_params_are_validated(self):
        with pytest.raises(ValueError):
            MarginalSpec('gamma', (1.0,), 0.0, 1.0)
        with pytest.raises(ValueError):
            MarginalSpec('beta', (1.0,), 0.0, 1.0)
        with pytest.raises(ValueError):
            MarginalSpec('beta', (1.0, 1.0), 0.0)
        with pytest.raises(ValueError):
            MarginalSpec('uniform', (), 2.0, 1.0)

    def test_params_are_stored_as_floats(self):
        spec = MarginalSpec('lognormal', [0, 1], 0.0)
        assert spec.params == (0.0, 1.0)
        assert spec.inverse_cdf(np.array([0.5]))[0] == pytest.approx(1.0)
