import numpy as np
import pytest

from smeltpy.errors import ConvergenceError, DimensionMismatch
from smeltpy.optimize import initial_simplex, nelder_mead


def paraboloid(x):
    return (x[0] - 3.0)**2 + (x[1] + 2.0)**2


class CountingObjective:
    """Objective exposing evaluate() and counting calls."""

    def __init__(self, func):
        self.func = func
        self.calls = 0

    def evaluate(self, x):
        self.calls += 1
        return self.func(x)


def test_initial_simplex_offsets_one_coordinate_per_vertex():
    simplex = initial_simplex([1.0, 2.0, 3.0], [0.1, 0.2, 0.3])
    expected = np.array([
        [1.0, 2.0, 3.0],
        [1.1, 2.0, 3.0],
        [1.0, 2.2, 3.0],
        [1.0, 2.0, 3.3],
    ])
    np.testing.assert_allclose(simplex, expected)
    np.testing.assert_allclose(initial_simplex([0.0, 0.0], 0.5), [[0, 0], [0.5, 0], [0, 0.5]])


def test_initial_simplex_rejects_wrong_deltas():
    with pytest.raises(DimensionMismatch):
        initial_simplex([0.0, 0.0], [1.0, 1.0, 1.0])


def test_paraboloid_converges_to_minimum():
    xbest, fbest = nelder_mead([0.0, 0.0], paraboloid, tol=1e-8, max_evals=5000, deltas=1.0)
    np.testing.assert_allclose(xbest, [3.0, -2.0], atol=1e-5)
    assert fbest < 1e-10


def test_best_values_never_increase():
    history = []
    nelder_mead([0.0, 0.0], paraboloid, tol=1e-8, deltas=1.0,
                callback=lambda x, f: history.append(f))
    assert len(history) > 10
    assert all(b <= a for a, b in zip(history, history[1:]))


def test_evaluate_protocol_is_used():
    objective = CountingObjective(paraboloid)
    xbest, _ = nelder_mead([0.0, 0.0], objective, tol=1e-8)
    np.testing.assert_allclose(xbest, [3.0, -2.0], atol=1e-5)
    assert objective.calls > 3


def test_shrink_accounting_matches_real_calls():
    # minimum at the starting vertex: every reflection and contraction fails,
    # so each iteration is reflect + contract + shrink (N = 1)
    objective = CountingObjective(lambda x: abs(x[0]))
    with pytest.raises(ConvergenceError) as excinfo:
        nelder_mead([0.0], objective, tol=1e-8, max_evals=20, deltas=1.0)
    err = excinfo.value
    assert err.num_evals == 20
    assert objective.calls == err.num_evals
    assert err.best_point[0] == 0.0
    assert err.best_value == 0.0


def test_tied_vertices_keep_the_first_as_best():
    xbest, fbest = nelder_mead(np.array([[0.0], [1.0]]), lambda x: 0.0)
    assert xbest[0] == 0.0
    assert fbest == 0.0


def test_reflection_tying_the_best_is_not_expanded():
    evaluated = []

    def func(x):
        evaluated.append(float(x[0]))
        return max(x[0], 0.0)

    xbest, fbest = nelder_mead([0.0], func, tol=1e-8, deltas=1.0)
    # reflection of 1 through 0 lands on -1 and ties the best; expanding would try -2
    assert -1.0 in evaluated
    assert -2.0 not in evaluated
    assert fbest == 0.0
    assert xbest[0] <= 0.0


def test_cap_raises_with_diagnostics():
    objective = CountingObjective(paraboloid)
    with pytest.raises(ConvergenceError) as excinfo:
        nelder_mead([0.0, 0.0], objective, tol=1e-12, max_evals=20)
    err = excinfo.value
    assert err.num_evals >= 20
    assert objective.calls <= err.num_evals
    assert err.best_value == pytest.approx(paraboloid(err.best_point))
    assert err.best_value < paraboloid([0.0, 0.0])


def test_explicit_simplex():
    simplex = np.array([[10.0, 10.0], [11.0, 10.0], [10.0, 12.0]])
    xbest, fbest = nelder_mead(simplex, paraboloid, tol=1e-8)
    np.testing.assert_allclose(xbest, [3.0, -2.0], atol=1e-5)
    # the caller's simplex is left untouched
    assert simplex[0, 0] == 10.0


def test_explicit_simplex_wrong_vertex_count():
    with pytest.raises(DimensionMismatch):
        nelder_mead(np.zeros((2, 2)), paraboloid)


def test_relative_tolerance_with_nonzero_minimum():
    func = lambda x: (x[0] - 1.0)**2 + 10.0 * (x[1] - 2.0)**2 + 5.0
    xbest, fbest = nelder_mead([0.0, 0.0], func, tol=1e-8)
    np.testing.assert_allclose(xbest, [1.0, 2.0], atol=1e-3)
    assert fbest == pytest.approx(5.0, abs=1e-7)


def test_one_dimensional_problem():
    xbest, fbest = nelder_mead([0.0], lambda x: (x[0] - 1.5)**2 + 2.0, tol=1e-10, deltas=0.5)
    assert xbest[0] == pytest.approx(1.5, abs=1e-4)
    assert fbest == pytest.approx(2.0)


def test_flat_simplex_stops_immediately():
    objective = CountingObjective(lambda x: 7.0)
    xbest, fbest = nelder_mead([1.0, 1.0, 1.0], objective)
    assert fbest == 7.0
    assert objective.calls == 4


def test_nan_objective_treated_as_worst():
    func = lambda x: np.nan if x[0] < 0 else (x[0] - 2.0)**2
    xbest, _ = nelder_mead([-0.5], func, tol=1e-10)
    assert xbest[0] == pytest.approx(2.0, abs=1e-4)


def test_deterministic_trajectory():
    first, second = [], []
    nelder_mead([0.5, -0.5], paraboloid, callback=lambda x, f: first.append(x))
    nelder_mead([0.5, -0.5], paraboloid, callback=lambda x, f: second.append(x))
    assert len(first) == len(second)
    np.testing.assert_array_equal(np.array(first), np.array(second))


def test_objective_must_be_callable():
    with pytest.raises(TypeError):
        nelder_mead([0.0], 42)
