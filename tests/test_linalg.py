import numpy as np
import pytest

from smeltpy.errors import DimensionMismatch, NumericalError
from smeltpy.linalg import conjugate_transpose, is_hermitian, lower_cholesky


def _random_hermitian_pd(n, rng):
    a = rng.standard_normal((n, n)) + 1j * rng.standard_normal((n, n))
    return a @ a.conj().T + n * np.eye(n)


def test_lower_cholesky_reconstructs_complex_hermitian():
    rng = np.random.default_rng(3)
    for n in (1, 2, 5, 12):
        m = _random_hermitian_pd(n, rng)
        low = lower_cholesky(m)
        assert np.allclose(np.triu(low, 1), 0.0)
        assert np.linalg.norm(low @ conjugate_transpose(low) - m) < 1e-10 * np.linalg.norm(m)


def test_lower_cholesky_real_symmetric():
    m = np.array([[4.0, 2.0], [2.0, 3.0]])
    low = lower_cholesky(m)
    np.testing.assert_allclose(low, [[2.0, 0.0], [1.0, np.sqrt(2.0)]])


@pytest.mark.parametrize('matrix', [
    np.array([[1.0, 1.0], [1.0, 1.0]]),
    np.zeros((3, 3)),
    np.diag([2.0, 0.0, 1.0]),
    np.outer([1.0, 1j, 2.0], np.conj([1.0, 1j, 2.0])),
    np.array([[1.0, 1.0], [1.0, 1.0]]) - 1e-14 * np.eye(2),
])
def test_lower_cholesky_accepts_singular_semidefinite(matrix):
    low = lower_cholesky(matrix)
    assert low.shape == matrix.shape
    assert np.allclose(np.triu(low, 1), 0.0)
    assert np.all(np.real(np.diag(low)) >= 0.0)
    np.testing.assert_allclose(low @ conjugate_transpose(low), matrix, atol=1e-10)


def test_lower_cholesky_rejects_indefinite():
    with pytest.raises(NumericalError):
        lower_cholesky(np.array([[1.0, 2.0], [2.0, 1.0]]))


def test_lower_cholesky_rejects_non_hermitian_and_non_square():
    with pytest.raises(NumericalError):
        lower_cholesky(np.array([[2.0, 1.0], [0.0, 2.0]]))
    with pytest.raises(DimensionMismatch):
        lower_cholesky(np.ones((2, 3)))
    with pytest.raises(NumericalError):
        lower_cholesky(np.array([[np.nan, 0.0], [0.0, 1.0]]))


def test_is_hermitian():
    assert is_hermitian(np.array([[1.0, 1j], [-1j, 2.0]]))
    assert not is_hermitian(np.array([[1.0, 1j], [1j, 2.0]]))
    assert not is_hermitian(np.ones(3))
