import numpy as np
import pytest
from numpy.testing import assert_allclose

from cpals import ConfigurationError, LinearAlgebraError, get_backend


def test_get_backend(tenpy):
    assert tenpy.name() == 'numpy'
    with pytest.raises(ValueError):
        get_backend('ctf')


def test_matmul_transpose_flags(tenpy, rng):
    A = rng.standard_normal((4, 3))
    B = rng.standard_normal((4, 5))
    assert_allclose(tenpy.matmul(A, B, trans_a=True), A.T @ B)
    assert_allclose(tenpy.matmul(B, B, trans_b=True), B @ B.T)


def test_matrix_routines_reject_tensors(tenpy, rng):
    T = rng.standard_normal((2, 3, 4))
    for routine in (tenpy.qr, tenpy.lu, tenpy.svd, tenpy.eigh):
        with pytest.raises(ConfigurationError):
            routine(T)
    with pytest.raises(ConfigurationError):
        tenpy.matmul(T, T)


def test_cholesky_solve(tenpy, rng):
    M = rng.standard_normal((5, 5))
    G = M @ M.T + 5 * np.eye(5)
    B = rng.standard_normal((7, 5))
    X = tenpy.cholesky_solve(G, B)
    assert_allclose(X @ G, B, atol=1e-10)


def test_cholesky_solve_not_positive_definite(tenpy):
    G = np.array([[1.0, 0.0], [0.0, -1.0]])
    with pytest.raises(LinearAlgebraError):
        tenpy.cholesky_solve(G, np.ones((3, 2)))


def test_pinv_drops_small_singular_values(tenpy):
    A = np.diag([2.0, 1e-15, 0.0])
    P = tenpy.pinv(A)
    assert_allclose(P, np.diag([0.5, 0.0, 0.0]))
    # a lower threshold keeps the tiny singular value
    assert tenpy.pinv(A, threshold=1e-16)[1, 1] == pytest.approx(1e15)


def test_pinv_matches_numpy(tenpy, rng):
    A = rng.standard_normal((6, 4))
    assert_allclose(tenpy.pinv(A), np.linalg.pinv(A), atol=1e-12)


def test_qr_and_lu(tenpy, rng):
    A = rng.standard_normal((8, 3))
    Q = tenpy.qr(A)
    assert Q.shape == (8, 3)
    assert_allclose(Q.T @ Q, np.eye(3), atol=1e-12)
    PL = tenpy.lu(A)
    assert PL.shape == (8, 3)


def test_eigh_ascending(tenpy, rng):
    M = rng.standard_normal((4, 4))
    evals, evecs = tenpy.eigh(M + M.T)
    assert np.all(np.diff(evals) >= 0)
    assert_allclose(evecs.T @ evecs, np.eye(4), atol=1e-12)
