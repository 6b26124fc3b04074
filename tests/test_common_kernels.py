import numpy as np
import pytest
from numpy.testing import assert_allclose

from cpals import ConfigurationError
from cpals.cpd.common_kernels import (
    compute_lin_sysN,
    cp_reconstruct,
    flatten_Tensor,
    get_residual,
    hadamard_reduce,
    khatri_rao,
    mode_product,
    normalise,
)


def test_khatri_rao_row_order(tenpy, rng):
    X = rng.standard_normal((3, 2))
    Y = rng.standard_normal((4, 2))
    K = khatri_rao(tenpy, [X, Y])
    assert K.shape == (12, 2)
    for i in range(3):
        for j in range(4):
            assert_allclose(K[i * 4 + j], X[i] * Y[j])


def test_khatri_rao_matches_unfolding(tenpy, rng):
    A = [rng.standard_normal((n, 3)) for n in (2, 3, 4)]
    T = cp_reconstruct(tenpy, A)
    KRP = khatri_rao(tenpy, [A[1], A[2]])
    assert_allclose(flatten_Tensor(tenpy, T, 0), A[0] @ KRP.T, atol=1e-12)


def test_khatri_rao_validation(tenpy, rng):
    with pytest.raises(ConfigurationError):
        khatri_rao(tenpy, [])
    with pytest.raises(ConfigurationError):
        khatri_rao(tenpy, [rng.standard_normal((3, 2)), rng.standard_normal((3, 4))])


def test_compute_lin_sysN(tenpy, rng):
    A = [rng.standard_normal((n, 3)) for n in (2, 3, 4)]
    G = compute_lin_sysN(tenpy, A, 1, Regu=0.5)
    expected = (A[0].T @ A[0]) * (A[2].T @ A[2]) + 0.5 * np.eye(3)
    assert_allclose(G, expected)


def test_normalise_keeps_zero_columns(tenpy):
    M = np.array([[3.0, 0.0], [4.0, 0.0]])
    N, nrm = normalise(tenpy, M)
    assert_allclose(nrm, [5.0, 0.0])
    assert_allclose(N, [[0.6, 0.0], [0.8, 0.0]])


@pytest.mark.parametrize("keep", [0, 1, 2, 3])
def test_hadamard_reduce(tenpy, rng, keep):
    dims = (2, 3, 4, 5)
    R = 3
    temp = rng.standard_normal((int(np.prod(dims)), R))
    factors = [rng.standard_normal((d, R)) for d in dims]
    out = hadamard_reduce(tenpy, temp, dims, factors, keep)

    W = temp.reshape(dims + (R,))
    letters = 'abcd'
    operands = [W] + [factors[k] for k in range(4) if k != keep]
    subscripts = ','.join(
        ['abcdr'] + [letters[k] + 'r' for k in range(4) if k != keep]
    )
    expected = np.einsum(subscripts + '->' + letters[keep] + 'r', *operands)
    assert_allclose(out, expected, atol=1e-10)


def test_mode_product(tenpy, rng):
    T = rng.standard_normal((3, 4, 5))
    M = rng.standard_normal((2, 4))
    out = mode_product(tenpy, T, M, 1)
    assert out.shape == (3, 2, 5)
    assert_allclose(out, np.einsum('ijk,aj->iak', T, M))


def test_get_residual(tenpy, rng):
    A = [rng.standard_normal((n, 2)) for n in (2, 3, 4)]
    weights = np.array([1.5, -0.5])
    T = cp_reconstruct(tenpy, A, weights)
    assert get_residual(tenpy, T, A, weights) == pytest.approx(0.0, abs=1e-12)
    assert get_residual(tenpy, T, A, 2 * weights) == pytest.approx(np.linalg.norm(T))
