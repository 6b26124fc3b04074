"""
numpy backend.

thin layer over numpy and scipy.linalg used by every kernel and by the
engine. matrix-only routines reject higher-order input, and solver failures
are reported as LinearAlgebraError instead of leaking into the results.
"""

import numpy as np
import scipy.linalg as sla

from ..exceptions import ConfigurationError, wrap_linalg


def name():
    return 'numpy'


def printf(*string):
    print(*string)


def einsum(string, *args):
    return np.einsum(string, *args, optimize=True)


def tensordot(A, B, axes):
    return np.tensordot(A, B, axes=axes)


def zeros(shape):
    return np.zeros(shape)


def ones(shape):
    return np.ones(shape)


def eye(n):
    return np.eye(n)


def random(shape, rng):
    """uniform samples in [-1, 1) drawn from ``rng``."""
    return rng.uniform(-1.0, 1.0, size=shape)


def random_normal(shape, rng):
    return rng.standard_normal(size=shape)


def vecnorm(T):
    return np.sqrt(np.sum(np.square(T)))


def norm(v, axis=None):
    return np.linalg.norm(v, axis=axis)


def dot(A, B):
    return A @ B


def _check_matrix(A, routine):
    if np.ndim(A) != 2:
        raise ConfigurationError(
            f"[error] {routine} needs a matrix, got an order-{np.ndim(A)} tensor"
        )


def matmul(A, B, trans_a=False, trans_b=False):
    """general matrix multiply ``op(A) @ op(B)``."""
    _check_matrix(A, 'matmul')
    _check_matrix(B, 'matmul')
    if trans_a:
        A = A.T
    if trans_b:
        B = B.T
    return A @ B


@wrap_linalg('svd')
def svd(A, full_matrices=False):
    _check_matrix(A, 'svd')
    return sla.svd(A, full_matrices=full_matrices, lapack_driver='gesvd')


@wrap_linalg('eigh')
def eigh(A):
    """symmetric eigendecomposition, eigenvalues ascending."""
    _check_matrix(A, 'eigh')
    return sla.eigh(A)


@wrap_linalg('qr')
def qr(A):
    """economic qr, returns only q."""
    _check_matrix(A, 'qr')
    Q, _ = sla.qr(A, mode='economic')
    return Q


@wrap_linalg('lu')
def lu(A):
    """returns the row-permuted lower factor ``P @ L`` of a partially pivoted lu."""
    _check_matrix(A, 'lu')
    PL, _ = sla.lu(A, permute_l=True)
    return PL


@wrap_linalg('cholesky')
def cholesky_solve(G, B):
    """
    solve ``X @ G = B`` for symmetric positive definite ``G``.

    raises LinearAlgebraError if ``G`` is not numerically positive definite.
    """
    _check_matrix(G, 'cholesky')
    c_and_lower = sla.cho_factor(G, lower=True, check_finite=False)
    return sla.cho_solve(c_and_lower, B.T, check_finite=False).T


def pinv(A, threshold=1e-13):
    """
    svd based pseudo-inverse; singular values at or below ``threshold`` are
    treated as zero.
    """
    U, s, VT = svd(A)
    s_inv = np.zeros_like(s)
    keep = s > threshold
    s_inv[keep] = 1.0 / s[keep]
    return (VT.T * s_inv) @ U.T
