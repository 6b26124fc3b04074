"""
synthetic test tensors.

every generator draws from an explicit numpy random generator so runs are
reproducible from a seed.
"""

import numpy as np

from ..cpd.common_kernels import cp_reconstruct, normalise


def low_rank_tensor(tenpy, shape, R, rng, weights=None, symmetries=None):
    """
    exact rank-R tensor from random unit-norm factors.

    args:
        tenpy: tensor backend
        shape: mode extents
        R: cp rank
        rng: numpy random generator
        weights: optional weight vector, defaults to ones
        symmetries: optional symmetry map; aliased modes reuse the factor of
            the mode they point to

    returns:
        (tensor, factors, weights)
    """
    if symmetries is None:
        symmetries = list(range(len(shape)))
    factors = []
    for i, extent in enumerate(shape):
        if symmetries[i] != i:
            factors.append(factors[symmetries[i]])
            continue
        factor, _ = normalise(tenpy, tenpy.random((extent, R), rng))
        factors.append(factor)
    if weights is None:
        weights = tenpy.ones(R)
    return cp_reconstruct(tenpy, factors, weights), factors, weights


def orthogonal_tensor(tenpy, shape, R, rng, weights=None):
    """
    rank-R tensor whose factors have orthonormal columns (R <= min(shape)).

    returns:
        (tensor, factors, weights)
    """
    if R > min(shape):
        raise ValueError(f"[error] orthogonal factors need R <= {min(shape)}, got {R}")
    factors = [tenpy.qr(tenpy.random_normal((extent, R), rng)) for extent in shape]
    if weights is None:
        weights = np.arange(R, 0, -1, dtype=float)
    return cp_reconstruct(tenpy, factors, weights), factors, weights


def rand(tenpy, order, s, R, rng):
    """order-``order`` tensor of extent s built from uniform rank-R factors."""
    factors = [tenpy.random((s, R), rng) for _ in range(order)]
    return cp_reconstruct(tenpy, factors)


def randn(tenpy, order, s, rng):
    """dense tensor with independent standard normal entries."""
    return tenpy.random_normal((s,) * order, rng)


def df_pair(tenpy, left_shape, right_shape, X, R, rng):
    """
    two tensors sharing a connecting mode of extent X whose contraction is
    an exact rank-R tensor.

    left is built as ``left[x, ...] = sum_r C[x, r] * a_r o ...`` and right as
    ``right[x, ...] = sum_r D[x, r] * b_r o ...`` with C^T D = I restricted
    to the first R columns, so ``tensordot(left, right, (0, 0))`` has the
    concatenated factors and unit weights.

    returns:
        (left, right, factors)
    """
    if R > X:
        raise ValueError(f"[error] connecting extent {X} too small for rank {R}")
    Q = tenpy.qr(tenpy.random_normal((X, R), rng))
    left_factors = [normalise(tenpy, tenpy.random((e, R), rng))[0] for e in left_shape]
    right_factors = [normalise(tenpy, tenpy.random((e, R), rng))[0] for e in right_shape]
    left = cp_reconstruct(tenpy, [Q] + left_factors)
    right = cp_reconstruct(tenpy, [Q] + right_factors)
    return left, right, left_factors + right_factors
