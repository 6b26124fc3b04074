"""
tensor compression ahead of cp-als.

both routines return a smaller core tensor and, per mode, a transform with
orthonormal columns such that ``T ~= core x_0 U_0 x_1 U_1 ...``. a cp model
of the core maps back to the full tensor through ``A_i <- U_i @ A_i``.
modes aliased through a symmetry map reuse the transform of the mode they
point to.
"""

import numpy as np

from ..exceptions import ConfigurationError
from .common_kernels import flatten_Tensor, mode_product


def _roots(ndim, symmetries):
    if symmetries is None:
        return list(range(ndim))
    return list(symmetries)


def tucker_compression(tenpy, T, tcutSVD, symmetries=None):
    """
    truncated hosvd.

    for each mode the eigenvectors of the mode gram matrix whose eigenvalue
    is at least ``tcutSVD^2 * ||T||^2 / N`` are kept.

    args:
        tenpy: tensor backend
        T: order-N tensor, not modified
        tcutSVD: relative truncation threshold
        symmetries: optional symmetry map

    returns:
        (core, transforms)
    """
    if tcutSVD < 0:
        raise ConfigurationError("[error] tcutSVD must be non-negative")
    ndim = T.ndim
    roots = _roots(ndim, symmetries)
    threshold = tcutSVD ** 2 * tenpy.vecnorm(T) ** 2 / ndim
    transforms = []
    core = T
    for i in range(ndim):
        if roots[i] != i:
            U = transforms[roots[i]]
        else:
            M = flatten_Tensor(tenpy, core, i)
            evals, evecs = tenpy.eigh(tenpy.matmul(M, M, trans_b=True))
            kept = evals >= threshold
            # eigh is ascending, flip so the dominant directions come first
            U = evecs[:, kept][:, ::-1]
            if U.shape[1] == 0:
                U = evecs[:, -1:]
        transforms.append(U)
        core = mode_product(tenpy, core, U.T, i)
    return core, transforms


def randomized_compression(tenpy, T, desired_compression_rank, rng,
                           oversampl=10, powerit=2, symmetries=None):
    """
    randomized range finder per mode.

    the mode unfolding is multiplied by a gaussian test matrix with
    ``desired_compression_rank + oversampl`` columns, refined by ``powerit``
    power iterations (lu-stabilized) and orthogonalized by qr. the range is
    then rotated onto its dominant singular directions and cut to
    ``desired_compression_rank`` columns.

    args:
        tenpy: tensor backend
        T: order-N tensor, not modified
        desired_compression_rank: extent of every core mode (capped by the mode extent)
        rng: numpy random generator
        oversampl: oversampling columns
        powerit: number of power iterations
        symmetries: optional symmetry map

    returns:
        (core, transforms)
    """
    if desired_compression_rank <= 0:
        raise ConfigurationError("[error] desired_compression_rank must be positive")
    if oversampl < 0 or powerit < 0:
        raise ConfigurationError("[error] oversampl and powerit must be non-negative")
    ndim = T.ndim
    roots = _roots(ndim, symmetries)
    transforms = []
    core = T
    for i in range(ndim):
        if roots[i] != i:
            U = transforms[roots[i]]
        else:
            An = flatten_Tensor(tenpy, T, i)
            extent = An.shape[0]
            n_samples = min(extent, desired_compression_rank + oversampl)
            G = tenpy.random_normal((An.shape[1], n_samples), rng)
            Y = An @ G
            for _ in range(powerit):
                Y = tenpy.lu(Y)
                Z = tenpy.lu(tenpy.matmul(An, Y, trans_a=True))
                Y = An @ Z
            Q = tenpy.qr(Y)
            Ub, _, _ = tenpy.svd(tenpy.matmul(Q, An, trans_a=True))
            keep = min(desired_compression_rank, Q.shape[1])
            U = Q @ Ub[:, :keep]
        transforms.append(U)
        core = mode_product(tenpy, core, U.T, i)
    return core, transforms
