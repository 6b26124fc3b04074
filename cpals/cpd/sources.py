"""
tensor sources for the cp-als engine.

a source hides how the reference tensor is stored. the engine only asks for
the mode extents, the norm, mode gram matrices (svd initial guess) and the
mttkrp of one mode given the factor matrices. caller-owned arrays are only
read: every reinterpretation goes through ``reshape``, which never touches
the caller's array.
"""

import numpy as np

from ..exceptions import ConfigurationError
from .common_kernels import flatten_Tensor, hadamard_reduce, khatri_rao


class DenseSource():
    """
    a single materialized reference tensor.

    args:
        tenpy: tensor backend
        T: order-N array (N >= 2), referenced not copied
    """

    def __init__(self, tenpy, T):
        if T.ndim < 2:
            raise ConfigurationError(
                f"[error] cp decomposition needs an order >= 2 tensor, got order {T.ndim}"
            )
        self.tenpy = tenpy
        self.tensor = T

    @property
    def shape(self):
        return tuple(self.tensor.shape)

    @property
    def ndim(self):
        return self.tensor.ndim

    @property
    def size(self):
        return self.tensor.size

    def norm(self):
        return self.tenpy.vecnorm(self.tensor)

    def materialize(self):
        return self.tensor

    def mode_gram(self, mode):
        M = flatten_Tensor(self.tenpy, self.tensor, mode)
        return self.tenpy.matmul(M, M, trans_b=True)

    def begin_sweep(self):
        pass

    def mttkrp(self, mode, factors, direct=True):
        """
        matricized tensor times khatri-rao product for ``mode``.

        args:
            mode: mode being updated
            factors: current factor matrices A_0..A_{N-1}
            direct: contract mode by mode instead of forming the khatri-rao product

        returns:
            (I_mode, R) matrix
        """
        if direct:
            return self._direct(mode, factors)
        return self._with_krp(mode, factors)

    def _with_krp(self, mode, factors):
        others = [factors[i] for i in range(self.ndim) if i != mode]
        KRP = khatri_rao(self.tenpy, others)
        return flatten_Tensor(self.tenpy, self.tensor, mode) @ KRP

    def _direct(self, n, factors):
        # T(I0..I3) A3(I3,R) -> T'(I0,I1,I2,R), then hadamard-contract I2, I1, I0
        # skipping n. for the last mode, contract I0 first through the transpose.
        T = self.tensor
        shape = T.shape
        ndim = T.ndim
        if n == ndim - 1:
            temp = self.tenpy.matmul(T.reshape(shape[0], -1), factors[0], trans_a=True)
            return hadamard_reduce(self.tenpy, temp, shape[1:], factors[1:], ndim - 2)
        temp = T.reshape(-1, shape[-1]) @ factors[-1]
        return hadamard_reduce(self.tenpy, temp, shape[:-1], factors[:-1], n)


class DFSource():
    """
    a tensor given as the contraction of two tensors over their first mode.

    ``T = tensordot(left, right, axes=(0, 0))``; the connecting dimension gets
    no factor matrix. modes 0..p-1 of T are the trailing modes of ``left``,
    modes p.. the trailing modes of ``right``. T is never formed by the
    mttkrp, norm or gram routines.

    the product of the side holding the updated mode with the reduced other
    side does not depend on the updated side's factors, so it is cached for
    every mode of that side and dropped when the sweep crosses sides or a
    new sweep begins.

    args:
        tenpy: tensor backend
        left: (X, L1, ..., Lp) array
        right: (X, R1, ..., Rq) array
    """

    def __init__(self, tenpy, left, right):
        if left.ndim < 2 or right.ndim < 2:
            raise ConfigurationError(
                "[error] both tensors need at least one mode besides the connecting one"
            )
        if left.shape[0] != right.shape[0]:
            raise ConfigurationError(
                f"[error] connecting dimension mismatch: left has {left.shape[0]}, "
                f"right has {right.shape[0]}"
            )
        self.tenpy = tenpy
        self.left = left
        self.right = right
        self.ndimL = left.ndim
        self.ndimR = right.ndim
        self._cache_side = None
        self._cache = None

    @property
    def shape(self):
        return tuple(self.left.shape[1:]) + tuple(self.right.shape[1:])

    @property
    def ndim(self):
        return self.ndimL + self.ndimR - 2

    @property
    def size(self):
        return int(np.prod(self.shape))

    def is_left(self, mode):
        return mode < self.ndimL - 1

    def _side(self, left_side):
        return self.left if left_side else self.right

    def _side_factors(self, factors, left_side):
        p = self.ndimL - 1
        return list(factors[:p]) if left_side else list(factors[p:])

    def _connect_gram(self, T):
        M = T.reshape(T.shape[0], -1)
        return self.tenpy.matmul(M, M, trans_b=True)

    def norm(self):
        GL = self._connect_gram(self.left)
        GR = self._connect_gram(self.right)
        return np.sqrt(abs(np.sum(GL * GR)))

    def materialize(self):
        return self.tenpy.tensordot(self.left, self.right, axes=(0, 0))

    def mode_gram(self, mode):
        left_side = self.is_left(mode)
        side = self._side(left_side)
        other = self._side(not left_side)
        local = mode if left_side else mode - self.ndimL + 1
        # weight the side by the other side's connecting gram, then contract
        # everything but the mode of interest
        W = (self._connect_gram(other) @ side.reshape(side.shape[0], -1)).reshape(side.shape)
        axes = [0] + [i + 1 for i in range(side.ndim - 1) if i != local]
        return self.tenpy.tensordot(side, W, axes=(axes, axes))

    def begin_sweep(self):
        self._cache_side = None
        self._cache = None

    def _reduce_side(self, side, factors):
        # contract the last mode with a gemm, hadamard-reduce the rest down to (X, R)
        temp = side.reshape(-1, side.shape[-1]) @ factors[-1]
        dims = side.shape[:-1]
        return hadamard_reduce(self.tenpy, temp, dims, [None] + factors[:-1], 0)

    def mttkrp(self, mode, factors, direct=True):
        """
        mttkrp of the implicit tensor for ``mode``.

        ``direct`` is accepted for interface parity; the pair is always
        contracted directly.
        """
        left_side = self.is_left(mode)
        if self._cache_side != left_side:
            other = self._side(not left_side)
            K = self._reduce_side(other, self._side_factors(factors, not left_side))
            side = self._side(left_side)
            self._cache = self.tenpy.matmul(side.reshape(side.shape[0], -1), K, trans_a=True)
            self._cache_side = left_side

        side = self._side(left_side)
        local = mode if left_side else mode - self.ndimL + 1
        return hadamard_reduce(
            self.tenpy, self._cache, side.shape[1:], self._side_factors(factors, left_side), local
        )
