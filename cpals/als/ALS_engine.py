"""
cp-als engine.

one engine class drives every strategy; what differs between a single
materialized tensor and the two-tensor representation lives in the tensor
source (see ``cpals.cpd.sources``).
"""

import numpy as np

from ..exceptions import ConfigurationError, LinearAlgebraError
from ..cpd.common_kernels import (
    compute_lin_sysN,
    cp_reconstruct,
    get_residual,
    khatri_rao,
    normalise,
)
from ..cpd.compression import randomized_compression, tucker_compression
from ..cpd.rals_helper import RALSHelper
from ..cpd.sources import DenseSource, DFSource


class CP_ALS():
    """
    canonical polyadic decomposition by alternating least squares.

    the factor set ``A`` holds one (I_i, R) matrix per mode followed by the
    weight vector of length R. factor columns are kept at unit norm, the
    scale lives in the weights.

    symmetries map every mode to the earlier mode whose factor it shares,
    e.g. ``[0, 1, 1, 3]`` for a 4th order tensor whose modes 1 and 2 are
    equivalent. aliased modes are never solved for, they hold the very
    array of the mode they point to.

    synopsis:
        engine = CP_ALS.from_tensor(tenpy, T)
        engine.compute_rank(rank, converge_test)           # build rank 1 .. rank
        engine.compute_rank_random(rank, converge_test)    # random guess at rank
        engine.compute_error(converge_test, omega)         # grow until error <= omega
        engine.compute_geometric(rank, converge_test, 2)   # ranks 1, 2, 4, ...
        engine.compute_PALS(converge_list)                 # panel growth
        engine.compress_compute_tucker(tcut, test, rank)   # hosvd core first
        engine.compress_compute_rand(crank, test, rank=r)  # randomized core first
        engine.get_factor_matrices(); engine.reconstruct()

    args:
        tenpy: tensor backend
        source: DenseSource or DFSource
        symmetries: optional symmetry map, symmetries[i] <= i
        seed: seed of the engine's random generator (ignored if rng is given)
        rng: numpy random generator used for every random guess
        svd_threshold: singular values at or below it are dropped by the
            svd pseudo-inverse
        regularized: use regularized als with adaptive damping
        regularization: initial damping of regularized als
        regularization_decay: mixing factor of the damping update
        verbose: print progress through tenpy.printf
    """

    def __init__(self, tenpy, source, symmetries=None, seed=None, rng=None,
                 svd_threshold=1e-13, regularized=False, regularization=1.0,
                 regularization_decay=0.8, verbose=False):
        self.tenpy = tenpy
        self.source = source
        self.ndim = source.ndim
        self.symmetries = self._check_symmetries(symmetries)
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.svd_threshold = svd_threshold
        self.regularized = regularized
        self.regularization = regularization
        self.regularization_decay = regularization_decay
        self.verbose = verbose

        self.A = []
        self.num_ALS = 0
        self.history = []
        self.state = 'uninitialized'
        self._factors_set = False
        self._rals_helper = None
        self._rals_lambda = None

    @classmethod
    def from_tensor(cls, tenpy, T, symmetries=None, **kwargs):
        """engine over one materialized tensor."""
        return cls(tenpy, DenseSource(tenpy, T), symmetries, **kwargs)

    @classmethod
    def from_df(cls, tenpy, left, right, symmetries=None, **kwargs):
        """engine over ``tensordot(left, right, axes=(0, 0))`` without forming it."""
        return cls(tenpy, DFSource(tenpy, left, right), symmetries, **kwargs)

    # ------------------------------------------------------------------
    # validation

    def _check_symmetries(self, symmetries):
        if symmetries is None:
            return list(range(self.ndim))
        symmetries = [int(s) for s in symmetries]
        if len(symmetries) != self.ndim:
            raise ConfigurationError(
                f"[error] symmetry map has {len(symmetries)} entries for an order-{self.ndim} tensor"
            )
        shape = self.source.shape
        for i, s in enumerate(symmetries):
            if s < 0 or s > i:
                raise ConfigurationError(
                    "[error] symmetries should always refer to factors at earlier positions"
                )
            if shape[s] != shape[i]:
                raise ConfigurationError(
                    f"[error] mode {i} (extent {shape[i]}) cannot share the factor of "
                    f"mode {s} (extent {shape[s]})"
                )
        # resolve chains so every alias points at an independent mode
        roots = []
        for s in symmetries:
            roots.append(roots[s] if s < len(roots) else s)
        return roots

    @staticmethod
    def _check_rank(rank):
        if rank <= 0:
            raise ConfigurationError(f"[error] cp rank must be positive, got {rank}")
        return int(rank)

    @staticmethod
    def _check_max_als(max_als):
        if max_als <= 0:
            raise ConfigurationError(f"[error] max_als must be positive, got {max_als}")
        return int(max_als)

    def _require_factors(self):
        if not self.A:
            raise ConfigurationError("[error] no factor matrices have been computed")

    def _empty_result(self):
        self.A = []
        for i, extent in enumerate(self.source.shape):
            root = self.symmetries[i]
            self.A.append(self.A[root] if root != i else self.tenpy.zeros((extent, 0)))
        self.A.append(self.tenpy.zeros(0))
        self.state = 'converged'
        return 0.0

    @property
    def rank(self):
        return self.A[0].shape[1] if self.A else 0

    # ------------------------------------------------------------------
    # factor access

    def get_factor_matrices(self):
        """copies of ``[A_0, ..., A_{N-1}, weights]``."""
        self._require_factors()
        return [a.copy() for a in self.A]

    def set_factor_matrices(self, factors, weights=None):
        """
        warm start from given factor matrices.

        factors of aliased modes are taken from the mode they point to.
        the next ``compute_rank`` at the same rank optimizes them directly.
        """
        if len(factors) != self.ndim:
            raise ConfigurationError(
                f"[error] expected {self.ndim} factor matrices, got {len(factors)}"
            )
        rank = factors[0].shape[1]
        A = []
        for i, extent in enumerate(self.source.shape):
            factor = np.asarray(factors[i], dtype=float)
            if factor.shape != (extent, rank):
                raise ConfigurationError(
                    f"[error] factor {i} has shape {factor.shape}, expected {(extent, rank)}"
                )
            root = self.symmetries[i]
            A.append(A[root] if root != i else factor.copy())
        if weights is None:
            weights = self.tenpy.ones(rank)
        weights = np.asarray(weights, dtype=float)
        if weights.shape != (rank,):
            raise ConfigurationError(f"[error] weights must have length {rank}")
        A.append(weights.copy())
        self.A = A
        self._factors_set = True
        self.state = 'initial_guess'

    # ------------------------------------------------------------------
    # base operations

    def normalize(self, mode):
        """
        scale the columns of ``A[mode]`` to unit norm, moving the scale into
        the weights. a factor shared by k modes contributes its norm k times.
        """
        self._require_factors()
        root = self.symmetries[mode]
        sharing = [i for i in range(self.ndim) if self.symmetries[i] == root]
        factor, nrm = normalise(self.tenpy, self.A[root])
        for i in sharing:
            self.A[i] = factor
        self.A[self.ndim] = self.A[self.ndim] * nrm ** len(sharing)

    def reconstruct(self):
        """full tensor from the factor matrices and weights."""
        self._require_factors()
        return cp_reconstruct(self.tenpy, self.A[:self.ndim], self.A[self.ndim])

    def pseudoinverse_solve(self, mode, candidate, fast_pI=True, regularization=0.0):
        """
        solve ``X @ V = candidate`` where V is the hadamard product of the
        gram matrices of every factor but ``mode``.

        the cholesky solve is tried first when ``fast_pI`` is set; if V is
        not positive definite the svd pseudo-inverse takes over.

        returns:
            (X, strategy) with strategy 'cholesky' or 'svd'
        """
        V = compute_lin_sysN(self.tenpy, self.A[:self.ndim], mode, regularization)
        if fast_pI:
            try:
                return self.tenpy.cholesky_solve(V, candidate), 'cholesky'
            except LinearAlgebraError:
                if self.verbose:
                    self.tenpy.printf(
                        f"[warn] gram system of mode {mode} is singular, using svd pseudo-inverse"
                    )
        return candidate @ self.tenpy.pinv(V, self.svd_threshold), 'svd'

    def generate_Khatri_Rao(self, mode):
        """khatri-rao product of every factor but ``mode``, in mode order."""
        self._require_factors()
        return khatri_rao(self.tenpy, [self.A[i] for i in range(self.ndim) if i != mode])

    def mttkrp(self, mode, direct=True):
        """matricized tensor times khatri-rao product for ``mode``."""
        self._require_factors()
        return self.source.mttkrp(mode, self.A[:self.ndim], direct)

    def grow_rank(self, rank_new):
        """
        append random unit columns to every independent factor and zero
        weights, keeping every existing column.
        """
        self._require_factors()
        rank = self.rank
        if rank_new < rank:
            raise ConfigurationError(f"[error] cannot shrink the rank from {rank} to {rank_new}")
        if rank_new == rank:
            return
        shape = self.source.shape
        for i in range(self.ndim):
            root = self.symmetries[i]
            if root != i:
                self.A[i] = self.A[root]
                continue
            cols, _ = normalise(self.tenpy, self.tenpy.random((shape[i], rank_new - rank), self.rng))
            self.A[i] = np.hstack([self.A[i], cols])
        self.A[self.ndim] = np.concatenate([self.A[self.ndim], self.tenpy.zeros(rank_new - rank)])

    # ------------------------------------------------------------------
    # initial guesses

    def _random_factors(self, rank):
        self._factors_set = False
        shape = self.source.shape
        self.A = []
        for i in range(self.ndim):
            root = self.symmetries[i]
            if root != i:
                self.A.append(self.A[root])
                continue
            factor, _ = normalise(self.tenpy, self.tenpy.random((shape[i], rank), self.rng))
            self.A.append(factor)
        self.A.append(self.tenpy.ones(rank))
        self.state = 'initial_guess'

    def _svd_initial_guess(self, SVD_rank):
        # leading eigenvectors of T_(i) T_(i)^T; modes shorter than the rank
        # are filled up with random columns
        self._factors_set = False
        shape = self.source.shape
        self.A = []
        for i in range(self.ndim):
            root = self.symmetries[i]
            if root != i:
                self.A.append(self.A[root])
                continue
            extent = shape[i]
            _, evecs = self.tenpy.eigh(self.source.mode_gram(i))
            lead = evecs[:, ::-1][:, :min(extent, SVD_rank)]
            factor = self.tenpy.zeros((extent, SVD_rank))
            factor[:, :lead.shape[1]] = lead
            if extent < SVD_rank:
                factor[:, extent:] = self.tenpy.random((extent, SVD_rank - extent), self.rng)
            factor, _ = normalise(self.tenpy, factor)
            self.A.append(factor)
        self.A.append(self.tenpy.ones(SVD_rank))
        self.state = 'initial_guess'

    # ------------------------------------------------------------------
    # als

    def _reset_regularization(self):
        self._rals_helper = RALSHelper(self.A[:self.ndim])
        self._rals_lambda = [self.regularization] * self.ndim

    def step(self, direct=True, fast_pI=True, converge_test=None):
        """
        one als sweep over every mode.

        args:
            direct: contract the tensor mode by mode instead of forming the
                khatri-rao product
            fast_pI: try the cholesky solve before the svd pseudo-inverse
            converge_test: receives the mttkrp of every solved mode if it
                has ``set_MtKRP``

        returns:
            the factor set
        """
        self._require_factors()
        ndim = self.ndim
        if self.regularized and self._rals_helper is None:
            self._reset_regularization()
        self.source.begin_sweep()
        for n in range(ndim):
            root = self.symmetries[n]
            if root != n:
                self.A[n] = self.A[root]
                continue

            M = self.mttkrp(n, direct)
            if converge_test is not None and hasattr(converge_test, 'set_MtKRP'):
                converge_test.set_MtKRP(M, n)

            regu = 0.0
            if self.regularized:
                regu = self._rals_lambda[n]
                # damp towards the current model of this mode, at the scale of the unknown
                M = M + regu * (self.A[n] * self.A[ndim])
            candidate, _ = self.pseudoinverse_solve(n, M, fast_pI, regu)
            self.A[n], self.A[ndim] = normalise(self.tenpy, candidate)

            if self.regularized:
                s = self._rals_helper(n, self.A[n])
                alpha = self.regularization_decay
                self._rals_lambda[n] = alpha * regu * s * s + (1 - alpha) * regu
        self.state = 'sweeping'
        return self.A

    def _compute_epsilon(self, converge_test):
        if hasattr(converge_test, 'get_fit'):
            return 1.0 - converge_test.get_fit()
        return get_residual(
            self.tenpy, self.source.materialize(), self.A[:self.ndim], self.A[self.ndim]
        )

    def _als(self, rank, converge_test, direct, max_als, calculate_epsilon, fast_pI):
        max_als = self._check_max_als(max_als)
        if hasattr(converge_test, 'set_norm'):
            converge_test.set_norm(self.source.norm())
        if self.regularized:
            self._reset_regularization()

        count = 0
        is_converged = False
        while count < max_als and not is_converged:
            count += 1
            self.num_ALS += 1
            self.step(direct, fast_pI, converge_test)
            is_converged = bool(converge_test(self.A))
        self.state = 'converged' if is_converged else 'max_iter'

        epsilon = self._compute_epsilon(converge_test) if calculate_epsilon else -1.0
        self.history.append({
            'rank': rank,
            'sweeps': count,
            'converged': is_converged,
            'epsilon': epsilon,
        })
        if self.verbose:
            self.tenpy.printf(
                f"[info] rank={rank} | sweeps={count} | state={self.state} | epsilon={epsilon:.3e}"
            )
        return epsilon

    def _build(self, rank, converge_test, direct, max_als, calculate_epsilon, step,
               SVD_initial_guess, SVD_rank, fast_pI):
        if step <= 0:
            raise ConfigurationError(f"[error] rank step must be positive, got {step}")
        epsilon = -1.0
        optimized = False
        if not self.A and SVD_initial_guess:
            if SVD_rank <= 0:
                raise ConfigurationError(
                    "[error] must specify the rank of the initial approximation using svd"
                )
            self._svd_initial_guess(int(SVD_rank))
            epsilon = self._als(int(SVD_rank), converge_test, direct, max_als,
                                calculate_epsilon, fast_pI)
            optimized = True

        current = self.rank
        while current < rank:
            rank_new = min(current + step, rank)
            if current == 0:
                self._random_factors(rank_new)
            else:
                self.grow_rank(rank_new)
            epsilon = self._als(rank_new, converge_test, direct, max_als,
                                calculate_epsilon, fast_pI)
            current = rank_new
            optimized = True

        if self._factors_set and not optimized:
            epsilon = self._als(current, converge_test, direct, max_als,
                                calculate_epsilon, fast_pI)
        self._factors_set = False
        return epsilon

    # ------------------------------------------------------------------
    # drivers

    def compute_rank(self, rank, converge_test, step=1, SVD_initial_guess=False,
                     SVD_rank=0, max_als=1e4, fast_pI=True, calculate_epsilon=False,
                     direct=True):
        """
        decomposition at ``rank``, built up from the current rank (or from
        scratch) by ``step`` columns at a time, each intermediate rank
        optimized to convergence.

        args:
            rank: target cp rank
            converge_test: convergence test called after every sweep
            step: rank increment of the build
            SVD_initial_guess: start from the leading eigenvectors of the
                mode gram matrices (only when no factors exist)
            SVD_rank: rank of that initial guess
            max_als: sweep cap per rank
            fast_pI: try the cholesky solve first
            calculate_epsilon: report the error of the final model
            direct: mttkrp by direct contraction instead of khatri-rao

        returns:
            error of the final model, -1.0 if not requested
        """
        rank = self._check_rank(rank)
        self._check_max_als(max_als)
        if self.source.size == 0:
            return self._empty_result()
        if self.A and self.rank > rank:
            raise ConfigurationError(
                f"[error] factors already have rank {self.rank}, cannot build down to {rank}"
            )
        return self._build(rank, converge_test, direct, max_als, calculate_epsilon,
                           int(step), SVD_initial_guess, SVD_rank, fast_pI)

    def compute_rank_random(self, rank, converge_test, max_als=1e4, fast_pI=True,
                            calculate_epsilon=False, direct=True):
        """decomposition at ``rank`` from a fresh uniform random guess."""
        rank = self._check_rank(rank)
        self._check_max_als(max_als)
        if self.source.size == 0:
            return self._empty_result()
        self._random_factors(rank)
        return self._als(rank, converge_test, direct, max_als, calculate_epsilon, fast_pI)

    def compute_error(self, converge_test, omega=1e-2, max_als=1e4, fast_pI=True,
                      direct=True, step=1, max_rank=1e5, SVD_initial_guess=False,
                      SVD_rank=0):
        """
        grow the rank by ``step`` until the error drops to ``omega`` or the
        rank reaches ``max_rank``.

        returns:
            error of the final model
        """
        self._check_max_als(max_als)
        if step <= 0:
            raise ConfigurationError(f"[error] rank step must be positive, got {step}")
        if self.source.size == 0:
            return self._empty_result()
        epsilon = omega + 1.0
        rank = self.rank
        while epsilon > omega and rank < max_rank:
            rank = int(min(rank + step, max_rank))
            epsilon = self._build(rank, converge_test, direct, max_als, True, int(step),
                                  SVD_initial_guess, SVD_rank, fast_pI)
            rank = self.rank
        return epsilon

    def compute_geometric(self, desired_rank, converge_test, geometric_step=2,
                          SVD_initial_guess=False, SVD_rank=0, max_als=1e4,
                          fast_pI=True, calculate_epsilon=False, direct=True):
        """
        build through ranks 1, g, g^2, ... (capped at ``desired_rank``),
        optimizing each before jumping to the next.
        """
        desired_rank = self._check_rank(desired_rank)
        self._check_max_als(max_als)
        if geometric_step <= 1:
            raise ConfigurationError("[error] geometric_step must be greater than 1")
        if self.source.size == 0:
            return self._empty_result()

        epsilon = -1.0
        rank = max(self.rank, 1)
        while True:
            target = min(rank, desired_rank)
            if target > self.rank or not self.A:
                epsilon = self._build(target, converge_test, direct, max_als,
                                      calculate_epsilon, max(target - self.rank, 1),
                                      SVD_initial_guess, SVD_rank, fast_pI)
            if target >= desired_rank:
                break
            rank = max(int(np.ceil(rank * geometric_step)), rank + 1)
        return epsilon

    def compute_PALS(self, converge_list, RankStep=0.5, panels=4, max_als=20,
                     fast_pI=True, calculate_epsilon=False, direct=True):
        """
        panel growth from scratch.

        panel 0 optimizes an svd initial guess at rank = max mode extent,
        every further panel adds ``int(RankStep * max extent)`` random columns
        and optimizes with its own convergence test.

        args:
            converge_list: one convergence test per panel
            RankStep: rank increment per panel, as a fraction of the max extent
            panels: number of panels
            max_als: sweep cap per panel

        returns:
            error of the final model, -1.0 if not requested
        """
        if RankStep <= 0:
            raise ConfigurationError("[error] panel step size must be positive")
        if panels <= 0:
            raise ConfigurationError("[error] number of panels must be positive")
        if len(converge_list) < panels:
            raise ConfigurationError(
                f"[error] too few convergence tests: {len(converge_list)} for {panels} panels"
            )
        self._check_max_als(max_als)
        if self.source.size == 0:
            return self._empty_result()

        max_dim = max(self.source.shape)
        self.A = []
        epsilon = -1.0
        for count in range(panels):
            converge_test = converge_list[count]
            if count == 0:
                epsilon = self._build(max_dim, converge_test, direct, max_als,
                                      calculate_epsilon, 1, True, max_dim, fast_pI)
            else:
                rank_new = self.rank + int(RankStep * max_dim)
                self.grow_rank(rank_new)
                epsilon = self._als(rank_new, converge_test, direct, max_als,
                                    calculate_epsilon, fast_pI)
            if self.verbose:
                self.tenpy.printf(f"[info] panel={count} | rank={self.rank}")
        return epsilon

    # ------------------------------------------------------------------
    # compression front-ends

    def _compute_compressed(self, core, transforms, rank, converge_test, direct,
                            calculate_epsilon, max_als, fast_pI):
        original = self.source
        self.source = DenseSource(self.tenpy, core)
        try:
            epsilon = self.compute_rank_random(rank, converge_test, max_als, fast_pI,
                                               calculate_epsilon, direct)
        finally:
            self.source = original
        for i in range(self.ndim):
            root = self.symmetries[i]
            self.A[i] = self.A[root] if root != i else transforms[i] @ self.A[i]
        return epsilon

    def _dense_tensor(self):
        if not isinstance(self.source, DenseSource):
            raise ConfigurationError("[error] compression needs a materialized reference tensor")
        return self.source.tensor

    def compress_compute_tucker(self, tcutSVD, converge_test, rank, direct=True,
                                calculate_epsilon=False, max_als=1e4, fast_pI=True):
        """
        truncated hosvd of the reference tensor, cp-als of the core at
        ``rank``, factors mapped back to the original index space.

        returns:
            error of the core model, -1.0 if not requested
        """
        rank = self._check_rank(rank)
        self._check_max_als(max_als)
        T = self._dense_tensor()
        if T.size == 0:
            return self._empty_result()
        core, transforms = tucker_compression(self.tenpy, T, tcutSVD, self.symmetries)
        if self.verbose:
            self.tenpy.printf(f"[info] tucker core shape: {core.shape}")
        return self._compute_compressed(core, transforms, rank, converge_test, direct,
                                        calculate_epsilon, max_als, fast_pI)

    def compress_compute_rand(self, desired_compression_rank, converge_test, oversampl=10,
                              powerit=2, rank=0, direct=True, calculate_epsilon=False,
                              max_als=1e5, fast_pI=True):
        """
        randomized compression of every mode to ``desired_compression_rank``,
        cp-als of the core at ``rank``, factors mapped back.

        returns:
            error of the core model, -1.0 if not requested
        """
        rank = self._check_rank(rank)
        self._check_max_als(max_als)
        T = self._dense_tensor()
        if T.size == 0:
            return self._empty_result()
        core, transforms = randomized_compression(
            self.tenpy, T, desired_compression_rank, self.rng,
            oversampl=oversampl, powerit=powerit, symmetries=self.symmetries,
        )
        if self.verbose:
            self.tenpy.printf(f"[info] randomized core shape: {core.shape}")
        return self._compute_compressed(core, transforms, rank, converge_test, direct,
                                        calculate_epsilon, max_als, fast_pI)
