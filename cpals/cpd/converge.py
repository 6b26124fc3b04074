"""
convergence tests for the als sweep.

a test is called with the full factor list ``[A_0, ..., A_{N-1}, weights]``
after every sweep and answers whether the current rank is converged. tests
may also accept intermediate values from the engine (``set_norm``,
``set_MtKRP``) and report the fit they track (``get_fit``).
"""

import numpy as np


class NormCheck():
    """
    converged when the factor matrices stop moving.

    the change is ``sum_i sqrt(||A_i - A_i_prev||_F^2 / size(A_i))`` over the
    factor matrices (weights excluded). the stored copy is reset whenever the
    rank changes, so one instance can follow a whole rank build.

    args:
        tol: threshold on the change between two sweeps
        verbose: print the change every sweep
    """

    def __init__(self, tol=1e-3, verbose=False):
        self.tol = tol
        self.verbose = verbose
        self.prev = []
        self.iter = 0
        self.diff = None

    def __call__(self, factors):
        ndim = len(factors) - 1
        rank = factors[0].shape[1]
        if len(self.prev) != ndim or self.prev[0].shape[1] != rank:
            self.prev = [np.zeros(factors[i].shape) for i in range(ndim)]
            self.iter = 0

        diff = 0.0
        for i in range(ndim):
            change = factors[i] - self.prev[i]
            size = max(change.size, 1)
            diff += np.sqrt(np.sum(change * change) / size)
            self.prev[i] = factors[i].copy()
        self.iter += 1
        self.diff = diff
        if self.verbose:
            print(f"[info] iter={self.iter} | factor change={diff:.3e}")
        return diff < self.tol


class FitCheck():
    """
    converged when the fit ``1 - ||T - T_hat|| / ||T||`` stops changing.

    the residual norm is evaluated without forming ``T_hat``: the engine
    hands over the mttkrp of the last updated mode, which gives ``<T, T_hat>``,
    and ``||T_hat||^2`` follows from the factor gram matrices. two
    consecutive changes below ``tol`` are needed; after convergence the
    running state is reset so the same test can drive the next rank.

    with a symmetry map whose last solved mode is followed by aliases, the
    mttkrp was formed with the aliased factors of the previous sweep, so the
    fit is approximate until the factors settle and exact at the fixed point.

    args:
        tol: threshold on the change of the fit
        verbose: print the fit every sweep
    """

    def __init__(self, tol=1e-4, verbose=False):
        self.tol = tol
        self.verbose = verbose
        self.normT = None
        self.MtKRP = None
        self.mode = None
        self.fit_old = 1.0
        self.final_fit = 0.0
        self.converged_num = 0
        self.iter = 0

    def set_norm(self, normT):
        self.normT = normT

    def set_MtKRP(self, MtKRP, mode=None):
        self.MtKRP = MtKRP
        self.mode = mode

    def get_fit(self):
        return self.final_fit

    def compute_fit(self, factors):
        if self.normT is None or self.MtKRP is None:
            raise ValueError("[error] FitCheck needs set_norm and set_MtKRP before use")
        ndim = len(factors) - 1
        weights = factors[ndim]
        n = ndim - 1 if self.mode is None else self.mode
        if self.normT == 0:
            return 1.0

        iprod = np.sum(self.MtKRP * factors[n] * weights)
        V = np.ones((weights.size, weights.size))
        for i in range(ndim):
            V *= factors[i].T @ factors[i]
        norm_factors = weights @ V @ weights
        norm_residual = np.sqrt(abs(self.normT ** 2 + norm_factors - 2 * iprod))
        return 1.0 - norm_residual / self.normT

    def __call__(self, factors):
        fit = self.compute_fit(factors)
        fit_change = abs(self.fit_old - fit)
        self.fit_old = fit
        self.iter += 1
        if self.verbose:
            print(f"[info] iter={self.iter} | fit={fit:.10f} | fit change={fit_change:.3e}")

        if fit_change < self.tol:
            self.converged_num += 1
            if self.converged_num == 2:
                self.final_fit = fit
                self.fit_old = 1.0
                self.converged_num = 0
                self.iter = 0
                return True
        else:
            self.converged_num = 0
        self.final_fit = fit
        return False
