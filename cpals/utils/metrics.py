"""
evaluation metrics for cp factor recovery.

cp factors are unique only up to column permutation and scaling, so the
metrics match columns with the hungarian algorithm before comparing.
"""

import numpy as np
import numpy.linalg as la
from scipy.optimize import linear_sum_assignment


def cosine_similarity(a, b):
    norm_a = la.norm(a)
    norm_b = la.norm(b)
    if norm_a < 1e-12 or norm_b < 1e-12:
        return 0.0
    return np.dot(a, b) / (norm_a * norm_b)


def factor_match_score(factors_true, factors_est, return_permutation=False):
    """
    factor match score between true and estimated factors.

    fms = (1/R) * sum_r prod_n |cos(u_true_n^r, u_est_n^{pi(r)})|

    where pi is the column matching maximizing the score. the estimated
    factors may carry more columns than the true ones (a larger cp rank);
    the best R of them are matched.

    args:
        factors_true: list of N ground-truth factor matrices
        factors_est: list of N estimated factor matrices
        return_permutation: if True, also return the matched columns

    returns:
        fms in [0, 1], 1 means perfect recovery
        permutation: (optional) estimated column matched to every true column
    """
    N = len(factors_true)
    R = factors_true[0].shape[1]
    R_est = factors_est[0].shape[1]
    if R_est < R:
        raise ValueError(f"[error] rank mismatch: true has {R} columns, estimated has {R_est}")

    # cost[i, j] = product over modes of |cos(u_true_mode[:, i], u_est_mode[:, j])|
    cost_matrix = np.ones((R, R_est))
    for mode in range(N):
        for i in range(R):
            for j in range(R_est):
                cos_sim = cosine_similarity(factors_true[mode][:, i], factors_est[mode][:, j])
                cost_matrix[i, j] *= abs(cos_sim)

    # linear_sum_assignment minimizes, so negate
    row_ind, col_ind = linear_sum_assignment(-cost_matrix)
    fms = np.mean(cost_matrix[row_ind, col_ind])

    if return_permutation:
        return fms, col_ind
    return fms


def relative_error(tenpy, T, T_hat):
    """||T - T_hat|| / ||T||, or the absolute error when T vanishes."""
    norm_T = tenpy.vecnorm(T)
    error = tenpy.vecnorm(T - T_hat)
    return error / norm_T if norm_T > 0 else error
