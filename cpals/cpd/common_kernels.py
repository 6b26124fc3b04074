import numpy as np

from ..exceptions import ConfigurationError


def khatri_rao(tenpy, matrices):
    """
    column-wise kronecker product of a list of matrices sharing a column count.

    for X (n x k) and Y (m x k), row ``i*m + j`` of the result is the
    elementwise product of row i of X and row j of Y, so the first matrix
    varies slowest, matching the row-major unfolding of a tensor.

    args:
        tenpy: tensor backend
        matrices: list of (I_i, R) matrices

    returns:
        (prod I_i, R) matrix
    """
    if len(matrices) == 0:
        raise ConfigurationError("[error] khatri-rao product of an empty list")
    rank = matrices[0].shape[1]
    for mat in matrices:
        if mat.ndim != 2:
            raise ConfigurationError("[error] khatri-rao product needs matrices")
        if mat.shape[1] != rank:
            raise ConfigurationError(
                f"[error] khatri-rao column mismatch: {mat.shape[1]} vs {rank}"
            )
    result = matrices[0]
    for mat in matrices[1:]:
        result = tenpy.einsum("ir,jr->ijr", result, mat).reshape(-1, rank)
    return result


def flatten_Tensor(tenpy, T, mode):
    """mode-``mode`` unfolding, remaining modes in increasing row-major order."""
    return np.moveaxis(T, mode, 0).reshape(T.shape[mode], -1)


def compute_lin_sysN(tenpy, A, i, Regu=0.0):
    """hadamard product of the gram matrices of every factor but ``A[i]``."""
    rank = A[0].shape[1]
    S = tenpy.ones((rank, rank))
    for j, factor in enumerate(A):
        if j != i:
            S = S * tenpy.matmul(factor, factor, trans_a=True)
    if Regu:
        S = S + Regu * tenpy.eye(rank)
    return S


def normalise(tenpy, M):
    """
    scale the columns of ``M`` to unit 2-norm.

    zero columns are left as they are and report a norm of zero.

    returns:
        (normalized copy of M, column norms)
    """
    nrm = tenpy.norm(M, axis=0)
    safe = np.where(nrm > 0, nrm, 1.0)
    return M / safe, nrm


def cp_reconstruct(tenpy, factors, weights=None):
    """full tensor sum_r w_r a_0r o a_1r o ... from the factor matrices."""
    rank = factors[0].shape[1]
    if weights is None:
        weights = tenpy.ones(rank)
    out = factors[0] * weights
    for factor in factors[1:]:
        out = tenpy.einsum("...r,ir->...ir", out, factor)
    return out.sum(axis=-1)


def get_residual(tenpy, T, factors, weights=None):
    return tenpy.vecnorm(T - cp_reconstruct(tenpy, factors, weights))


def hadamard_reduce(tenpy, temp, dims, factors, keep):
    """
    contract every mode of an intermediate except ``keep``.

    ``temp`` has shape (prod(dims), R) with the modes in ``dims`` laid out
    row-major. modes are contracted from the last one backwards, each
    against its factor while the rank index is shared (hadamard). once the
    kept mode is passed it rides along next to the rank index. mode 0 is
    contracted last, because until then it is the leading row index.

    args:
        tenpy: tensor backend
        temp: (prod(dims), R) intermediate
        dims: extents of the modes still present in temp
        factors: factor matrix per entry of dims (entry ``keep`` is unused)
        keep: position in dims of the mode that survives

    returns:
        (dims[keep], R) matrix
    """
    rank = temp.shape[-1]
    rows = temp.shape[0]
    kept = None
    for k in range(len(dims) - 1, 0, -1):
        rows //= dims[k]
        if k == keep:
            kept = dims[k]
            temp = temp.reshape(rows, kept * rank)
        elif kept is None:
            temp = tenpy.einsum(
                "ijr,jr->ir", temp.reshape(rows, dims[k], rank), factors[k]
            )
        else:
            temp = tenpy.einsum(
                "ijkr,jr->ikr", temp.reshape(rows, dims[k], kept, rank), factors[k]
            ).reshape(rows, kept * rank)
    if keep == 0:
        return temp.reshape(dims[0], rank)
    return tenpy.einsum(
        "ikr,ir->kr", temp.reshape(dims[0], kept, rank), factors[0]
    )


def mode_product(tenpy, T, M, mode):
    """``T x_mode M``: contracts mode ``mode`` of T with the columns of M."""
    out = tenpy.tensordot(M, T, axes=(1, mode))
    return np.moveaxis(out, 0, mode)
