"""
cp decomposition module.
provides tensor sources, convergence tests, kernels and compression for cp-als.
"""

from .sources import DenseSource, DFSource
from .converge import NormCheck, FitCheck
from .rals_helper import RALSHelper
from .compression import tucker_compression, randomized_compression
from .common_kernels import (
    khatri_rao,
    flatten_Tensor,
    compute_lin_sysN,
    normalise,
    cp_reconstruct,
    get_residual,
    hadamard_reduce,
    mode_product,
)

__all__ = [
    # sources
    'DenseSource',
    'DFSource',
    # convergence
    'NormCheck',
    'FitCheck',
    'RALSHelper',
    # compression
    'tucker_compression',
    'randomized_compression',
    # kernels
    'khatri_rao',
    'flatten_Tensor',
    'compute_lin_sysN',
    'normalise',
    'cp_reconstruct',
    'get_residual',
    'hadamard_reduce',
    'mode_product',
]
