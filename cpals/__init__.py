"""
cp-als library.

canonical polyadic decomposition by alternating least squares, with rank
building, panel growth, compression front-ends and a two-tensor
representation that is never materialized.

quick start:
    >>> import numpy as np
    >>> import cpals
    >>>
    >>> # get a backend
    >>> tenpy = cpals.get_backend('numpy')
    >>>
    >>> # create a random tensor
    >>> rng = np.random.default_rng(0)
    >>> tensor = tenpy.random((10, 10, 10), rng)
    >>>
    >>> # build the decomposition up to rank 5
    >>> engine = cpals.CP_ALS.from_tensor(tenpy, tensor, seed=0)
    >>> error = engine.compute_rank(5, cpals.FitCheck(1e-6), calculate_epsilon=True)
    >>> factors = engine.get_factor_matrices()
"""

# version
try:
    from pathlib import Path
    _version_file = Path(__file__).parent / 'VERSION'
    __version__ = _version_file.read_text().strip() if _version_file.exists() else '0.1.0'
except OSError:
    __version__ = '0.1.0'

# backend
from .backend import get_backend

# errors
from .exceptions import (
    CPError,
    ConfigurationError,
    DecompositionError,
    LinearAlgebraError,
)

# engine
from .als import CP_ALS

# sources, convergence tests and kernels
from .cpd import (
    DenseSource,
    DFSource,
    NormCheck,
    FitCheck,
    RALSHelper,
    khatri_rao,
    cp_reconstruct,
    get_residual,
    tucker_compression,
    randomized_compression,
)

# utilities
from .utils import (
    generate_tensor,
    generate_converge_test,
    save_decomposition_results,
    plot_rank_history,
    factor_match_score,
)

# submodules for direct access
from . import als
from . import cpd
from . import tensors
from . import backend
from . import utils

__all__ = [
    # version
    '__version__',
    # backend
    'get_backend',
    # errors
    'CPError',
    'ConfigurationError',
    'DecompositionError',
    'LinearAlgebraError',
    # engine
    'CP_ALS',
    # sources
    'DenseSource',
    'DFSource',
    # convergence
    'NormCheck',
    'FitCheck',
    'RALSHelper',
    # kernels
    'khatri_rao',
    'cp_reconstruct',
    'get_residual',
    'tucker_compression',
    'randomized_compression',
    # utilities
    'generate_tensor',
    'generate_converge_test',
    'save_decomposition_results',
    'plot_rank_history',
    'factor_match_score',
    # submodules
    'als',
    'cpd',
    'tensors',
    'backend',
    'utils',
]
