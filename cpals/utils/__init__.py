"""
utility module for cp-als.
provides argument parsing, tensor generation, plotting, metrics, and helper functions.
"""

from .generators import generate_tensor, generate_converge_test
from .plotting import plot_rank_history, lighten_color
from .utils import save_decomposition_results, load_decomposition_results
from .metrics import factor_match_score, cosine_similarity, relative_error
from .arg_defs import (
    add_general_arguments,
    add_als_arguments,
    add_pals_arguments,
    add_compression_arguments,
    add_df_arguments,
    get_file_prefix,
)

__all__ = [
    # generators
    'generate_tensor',
    'generate_converge_test',
    # plotting
    'plot_rank_history',
    'lighten_color',
    # io
    'save_decomposition_results',
    'load_decomposition_results',
    # metrics
    'factor_match_score',
    'cosine_similarity',
    'relative_error',
    # argument parsing
    'add_general_arguments',
    'add_als_arguments',
    'add_pals_arguments',
    'add_compression_arguments',
    'add_df_arguments',
    'get_file_prefix',
]
