"""
utility functions for generating input tensors and convergence tests.
"""

import numpy as np

from ..cpd.converge import FitCheck, NormCheck


def generate_tensor(tenpy, args, rng=None):
    """
    generate an input tensor based on command line arguments.

    args:
        tenpy: tensor backend
        args: argument namespace with tensor parameters
        rng: numpy random generator, seeded from args.seed if omitted

    returns:
        dict with keys:
        - tensor: dense input tensor (None for the df representation)
        - left, right: the pair of the df representation (None otherwise)
        - factors_true: ground-truth factor matrices (None if not available)
        - symmetries: symmetry map of the tensor (None if not symmetric)
    """
    from cpals.tensors import synthetic_tensors

    if rng is None:
        rng = np.random.default_rng(args.seed)
    result = {
        'tensor': None,
        'left': None,
        'right': None,
        'factors_true': None,
        'symmetries': None,
    }
    shape = (args.s,) * args.order

    if args.tensor == 'random':
        tenpy.printf("[info] generating random low-rank tensor")
        result['tensor'] = synthetic_tensors.rand(tenpy, args.order, args.s, args.R, rng)
    elif args.tensor == 'randn':
        tenpy.printf("[info] generating random tensor with normal entries")
        result['tensor'] = synthetic_tensors.randn(tenpy, args.order, args.s, rng)
    elif args.tensor == 'orthogonal':
        tensor, factors, _ = synthetic_tensors.orthogonal_tensor(tenpy, shape, args.R, rng)
        result['tensor'] = tensor
        result['factors_true'] = factors
    elif args.tensor == 'symmetric':
        # first mode independent, the rest share one factor
        symmetries = [0] + [1] * (args.order - 1)
        tensor, factors, _ = synthetic_tensors.low_rank_tensor(
            tenpy, shape, args.R, rng, symmetries=symmetries
        )
        result['tensor'] = tensor
        result['factors_true'] = factors
        result['symmetries'] = symmetries
    elif args.tensor == 'df':
        left_shape = (args.s,) * getattr(args, 'left_order', 2)
        right_shape = (args.s,) * getattr(args, 'right_order', 1)
        left, right, factors = synthetic_tensors.df_pair(
            tenpy, left_shape, right_shape, getattr(args, 'X', 30), args.R, rng
        )
        result['left'] = left
        result['right'] = right
        result['factors_true'] = factors
    else:
        raise ValueError(f"[error] unknown tensor type: {args.tensor}")

    if result['tensor'] is not None:
        tenpy.printf(f"[info] input tensor shape: {result['tensor'].shape}")
    else:
        tenpy.printf(f"[info] df pair shapes: {result['left'].shape}, {result['right'].shape}")
    return result


def generate_converge_test(args, count=None):
    """
    one convergence test, or a list of ``count`` tests (one per panel) when
    ``count`` is given.
    """
    kind = FitCheck if getattr(args, 'converge', 'fit') == 'fit' else NormCheck
    if count is None:
        return kind(args.tol)
    return [kind(args.tol) for _ in range(count)]
