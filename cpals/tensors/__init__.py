"""
tensor generation module.
provides synthetic tensors for experiments and tests.
"""

from . import synthetic_tensors

__all__ = [
    'synthetic_tensors',
]
