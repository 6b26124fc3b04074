"""
backend module.
provides the dense linear-algebra backend used by the engine and kernels.
"""

from . import numpy_ext


def get_backend(name='numpy'):
    """
    get the specified tensor backend.

    args:
        name: backend name, only 'numpy' is available

    returns:
        backend module
    """
    if name == 'numpy':
        return numpy_ext
    raise ValueError(f"[error] unknown backend: {name}. use 'numpy'")


__all__ = [
    'numpy_ext',
    'get_backend',
]
