"""
als module.
provides the cp-als engine shared by the dense and two-tensor drivers.
"""

from .ALS_engine import CP_ALS

__all__ = [
    'CP_ALS',
]
