"""
CPU numeric kernels: BLAS-equivalent backend, patch extraction and pooling.
"""

from .blas_cpu import NumpyBackend, subslice

__all__ = [
    NumpyBackend.__name__,
    subslice.__name__,
]
