"""
BLAS-equivalent primitives over flat float32 buffers (CPU, NumPy).

`NumpyBackend` implements `INumericBackend` by viewing flat, row-major
buffers as matrices and delegating to `numpy.matmul`. Operand buffers may be
longer than the matrix they hold (e.g. a per-group slice view); only the
leading ``rows * cols`` elements are used. Output buffers must be writable
views so results land in the caller's memory.

Semantics follow the reference BLAS routines:

- ``gemm``: ``C = alpha * op(A) @ op(B) + beta * C``
- ``gemv``: ``y = alpha * op(A) @ x + beta * y``
- ``dot``:  strided inner product
- ``axpy``: ``y += alpha * x``
- ``scal``: ``x *= alpha``
- ``asum``: sum of magnitudes

When ``beta == 0`` the previous contents of the output are ignored entirely
(so stale NaNs do not propagate), matching BLAS.
"""

from __future__ import annotations

import numpy as np

from ...domain._backend import INumericBackend


def _matrix(buf: np.ndarray, rows: int, cols: int, trans: bool) -> np.ndarray:
    """
    View the leading elements of ``buf`` as op(M) with op(M) of shape (rows, cols).
    """
    if trans:
        return buf[: rows * cols].reshape(cols, rows).T
    return buf[: rows * cols].reshape(rows, cols)


def subslice(buf: np.ndarray, index: int, size: int) -> np.ndarray:
    """
    Return the ``index``-th contiguous block of ``size`` elements of ``buf``.

    The result is a view; writes go to ``buf``.
    """
    return buf[index * size : (index + 1) * size]


class NumpyBackend(INumericBackend):
    """
    Default numeric backend backed by NumPy.
    """

    def gemm(
        self,
        trans_a: bool,
        trans_b: bool,
        m: int,
        n: int,
        k: int,
        alpha: float,
        a: np.ndarray,
        b: np.ndarray,
        beta: float,
        c: np.ndarray,
    ) -> None:
        op_a = _matrix(a, m, k, trans_a)
        op_b = _matrix(b, k, n, trans_b)
        out = c[: m * n].reshape(m, n)

        prod = np.matmul(op_a, op_b)
        if beta == 0.0:
            np.multiply(prod, alpha, out=out, casting="unsafe")
            return
        if beta != 1.0:
            out *= beta
        out += alpha * prod

    def gemv(
        self,
        trans_a: bool,
        m: int,
        n: int,
        alpha: float,
        a: np.ndarray,
        x: np.ndarray,
        beta: float,
        y: np.ndarray,
    ) -> None:
        mat = a[: m * n].reshape(m, n)
        if trans_a:
            mat = mat.T
        rows, cols = mat.shape
        out = y[:rows]

        prod = mat @ x[:cols]
        if beta == 0.0:
            np.multiply(prod, alpha, out=out, casting="unsafe")
            return
        if beta != 1.0:
            out *= beta
        out += alpha * prod

    def dot(self, n: int, x: np.ndarray, inc_x: int, y: np.ndarray, inc_y: int) -> float:
        if n <= 0:
            return 0.0
        xs = x[: (n - 1) * inc_x + 1 : inc_x]
        ys = y[: (n - 1) * inc_y + 1 : inc_y]
        return float(np.dot(xs, ys))

    def axpy(self, alpha: float, x: np.ndarray, y: np.ndarray) -> None:
        y += alpha * x

    def scal(self, alpha: float, x: np.ndarray) -> None:
        x *= alpha

    def asum(self, x: np.ndarray) -> float:
        return float(np.abs(x).sum(dtype=np.float64))
