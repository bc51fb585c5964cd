"""
Numeric backend contract.

The engine does not implement dense linear algebra itself. It relies on a
backend with BLAS-equivalent semantics over flat, row-major, single-precision
buffers. The backend is passed explicitly to a network at construction time
and reaches layers through their binding record, so alternative
implementations (e.g. a naive reference used in tests) can be substituted
without touching any layer.

Leading dimensions are implied: a non-transposed ``m x k`` operand has a
leading dimension of ``k``; a transposed one is stored as ``k x m``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class INumericBackend(Protocol):
    """
    BLAS-equivalent primitives used by layers and solvers.

    All buffers are flat arrays; output buffers are written in place and the
    call returns only once results are fully written.
    """

    def gemm(
        self,
        trans_a: bool,
        trans_b: bool,
        m: int,
        n: int,
        k: int,
        alpha: float,
        a: Any,
        b: Any,
        beta: float,
        c: Any,
    ) -> None:
        """``C = alpha * op(A) @ op(B) + beta * C`` with C of shape (m, n)."""
        ...

    def gemv(
        self,
        trans_a: bool,
        m: int,
        n: int,
        alpha: float,
        a: Any,
        x: Any,
        beta: float,
        y: Any,
    ) -> None:
        """``y = alpha * op(A) @ x + beta * y`` with A stored as (m, n)."""
        ...

    def dot(self, n: int, x: Any, inc_x: int, y: Any, inc_y: int) -> float:
        """Strided dot product of ``n`` elements."""
        ...

    def axpy(self, alpha: float, x: Any, y: Any) -> None:
        """``y += alpha * x``."""
        ...

    def scal(self, alpha: float, x: Any) -> None:
        """``x *= alpha``."""
        ...

    def asum(self, x: Any) -> float:
        """Sum of absolute values."""
        ...
