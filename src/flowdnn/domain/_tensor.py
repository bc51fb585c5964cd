"""
Tensor interface definitions.

This module defines the domain-level contract for the dual-buffer tensors
that layers share. A tensor is a named (batch, channel, height, width) array
with two co-indexed buffers of equal capacity:

- `value`: forward activations or parameter values
- `gradient`: backward-accumulated derivatives

The interface is structural (`typing.Protocol`) so that the domain layer
stays free of NumPy; concrete buffers are provided by the infrastructure
layer.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ._shape import Shape4, ShapeLike


@runtime_checkable
class ITensor(Protocol):
    """
    Domain-level dual-buffer tensor interface.

    Invariants
    ----------
    - ``len(value) == len(gradient) == shape.size`` after allocation.
    - ``shape`` only changes through an explicit `reshape`.
    - Offsets are row-major, batch-major:
      ``((b * C + c) * H + h) * W + w``.
    """

    @property
    def name(self) -> str:
        """Buffer name used for wiring layers together."""
        ...

    @property
    def shape(self) -> Shape4:
        """Current four-dimensional shape."""
        ...

    @property
    def value(self) -> Any:
        """Flat forward buffer of length ``shape.size``."""
        ...

    @property
    def gradient(self) -> Any:
        """Flat backward buffer of length ``shape.size``."""
        ...

    def offset(self, b: int = 0, c: int = 0, h: int = 0, w: int = 0) -> int:
        """Linear offset of coordinate (b, c, h, w)."""
        ...

    def reshape(self, shape: ShapeLike) -> None:
        """Change the shape, reallocating both buffers if capacity changes."""
        ...
