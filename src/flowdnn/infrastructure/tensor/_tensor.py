"""
Concrete dual-buffer tensor (NumPy backend).

`Tensor` is the infrastructure implementation of `ITensor`. It owns two flat
float32 NumPy buffers of equal capacity:

- ``value``: forward activations or parameter values
- ``gradient``: backward-accumulated derivatives

Layers read and write these buffers in place. The flat buffers are the
canonical storage; `values()` and `gradients()` return 4-D views over the same
memory for code that prefers NCHW indexing.

Design notes
------------
- Shape is immutable except through `reshape`, which keeps the existing
  buffers when capacity is unchanged and reallocates (zero-filled) otherwise.
- Tensors are owned by the network that allocated them (or transiently by the
  layer being set up). Views handed out by this class are only valid until the
  next `reshape`; layers must not hold on to them beyond a single call.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ...domain._shape import Shape4, ShapeLike
from ...domain._tensor import ITensor


class Tensor(ITensor):
    """
    Named (batch, channel, height, width) value/gradient buffer pair.

    Parameters
    ----------
    name : str
        Buffer name used to wire layers together.
    shape : Shape4 or sequence of 4 ints
        Initial shape. Both buffers are zero-filled.
    """

    dtype = np.float32

    def __init__(self, name: str, shape: ShapeLike) -> None:
        self._name = str(name)
        self._alloc(Shape4.of(shape))

    def _alloc(self, shape: Shape4) -> None:
        self._shape = shape
        self._value = np.zeros(shape.size, dtype=self.dtype)
        self._gradient = np.zeros(shape.size, dtype=self.dtype)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self._name

    @property
    def shape(self) -> Shape4:
        return self._shape

    @property
    def size(self) -> int:
        return self._shape.size

    # ------------------------------------------------------------------
    # Buffers
    # ------------------------------------------------------------------
    @property
    def value(self) -> np.ndarray:
        """Flat forward buffer (float32, length ``shape.size``)."""
        return self._value

    @property
    def gradient(self) -> np.ndarray:
        """Flat backward buffer (float32, length ``shape.size``)."""
        return self._gradient

    def values(self) -> np.ndarray:
        """4-D view of the value buffer."""
        return self._value.reshape(self._shape.as_tuple())

    def gradients(self) -> np.ndarray:
        """4-D view of the gradient buffer."""
        return self._gradient.reshape(self._shape.as_tuple())

    def offset(self, b: int = 0, c: int = 0, h: int = 0, w: int = 0) -> int:
        return self._shape.offset(b, c, h, w)

    def value_at(self, b: int = 0, c: int = 0, h: int = 0, w: int = 0) -> float:
        return float(self._value[self.offset(b, c, h, w)])

    def gradient_at(self, b: int = 0, c: int = 0, h: int = 0, w: int = 0) -> float:
        return float(self._gradient[self.offset(b, c, h, w)])

    def asum(self) -> float:
        """Sum of magnitudes of the value buffer."""
        return float(np.abs(self._value).sum(dtype=np.float64))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def reshape(self, shape: ShapeLike) -> None:
        """
        Change the shape of this tensor.

        When the element count is unchanged the existing buffers (and their
        contents) are kept; otherwise both buffers are reallocated and
        zero-filled.
        """
        shape = Shape4.of(shape)
        if shape.size == self._shape.size:
            self._shape = shape
            return
        self._alloc(shape)

    def fill(self, value: float) -> None:
        self._value.fill(value)

    def zero_gradient(self) -> None:
        self._gradient.fill(0.0)

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Copy ``arr`` into the value buffer.

        Raises
        ------
        ValueError
            If ``arr`` does not hold exactly ``shape.size`` elements.
        """
        arr = np.asarray(arr, dtype=self.dtype)
        if arr.size != self._shape.size:
            raise ValueError(
                f"Tensor '{self._name}': cannot copy {arr.size} elements "
                f"into shape {self._shape}"
            )
        self._value[...] = arr.reshape(-1)

    def to_numpy(self) -> np.ndarray:
        """Return a 4-D copy of the value buffer."""
        return self.values().copy()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name}: dim={self._shape})"
