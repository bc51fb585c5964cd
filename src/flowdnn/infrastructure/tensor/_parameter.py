"""
Trainable parameter tensor.

A `Parameter` is a `Tensor` that a solver is allowed to update. Layers create
their weights and biases as parameters and assign them as attributes; the
`Layer` base class auto-registers them so that `trainable_parameters()` can
discover them without per-layer bookkeeping.

Working tensors that are not trained (bias multipliers, patch buffers,
normalization scratch space) remain plain `Tensor` objects.
"""

from __future__ import annotations

from ...domain._shape import ShapeLike
from ._tensor import Tensor


class Parameter(Tensor):
    """
    Trainable tensor.

    Parameters
    ----------
    name : str
        Parameter name, conventionally ``<layer>_<role>`` (e.g. ``ip1_weight``).
    shape : Shape4 or sequence of 4 ints
        Parameter shape.
    requires_grad : bool, optional
        Whether the parameter is trained. Frozen parameters are still used in
        forward passes but are not reported as trainable. Defaults to True.
    """

    def __init__(self, name: str, shape: ShapeLike, *, requires_grad: bool = True) -> None:
        super().__init__(name, shape)
        self._requires_grad = bool(requires_grad)

    @property
    def requires_grad(self) -> bool:
        return self._requires_grad

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None:
        self._requires_grad = bool(value)
