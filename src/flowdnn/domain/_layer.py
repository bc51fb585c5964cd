"""
Layer (computation stage) interface definitions.

A layer is a configured stage of the dataflow graph. It declares the names of
the buffers it reads (``bottom_names``) and produces (``top_names``), and
implements four operations:

- ``setup``: bind inputs, validate arity and shapes, allocate outputs
- ``forward``: read input values, write output values, return a scalar loss
  contribution (zero for non-loss layers)
- ``backward``: read output gradients, write input gradients and, when
  enabled, parameter gradients
- ``trainable_parameters``: tensors the solver should update

Layers move through a small state machine: ``UNCONFIGURED -> READY`` after a
successful ``setup``, ``UNCONFIGURED -> FAILED`` if ``setup`` raises. A ready
layer's operations are repeatable indefinitely; a failed layer is unusable.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Protocol, Sequence, runtime_checkable

from ._tensor import ITensor


class LayerState(str, Enum):
    """Lifecycle state of a layer instance."""

    UNCONFIGURED = "unconfigured"
    READY = "ready"
    FAILED = "failed"


@runtime_checkable
class ILayer(Protocol):
    """
    Domain-level layer interface.

    The ``data`` argument of the operations is the per-layer binding record
    the network owns (bottom tensors, top tensors, numeric backend). Layers
    access tensors only through it, for the duration of one call.
    """

    @property
    def name(self) -> str: ...

    @property
    def bottom_names(self) -> Sequence[str]: ...

    @property
    def top_names(self) -> Sequence[str]: ...

    @property
    def state(self) -> LayerState: ...

    def setup(self, data: Any) -> List[ITensor]:
        """
        Validate bound inputs, allocate outputs and working state.

        Returns
        -------
        List[ITensor]
            The newly created output tensors, in ``top_names`` order.
        """
        ...

    def forward(self, data: Any) -> float:
        """Compute outputs; return this layer's loss contribution."""
        ...

    def backward(self, data: Any, propagate_params: bool) -> None:
        """Compute input gradients and, optionally, parameter gradients."""
        ...

    def trainable_parameters(self) -> List[ITensor]:
        """Tensors whose values the solver updates; empty if parameter-free."""
        ...
