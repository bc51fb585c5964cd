"""
Infrastructure layer base class.

This module provides the concrete `Layer` implementation that satisfies the
domain-level `ILayer` protocol, plus `LayerData`, the per-layer binding record
a network hands to every layer operation. It implements the conveniences all
computation stages share:

- declared input/output buffer names and arity checks
- the ``UNCONFIGURED -> READY | FAILED`` state machine around ``setup``
- parameter registration (implicit via attribute assignment of `Parameter`)
- parameter sharing with a same-named layer of another network
- configuration export (`get_config` / `from_config`)

Concrete layers implement the `_setup`, `_forward` and `_backward` hooks and
never deal with lifecycle bookkeeping themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
from typing_extensions import Self

from ...domain._backend import INumericBackend
from ...domain._errors import (
    ArityError,
    ConfigurationError,
    LayerStateError,
    ShapeMismatchError,
)
from ...domain._layer import ILayer, LayerState
from ..ops.blas_cpu import NumpyBackend
from ..tensor._parameter import Parameter
from ..tensor._tensor import Tensor
from ..utils.weight_filler import WeightFiller


@dataclass
class LayerData:
    """
    Binding record for one layer inside a network.

    Attributes
    ----------
    bottom : List[Tensor]
        Input tensors, in the layer's ``bottom_names`` order.
    top : List[Tensor]
        Output tensors, filled in by ``setup``.
    backend : INumericBackend
        Numeric backend the layer computes with.
    """

    bottom: List[Tensor] = field(default_factory=list)
    top: List[Tensor] = field(default_factory=list)
    backend: INumericBackend = field(default_factory=NumpyBackend)


Arity = Union[int, Tuple[int, ...]]


class Layer(ILayer):
    """
    Base class for computation stages.

    Parameters
    ----------
    name : str
        Unique layer name within a network.
    bottom : Sequence[str]
        Names of the buffers this layer reads.
    top : Sequence[str]
        Names of the buffers this layer produces.

    Notes
    -----
    - Assigning a `Parameter` to an attribute registers it as a parameter of
      this layer under the attribute name (e.g. ``self.weight = Parameter(...)``).
    - `setup` may be called exactly once. Operations on a layer that is not
      ``READY`` raise `LayerStateError`.
    """

    def __init__(self, name: str, bottom: Sequence[str] = (), top: Sequence[str] = ()) -> None:
        super().__setattr__("_parameters", {})
        if not name:
            raise ValueError("layer name must be a non-empty string")
        if isinstance(bottom, str) or isinstance(top, str):
            raise ValueError("bottom and top must be sequences of buffer names")
        self._name = str(name)
        self._bottom_names = tuple(str(b) for b in bottom)
        self._top_names = tuple(str(t) for t in top)
        self._state = LayerState.UNCONFIGURED
        self._backend: Optional[INumericBackend] = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "_parameters":
            super().__setattr__(name, value)
            return

        if value is None:
            self._parameters.pop(name, None)
        elif isinstance(value, Parameter):
            self._parameters[name] = value

        super().__setattr__(name, value)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self._name

    @property
    def bottom_names(self) -> Tuple[str, ...]:
        return self._bottom_names

    @property
    def top_names(self) -> Tuple[str, ...]:
        return self._top_names

    @property
    def state(self) -> LayerState:
        return self._state

    @property
    def backend(self) -> INumericBackend:
        if self._backend is None:
            raise LayerStateError(self._name, "access backend", self._state.value)
        return self._backend

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def setup(self, data: LayerData) -> List[Tensor]:
        """
        Configure the layer against its bound inputs.

        On success the layer becomes ``READY`` and ``data.top`` holds the new
        output tensors. Any exception leaves the layer ``FAILED`` and is
        re-raised.
        """
        if self._state is not LayerState.UNCONFIGURED:
            raise LayerStateError(self._name, "setup", self._state.value)

        self._backend = data.backend
        try:
            tops = list(self._setup(data))
        except Exception:
            self._state = LayerState.FAILED
            raise

        data.top = tops
        self._state = LayerState.READY
        return tops

    def forward(self, data: LayerData) -> float:
        self._require_ready("forward")
        return float(self._forward(data))

    def backward(self, data: LayerData, propagate_params: bool = True) -> None:
        self._require_ready("backward")
        self._backward(data, bool(propagate_params))

    def _require_ready(self, op: str) -> None:
        if self._state is not LayerState.READY:
            raise LayerStateError(self._name, op, self._state.value)

    def _setup(self, data: LayerData) -> List[Tensor]:
        raise NotImplementedError

    def _forward(self, data: LayerData) -> float:
        raise NotImplementedError

    def _backward(self, data: LayerData, propagate_params: bool) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------
    def trainable_parameters(self) -> List[Parameter]:
        return [p for p in self._parameters.values() if p.requires_grad]

    def named_parameters(self) -> Iterator[tuple[str, Parameter]]:
        yield from self._parameters.items()

    def share_parameters(self, other: "Layer") -> None:
        """
        Rebind this layer's parameters to ``other``'s same-role parameters.

        Used when building an evaluation network that must see the weights of
        a training network. Parameter shapes do not depend on batch size, so a
        different batch count is allowed.

        Raises
        ------
        ConfigurationError
            If the two layers do not hold the same parameter roles.
        ShapeMismatchError
            If a shared parameter's shape differs.
        """
        if set(self._parameters) != set(other._parameters):
            raise ConfigurationError(
                f"cannot share parameters with '{other.name}': roles "
                f"{sorted(self._parameters)} vs {sorted(other._parameters)}",
                layer=self._name,
            )
        for role, theirs in list(other._parameters.items()):
            mine = self._parameters[role]
            if mine.shape != theirs.shape:
                raise ShapeMismatchError(
                    f"shared parameter '{role}' has shape {theirs.shape}, "
                    f"expected {mine.shape}",
                    layer=self._name,
                )
            setattr(self, role, theirs)

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------
    def _check_bottom(self, expected: Arity) -> None:
        if not _arity_ok(len(self._bottom_names), expected):
            raise ArityError(self._name, "bottom", expected, len(self._bottom_names))

    def _check_top(self, expected: Arity) -> None:
        if not _arity_ok(len(self._top_names), expected):
            raise ArityError(self._name, "top", expected, len(self._top_names))

    def _check_names(self, expected_bottom: Arity, expected_top: Arity) -> None:
        self._check_bottom(expected_bottom)
        self._check_top(expected_top)

    def _fill(
        self,
        param: Parameter,
        filler: str,
        rng: np.random.Generator,
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        WeightFiller(filler)(param, rng=rng, **(options or {}))

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable descriptor of this layer.

        Subclasses extend the base entries (``name``, ``bottom``, ``top``) with
        their hyperparameters.
        """
        return {
            "name": self._name,
            "bottom": list(self._bottom_names),
            "top": list(self._top_names),
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        return cls(**cfg)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self._name}: "
            f"{list(self._bottom_names)} -> {list(self._top_names)})"
        )


def _arity_ok(got: int, expected: Arity) -> bool:
    if isinstance(expected, tuple):
        return got in expected
    return got == expected
