"""
Graph assembly and execution engine.

`Network` takes an unordered collection of layers, each declaring the named
buffers it reads (``bottom_names``) and produces (``top_names``), and orders
them by repeated source removal: scan the pending layers in declaration order,
add the first one whose every input buffer already exists, repeat. Adding a
layer runs its ``setup`` and registers the tensors it returns under their
names. If a scan finds no eligible layer the definition is unsatisfiable
(missing producer or cycle) and assembly fails with `UnreachableLayerError`.

Execution
---------
- `forward` runs the layers in order and sums their scalar contributions.
- `backward` runs them in reverse, forwarding the network's
  ``propagate_params`` flag.
- `update` applies ``value += gradient`` to every trainable parameter. The
  solver is expected to have rewritten the gradients into final steps.

Evaluation networks
-------------------
Passing ``reference=`` builds a secondary network over an existing one:
buffer names that no local layer produces are borrowed from the reference
(never owned), and every local layer whose name matches a reference layer is
bound to that layer's parameters. Local layers may use a different batch
size, since only parameters and explicitly borrowed buffers are shared.
"""

from __future__ import annotations

import logging
import warnings
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ...domain._backend import INumericBackend
from ...domain._errors import (
    DuplicateNameError,
    GradientOverwriteWarning,
    UnreachableLayerError,
)
from ..layers._base import Layer, LayerData
from ..ops.blas_cpu import NumpyBackend
from ..registry._serialization_core import layer_from_config, layer_to_config
from ..tensor._parameter import Parameter
from ..tensor._tensor import Tensor

logger = logging.getLogger(__name__)


class Network:
    """
    An ordered, fully configured pipeline of layers and the tensors they share.

    Parameters
    ----------
    layers : Sequence[Layer]
        Unconfigured layers, in any order. Declaration order breaks ties
        between layers that become eligible in the same scan.
    reference : Network, optional
        Network whose buffers and parameters this one reuses (see module
        notes).
    backend : INumericBackend, optional
        Numeric backend handed to every layer. Defaults to the reference's
        backend, or a fresh `NumpyBackend`.
    propagate_params : bool, optional
        Whether backward passes compute parameter gradients. Defaults to True.

    Raises
    ------
    DuplicateNameError
        If two layers share a name or two layers declare the same output.
    UnreachableLayerError
        If some layers' inputs can never be satisfied.
    ConfigurationError
        Propagated from any layer's ``setup``.
    """

    def __init__(
        self,
        layers: Sequence[Layer],
        *,
        reference: Optional["Network"] = None,
        backend: Optional[INumericBackend] = None,
        propagate_params: bool = True,
    ) -> None:
        if backend is None:
            backend = reference.backend if reference is not None else NumpyBackend()
        self._backend = backend
        self.propagate_params = bool(propagate_params)

        self._layers: List[Layer] = []
        self._data: Dict[str, LayerData] = {}
        self._tensors: Dict[str, Tensor] = {}
        self._owned: Set[str] = set()
        self._params: List[Parameter] = []

        layers = list(layers)
        produced = _check_unique_names(layers)

        if reference is not None:
            for name, tensor in reference._tensors.items():
                if name not in produced:
                    self._tensors[name] = tensor

        self._assemble(layers)

        if reference is not None:
            self._share_parameters(reference)

        self._collect_parameters()
        self._warn_fan_out()

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------
    def _assemble(self, layers: List[Layer]) -> None:
        pending = list(layers)
        while pending:
            for i, layer in enumerate(pending):
                if all(b in self._tensors for b in layer.bottom_names):
                    self._add_layer(layer)
                    del pending[i]
                    break
            else:
                unresolved = [layer.name for layer in pending]
                logger.debug(
                    "added layers: %s; unresolved: %s",
                    [layer.name for layer in self._layers],
                    unresolved,
                )
                raise UnreachableLayerError(unresolved)

    def _add_layer(self, layer: Layer) -> None:
        data = LayerData(
            bottom=[self._tensors[b] for b in layer.bottom_names],
            backend=self._backend,
        )
        layer.setup(data)

        for top in data.top:
            self._tensors[top.name] = top
            self._owned.add(top.name)

        self._layers.append(layer)
        self._data[layer.name] = data
        logger.debug(
            "layer %d %r: bottom=%s top=%s",
            len(self._layers) - 1,
            layer,
            [repr(t) for t in data.bottom],
            [repr(t) for t in data.top],
        )

    def _share_parameters(self, reference: "Network") -> None:
        by_name = {layer.name: layer for layer in reference._layers}
        for layer in self._layers:
            theirs = by_name.get(layer.name)
            if theirs is None or not list(theirs.named_parameters()):
                continue
            layer.share_parameters(theirs)
            logger.debug("layer %r shares parameters with %r", layer, theirs)

    def _collect_parameters(self) -> None:
        seen: Set[int] = set()
        for layer in self._layers:
            for p in layer.trainable_parameters():
                if id(p) not in seen:
                    seen.add(id(p))
                    self._params.append(p)

    def _warn_fan_out(self) -> None:
        consumers = Counter(b for layer in self._layers for b in layer.bottom_names)
        for name, count in consumers.items():
            if count > 1:
                warnings.warn(
                    f"buffer '{name}' feeds {count} layers; backward passes "
                    "overwrite its gradient, so only the last contribution is kept",
                    GradientOverwriteWarning,
                    stacklevel=3,
                )

    @classmethod
    def from_config(cls, nodes: Iterable[Mapping[str, Any]], **kwargs: Any) -> "Network":
        """
        Build layers from ``layer_to_config`` descriptors and assemble them.
        """
        return cls([layer_from_config(dict(n)) for n in nodes], **kwargs)

    def get_config(self) -> List[Dict[str, Any]]:
        """
        Return the descriptors of every layer, in execution order.
        """
        return [layer_to_config(layer) for layer in self._layers]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def forward(self) -> float:
        loss = 0.0
        for layer in self._layers:
            loss += layer.forward(self._data[layer.name])
        return loss

    def backward(self, loss: Optional[float] = None) -> None:
        for layer in reversed(self._layers):
            layer.backward(self._data[layer.name], self.propagate_params)

    def forward_backward(self) -> float:
        loss = self.forward()
        self.backward(loss)
        return loss

    def update(self) -> None:
        for p in self._params:
            self._backend.axpy(1.0, p.gradient, p.value)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    @property
    def backend(self) -> INumericBackend:
        return self._backend

    @property
    def layers(self) -> Tuple[Layer, ...]:
        return tuple(self._layers)

    @property
    def tensors(self) -> Mapping[str, Tensor]:
        return dict(self._tensors)

    @property
    def params(self) -> List[Parameter]:
        return list(self._params)

    def tensor(self, name: str) -> Tensor:
        return self._tensors[name]

    def layer(self, name: str) -> Layer:
        for layer in self._layers:
            if layer.name == name:
                return layer
        raise KeyError(name)

    def layer_data(self, name: str) -> LayerData:
        return self._data[name]

    def owns(self, name: str) -> bool:
        """
        True if the tensor ``name`` was allocated by this network's layers.
        """
        return name in self._owned

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({[layer.name for layer in self._layers]})"


def _check_unique_names(layers: Sequence[Layer]) -> Set[str]:
    names: Set[str] = set()
    produced: Set[str] = set()
    for layer in layers:
        if layer.name in names:
            raise DuplicateNameError(f"duplicate layer name '{layer.name}'")
        names.add(layer.name)
        for top in layer.top_names:
            if top in produced:
                raise DuplicateNameError(
                    f"buffer '{top}' is produced by more than one layer",
                    layer=layer.name,
                )
            produced.add(top)
    return produced
