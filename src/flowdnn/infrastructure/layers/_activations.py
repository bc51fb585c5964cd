"""
Elementwise activation functions and the layer that hosts them.

Activation kinds are a closed set sharing one host layer (`NeuronLayer`), so
they are modeled as a small value type (`Activation`) carrying the function
and its first and second derivatives rather than as separate layer classes.

Derivatives take both the input ``x`` and output ``y``. Sigmoid, tanh and
softsign are differentiated through ``y``; leaky ReLU through the sign of
``x``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

import numpy as np

from ..registry._serialization_core import register_layer
from ..tensor._tensor import Tensor
from ._base import Layer, LayerData


class ActivationKind(str, Enum):
    SIGMOID = "sigmoid"
    TANH = "tanh"
    SOFTSIGN = "softsign"
    IDENTITY = "identity"
    LEAKY_RELU = "leaky_relu"


@dataclass(frozen=True)
class Activation:
    """
    An elementwise activation function.

    Attributes
    ----------
    kind : ActivationKind
        Which function.
    negative_slope : float
        Slope for ``x <= 0`` of leaky ReLU (0 gives plain ReLU). Ignored by
        the other kinds.
    """

    kind: ActivationKind
    negative_slope: float = 0.0

    def evaluate(self, x: np.ndarray) -> np.ndarray:
        k = self.kind
        if k is ActivationKind.SIGMOID:
            # tanh form avoids exp overflow for large |x|
            return 0.5 * (1.0 + np.tanh(0.5 * x))
        if k is ActivationKind.TANH:
            return np.tanh(x)
        if k is ActivationKind.SOFTSIGN:
            return x / (1.0 + np.abs(x))
        if k is ActivationKind.IDENTITY:
            return x.copy()
        return np.where(x > 0, x, self.negative_slope * x)

    def first_derivative(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        k = self.kind
        if k is ActivationKind.SIGMOID:
            return y * (1.0 - y)
        if k is ActivationKind.TANH:
            return 1.0 - y * y
        if k is ActivationKind.SOFTSIGN:
            return np.square(1.0 - np.abs(y))
        if k is ActivationKind.IDENTITY:
            return np.ones_like(x)
        return np.where(x > 0, 1.0, self.negative_slope).astype(x.dtype)

    def second_derivative(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        k = self.kind
        if k is ActivationKind.SIGMOID:
            return y * (1.0 - y) * (1.0 - 2.0 * y)
        if k is ActivationKind.TANH:
            return -2.0 * y * (1.0 - y * y)
        if k is ActivationKind.SOFTSIGN:
            return -2.0 * np.sign(y) * (1.0 - np.abs(y)) ** 3
        return np.zeros_like(x)


@register_layer()
class NeuronLayer(Layer):
    """
    Applies an `Activation` elementwise. One bottom, one top of the same shape.

    Parameters
    ----------
    activation : ActivationKind or str
        Which function to apply.
    negative_slope : float, optional
        Leaky ReLU slope for non-positive inputs. Defaults to 0.
    """

    def __init__(
        self,
        name: str,
        bottom=(),
        top=(),
        *,
        activation: ActivationKind | str,
        negative_slope: float = 0.0,
    ) -> None:
        super().__init__(name, bottom, top)
        self.activation = Activation(ActivationKind(activation), float(negative_slope))

    def _setup(self, data: LayerData) -> List[Tensor]:
        self._check_names(1, 1)
        return [Tensor(self.top_names[0], data.bottom[0].shape)]

    def _forward(self, data: LayerData) -> float:
        data.top[0].value[...] = self.activation.evaluate(data.bottom[0].value)
        return 0.0

    def _backward(self, data: LayerData, propagate_params: bool) -> None:
        bottom, top = data.bottom[0], data.top[0]
        slope = self.activation.first_derivative(bottom.value, top.value)
        np.multiply(top.gradient, slope, out=bottom.gradient, casting="unsafe")

    def get_config(self) -> Dict[str, Any]:
        cfg = super().get_config()
        cfg.update(
            activation=self.activation.kind.value,
            negative_slope=self.activation.negative_slope,
        )
        return cfg
