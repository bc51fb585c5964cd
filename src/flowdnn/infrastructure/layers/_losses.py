"""
Loss layers.

Both losses wrap an internal activation sublayer (softmax / sigmoid) and emit
a single-element loss top. The loss weight lives in that top's gradient
buffer: it is set at setup and read back in backward, so a caller may rescale
a loss by writing ``loss_top.gradient[0]``.

SoftmaxWithLossLayer
--------------------
bottoms: ``(scores, label)``; tops: ``(loss,)`` or ``(loss, prob)``.

    loss = -1/(N*S) * sum_{n,s} log(max(prob[n, label[n,s], s], tiny))
    dScores = (prob - onehot(label)) * loss_weight / (N*S)

with ``S`` the spatial size. Labels hold class indices stored as floats.

SigmoidCrossEntropyLossLayer
----------------------------
bottoms: ``(logits, target)`` of equal shape; tops: ``(loss,)``.

    loss = 1/N * sum(x * (1{x >= 0} - t) + log(1 + exp(-|x|)))
    dLogits = (sigmoid(x) - t) * loss_weight / N
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np

from ...domain._errors import ShapeMismatchError
from ..registry._serialization_core import register_layer
from ..tensor._tensor import Tensor
from ._activations import ActivationKind, NeuronLayer
from ._base import Layer, LayerData
from ._softmax import SoftmaxLayer

_TINY = float(np.finfo(np.float32).tiny)


class _LossLayer(Layer):
    """
    Shared loss-weight handling.
    """

    def __init__(self, name: str, bottom=(), top=(), *, loss_weight: float = 1.0) -> None:
        super().__init__(name, bottom, top)
        self.loss_weight = float(loss_weight)

    def _loss_top(self) -> Tensor:
        top = Tensor(self.top_names[0], (1, 1, 1, 1))
        top.gradient[0] = self.loss_weight
        return top

    @staticmethod
    def _weight(data: LayerData) -> float:
        return float(data.top[0].gradient[0])

    def get_config(self) -> Dict[str, Any]:
        cfg = super().get_config()
        cfg.update(loss_weight=self.loss_weight)
        return cfg


@register_layer()
class SoftmaxWithLossLayer(_LossLayer):
    """
    Softmax followed by multinomial negative log-likelihood.
    """

    def __init__(self, name: str, bottom=(), top=(), *, loss_weight: float = 1.0) -> None:
        super().__init__(name, bottom, top, loss_weight=loss_weight)
        self._softmax: Optional[SoftmaxLayer] = None
        self._softmax_data: Optional[LayerData] = None

    def _setup(self, data: LayerData) -> List[Tensor]:
        self._check_names(2, (1, 2))

        scores, label = data.bottom
        shape = scores.shape
        if label.size != shape.batch * shape.spatial_size:
            raise ShapeMismatchError(
                f"label '{label.name}' holds {label.size} values, expected one per "
                f"batch sample and position ({shape.batch * shape.spatial_size})",
                layer=self.name,
            )

        prob_name = self.top_names[1] if len(self.top_names) > 1 else f"{self.name}_softmax_prob"
        self._softmax = SoftmaxLayer(f"{self.name}_softmax", [scores.name], [prob_name])
        self._softmax_data = LayerData(bottom=[scores], backend=data.backend)
        self._softmax.setup(self._softmax_data)

        tops = [self._loss_top()]
        if len(self.top_names) > 1:
            tops.append(self._softmax_data.top[0])
        return tops

    def _picked(self, data: LayerData) -> tuple[np.ndarray, np.ndarray]:
        shape = data.bottom[0].shape
        prob = self._softmax_data.top[0].value.reshape(
            shape.batch, shape.channel, shape.spatial_size
        )
        labels = data.bottom[1].value.astype(np.int64).reshape(shape.batch, 1, shape.spatial_size)
        return prob, labels

    def _forward(self, data: LayerData) -> float:
        self._softmax.forward(self._softmax_data)

        prob, labels = self._picked(data)
        picked = np.take_along_axis(prob, labels, axis=1)
        count = labels.size
        loss = -np.log(np.maximum(picked, _TINY), dtype=np.float64).sum() / count

        data.top[0].value[0] = loss
        return float(loss) * self._weight(data)

    def _backward(self, data: LayerData, propagate_params: bool) -> None:
        prob, labels = self._picked(data)
        shape = data.bottom[0].shape
        diff = data.bottom[0].gradient.reshape(shape.batch, shape.channel, shape.spatial_size)

        diff[...] = prob
        rows = np.arange(shape.batch)[:, None]
        cols = np.arange(shape.spatial_size)[None, :]
        diff[rows, labels[:, 0, :], cols] -= 1.0
        self.backend.scal(self._weight(data) / labels.size, data.bottom[0].gradient)


@register_layer()
class SigmoidCrossEntropyLossLayer(_LossLayer):
    """
    Sigmoid followed by binary cross-entropy against targets in ``[0, 1]``.
    """

    def __init__(self, name: str, bottom=(), top=(), *, loss_weight: float = 1.0) -> None:
        super().__init__(name, bottom, top, loss_weight=loss_weight)
        self._sigmoid: Optional[NeuronLayer] = None
        self._sigmoid_data: Optional[LayerData] = None

    def _setup(self, data: LayerData) -> List[Tensor]:
        self._check_names(2, 1)

        logits, target = data.bottom
        if logits.shape != target.shape:
            raise ShapeMismatchError(
                f"logits {logits.shape} and target {target.shape} must have the same shape",
                layer=self.name,
            )

        self._sigmoid = NeuronLayer(
            f"{self.name}_sigmoid",
            [logits.name],
            [f"{self.name}_sigmoid_top"],
            activation=ActivationKind.SIGMOID,
        )
        self._sigmoid_data = LayerData(bottom=[logits], backend=data.backend)
        self._sigmoid.setup(self._sigmoid_data)
        return [self._loss_top()]

    def _forward(self, data: LayerData) -> float:
        self._sigmoid.forward(self._sigmoid_data)

        x = data.bottom[0].value.astype(np.float64)
        t = data.bottom[1].value.astype(np.float64)
        loss = (x * ((x >= 0) - t) + np.log1p(np.exp(-np.abs(x)))).sum()
        loss /= data.bottom[0].shape.batch

        data.top[0].value[0] = loss
        return float(loss) * self._weight(data)

    def _backward(self, data: LayerData, propagate_params: bool) -> None:
        diff = data.bottom[0].gradient
        np.subtract(self._sigmoid_data.top[0].value, data.bottom[1].value, out=diff)
        self.backend.scal(self._weight(data) / data.bottom[0].shape.batch, diff)
