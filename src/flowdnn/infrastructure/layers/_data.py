"""
In-memory data provider layer.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

import numpy as np

from ...domain._data_provider import IDataProvider
from ...domain._errors import ConfigurationError, ShapeMismatchError
from ...domain._shape import Shape4
from ..registry._serialization_core import register_layer
from ..tensor._tensor import Tensor
from ._base import Layer, LayerData


@register_layer()
class FixedDataLayer(Layer, IDataProvider):
    """
    Feeds a fixed, in-memory dataset into a network.

    Each forward call copies the next ``batch_size`` inputs into the tops and
    advances the cursor, wrapping modulo the number of inputs.

    Parameters
    ----------
    name : str
        Layer name.
    top : Sequence[str]
        One buffer name per data stream (e.g. ``["data", "label"]``).
    data : Sequence[array-like]
        One entry per top; entry ``i`` holds the inputs of stream ``i`` with
        the input index as its leading axis. Every stream must hold the same
        number of inputs.
    shapes : Sequence[Sequence[int]]
        Per-input shape ``(channel, height, width)`` of each stream.
    batch_size : int, optional
        Inputs per forward call. Defaults to 1.
    """

    def __init__(
        self,
        name: str,
        bottom=(),
        top=(),
        *,
        data: Sequence[Any],
        shapes: Sequence[Sequence[int]],
        batch_size: int = 1,
    ) -> None:
        super().__init__(name, bottom, top)
        if int(batch_size) <= 0:
            raise ValueError("batch_size must be a positive integer")
        self.batch_size = int(batch_size)
        self.shapes = [tuple(int(v) for v in s) for s in shapes]
        self._data = [np.asarray(d, dtype=np.float32) for d in data]
        self._index = 0
        self._count = 0

    def _setup(self, data: LayerData) -> List[Tensor]:
        if not self._data:
            raise ConfigurationError("no data streams given", layer=self.name)
        if len(self._data) != len(self.shapes):
            raise ConfigurationError(
                f"{len(self._data)} data streams but {len(self.shapes)} shapes",
                layer=self.name,
            )
        self._check_names(0, len(self._data))

        self._count = len(self._data[0])
        if self._count == 0:
            raise ConfigurationError("data streams are empty", layer=self.name)

        tops = []
        for i, (stream, sample_shape) in enumerate(zip(self._data, self.shapes)):
            if len(sample_shape) != 3:
                raise ConfigurationError(
                    f"shape {sample_shape} must be (channel, height, width)",
                    layer=self.name,
                )
            shape = Shape4(self.batch_size, *sample_shape)
            if len(stream) != self._count:
                raise ShapeMismatchError(
                    f"stream {i} holds {len(stream)} inputs, expected {self._count}",
                    layer=self.name,
                )
            if stream[0].size != shape.sample_size:
                raise ShapeMismatchError(
                    f"stream {i} inputs hold {stream[0].size} values, shape "
                    f"{sample_shape} needs {shape.sample_size}",
                    layer=self.name,
                )
            self._data[i] = stream.reshape(self._count, shape.sample_size)
            tops.append(Tensor(self.top_names[i], shape))

        self._index = 0
        return tops

    def _forward(self, data: LayerData) -> float:
        self.produce_next_batch(data.top)
        return 0.0

    def _backward(self, data: LayerData, propagate_params: bool) -> None:
        return None

    # ------------------------------------------------------------------
    # IDataProvider
    # ------------------------------------------------------------------
    def produce_next_batch(self, outputs: Sequence[Tensor]) -> None:
        rows = (self._index + np.arange(self.batch_size)) % self._count
        for stream, out in zip(self._data, outputs):
            out.value[...] = stream[rows].reshape(-1)
        self._index = int((self._index + self.batch_size) % self._count)

    def current_index(self) -> int:
        return self._index

    def total_inputs(self) -> int:
        return self._count

    def get_config(self) -> Dict[str, Any]:
        cfg = super().get_config()
        cfg.update(
            data=[d.tolist() for d in self._data],
            shapes=[list(s) for s in self.shapes],
            batch_size=self.batch_size,
        )
        return cfg
