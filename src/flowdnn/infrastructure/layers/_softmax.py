"""
Softmax normalization across the channel axis.

For every batch sample and every spatial position independently:

    top[c] = exp(bottom[c] - max_c bottom) / sum_c exp(bottom[c] - max_c bottom)

Subtracting the per-position channel max keeps ``exp`` from overflowing.

Backward
--------
With ``y`` the output and ``g`` the output gradient, per position:

    dBottom[c] = (g[c] - sum_c'(g[c'] * y[c'])) * y[c]
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from ..ops.blas_cpu import subslice
from ..registry._serialization_core import register_layer
from ..tensor._tensor import Tensor
from ._base import Layer, LayerData


@register_layer()
class SoftmaxLayer(Layer):
    """
    Channel-wise softmax. One bottom, one top of the same shape.
    """

    def __init__(self, name: str, bottom=(), top=()) -> None:
        super().__init__(name, bottom, top)
        self._sum_multiplier: Optional[Tensor] = None
        self._scale: Optional[Tensor] = None

    def _setup(self, data: LayerData) -> List[Tensor]:
        self._check_names(1, 1)

        shape = data.bottom[0].shape
        self._sum_multiplier = Tensor(f"{self.name}_sum_multiplier", (1, shape.channel, 1, 1))
        self._sum_multiplier.fill(1.0)
        self._scale = Tensor(f"{self.name}_scale", (1, 1, shape.height, shape.width))

        return [Tensor(self.top_names[0], shape)]

    def _forward(self, data: LayerData) -> float:
        blas = self.backend
        bottom = data.bottom[0]
        shape = bottom.shape
        channels = shape.channel
        spatial = shape.spatial_size

        top_data = data.top[0].value
        top_data[...] = bottom.value
        multiplier = self._sum_multiplier.value
        scale = self._scale.value

        planes = bottom.values().reshape(shape.batch, channels, spatial)
        for n in range(shape.batch):
            top_slice = subslice(top_data, n, shape.sample_size)

            np.max(planes[n], axis=0, out=scale)
            # Subtract the max
            blas.gemm(False, False, channels, spatial, 1, -1.0, multiplier, scale, 1.0, top_slice)
            # Exponentiate
            np.exp(top_slice, out=top_slice)
            # Sum of exponents
            blas.gemv(True, channels, spatial, 1.0, top_slice, multiplier, 0.0, scale)
            # Divide
            top_slice.reshape(channels, spatial)[...] /= scale

        return 0.0

    def _backward(self, data: LayerData, propagate_params: bool) -> None:
        blas = self.backend
        shape = data.bottom[0].shape
        channels = shape.channel
        spatial = shape.spatial_size

        top_data = data.top[0].value
        bottom_diff = data.bottom[0].gradient
        bottom_diff[...] = data.top[0].gradient
        multiplier = self._sum_multiplier.value
        scale = self._scale.value

        for n in range(shape.batch):
            diff_slice = subslice(bottom_diff, n, shape.sample_size)
            data_slice = subslice(top_data, n, shape.sample_size)
            for s in range(spatial):
                scale[s] = blas.dot(channels, diff_slice[s:], spatial, data_slice[s:], spatial)
            blas.gemm(False, False, channels, spatial, 1, -1.0, multiplier, scale, 1.0, diff_slice)

        bottom_diff *= top_data
