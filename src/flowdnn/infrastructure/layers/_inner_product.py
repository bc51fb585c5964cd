"""
Affine ("inner-product", fully connected) layer.

Each batch sample is flattened to a row of ``K = channel * height * width``
features and multiplied by a weight matrix ``W`` of shape ``(N, K)``:

    top = bottom @ W^T (+ ones @ bias)

with ``bottom`` viewed as ``(M, K)`` (``M`` = batch) and ``top`` of shape
``(M, N, 1, 1)``.

Backward
--------
- ``dW    = topDiff^T @ bottom``
- ``dbias = topDiff^T @ ones``
- ``dBottom = topDiff @ W``
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np

from ..registry._serialization_core import register_layer
from ..tensor._parameter import Parameter
from ..tensor._tensor import Tensor
from ._base import Layer, LayerData


@register_layer()
class InnerProductLayer(Layer):
    """
    Dense affine transform over flattened per-sample inputs.

    Parameters
    ----------
    name, bottom, top
        See `Layer`. Exactly one bottom and one top.
    num_outputs : int
        Output feature count ``N``.
    include_bias : bool, optional
        Whether to add a learned bias. Defaults to True.
    weight_filler, bias_filler : str, optional
        Registered `WeightFiller` names. Default ``"xavier"`` / ``"zeros"``.
    weight_filler_options, bias_filler_options : dict, optional
        Extra keyword arguments for the fillers.
    seed : int, optional
        Seed for the filler random generator.
    """

    def __init__(
        self,
        name: str,
        bottom=(),
        top=(),
        *,
        num_outputs: int,
        include_bias: bool = True,
        weight_filler: str = "xavier",
        bias_filler: str = "zeros",
        weight_filler_options: Optional[Dict[str, Any]] = None,
        bias_filler_options: Optional[Dict[str, Any]] = None,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(name, bottom, top)
        if int(num_outputs) <= 0:
            raise ValueError("num_outputs must be a positive integer")
        self.num_outputs = int(num_outputs)
        self.include_bias = bool(include_bias)
        self.weight_filler = str(weight_filler)
        self.bias_filler = str(bias_filler)
        self.weight_filler_options = dict(weight_filler_options or {})
        self.bias_filler_options = dict(bias_filler_options or {})
        self.seed = seed

        self.weight: Optional[Parameter] = None
        self.bias: Optional[Parameter] = None
        self._bias_multiplier: Optional[Tensor] = None
        self._m = self._n = self._k = 0

    def _setup(self, data: LayerData) -> List[Tensor]:
        self._check_names(1, 1)

        bottom_shape = data.bottom[0].shape
        self._m = bottom_shape.batch
        self._n = self.num_outputs
        self._k = bottom_shape.sample_size

        rng = np.random.default_rng(self.seed)
        self.weight = Parameter(f"{self.name}_weight", (1, 1, self._n, self._k))
        self._fill(self.weight, self.weight_filler, rng, self.weight_filler_options)
        if self.include_bias:
            self.bias = Parameter(f"{self.name}_bias", (1, 1, 1, self._n))
            self._fill(self.bias, self.bias_filler, rng, self.bias_filler_options)
            self._bias_multiplier = Tensor(f"{self.name}_bias_multiplier", (1, 1, 1, self._m))
            self._bias_multiplier.fill(1.0)

        return [Tensor(self.top_names[0], (self._m, self._n, 1, 1))]

    def _forward(self, data: LayerData) -> float:
        blas = self.backend
        bottom = data.bottom[0].value
        top = data.top[0].value

        blas.gemm(False, True, self._m, self._n, self._k, 1.0, bottom, self.weight.value, 0.0, top)
        if self.include_bias:
            blas.gemm(
                False, False, self._m, self._n, 1,
                1.0, self._bias_multiplier.value, self.bias.value, 1.0, top,
            )
        return 0.0

    def _backward(self, data: LayerData, propagate_params: bool) -> None:
        blas = self.backend
        top_diff = data.top[0].gradient

        if propagate_params:
            bottom = data.bottom[0].value
            # Gradient w.r.t. weight
            blas.gemm(
                True, False, self._n, self._k, self._m,
                1.0, top_diff, bottom, 0.0, self.weight.gradient,
            )
            if self.include_bias:
                # Gradient w.r.t. bias
                blas.gemv(
                    True, self._m, self._n,
                    1.0, top_diff, self._bias_multiplier.value, 0.0, self.bias.gradient,
                )

        # Gradient w.r.t. bottom data
        blas.gemm(
            False, False, self._m, self._k, self._n,
            1.0, top_diff, self.weight.value, 0.0, data.bottom[0].gradient,
        )

    def get_config(self) -> Dict[str, Any]:
        cfg = super().get_config()
        cfg.update(
            num_outputs=self.num_outputs,
            include_bias=self.include_bias,
            weight_filler=self.weight_filler,
            bias_filler=self.bias_filler,
            weight_filler_options=dict(self.weight_filler_options),
            bias_filler_options=dict(self.bias_filler_options),
            seed=self.seed,
        )
        return cfg
