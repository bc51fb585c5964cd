"""
2D pooling layer (max / average) over NCHW tensors.

Windows are clipped to the input extent rather than padded, and the pooled
extent follows `pooled_size`. Max pooling records the winning flat spatial
index (``h * W + w``) of every output position; when the layer declares a
second top, that index map is exposed there (stored as float values),
otherwise it is kept internally for the backward pass.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

from ...domain._errors import ConfigurationError
from ..ops.pool2d_cpu import (
    avgpool2d_backward_cpu,
    avgpool2d_forward_cpu,
    maxpool2d_backward_cpu,
    maxpool2d_forward_cpu,
    pooled_size,
)
from ..registry._serialization_core import register_layer
from ..tensor._tensor import Tensor
from ._base import Layer, LayerData


class PoolMethod(str, Enum):
    MAX = "max"
    AVERAGE = "average"


@register_layer()
class PoolingLayer(Layer):
    """
    Max or average pooling.

    Parameters
    ----------
    name, bottom, top
        See `Layer`. One bottom; one top, or two for max pooling where the
        second receives the argmax map.
    method : PoolMethod or str, optional
        ``"max"`` (default) or ``"average"``.
    kernel_h, kernel_w : int
        Window geometry.
    stride_h, stride_w : int, optional
        Defaults to 1.
    pad_h, pad_w : int, optional
        Defaults to 0. Must be smaller than the kernel along the same axis.
    """

    def __init__(
        self,
        name: str,
        bottom=(),
        top=(),
        *,
        kernel_h: int,
        kernel_w: int,
        method: PoolMethod | str = PoolMethod.MAX,
        stride_h: int = 1,
        stride_w: int = 1,
        pad_h: int = 0,
        pad_w: int = 0,
    ) -> None:
        super().__init__(name, bottom, top)
        self.method = PoolMethod(method)
        for key, v in (
            ("kernel_h", kernel_h),
            ("kernel_w", kernel_w),
            ("stride_h", stride_h),
            ("stride_w", stride_w),
        ):
            if int(v) <= 0:
                raise ValueError(f"{key} must be a positive integer")
        if int(pad_h) < 0 or int(pad_w) < 0:
            raise ValueError("padding must be non-negative")

        self.kernel_h, self.kernel_w = int(kernel_h), int(kernel_w)
        self.stride_h, self.stride_w = int(stride_h), int(stride_w)
        self.pad_h, self.pad_w = int(pad_h), int(pad_w)
        self._mask: Optional[np.ndarray] = None

    @property
    def _geometry(self) -> Dict[str, Any]:
        return {
            "kernel_size": (self.kernel_h, self.kernel_w),
            "stride": (self.stride_h, self.stride_w),
            "padding": (self.pad_h, self.pad_w),
        }

    def _setup(self, data: LayerData) -> List[Tensor]:
        self._check_names(1, (1, 2) if self.method is PoolMethod.MAX else 1)
        if self.pad_h >= self.kernel_h or self.pad_w >= self.kernel_w:
            raise ConfigurationError(
                f"padding ({self.pad_h}, {self.pad_w}) must be smaller than "
                f"kernel ({self.kernel_h}, {self.kernel_w})",
                layer=self.name,
            )

        shape = data.bottom[0].shape
        out_h = pooled_size(shape.height, self.kernel_h, self.pad_h, self.stride_h)
        out_w = pooled_size(shape.width, self.kernel_w, self.pad_w, self.stride_w)
        if out_h <= 0 or out_w <= 0:
            raise ConfigurationError(
                f"window {self.kernel_h}x{self.kernel_w} does not fit input "
                f"{shape.height}x{shape.width}",
                layer=self.name,
            )

        top_shape = (shape.batch, shape.channel, out_h, out_w)
        tops = [Tensor(t, top_shape) for t in self.top_names]
        if self.method is PoolMethod.MAX and len(tops) == 1:
            self._mask = np.zeros(top_shape, dtype=np.int64)
        return tops

    def _forward(self, data: LayerData) -> float:
        x = data.bottom[0].values()
        y = data.top[0].values()

        if self.method is PoolMethod.MAX:
            mask = data.top[1].values() if len(data.top) > 1 else self._mask
            maxpool2d_forward_cpu(x, y=y, mask=mask, **self._geometry)
        else:
            avgpool2d_forward_cpu(x, y=y, **self._geometry)
        return 0.0

    def _backward(self, data: LayerData, propagate_params: bool) -> None:
        bottom = data.bottom[0]
        grad_out = data.top[0].gradients()
        grad_x = bottom.gradients()
        x_shape = bottom.shape.as_tuple()

        if self.method is PoolMethod.MAX:
            mask = data.top[1].values() if len(data.top) > 1 else self._mask
            maxpool2d_backward_cpu(grad_out, mask, x_shape=x_shape, grad_x=grad_x)
        else:
            avgpool2d_backward_cpu(grad_out, x_shape=x_shape, grad_x=grad_x, **self._geometry)

    def get_config(self) -> Dict[str, Any]:
        cfg = super().get_config()
        cfg.update(
            method=self.method.value,
            kernel_h=self.kernel_h,
            kernel_w=self.kernel_w,
            stride_h=self.stride_h,
            stride_w=self.stride_w,
            pad_h=self.pad_h,
            pad_w=self.pad_w,
        )
        return cfg
