"""
Grouped 2D convolution via patch extraction (im2col + GEMM).

For each batch sample the input image is unrolled into a column buffer of
shape ``(C * kh * kw, H_out * W_out)`` and the filter bank is applied as a
matrix product per channel group:

    top_g = W_g @ col_g            W_g : (F/G, C/G * kh * kw)

followed by the bias broadcast ``bias @ ones^T`` over spatial positions.

Backward (per sample, per group)
--------------------------------
- ``colDiff_g = W_g^T @ topDiff_g`` then ``col2im`` into the input gradient
- ``dW_g     += topDiff_g @ col_g^T``
- ``dbias    += topDiff @ ones``

Several bottoms may be convolved with the same filters; each produces the
top at the same position in ``top_names``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np

from ...domain._errors import ArityError, ConfigurationError, ShapeMismatchError
from ..ops.blas_cpu import subslice
from ..ops.im2col_cpu import col2im, conv_out_size, im2col
from ..registry._serialization_core import register_layer
from ..tensor._parameter import Parameter
from ..tensor._tensor import Tensor
from ._base import Layer, LayerData


@register_layer()
class ConvolutionLayer(Layer):
    """
    2D convolution over NCHW tensors with optional channel grouping.

    Parameters
    ----------
    name, bottom, top
        See `Layer`. At least one bottom; exactly one top per bottom.
    num_outputs : int
        Number of filters ``F``.
    kernel_h, kernel_w : int
        Kernel geometry.
    pad_h, pad_w : int, optional
        Zero padding. Defaults to 0.
    stride_h, stride_w : int, optional
        Window stride. Defaults to 1.
    num_groups : int, optional
        Channel groups ``G``. Both the input channel count and ``num_outputs``
        must be divisible by it. Defaults to 1.
    include_bias : bool, optional
        Defaults to True.
    weight_filler, bias_filler, weight_filler_options, bias_filler_options, seed
        See `InnerProductLayer`.

    Notes
    -----
    Weight shape is ``(F, C / G, kh, kw)``; bias shape is ``(1, 1, 1, F)``.
    """

    def __init__(
        self,
        name: str,
        bottom=(),
        top=(),
        *,
        num_outputs: int,
        kernel_h: int,
        kernel_w: int,
        pad_h: int = 0,
        pad_w: int = 0,
        stride_h: int = 1,
        stride_w: int = 1,
        num_groups: int = 1,
        include_bias: bool = True,
        weight_filler: str = "xavier",
        bias_filler: str = "zeros",
        weight_filler_options: Optional[Dict[str, Any]] = None,
        bias_filler_options: Optional[Dict[str, Any]] = None,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(name, bottom, top)
        for key, v in (
            ("num_outputs", num_outputs),
            ("kernel_h", kernel_h),
            ("kernel_w", kernel_w),
            ("stride_h", stride_h),
            ("stride_w", stride_w),
            ("num_groups", num_groups),
        ):
            if int(v) <= 0:
                raise ValueError(f"{key} must be a positive integer")
        if int(pad_h) < 0 or int(pad_w) < 0:
            raise ValueError("padding must be non-negative")

        self.num_outputs = int(num_outputs)
        self.kernel_h, self.kernel_w = int(kernel_h), int(kernel_w)
        self.pad_h, self.pad_w = int(pad_h), int(pad_w)
        self.stride_h, self.stride_w = int(stride_h), int(stride_w)
        self.num_groups = int(num_groups)
        self.include_bias = bool(include_bias)
        self.weight_filler = str(weight_filler)
        self.bias_filler = str(bias_filler)
        self.weight_filler_options = dict(weight_filler_options or {})
        self.bias_filler_options = dict(bias_filler_options or {})
        self.seed = seed

        self.weight: Optional[Parameter] = None
        self.bias: Optional[Parameter] = None
        self._bias_multiplier: Optional[Tensor] = None
        self._col: Optional[Tensor] = None

    def _setup(self, data: LayerData) -> List[Tensor]:
        if not self.bottom_names:
            raise ArityError(self.name, "bottom", "at least 1", 0)
        self._check_top(len(self.bottom_names))

        shape = data.bottom[0].shape
        for other in data.bottom[1:]:
            if other.shape != shape:
                raise ShapeMismatchError(
                    f"all bottoms must share shape {shape}, got {other.shape} "
                    f"for '{other.name}'",
                    layer=self.name,
                )
        if shape.channel % self.num_groups != 0:
            raise ConfigurationError(
                f"input channels ({shape.channel}) must be a multiple of "
                f"num_groups ({self.num_groups})",
                layer=self.name,
            )
        if self.num_outputs % self.num_groups != 0:
            raise ConfigurationError(
                f"num_outputs ({self.num_outputs}) must be a multiple of "
                f"num_groups ({self.num_groups})",
                layer=self.name,
            )

        self._bottom_shape = shape
        self._out_h = conv_out_size(shape.height, self.kernel_h, self.pad_h, self.stride_h)
        self._out_w = conv_out_size(shape.width, self.kernel_w, self.pad_w, self.stride_w)
        if self._out_h <= 0 or self._out_w <= 0:
            raise ConfigurationError(
                f"kernel {self.kernel_h}x{self.kernel_w} does not fit input "
                f"{shape.height}x{shape.width} with padding "
                f"{self.pad_h}x{self.pad_w}",
                layer=self.name,
            )

        group_channels = shape.channel // self.num_groups
        self._m = self.num_outputs // self.num_groups
        self._k = group_channels * self.kernel_h * self.kernel_w
        self._n = self._out_h * self._out_w

        rng = np.random.default_rng(self.seed)
        self.weight = Parameter(
            f"{self.name}_weight",
            (self.num_outputs, group_channels, self.kernel_h, self.kernel_w),
        )
        self._fill(self.weight, self.weight_filler, rng, self.weight_filler_options)
        if self.include_bias:
            self.bias = Parameter(f"{self.name}_bias", (1, 1, 1, self.num_outputs))
            self._fill(self.bias, self.bias_filler, rng, self.bias_filler_options)
            self._bias_multiplier = Tensor(f"{self.name}_bias_multiplier", (1, 1, 1, self._n))
            self._bias_multiplier.fill(1.0)

        self._col = Tensor(
            f"{self.name}_col_buffer",
            (1, shape.channel * self.kernel_h * self.kernel_w, self._out_h, self._out_w),
        )

        top_shape = (shape.batch, self.num_outputs, self._out_h, self._out_w)
        return [Tensor(t, top_shape) for t in self.top_names]

    def _im2col(self, image: np.ndarray, col: np.ndarray) -> None:
        s = self._bottom_shape
        im2col(
            image, s.channel, s.height, s.width,
            self.kernel_h, self.kernel_w, self.pad_h, self.pad_w,
            self.stride_h, self.stride_w, col,
        )

    def _col2im(self, col: np.ndarray, image: np.ndarray) -> None:
        s = self._bottom_shape
        col2im(
            col, s.channel, s.height, s.width,
            self.kernel_h, self.kernel_w, self.pad_h, self.pad_w,
            self.stride_h, self.stride_w, image,
        )

    def _forward(self, data: LayerData) -> float:
        blas = self.backend
        m, n, k = self._m, self._n, self._k
        weight = self.weight.value
        col = self._col.value
        bottom_size = self._bottom_shape.sample_size

        for bottom, top in zip(data.bottom, data.top):
            top_size = top.shape.sample_size
            for b in range(self._bottom_shape.batch):
                top_slice = subslice(top.value, b, top_size)
                self._im2col(subslice(bottom.value, b, bottom_size), col)

                for g in range(self.num_groups):
                    blas.gemm(
                        False, False, m, n, k,
                        1.0, subslice(weight, g, m * k), subslice(col, g, k * n),
                        0.0, subslice(top_slice, g, m * n),
                    )

                if self.include_bias:
                    blas.gemm(
                        False, False, self.num_outputs, n, 1,
                        1.0, self.bias.value, self._bias_multiplier.value,
                        1.0, top_slice,
                    )
        return 0.0

    def _backward(self, data: LayerData, propagate_params: bool) -> None:
        blas = self.backend
        m, n, k = self._m, self._n, self._k
        weight = self.weight.value
        col = self._col.value
        col_diff = self._col.gradient
        bottom_size = self._bottom_shape.sample_size

        if propagate_params:
            self.weight.zero_gradient()
            if self.include_bias:
                self.bias.zero_gradient()

        for bottom, top in zip(data.bottom, data.top):
            top_size = top.shape.sample_size
            for b in range(self._bottom_shape.batch):
                top_diff = subslice(top.gradient, b, top_size)

                if propagate_params:
                    self._im2col(subslice(bottom.value, b, bottom_size), col)
                    if self.include_bias:
                        blas.gemv(
                            False, self.num_outputs, n,
                            1.0, top_diff, self._bias_multiplier.value,
                            1.0, self.bias.gradient,
                        )

                for g in range(self.num_groups):
                    top_diff_g = subslice(top_diff, g, m * n)
                    if propagate_params:
                        # Gradient w.r.t. weight
                        blas.gemm(
                            False, True, m, k, n,
                            1.0, top_diff_g, subslice(col, g, k * n),
                            1.0, subslice(self.weight.gradient, g, m * k),
                        )
                    # Gradient w.r.t. patches
                    blas.gemm(
                        True, False, k, n, m,
                        1.0, subslice(weight, g, m * k), top_diff_g,
                        0.0, subslice(col_diff, g, k * n),
                    )

                self._col2im(col_diff, subslice(bottom.gradient, b, bottom_size))

    def get_config(self) -> Dict[str, Any]:
        cfg = super().get_config()
        cfg.update(
            num_outputs=self.num_outputs,
            kernel_h=self.kernel_h,
            kernel_w=self.kernel_w,
            pad_h=self.pad_h,
            pad_w=self.pad_w,
            stride_h=self.stride_h,
            stride_w=self.stride_w,
            num_groups=self.num_groups,
            include_bias=self.include_bias,
            weight_filler=self.weight_filler,
            bias_filler=self.bias_filler,
            weight_filler_options=dict(self.weight_filler_options),
            bias_filler_options=dict(self.bias_filler_options),
            seed=self.seed,
        )
        return cfg
