"""
CPU reference implementations for 2D pooling operations (NumPy backend).

This module provides readable NumPy implementations of max and average
pooling over **NCHW** arrays, used by `PoolingLayer`.

Window semantics
----------------
For output index ``i`` along an axis of input extent ``size``::

    start = stride * i - pad
    end   = min(start + kernel, size)
    start = max(start, 0)

Windows are clipped to the input rather than padded, so:

- MaxPool only ever selects real input elements; the winning element's flat
  spatial index (``h * W + w``) is recorded per output position.
- AvgPool divides by the clipped window area, not the nominal kernel area.

The pooled extent is ``floor((size + 2*pad - kernel) / stride) + 1``, reduced
by one if the last window would start at or beyond ``size + pad``.

Loops run over output positions only; batch and channel axes are vectorized.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np


def _pair(v: int | Tuple[int, int]) -> Tuple[int, int]:
    """
    Normalize an integer or pair into a 2-tuple.
    """
    return tuple(v) if isinstance(v, (tuple, list)) else (v, v)


def pooled_size(size: int, kernel: int, pad: int, stride: int) -> int:
    """
    Output extent of a pooling window sweep along one axis.
    """
    out = (size + 2 * pad - kernel) // stride + 1
    if (out - 1) * stride >= size + pad:
        out -= 1
    return out


def _windows(out: int, size: int, kernel: int, pad: int, stride: int) -> List[Tuple[int, int]]:
    spans = []
    for i in range(out):
        start = stride * i - pad
        end = min(start + kernel, size)
        spans.append((max(start, 0), end))
    return spans


def _out_hw(
    H: int, W: int, k: Tuple[int, int], s: Tuple[int, int], p: Tuple[int, int]
) -> Tuple[int, int]:
    return pooled_size(H, k[0], p[0], s[0]), pooled_size(W, k[1], p[1], s[1])


def maxpool2d_forward_cpu(
    x: np.ndarray,
    *,
    kernel_size: int | Tuple[int, int],
    stride: Optional[int | Tuple[int, int]] = None,
    padding: int | Tuple[int, int] = 0,
    y: Optional[np.ndarray] = None,
    mask: Optional[np.ndarray] = None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    MaxPool2D forward pass (CPU, NumPy) for NCHW arrays.

    Parameters
    ----------
    x : np.ndarray
        Input of shape (N, C, H, W).
    kernel_size, stride, padding
        Window geometry. ``stride`` defaults to ``kernel_size``.
    y, mask : np.ndarray, optional
        Preallocated outputs of shape (N, C, H_out, W_out). When given, results
        are written in place.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        y :
            Pooled output.
        mask :
            Flat spatial index ``h * W + w`` of the winning input element for
            every output position. Ties resolve to the first element in
            row-major window order.
    """
    k = _pair(kernel_size)
    s = _pair(kernel_size if stride is None else stride)
    p = _pair(padding)

    N, C, H, W = x.shape
    H_out, W_out = _out_hw(H, W, k, s, p)

    if y is None:
        y = np.empty((N, C, H_out, W_out), dtype=x.dtype)
    if mask is None:
        mask = np.empty((N, C, H_out, W_out), dtype=np.int64)

    rows = _windows(H_out, H, k[0], p[0], s[0])
    cols = _windows(W_out, W, k[1], p[1], s[1])

    for i, (h0, h1) in enumerate(rows):
        for j, (w0, w1) in enumerate(cols):
            patch = x[:, :, h0:h1, w0:w1].reshape(N, C, -1)
            flat = np.argmax(patch, axis=2)
            y[:, :, i, j] = np.take_along_axis(patch, flat[..., None], axis=2)[..., 0]

            span_w = w1 - w0
            mask[:, :, i, j] = (h0 + flat // span_w) * W + (w0 + flat % span_w)

    return y, mask


def maxpool2d_backward_cpu(
    grad_out: np.ndarray,
    mask: np.ndarray,
    *,
    x_shape: tuple[int, int, int, int],
    grad_x: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    MaxPool2D backward pass (CPU, NumPy), NCHW.

    Each output gradient is routed to exactly one input element, the argmax
    recorded in ``mask``. ``grad_x`` is overwritten; overlapping windows that
    share a winner accumulate.

    Returns
    -------
    np.ndarray
        Gradient with respect to the input, shape ``x_shape``.
    """
    N, C, H, W = x_shape
    if grad_x is None:
        grad_x = np.empty(x_shape, dtype=grad_out.dtype)
    grad_x.fill(0.0)

    planes = grad_x.reshape(N * C, H * W)
    idx = mask.reshape(N * C, -1).astype(np.int64)
    plane_idx = np.arange(N * C)[:, None]
    np.add.at(planes, (plane_idx, idx), grad_out.reshape(N * C, -1))
    return grad_x


def avgpool2d_forward_cpu(
    x: np.ndarray,
    *,
    kernel_size: int | Tuple[int, int],
    stride: Optional[int | Tuple[int, int]] = None,
    padding: int | Tuple[int, int] = 0,
    y: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    AvgPool2D forward pass (CPU, NumPy) for NCHW arrays.

    Each output is the mean over its clipped window; the divisor is the
    clipped window area.
    """
    k = _pair(kernel_size)
    s = _pair(kernel_size if stride is None else stride)
    p = _pair(padding)

    N, C, H, W = x.shape
    H_out, W_out = _out_hw(H, W, k, s, p)
    if y is None:
        y = np.empty((N, C, H_out, W_out), dtype=x.dtype)

    rows = _windows(H_out, H, k[0], p[0], s[0])
    cols = _windows(W_out, W, k[1], p[1], s[1])

    for i, (h0, h1) in enumerate(rows):
        for j, (w0, w1) in enumerate(cols):
            area = (h1 - h0) * (w1 - w0)
            y[:, :, i, j] = x[:, :, h0:h1, w0:w1].sum(axis=(2, 3)) / area

    return y


def avgpool2d_backward_cpu(
    grad_out: np.ndarray,
    *,
    x_shape: tuple[int, int, int, int],
    kernel_size: int | Tuple[int, int],
    stride: Optional[int | Tuple[int, int]] = None,
    padding: int | Tuple[int, int] = 0,
    grad_x: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    AvgPool2D backward pass (CPU, NumPy), NCHW.

    Distributes ``grad_out / area`` additively over every element of each
    clipped window. ``grad_x`` is overwritten.
    """
    k = _pair(kernel_size)
    s = _pair(kernel_size if stride is None else stride)
    p = _pair(padding)

    N, C, H, W = x_shape
    _, _, H_out, W_out = grad_out.shape
    if grad_x is None:
        grad_x = np.empty(x_shape, dtype=grad_out.dtype)
    grad_x.fill(0.0)

    rows = _windows(H_out, H, k[0], p[0], s[0])
    cols = _windows(W_out, W, k[1], p[1], s[1])

    for i, (h0, h1) in enumerate(rows):
        for j, (w0, w1) in enumerate(cols):
            area = (h1 - h0) * (w1 - w0)
            grad_x[:, :, h0:h1, w0:w1] += (grad_out[:, :, i, j] / area)[:, :, None, None]

    return grad_x
