"""
Patch extraction ("image-to-column") and its inverse scatter (CPU, NumPy).

Convolution is computed as a matrix product between the filter bank and a
matrix of input patches. `im2col` builds that patch matrix for a single
batch sample; `col2im` is its adjoint, scatter-adding patch gradients back
into an input-gradient image.

Layout
------
For an input of ``channels x height x width`` and a ``kernel_h x kernel_w``
window, the column buffer is a ``(channels * kernel_h * kernel_w) x
(out_h * out_w)`` row-major matrix:

- row ``r`` corresponds to channel ``r // (kernel_h * kernel_w)`` and kernel
  offset ``((r // kernel_w) % kernel_h, r % kernel_w)``
- column ``q`` corresponds to output position ``(q // out_w, q % out_w)``

Reads that fall outside the input (because of padding) produce zeros; the
matching entries are dropped by `col2im`.

Both functions work on flat buffers (the per-sample slices layers hand out)
and write their output in place.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Tuple

import numpy as np


def conv_out_size(size: int, kernel: int, pad: int, stride: int) -> int:
    """
    Spatial output extent of a convolution: ``floor((size + 2*pad - kernel) / stride) + 1``.
    """
    return (size + 2 * pad - kernel) // stride + 1


@lru_cache(maxsize=64)
def _col_indices(
    channels: int,
    height: int,
    width: int,
    kernel_h: int,
    kernel_w: int,
    pad_h: int,
    pad_w: int,
    stride_h: int,
    stride_w: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Precompute the gather map of `im2col`.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        flat_idx :
            int64 array of shape (channels*kernel_h*kernel_w, out_h*out_w) with
            the flat input offset each column entry reads (garbage where
            invalid).
        valid :
            bool array of the same shape; False where the read falls into
            padding.
    """
    out_h = conv_out_size(height, kernel_h, pad_h, stride_h)
    out_w = conv_out_size(width, kernel_w, pad_w, stride_w)

    c = np.repeat(np.arange(channels), kernel_h * kernel_w)
    kh = np.tile(np.repeat(np.arange(kernel_h), kernel_w), channels)
    kw = np.tile(np.arange(kernel_w), kernel_h * channels)

    oh = stride_h * np.repeat(np.arange(out_h), out_w)
    ow = stride_w * np.tile(np.arange(out_w), out_h)

    rows = kh[:, None] + oh[None, :] - pad_h
    cols = kw[:, None] + ow[None, :] - pad_w

    valid = (rows >= 0) & (rows < height) & (cols >= 0) & (cols < width)
    flat_idx = (c[:, None] * height + rows) * width + cols

    flat_idx.setflags(write=False)
    valid.setflags(write=False)
    return flat_idx, valid


def im2col(
    data_im: np.ndarray,
    channels: int,
    height: int,
    width: int,
    kernel_h: int,
    kernel_w: int,
    pad_h: int,
    pad_w: int,
    stride_h: int,
    stride_w: int,
    data_col: np.ndarray,
) -> None:
    """
    Gather sliding-window patches of one image into ``data_col``.

    Parameters
    ----------
    data_im : np.ndarray
        Flat input image of ``channels * height * width`` elements.
    data_col : np.ndarray
        Flat output buffer holding at least
        ``channels * kernel_h * kernel_w * out_h * out_w`` elements.
    """
    flat_idx, valid = _col_indices(
        channels, height, width, kernel_h, kernel_w, pad_h, pad_w, stride_h, stride_w
    )
    col = data_col[: flat_idx.size].reshape(flat_idx.shape)
    col.fill(0.0)
    col[valid] = data_im[flat_idx[valid]]


def col2im(
    data_col: np.ndarray,
    channels: int,
    height: int,
    width: int,
    kernel_h: int,
    kernel_w: int,
    pad_h: int,
    pad_w: int,
    stride_h: int,
    stride_w: int,
    data_im: np.ndarray,
) -> None:
    """
    Scatter-add a column buffer back into an image (adjoint of `im2col`).

    ``data_im`` is zero-initialized first; overlapping windows accumulate.
    """
    flat_idx, valid = _col_indices(
        channels, height, width, kernel_h, kernel_w, pad_h, pad_w, stride_h, stride_w
    )
    col = data_col[: flat_idx.size].reshape(flat_idx.shape)
    im = data_im[: channels * height * width]
    im.fill(0.0)
    np.add.at(im, flat_idx[valid], col[valid])
