"""
Abstract interfaces and utilities for parameter filling.

This module defines the abstract base class for weight fillers used by
parameterized layers, along with shared helpers for computing fan-in and
fan-out from a four-dimensional parameter shape.

The concrete registry and filler functions live in the infrastructure layer.
This module exists in the domain layer to define contracts and shared
mathematical utilities without binding to NumPy.

Parameter shape conventions
---------------------------
- Affine weights are stored as ``(1, 1, num_outputs, num_inputs)``.
- Convolution weights are stored as
  ``(num_outputs, channels_per_group, kernel_h, kernel_w)``.
- Biases are stored as ``(1, 1, 1, num_outputs)``.
"""

from __future__ import annotations

from abc import ABC
from typing import Callable, Dict, Optional, TypeVar

from .._shape import Shape4
from .._tensor import ITensor


T = TypeVar("T", bound=Callable[..., ITensor])


class _WeightFiller(ABC):
    """
    Abstract base class for weight filler dispatchers.

    Design notes
    ------------
    - Fillers are identified by string names.
    - Each filler is a callable that mutates a tensor's value buffer in-place
      and returns the tensor.
    - This class does not prescribe how fillers are stored or invoked; it
      only defines the expected interface.
    """

    FILLERS: Dict[str, Callable] = {}

    def __init__(self, filler_name: str) -> None: ...

    @classmethod
    def register_filler(cls, name: str, *, overwrite: bool = False) -> Callable[[T], T]:
        """
        Return a decorator registering a filler under ``name``.
        """
        ...

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return the names of all registered fillers, sorted."""
        ...

    def __call__(self, tensor: ITensor, *, rng: Optional[object] = None, **kwargs) -> ITensor:
        """Apply the filler to ``tensor``."""
        ...


def _fan_shape(shape: Shape4) -> tuple[int, ...]:
    """
    Collapse a parameter shape to the axes that carry fan information.

    Affine and bias parameters keep their leading singleton axes; those are
    dropped so that they are treated as (out, in) matrices.
    """
    if shape.batch == 1 and shape.channel == 1:
        return (shape.height, shape.width)
    return shape.as_tuple()


def _calculate_fan_in(shape: Shape4) -> int:
    """
    Number of input connections feeding a single output unit.
    """
    fan_in, _ = _calculate_fan_in_and_fan_out(shape)
    return fan_in


def _calculate_fan_in_and_fan_out(shape: Shape4) -> tuple[int, int]:
    """
    Compute both fan-in and fan-out for a parameter shape.

    Returns
    -------
    tuple[int, int]
        A tuple of (fan_in, fan_out).
    """
    dims = _fan_shape(shape)
    if len(dims) == 2:
        # (out, in)
        fan_out, fan_in = dims
        return int(fan_in), int(fan_out)

    # (out_channels, in_channels_per_group, k_h, k_w)
    receptive_field = int(dims[2]) * int(dims[3])
    fan_in = int(dims[1]) * receptive_field
    fan_out = int(dims[0]) * receptive_field
    return fan_in, fan_out
