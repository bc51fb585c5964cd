"""
Constant weight fillers.

Provided fillers
----------------
- ``constant``: every element set to ``value`` (default 0).
- ``zeros``: every element set to zero.
- ``ones``: every element set to one.

These are typically used for biases, tests, or deterministic setups.
"""

import numpy as np

from ._base import WeightFiller
from ...tensor._tensor import Tensor


@WeightFiller.register_filler("constant")
def constant(tensor: Tensor, *, rng: np.random.Generator, value: float = 0.0) -> Tensor:
    tensor.fill(value)
    return tensor


@WeightFiller.register_filler("zeros")
def zeros(tensor: Tensor, *, rng: np.random.Generator) -> Tensor:
    tensor.fill(0.0)
    return tensor


@WeightFiller.register_filler("ones")
def ones(tensor: Tensor, *, rng: np.random.Generator) -> Tensor:
    tensor.fill(1.0)
    return tensor
