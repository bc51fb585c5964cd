"""
Random weight fillers.

Implemented variants
--------------------
- ``uniform``:
    ``U(low, high)``, defaults ``U(-0.05, 0.05)``.
- ``gaussian``:
    ``N(mean, std^2)``, defaults ``N(0, 0.01^2)``.
- ``xavier``:
    Xavier (Glorot) normal, ``std = sqrt(2 / (fan_in + fan_out))``.
- ``xavier_uniform``:
    ``U(-sqrt(6/(fan_in+fan_out)), +sqrt(6/(fan_in+fan_out)))``.
- ``kaiming``:
    Kaiming (He) normal for ReLU-family activations, ``std = sqrt(2 / fan_in)``.

Notes
-----
- Fan-in and fan-out are computed from the parameter's four-dimensional shape
  via ``_calculate_fan_in_and_fan_out``.
- All fillers draw from the ``rng`` they are given, so a seeded generator
  makes layer setup reproducible.
"""

import math

import numpy as np

from ._base import WeightFiller
from ...tensor._tensor import Tensor
from ....domain.utils._weight_filling import _calculate_fan_in_and_fan_out


@WeightFiller.register_filler("uniform")
def uniform(
    tensor: Tensor,
    *,
    rng: np.random.Generator,
    low: float = -0.05,
    high: float = 0.05,
) -> Tensor:
    tensor.copy_from_numpy(rng.uniform(low, high, size=tensor.size))
    return tensor


@WeightFiller.register_filler("gaussian")
def gaussian(
    tensor: Tensor,
    *,
    rng: np.random.Generator,
    mean: float = 0.0,
    std: float = 0.01,
) -> Tensor:
    tensor.copy_from_numpy(rng.normal(mean, std, size=tensor.size))
    return tensor


@WeightFiller.register_filler("xavier")
def xavier(tensor: Tensor, *, rng: np.random.Generator) -> Tensor:
    """
    Apply Xavier (Glorot) normal initialization.

    Parameters
    ----------
    tensor:
        The tensor to initialize in-place.
    rng:
        Random generator to draw from.

    Returns
    -------
    Tensor
        The initialized tensor (same object).
    """
    fan_in, fan_out = _calculate_fan_in_and_fan_out(tensor.shape)
    fan_in = max(1, int(fan_in))
    fan_out = max(1, int(fan_out))

    std = math.sqrt(2.0 / float(fan_in + fan_out))
    tensor.copy_from_numpy(rng.standard_normal(tensor.size) * std)
    return tensor


@WeightFiller.register_filler("xavier_uniform")
def xavier_uniform(tensor: Tensor, *, rng: np.random.Generator) -> Tensor:
    fan_in, fan_out = _calculate_fan_in_and_fan_out(tensor.shape)
    limit = math.sqrt(6.0 / float(max(1, fan_in) + max(1, fan_out)))
    tensor.copy_from_numpy(rng.uniform(-limit, limit, size=tensor.size))
    return tensor


@WeightFiller.register_filler("kaiming")
def kaiming(tensor: Tensor, *, rng: np.random.Generator) -> Tensor:
    """
    Apply Kaiming (He) normal initialization, ``std = sqrt(2 / fan_in)``.
    """
    fan_in, _ = _calculate_fan_in_and_fan_out(tensor.shape)
    std = math.sqrt(2.0 / float(max(1, fan_in)))
    tensor.copy_from_numpy(rng.standard_normal(tensor.size) * std)
    return tensor
