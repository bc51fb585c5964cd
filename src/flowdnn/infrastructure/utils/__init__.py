from .weight_filler import WeightFiller
from ._gradient_check import GradientChecker, GradientMismatch

__all__ = [
    WeightFiller.__name__,
    GradientChecker.__name__,
    GradientMismatch.__name__,
]
