from ._weight_filling import _WeightFiller

__all__ = ["_WeightFiller"]
