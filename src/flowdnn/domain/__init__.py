"""
Domain layer: backend-agnostic contracts, value types and errors.
"""

from ._shape import Shape4, ShapeLike
from ._tensor import ITensor
from ._layer import ILayer, LayerState
from ._backend import INumericBackend
from ._solver import ISolver
from ._data_provider import IDataProvider
from ._errors import (
    ArityError,
    ConfigurationError,
    DuplicateNameError,
    GradientOverwriteWarning,
    LayerStateError,
    ShapeMismatchError,
    UnreachableLayerError,
)

__all__ = [
    "Shape4",
    "ShapeLike",
    "ITensor",
    "ILayer",
    "LayerState",
    "INumericBackend",
    "ISolver",
    "IDataProvider",
    "ArityError",
    "ConfigurationError",
    "DuplicateNameError",
    "GradientOverwriteWarning",
    "LayerStateError",
    "ShapeMismatchError",
    "UnreachableLayerError",
]
