"""
flowdnn: a small feed-forward / back-propagation engine.

Layers declare the named buffers they read and write; `Network` orders them
into an executable pipeline, runs forward and backward passes, and applies
the steps computed by a solver such as `SgdSolver`.
"""

import logging

from .domain import (
    ArityError,
    ConfigurationError,
    DuplicateNameError,
    GradientOverwriteWarning,
    LayerState,
    LayerStateError,
    Shape4,
    ShapeMismatchError,
    UnreachableLayerError,
)
from .infrastructure.layers import (
    Activation,
    ActivationKind,
    ConvolutionLayer,
    FixedDataLayer,
    InnerProductLayer,
    Layer,
    LayerData,
    NeuronLayer,
    PoolingLayer,
    PoolMethod,
    SigmoidCrossEntropyLossLayer,
    SoftmaxLayer,
    SoftmaxWithLossLayer,
)
from .infrastructure.models import History, evaluate, fit
from .infrastructure.network import Network
from .infrastructure.ops import NumpyBackend
from .infrastructure.registry import layer_from_config, layer_to_config, register_layer
from .infrastructure.solvers import SgdSolver, SolverConfig
from .infrastructure.tensor import Parameter, Tensor
from .infrastructure.utils import GradientChecker, WeightFiller

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Activation",
    "ActivationKind",
    "ArityError",
    "ConfigurationError",
    "ConvolutionLayer",
    "DuplicateNameError",
    "FixedDataLayer",
    "GradientChecker",
    "GradientOverwriteWarning",
    "History",
    "InnerProductLayer",
    "Layer",
    "LayerData",
    "LayerState",
    "LayerStateError",
    "Network",
    "NeuronLayer",
    "NumpyBackend",
    "Parameter",
    "PoolingLayer",
    "PoolMethod",
    "SgdSolver",
    "Shape4",
    "ShapeMismatchError",
    "SigmoidCrossEntropyLossLayer",
    "SoftmaxLayer",
    "SoftmaxWithLossLayer",
    "SolverConfig",
    "Tensor",
    "UnreachableLayerError",
    "WeightFiller",
    "evaluate",
    "fit",
    "layer_from_config",
    "layer_to_config",
    "register_layer",
]
