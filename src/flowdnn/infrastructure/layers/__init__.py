"""
Layer algorithm library.

Importing this package registers every built-in layer in the config
registry (see `layer_from_config`).
"""

from ._base import Layer, LayerData
from ._inner_product import InnerProductLayer
from ._softmax import SoftmaxLayer
from ._convolution import ConvolutionLayer
from ._pooling import PoolingLayer, PoolMethod
from ._activations import Activation, ActivationKind, NeuronLayer
from ._losses import SigmoidCrossEntropyLossLayer, SoftmaxWithLossLayer
from ._data import FixedDataLayer

__all__ = [
    Layer.__name__,
    LayerData.__name__,
    InnerProductLayer.__name__,
    SoftmaxLayer.__name__,
    ConvolutionLayer.__name__,
    PoolingLayer.__name__,
    PoolMethod.__name__,
    Activation.__name__,
    ActivationKind.__name__,
    NeuronLayer.__name__,
    SoftmaxWithLossLayer.__name__,
    SigmoidCrossEntropyLossLayer.__name__,
    FixedDataLayer.__name__,
]
