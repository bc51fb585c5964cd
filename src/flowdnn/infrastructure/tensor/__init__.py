from ._tensor import Tensor
from ._parameter import Parameter

__all__ = [Tensor.__name__, Parameter.__name__]
