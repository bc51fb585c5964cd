from ._history import History
from ._trainer import evaluate, fit

__all__ = [History.__name__, evaluate.__name__, fit.__name__]
