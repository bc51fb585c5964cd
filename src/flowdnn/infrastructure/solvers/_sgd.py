"""
Momentum stochastic gradient descent with a step learning-rate schedule.

The solver does not touch parameter values. It rewrites each trainable
parameter's gradient buffer into the final additive step, which the network
then applies with ``value += gradient`` (`Network.update`).

Update rule
-----------
On every `SgdSolver.compute_updates` call, with ``t`` the call count after
incrementing:

- ``rate = base_learning_rate * gamma ** (t // step_size)``
- ``g <- g + weight_decay * p`` (coupled L2 regularization)
- ``step = momentum * last_step - rate * g``
- ``last_step <- step`` and ``g <- step``
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional

from ...domain._solver import ISolver
from ..network._network import Network
from ..tensor._tensor import Tensor


@dataclass(frozen=True)
class SolverConfig:
    """
    Hyperparameters of `SgdSolver`.

    Raises
    ------
    ValueError
        If ``base_learning_rate <= 0``, ``step_size <= 0``, or ``momentum``,
        ``weight_decay`` or ``gamma`` is negative.
    """

    momentum: float = 0.9
    base_learning_rate: float = 0.01
    weight_decay: float = 0.0005
    gamma: float = 0.1
    step_size: int = 100000

    def __post_init__(self) -> None:
        if self.base_learning_rate <= 0.0:
            raise ValueError(f"base_learning_rate must be > 0, got {self.base_learning_rate}")
        if int(self.step_size) <= 0:
            raise ValueError(f"step_size must be > 0, got {self.step_size}")
        if self.momentum < 0.0:
            raise ValueError(f"momentum must be >= 0, got {self.momentum}")
        if self.weight_decay < 0.0:
            raise ValueError(f"weight_decay must be >= 0, got {self.weight_decay}")
        if self.gamma < 0.0:
            raise ValueError(f"gamma must be >= 0, got {self.gamma}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, cfg: Mapping[str, Any]) -> "SolverConfig":
        return cls(**dict(cfg))


class SgdSolver(ISolver):
    """
    Momentum SGD over the trainable parameters of a `Network`.

    Parameters
    ----------
    network : Network
        Network whose parameters are trained. The parameter list is captured
        at construction.
    config : SolverConfig, optional
        Hyperparameters. Defaults to ``SolverConfig()``.
    """

    def __init__(self, network: Network, config: Optional[SolverConfig] = None) -> None:
        self.config = config or SolverConfig()
        self._params = network.params
        self._last: List[Tensor] = [
            Tensor(f"{p.name}_solver_last", p.shape) for p in self._params
        ]
        self._iterations = 0
        self._backend = network.backend

    @property
    def iterations(self) -> int:
        return self._iterations

    def rate(self) -> float:
        """
        Learning rate for the current iteration count.
        """
        c = self.config
        return c.base_learning_rate * c.gamma ** (self._iterations // c.step_size)

    def compute_updates(self) -> None:
        self._iterations += 1
        c = self.config
        rate = self.rate()
        blas = self._backend

        for p, last in zip(self._params, self._last):
            grad = p.gradient
            last_step = last.gradient

            # Weight decay
            blas.axpy(c.weight_decay, p.value, grad)

            # step = momentum * last - rate * grad
            blas.scal(-rate, grad)
            blas.axpy(c.momentum, last_step, grad)
            last_step[...] = grad
