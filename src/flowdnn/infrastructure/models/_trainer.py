"""
Training loop.
"""

from __future__ import annotations

import logging
from typing import Optional

from ...domain._solver import ISolver
from ..network._network import Network
from ._history import History

logger = logging.getLogger(__name__)


def evaluate(network: Network, iterations: int = 1) -> float:
    """
    Mean forward loss of ``network`` over ``iterations`` passes.
    """
    if iterations <= 0:
        raise ValueError(f"iterations must be > 0, got {iterations}")
    return sum(network.forward() for _ in range(iterations)) / iterations


def fit(
    network: Network,
    solver: ISolver,
    iterations: int,
    *,
    test_network: Optional[Network] = None,
    test_interval: int = 0,
    test_iterations: int = 1,
    display: int = 0,
) -> History:
    """
    Train ``network`` for ``iterations`` solver steps.

    Each step runs ``forward_backward``, ``solver.compute_updates`` and
    ``network.update``. Every ``test_interval`` steps (when a test network is
    given and the interval is positive) the test network is evaluated over
    ``test_iterations`` forward passes.

    Parameters
    ----------
    display : int, optional
        Log the training loss at INFO every ``display`` steps; 0 disables.

    Returns
    -------
    History
        ``"loss"`` for every step, ``"test_loss"`` for every evaluation.
    """
    if iterations < 0:
        raise ValueError(f"iterations must be >= 0, got {iterations}")

    history = History()
    for i in range(1, iterations + 1):
        loss = network.forward_backward()
        solver.compute_updates()
        network.update()
        history.record(solver.iterations, {"loss": loss})

        if display > 0 and i % display == 0:
            logger.info("iteration %d, loss = %.6f", solver.iterations, loss)

        if test_network is not None and test_interval > 0 and i % test_interval == 0:
            test_loss = evaluate(test_network, test_iterations)
            history.record(solver.iterations, {"test_loss": test_loss})
            logger.info("iteration %d, test loss = %.6f", solver.iterations, test_loss)

    return history
