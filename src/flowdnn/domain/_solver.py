"""
Domain-level solver contract.

A solver turns the raw parameter gradients accumulated by a backward pass
into the additive steps the network applies with ``value += gradient``.
The split keeps the execution engine independent of the update rule: any
solver that overwrites each parameter's gradient with its final step can be
substituted.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ISolver(Protocol):
    """
    Solver interface contract.

    Required members
    ----------------
    - `compute_updates()` rewrites every trainable parameter's gradient
      buffer into the step to apply.
    - `iterations` counts completed `compute_updates()` calls.
    """

    def compute_updates(self) -> None: ...

    @property
    def iterations(self) -> int: ...
