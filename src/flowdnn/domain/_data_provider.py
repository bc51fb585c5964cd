"""
Data-provider contract.

Data-feeding stages (in-memory datasets, key-value stores, ...) are ordinary
layers with no inputs. The network drives them exactly like any other layer's
``forward``; they fill their output tensors in place and advance an internal
cursor that wraps modulo the number of available inputs.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from ._tensor import ITensor


@runtime_checkable
class IDataProvider(Protocol):
    """
    Interface for layers that feed external data into a network.
    """

    def produce_next_batch(self, outputs: Sequence[ITensor]) -> None:
        """Fill ``outputs`` with the next batch and advance the cursor."""
        ...

    def current_index(self) -> int:
        """Index of the next input to be produced."""
        ...

    def total_inputs(self) -> int:
        """Number of inputs available before the cursor wraps."""
        ...
