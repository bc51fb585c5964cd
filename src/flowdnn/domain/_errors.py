"""
Configuration and state exceptions for flowdnn.

Every failure detected while assembling a network or configuring a layer
derives from `ConfigurationError`, so callers can catch the whole class with
a single handler. The more specific subclasses name the kind of problem
(arity, shape, unresolved dependencies, duplicate names) and carry the
offending layer or buffer names as attributes for programmatic inspection.

Runtime misuse of a layer (e.g. calling `forward` before `setup`) is reported
through `LayerStateError`. Forward/backward passes over a successfully
assembled network have no designed error paths.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple


class ConfigurationError(ValueError):
    """
    Raised when a layer or network definition cannot be configured.

    Attributes
    ----------
    layer : Optional[str]
        Name of the offending layer, when a single layer is responsible.
    """

    def __init__(self, message: str, *, layer: Optional[str] = None) -> None:
        if layer is not None:
            message = f"layer '{layer}': {message}"
        super().__init__(message)
        self.layer = layer


class ArityError(ConfigurationError):
    """
    Raised when a layer declares the wrong number of input or output buffers.
    """

    def __init__(self, layer: str, kind: str, expected: object, got: int) -> None:
        super().__init__(
            f"expected {expected} {kind} buffer name(s), got {got}", layer=layer
        )
        self.kind = kind
        self.expected = expected
        self.got = got


class ShapeMismatchError(ConfigurationError):
    """
    Raised when tensors that must agree in shape do not.
    """


class DuplicateNameError(ConfigurationError):
    """
    Raised when two layers share a name or two layers produce the same buffer.
    """


class UnreachableLayerError(ConfigurationError):
    """
    Raised when no topological order satisfies every declared input.

    This covers both missing producers and dependency cycles; no attempt is
    made to isolate the specific cycle.

    Attributes
    ----------
    unresolved : Tuple[str, ...]
        Names of the layers that could not be added, in declaration order.
    """

    def __init__(self, unresolved: Iterable[str]) -> None:
        self.unresolved: Tuple[str, ...] = tuple(unresolved)
        super().__init__(
            "invalid network definition, unreachable layers: "
            + ", ".join(self.unresolved)
        )


class LayerStateError(RuntimeError):
    """
    Raised when a layer operation is invoked in the wrong lifecycle state.
    """

    def __init__(self, layer: str, op: str, state: str) -> None:
        super().__init__(f"layer '{layer}': cannot {op} while {state}")
        self.layer = layer
        self.op = op
        self.state = state


class GradientOverwriteWarning(UserWarning):
    """
    Emitted when a buffer feeds more than one consumer.

    Backward passes overwrite input gradients, so all but the last-run
    consumer's contribution to such a buffer's gradient is lost.
    """
