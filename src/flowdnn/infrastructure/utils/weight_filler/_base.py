"""
Weight filler registry and dispatch utilities.

This module defines the concrete `WeightFiller` used by parameterized layers
to initialize their parameters from a registered strategy (e.g. Xavier,
Kaiming, constant).

Design
------
- Fillers are registered by string name via a decorator-based registry.
- Each filler is a callable ``filler(tensor, *, rng, **kwargs)`` that writes
  the tensor's value buffer in-place and returns the tensor.
- The dispatcher resolves a filler by name at construction time and invokes
  it via `__call__`, supplying a NumPy ``Generator`` when none is given.

Usage example
-------------
Registering a filler:

    @WeightFiller.register_filler("kaiming")
    def kaiming(tensor: Tensor, *, rng: np.random.Generator) -> Tensor:
        ...

Applying a filler:

    WeightFiller("kaiming")(weight, rng=np.random.default_rng(0))
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, Optional, TypeVar

import numpy as np

from ....domain.utils._weight_filling import _WeightFiller
from ...tensor._tensor import Tensor

T = TypeVar("T", bound=Callable[..., Tensor])


class WeightFiller(_WeightFiller):
    """
    Registry-backed weight filler dispatcher.

    Notes
    -----
    - Fillers are stored by string name in a class-level registry.
    - The filler callable should mutate ``tensor.value`` in-place and return
      the tensor.
    """

    FILLERS: ClassVar[Dict[str, Callable[..., Tensor]]] = {}

    def __init__(self, filler_name: str) -> None:
        try:
            self._filler: Callable[..., Tensor] = self.FILLERS[filler_name]
        except KeyError as e:
            available = ", ".join(sorted(self.FILLERS)) or "<none>"
            raise ValueError(
                f"Unsupported filler name: {filler_name!r}. Available: {available}"
            ) from e
        self.name = filler_name

    @classmethod
    def register_filler(cls, name: str, *, overwrite: bool = False) -> Callable[[T], T]:
        """
        Decorator to register a weight filler under `name`.

        Parameters
        ----------
        name:
            Registry key used to retrieve the filler later.
        overwrite:
            If False (default), raises if `name` is already registered.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Filler name must be a non-empty string")

        def decorator(func: T) -> T:
            if not overwrite and name in cls.FILLERS:
                raise ValueError(f"Filler already registered: {name!r}")
            cls.FILLERS[name] = func
            return func

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered filler names (sorted)."""
        return tuple(sorted(cls.FILLERS))

    def __call__(
        self,
        tensor: Tensor,
        *,
        rng: Optional[np.random.Generator] = None,
        **kwargs: Any,
    ) -> Tensor:
        if rng is None:
            rng = np.random.default_rng()
        return self._filler(tensor, rng=rng, **kwargs)
