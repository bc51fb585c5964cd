"""
Weight filler public API.

Importing this package registers the built-in constant and random fillers
into the `WeightFiller` registry via import side effects.

Exports
-------
- WeightFiller:
    The registry-backed dispatcher used by parameterized layers.
"""

from ._constants import *
from ._random import *
from ._base import WeightFiller

__all__ = [
    WeightFiller.__name__,
]
