"""
Four-dimensional shape value type.

All flowdnn buffers are laid out as (batch, channel, height, width) in
row-major, batch-major order. `Shape4` is the immutable description of such
a layout and owns the offset arithmetic, so every layer computes strided
positions the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, Union


@dataclass(frozen=True)
class Shape4:
    """
    Immutable (batch, channel, height, width) shape.

    Attributes
    ----------
    batch, channel, height, width : int
        Extents of the four axes. All must be non-negative.
    """

    batch: int
    channel: int
    height: int
    width: int

    def __post_init__(self) -> None:
        for axis in ("batch", "channel", "height", "width"):
            v = getattr(self, axis)
            if int(v) != v or v < 0:
                raise ValueError(f"Shape4.{axis} must be a non-negative int, got {v!r}")
            object.__setattr__(self, axis, int(v))

    @classmethod
    def of(cls, shape: "ShapeLike") -> "Shape4":
        """
        Coerce a `Shape4` or a 4-sequence of ints into a `Shape4`.
        """
        if isinstance(shape, Shape4):
            return shape
        if len(shape) != 4:
            raise ValueError(f"expected a 4-D shape, got {tuple(shape)}")
        b, c, h, w = shape
        return cls(b, c, h, w)

    @property
    def size(self) -> int:
        """Total element count."""
        return self.batch * self.sample_size

    @property
    def sample_size(self) -> int:
        """Element count of a single batch entry (channel * height * width)."""
        return self.channel * self.spatial_size

    @property
    def spatial_size(self) -> int:
        """Element count of a single channel plane (height * width)."""
        return self.height * self.width

    def offset(self, b: int = 0, c: int = 0, h: int = 0, w: int = 0) -> int:
        """
        Linear offset of coordinate (b, c, h, w).
        """
        return ((b * self.channel + c) * self.height + h) * self.width + w

    def with_batch(self, batch: int) -> "Shape4":
        return Shape4(batch, self.channel, self.height, self.width)

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.batch, self.channel, self.height, self.width)

    def __iter__(self) -> Iterator[int]:
        return iter(self.as_tuple())

    def __str__(self) -> str:
        return f"({self.batch},{self.channel},{self.height},{self.width})"


ShapeLike = Union[Shape4, Sequence[int]]
