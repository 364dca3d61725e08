"""
TrimZip Stream Positions

StreamPosition is an unsigned 64-bit byte offset into a file. Python ints
never wrap, so the range is enforced explicitly: any arithmetic that would
leave [0, 2**64) raises PositionOverflowError instead of producing a
negative or oversized offset.

    pos = StreamPosition(100)
    pos - 4                        # StreamPosition(96)
    pos - StreamPosition(40)       # 60 (a distance, plain int)
    StreamPosition(0) - 1          # PositionOverflowError
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from trimzip.errors import PositionOverflowError

MAX_POSITION = (1 << 64) - 1


def _checked(value: int) -> int:
    if value < 0 or value > MAX_POSITION:
        raise PositionOverflowError(f"Stream position out of range: {value}")
    return value


@dataclass(frozen=True, order=True)
class StreamPosition:
    """An absolute byte offset with overflow-checked arithmetic."""
    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise TypeError(f"Stream position must be an int, not {type(self.value).__name__}")
        _checked(self.value)

    def __add__(self, count: int) -> StreamPosition:
        if not isinstance(count, int):
            return NotImplemented
        return StreamPosition(_checked(self.value + count))

    def __sub__(self, other: Union[int, StreamPosition]):
        # position - position is a distance; position - count is a position
        if isinstance(other, StreamPosition):
            return _checked(self.value - other.value)
        if isinstance(other, int):
            return StreamPosition(_checked(self.value - other))
        return NotImplemented

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"<Pos {self.value:#x}>"
