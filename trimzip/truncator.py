"""
TrimZip Truncator

Cuts a file back to its logical end. Two ways to do it:

- truncate_in_place(): shrink the file itself
- copy_prefix(): stream [0, logical_end) into another file, so the caller
  can swap it in atomically

trim_file() picks one of them and does nothing at all when the file is
already minimal. Both refuse a logical end past the physical length: the
validator never produces one, so seeing it means a bug, not bad input.
"""

from __future__ import annotations

import enum
import os
from pathlib import Path
from typing import BinaryIO, Optional, Union

from trimzip.errors import InvariantViolation, IOFault

COPY_CHUNK = 64 * 1024


class TrimOutcome(enum.Enum):
    """What trim_file() did."""
    UNCHANGED = "unchanged"
    TRIMMED = "trimmed"


def _check_bounds(logical_end: int, physical_length: int, path: Union[str, Path]) -> None:
    if logical_end < 0 or logical_end > physical_length:
        raise InvariantViolation(
            f"Logical end {logical_end} outside physical length {physical_length}", path
        )


def copy_prefix(source: BinaryIO, destination: BinaryIO, length: int) -> int:
    """Copy the first `length` bytes of `source` into `destination`."""
    source.seek(0)
    remaining = length
    buffer = bytearray(min(COPY_CHUNK, max(length, 1)))
    view = memoryview(buffer)
    while remaining > 0:
        n = source.readinto(view[:min(remaining, len(buffer))])
        if not n:
            raise IOFault(f"Source ended {remaining} bytes before offset {length}")
        destination.write(view[:n])
        remaining -= n
    return length


def truncate_in_place(path: Union[str, Path], logical_end: int) -> None:
    """Shrink the file at `path` to `logical_end` bytes."""
    with open(path, "r+b") as f:
        physical_length = os.fstat(f.fileno()).st_size
        _check_bounds(logical_end, physical_length, path)
        f.truncate(logical_end)


def trim_file(
    path: Union[str, Path],
    logical_end: int,
    *,
    destination: Optional[Union[str, Path]] = None,
) -> TrimOutcome:
    """Discard everything in the file at `path` past `logical_end`.

    With `destination`, the trimmed bytes are written there and the source
    is left alone. Without it the source is truncated in place.
    """
    physical_length = os.path.getsize(path)
    _check_bounds(logical_end, physical_length, path)
    if logical_end == physical_length:
        return TrimOutcome.UNCHANGED

    if destination is None:
        truncate_in_place(path, logical_end)
    else:
        with open(path, "rb") as src, open(destination, "wb") as dst:
            copy_prefix(src, dst, logical_end)
    return TrimOutcome.TRIMMED
