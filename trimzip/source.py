"""
TrimZip Random-Access Byte Source

The scanner and the trailer validator only need four things from a file:
where it starts, where it ends, a way to seek, and a way to fill a buffer.
FileSource provides exactly that over an open binary file object.

read_exact() reports how many bytes it managed to read and leaves the
decision about short reads to the caller, which treats them as an IOFault.
"""

from __future__ import annotations

import contextlib
import os
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Protocol, Union

from trimzip.position import StreamPosition


class RandomAccessSource(Protocol):
    """What the core consumes: bounds, seek, and buffer reads."""

    @property
    def start(self) -> StreamPosition: ...

    @property
    def end(self) -> StreamPosition: ...

    def seek(self, position: StreamPosition) -> None: ...

    def read_exact(self, buffer: memoryview) -> int: ...


class FileSource:
    """A RandomAccessSource backed by a binary file object.

    The end offset is measured once, when the source is created. A file that
    shrinks afterwards shows up as a short read, not as a moving end.
    """

    def __init__(self, fileobj: BinaryIO, start: int = 0, end: Optional[int] = None) -> None:
        self._file = fileobj
        if end is None:
            end = os.fstat(fileobj.fileno()).st_size if _has_fileno(fileobj) else _seek_end(fileobj)
        self._start = StreamPosition(start)
        self._end = StreamPosition(end)
        if self._start > self._end:
            raise ValueError(f"Source start {start} is past its end {end}")

    @classmethod
    @contextlib.contextmanager
    def open(cls, path: Union[str, Path]) -> Iterator[FileSource]:
        """Open `path` read-only; the handle is closed on every exit path."""
        with open(path, "rb") as f:
            yield cls(f)

    @property
    def start(self) -> StreamPosition:
        return self._start

    @property
    def end(self) -> StreamPosition:
        return self._end

    @property
    def length(self) -> int:
        return self._end - self._start

    def seek(self, position: StreamPosition) -> None:
        self._file.seek(position.value)

    def read_exact(self, buffer: memoryview) -> int:
        """Fill `buffer` from the current position; return the count read."""
        total = 0
        size = len(buffer)
        while total < size:
            n = self._file.readinto(buffer[total:])
            if not n:
                break
            total += n
        return total

    def __repr__(self) -> str:
        name = getattr(self._file, "name", "<stream>")
        return f"<FileSource {name} [{self._start.value:#x}:{self._end.value:#x}]>"


def _has_fileno(fileobj: BinaryIO) -> bool:
    try:
        fileobj.fileno()
    except (AttributeError, OSError, ValueError):
        return False
    return True


def _seek_end(fileobj: BinaryIO) -> int:
    current = fileobj.tell()
    end = fileobj.seek(0, os.SEEK_END)
    fileobj.seek(current)
    return end
