"""
TrimZip Reverse Byte Scanner

Walks a random-access source from its physical end toward its start, one
byte at a time, without ever holding more than one buffer of it in memory.

    scanner = ReverseByteScanner(source)
    for offset, value in scanner:
        ...  # offsets strictly decrease: end-1, end-2, ..., start

The file is read in windows of at most BUFFER_CAPACITY bytes. Each window is
read with one seek and one read into a buffer that is allocated once and
reused. A short read means the file changed underneath us and raises IOFault.

The scanner is a one-shot iterator: it cannot be restarted, and a consumer
may stop at any point. After an early stop the source's read cursor is left
wherever the last window read put it.
"""

from __future__ import annotations

from typing import Iterator

from trimzip.errors import IOFault
from trimzip.position import StreamPosition
from trimzip.source import RandomAccessSource

BUFFER_CAPACITY = 8 * 1024


class ReverseByteScanner:
    """Forward-only iterator of (offset, byte) pairs in reverse file order."""

    def __init__(self, source: RandomAccessSource, buffer_capacity: int = BUFFER_CAPACITY) -> None:
        if buffer_capacity <= 0:
            raise ValueError("buffer_capacity must be positive")
        self._source = source
        self._buffer = bytearray(buffer_capacity)
        self._view = memoryview(self._buffer)
        self._cursor = source.end
        # Current window: absolute start and the index of the next byte to emit
        self._window_start = source.end
        self._index = -1

    @property
    def cursor(self) -> StreamPosition:
        """Lowest offset read so far (the start of the current window)."""
        return self._cursor

    def __iter__(self) -> Iterator[tuple[int, int]]:
        return self

    def __next__(self) -> tuple[int, int]:
        if self._index < 0:
            self._fill()
        index = self._index
        self._index -= 1
        return self._window_start.value + index, self._buffer[index]

    def _fill(self) -> None:
        start = self._source.start
        if self._cursor <= start:
            raise StopIteration
        size = min(self._cursor - start, len(self._buffer))
        window_start = self._cursor - size
        self._source.seek(window_start)
        read = self._source.read_exact(self._view[:size])
        if read != size:
            raise IOFault(
                f"Short read at {window_start.value:#x}: expected {size} bytes, got {read}"
            )
        self._window_start = window_start
        self._cursor = window_start
        self._index = size - 1
