"""
TrimZip EOCDR Locator

Finds the End Of Central Directory record by scanning backward from the
physical end of a file. A ZIP reader starting at the front cannot tell
where the archive ends once junk has been appended; the EOCDR is the only
reliable anchor, and it must be found from the back.

The search:

1. Fill a 4-byte signature window with the last four bytes of the file.
   Fewer than four bytes means no ZIP trailer can exist.
2. If those four bytes are all zero, keep reading backward until the first
   non-zero byte: the zero run is padding, and skipping it lets the bounded
   search start at the last real data.
3. Step backward one byte at a time, at most MAX_SEARCH_STEPS times (the
   largest possible EOCDR), testing the window against 50 4B 05 06.
4. Every match is validated. The first valid one is the answer; a rejected
   match does not stop the search, because the signature bytes can occur
   by chance inside compressed data just before the real trailer.

The first match found is the one closest to the end of the file, which is
the most plausible genuine trailer.
"""

from __future__ import annotations

import itertools
from collections import deque
from pathlib import Path
from typing import Iterator, Optional, Union

from trimzip.errors import FormatError
from trimzip.position import StreamPosition
from trimzip.scanner import ReverseByteScanner
from trimzip.source import FileSource, RandomAccessSource
from trimzip.trailer import EOCDR_SIGNATURE, MAX_EOCDR_LENGTH, Trailer, TrailerCheck, validate_trailer

MAX_SEARCH_STEPS = MAX_EOCDR_LENGTH


class SignatureWindow:
    """The last four (offset, byte) pairs visited, oldest first.

    matches() compares the bytes in on-disk (ascending offset) order, so the
    same window works whichever direction the scan runs in.
    """

    SIZE = 4

    def __init__(self) -> None:
        self._slots: deque[tuple[int, int]] = deque(maxlen=self.SIZE)

    def push(self, item: tuple[int, int]) -> None:
        self._slots.append(item)

    @property
    def full(self) -> bool:
        return len(self._slots) == self.SIZE

    @property
    def newest(self) -> tuple[int, int]:
        return self._slots[-1]

    @property
    def start(self) -> int:
        """Offset of the lowest byte in the window."""
        return min(offset for offset, _ in self._slots)

    def on_disk(self) -> bytes:
        return bytes(value for _, value in sorted(self._slots))

    def is_all_zero(self) -> bool:
        return self.full and not any(value for _, value in self._slots)

    def matches(self, signature: bytes) -> bool:
        return self.full and self.on_disk() == signature

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        cells = " ".join(f"{offset:#x}:{value:02x}" for offset, value in self._slots)
        return f"<SignatureWindow [{cells}]>"


class EocdrLocator:
    """Bounded backward search for a valid EOCDR.

    Iterating yields at most one Trailer, then stops. Candidates that failed
    validation are kept in `rejected` for diagnostics.

        with FileSource.open("book.epub") as source:
            trailer = next(iter(EocdrLocator(source)), None)
    """

    def __init__(self, source: RandomAccessSource, max_steps: int = MAX_SEARCH_STEPS) -> None:
        self._source = source
        self._max_steps = max_steps
        self.rejected: list[TrailerCheck] = []
        self.steps = 0
        self.skipped_zeros = 0

    def __iter__(self) -> Iterator[Trailer]:
        scanner = ReverseByteScanner(self._source)
        window = SignatureWindow()

        for item in itertools.islice(scanner, SignatureWindow.SIZE):
            window.push(item)
        if not window.full:
            return

        if window.is_all_zero():
            for item in scanner:
                window.push(item)
                if item[1] != 0:
                    break
                self.skipped_zeros += 1

        while self.steps < self._max_steps:
            item = next(scanner, None)
            if item is None:
                return
            window.push(item)
            if window.matches(EOCDR_SIGNATURE):
                check = validate_trailer(self._source, StreamPosition(window.start))
                if check.valid:
                    yield check.trailer
                    return
                self.rejected.append(check)
            self.steps += 1


def locate_logical_end(source: RandomAccessSource) -> Iterator[int]:
    """Yield the logical end offset of the ZIP in `source`, if there is one."""
    for trailer in EocdrLocator(source):
        yield trailer.logical_end


def find_trailer(source: RandomAccessSource) -> Optional[Trailer]:
    """The validated trailer closest to the end of `source`, or None."""
    return next(iter(EocdrLocator(source)), None)


def read_trailer(path: Union[str, Path]) -> Trailer:
    """Locate the trailer of the file at `path`.

    Raises FormatError when the file cannot be anchored as a ZIP.
    """
    with FileSource.open(path) as source:
        locator = EocdrLocator(source)
        trailer = next(iter(locator), None)
        if trailer is not None:
            return trailer
        if source.length < SignatureWindow.SIZE:
            raise FormatError("File is too short to be a ZIP archive", path)
        if locator.rejected:
            raise FormatError(
                f"No valid End Of Central Directory record "
                f"({len(locator.rejected)} candidate(s) rejected)",
                path,
            )
        raise FormatError("It is not a ZIP format file", path)


def logical_end_of(path: Union[str, Path]) -> int:
    """Byte offset where the ZIP structure of the file at `path` ends."""
    return read_trailer(path).logical_end
