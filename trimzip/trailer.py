"""
TrimZip Trailer Validator

Decides whether a syntactically valid End Of Central Directory record
(EOCDR) starts at a candidate offset, and if so where the ZIP structure
really ends.

EOCDR layout, offsets relative to the signature:

    [0, 4)    signature 50 4B 05 06
    [4, 6)    number of this disk
    [6, 8)    disk where the central directory starts
    [8, 10)   central directory entries on this disk
    [10, 12)  central directory entries in total
    [12, 16)  central directory size
    [16, 20)  central directory offset
    [20, 22)  comment length (little-endian u16)
    [22, 22 + comment length)  comment

Only the signature and the comment length decide validity. Everything from
the end of the comment to the physical end of the file must be zero: zero
bytes are padding left by the appending process, anything else means this
candidate is not the real trailer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import kaitaistruct

from trimzip.errors import IOFault
from trimzip.kaitai_parsers import EndOfCentralDir, parse_record
from trimzip.position import StreamPosition
from trimzip.source import RandomAccessSource

EOCDR_SIGNATURE = EndOfCentralDir.SIGNATURE
MIN_EOCDR_LENGTH = EndOfCentralDir.FIXED_SIZE
MAX_COMMENT_LENGTH = 0xFFFF
MAX_EOCDR_LENGTH = MIN_EOCDR_LENGTH + MAX_COMMENT_LENGTH
ZERO_CHECK_CHUNK = 64 * 1024


@dataclass(frozen=True)
class TrailerField:
    """A region of the trailer claimed by one EOCDR field."""
    start: int
    end: int
    field_id: str
    description: str = ""

    @property
    def length(self) -> int:
        return self.end - self.start

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def __repr__(self) -> str:
        desc = f" ({self.description})" if self.description else ""
        return f"<{self.field_id} [{self.start:#x}:{self.end:#x}]{desc}>"


@dataclass(frozen=True)
class Trailer:
    """A validated EOCDR and the file it was found in."""
    offset: int
    record: EndOfCentralDir
    physical_length: int

    @property
    def comment_length(self) -> int:
        return self.record.len_comment

    @property
    def length(self) -> int:
        return self.record.len_record

    @property
    def logical_end(self) -> int:
        return self.offset + self.length

    @property
    def padding_length(self) -> int:
        return self.physical_length - self.logical_end

    @property
    def entry_count(self) -> int:
        return self.record.num_central_dir_entries_total

    @property
    def fields(self) -> tuple[TrailerField, ...]:
        base = self.offset
        rec = self.record
        return (
            TrailerField(base, base + 4, "signature", "EOCDR signature"),
            TrailerField(base + 4, base + 6, "disk_number", f"disk {rec.disk_of_end_of_central_dir}"),
            TrailerField(base + 6, base + 8, "central_dir_disk", f"disk {rec.disk_of_central_dir}"),
            TrailerField(base + 8, base + 10, "entries_on_disk", f"{rec.num_central_dir_entries_on_disk} entries"),
            TrailerField(base + 10, base + 12, "entries_total", f"{rec.num_central_dir_entries_total} entries"),
            TrailerField(base + 12, base + 16, "central_dir_size", f"{rec.len_central_dir}B"),
            TrailerField(base + 16, base + 20, "central_dir_offset", f"{rec.ofs_central_dir:#x}"),
            TrailerField(base + 20, base + 22, "comment_length", f"{rec.len_comment}B"),
            TrailerField(base + 22, base + 22 + rec.len_comment, "comment", "Archive comment"),
        )

    def __repr__(self) -> str:
        return (
            f"<Trailer at {self.offset:#x}: comment={self.comment_length}B "
            f"logical_end={self.logical_end:#x} padding={self.padding_length}B>"
        )


@dataclass(frozen=True)
class TrailerCheck:
    """The outcome of validating one candidate offset."""
    candidate: int
    valid: bool
    trailer: Optional[Trailer] = None
    errors: tuple[str, ...] = ()

    @property
    def logical_end(self) -> Optional[int]:
        return self.trailer.logical_end if self.trailer else None

    def __repr__(self) -> str:
        status = "VALID" if self.valid else "REJECTED"
        why = f" {'; '.join(self.errors)}" if self.errors else ""
        return f"<TrailerCheck {self.candidate:#x} {status}{why}>"


def _rejected(candidate: StreamPosition, reason: str) -> TrailerCheck:
    return TrailerCheck(candidate.value, False, errors=(reason,))


def validate_trailer(source: RandomAccessSource, candidate: StreamPosition) -> TrailerCheck:
    """Validate the trailer bytes from `candidate` to the end of `source`.

    The record itself is decoded from at most MAX_EOCDR_LENGTH bytes; any
    padding past that is checked in ZERO_CHECK_CHUNK pieces, so memory use
    does not depend on how much padding was appended.
    """
    available = source.end - candidate
    if available < MIN_EOCDR_LENGTH:
        return _rejected(candidate, f"Only {available} trailer bytes, need {MIN_EOCDR_LENGTH}")

    head_size = min(available, MAX_EOCDR_LENGTH)
    head = bytearray(head_size)
    source.seek(candidate)
    read = source.read_exact(memoryview(head))
    if read != head_size:
        raise IOFault(f"Short read at {candidate.value:#x}: expected {head_size} bytes, got {read}")

    try:
        record = parse_record(EndOfCentralDir, bytes(head))
    except kaitaistruct.ValidationFailedError:
        return _rejected(candidate, "Bad EOCDR signature")
    except EOFError:
        # Declared comment runs past the physical end of the file
        return _rejected(candidate, "Truncated EOCDR comment")

    expected = record.len_record
    if head[expected:].strip(b"\x00"):
        return _rejected(candidate, f"Non-zero bytes after {expected}-byte EOCDR")
    if not _is_zero_to_end(source, candidate + head_size):
        return _rejected(candidate, f"Non-zero bytes after {expected}-byte EOCDR")

    trailer = Trailer(offset=candidate.value, record=record, physical_length=source.end.value)
    return TrailerCheck(candidate.value, True, trailer=trailer)


def _is_zero_to_end(source: RandomAccessSource, position: StreamPosition) -> bool:
    """True when every byte in [position, end) is zero."""
    if position >= source.end:
        return True
    buffer = bytearray(ZERO_CHECK_CHUNK)
    view = memoryview(buffer)
    source.seek(position)
    while position < source.end:
        size = min(source.end - position, len(buffer))
        read = source.read_exact(view[:size])
        if read != size:
            raise IOFault(f"Short read at {position.value:#x}: expected {size} bytes, got {read}")
        if view[:size].tobytes().strip(b"\x00"):
            return False
        position = position + size
    return True
