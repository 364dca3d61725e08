"""
TrimZip Trailing Residue

Residue is the part of a file no ZIP reader claims: everything between the
logical end of the archive and the physical end of the file. For a file
accepted by the locator it is always zero padding, because any non-zero
byte there would have rejected the trailer.
"""

from __future__ import annotations

from dataclasses import dataclass

from trimzip.trailer import Trailer


@dataclass(frozen=True)
class TrailingResidue:
    """The byte range [start, end) past the logical end of a ZIP."""
    start: int
    end: int

    @classmethod
    def of(cls, trailer: Trailer) -> TrailingResidue:
        return cls(trailer.logical_end, trailer.physical_length)

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.length == 0

    @property
    def residue_ratio(self) -> float:
        """Fraction of the file that is residue."""
        if self.end == 0:
            return 0.0
        return self.length / self.end

    def __repr__(self) -> str:
        return f"<Residue [{self.start:#x}:{self.end:#x}] ({self.length} bytes)>"
