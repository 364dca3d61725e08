"""
TrimZip Errors

Every failure the package raises derives from TrimZipError so the batch
layer can report a file and move on to the next one.

- FormatError: the bytes are not a ZIP container we can anchor
- IOFault: a read came back short (truncated or concurrently modified file)
- InvariantViolation: an internal consistency check failed
- EpubError: an EPUB is missing a required part or metadata element
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class TrimZipError(Exception):
    """Base class for all TrimZip errors."""
    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        where = f": \"{path}\"" if path is not None else ""
        super().__init__(f"{message}{where}")
        self.path = path


class FormatError(TrimZipError):
    """No structurally valid End Of Central Directory record was found."""


class IOFault(TrimZipError):
    """A seek or read returned fewer bytes than requested."""


class InvariantViolation(TrimZipError):
    """A computed value broke an invariant the code relies on."""


class EpubError(TrimZipError):
    """An EPUB container or package document is malformed."""


class PositionOverflowError(OverflowError):
    """Checked stream position arithmetic left the unsigned 64-bit range."""
