"""
TrimZip - strip trailing garbage from ZIP and EPUB files.

The End Of Central Directory record is located by a bounded backward scan
from the physical end of the file, validated, and everything past it (when
it is zero padding) is cut off.

Layers, leaves first:
    scanner    reverse byte scan over a random-access source
    locator    bounded signature search for the EOCDR
    trailer    EOCDR validation and logical end computation
    truncator  in-place truncation or prefix copy
"""

__version__ = "1.0.0"

from trimzip.errors import (
    TrimZipError,
    FormatError,
    IOFault,
    InvariantViolation,
    EpubError,
    PositionOverflowError,
)
from trimzip.position import StreamPosition
from trimzip.source import FileSource, RandomAccessSource
from trimzip.scanner import ReverseByteScanner
from trimzip.trailer import Trailer, TrailerCheck, validate_trailer
from trimzip.locator import (
    EocdrLocator,
    SignatureWindow,
    find_trailer,
    locate_logical_end,
    logical_end_of,
    read_trailer,
)
from trimzip.residue import TrailingResidue
from trimzip.truncator import TrimOutcome, trim_file

__all__ = [
    "TrimZipError",
    "FormatError",
    "IOFault",
    "InvariantViolation",
    "EpubError",
    "PositionOverflowError",
    "StreamPosition",
    "FileSource",
    "RandomAccessSource",
    "ReverseByteScanner",
    "Trailer",
    "TrailerCheck",
    "validate_trailer",
    "EocdrLocator",
    "SignatureWindow",
    "find_trailer",
    "locate_logical_end",
    "logical_end_of",
    "read_trailer",
    "TrailingResidue",
    "TrimOutcome",
    "trim_file",
]
