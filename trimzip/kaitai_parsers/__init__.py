"""
TrimZip Kaitai Struct parsers

Binary record readers built on the kaitaistruct runtime.
"""

from trimzip.kaitai_parsers.zip_records import EndOfCentralDir, LocalFileHeaderPrefix, parse_record

__all__ = [
    "EndOfCentralDir",
    "LocalFileHeaderPrefix",
    "parse_record",
]
