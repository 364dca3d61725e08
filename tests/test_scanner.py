"""
Reverse byte scanner and the file source it reads from.
"""

import io
import itertools
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from trimzip.errors import IOFault
from trimzip.position import StreamPosition
from trimzip.scanner import BUFFER_CAPACITY, ReverseByteScanner
from trimzip.source import FileSource


def reversed_pairs(data: bytes, start: int = 0):
    return [(i, data[i]) for i in range(len(data) - 1, start - 1, -1)]


def test_yields_every_byte_from_end_to_start():
    data = bytes(range(10))
    assert list(ReverseByteScanner(FileSource(io.BytesIO(data)))) == reversed_pairs(data)


def test_window_boundaries_do_not_lose_or_repeat_bytes():
    data = bytes(i % 251 for i in range(1000))
    scanner = ReverseByteScanner(FileSource(io.BytesIO(data)), buffer_capacity=7)
    assert list(scanner) == reversed_pairs(data)


def test_default_buffer_spans_several_windows():
    data = bytes(i % 256 for i in range(BUFFER_CAPACITY * 2 + 123))
    pairs = list(ReverseByteScanner(FileSource(io.BytesIO(data))))
    assert len(pairs) == len(data)
    assert pairs[0] == (len(data) - 1, data[-1])
    assert pairs[-1] == (0, data[0])


def test_never_reads_before_start_offset():
    data = b"0123456789"
    source = FileSource(io.BytesIO(data), start=4)
    assert list(ReverseByteScanner(source, buffer_capacity=3)) == reversed_pairs(data, start=4)


def test_empty_source_yields_nothing():
    assert list(ReverseByteScanner(FileSource(io.BytesIO(b"")))) == []


def test_consumer_can_stop_early():
    data = bytes(range(50))
    scanner = ReverseByteScanner(FileSource(io.BytesIO(data)), buffer_capacity=8)
    first = list(itertools.islice(scanner, 3))
    assert first == [(49, 49), (48, 48), (47, 47)]
    # Not restartable: iteration continues where it stopped
    assert next(scanner) == (46, 46)
    assert scanner.cursor == StreamPosition(42)


def test_exhausted_scanner_stays_exhausted():
    scanner = ReverseByteScanner(FileSource(io.BytesIO(b"ab")))
    assert list(scanner) == [(1, ord("b")), (0, ord("a"))]
    assert list(scanner) == []


def test_short_read_is_an_io_fault():
    # The source claims 10 bytes but only 3 exist
    source = FileSource(io.BytesIO(b"abc"), end=10)
    with pytest.raises(IOFault):
        list(ReverseByteScanner(source))


def test_invalid_buffer_capacity():
    with pytest.raises(ValueError):
        ReverseByteScanner(FileSource(io.BytesIO(b"abc")), buffer_capacity=0)


def test_file_source_measures_physical_length(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"x" * 123)
    with FileSource.open(path) as source:
        assert source.start == StreamPosition(0)
        assert source.end == StreamPosition(123)
        assert source.length == 123


def test_file_source_read_exact_reports_count():
    source = FileSource(io.BytesIO(b"abcdef"))
    buffer = bytearray(4)
    source.seek(StreamPosition(4))
    assert source.read_exact(memoryview(buffer)) == 2
    assert buffer[:2] == b"ef"


def test_file_source_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        FileSource(io.BytesIO(b"abc"), start=5, end=2)
