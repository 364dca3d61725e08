"""
EOCDR locator: bounded backward search, candidate rejection, and the
zero-padding skip.

Scenarios:
A. Random data without a signature
B. Empty archive followed by 5000 zero bytes
C. EOCDR with a 5-byte comment and nothing after it
D. Declared comment followed by non-zero junk
"""

import io
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from trimzip.errors import FormatError
from trimzip.locator import (
    MAX_SEARCH_STEPS,
    EocdrLocator,
    SignatureWindow,
    find_trailer,
    locate_logical_end,
    logical_end_of,
    read_trailer,
)
from trimzip.source import FileSource

from builders import build_eocdr, build_minimal_zip, build_noise, write_file


def source_of(data: bytes) -> FileSource:
    return FileSource(io.BytesIO(data))


def ends(data: bytes) -> list:
    return list(locate_logical_end(source_of(data)))


# --- Signature window ---

def test_window_holds_last_four_bytes():
    window = SignatureWindow()
    for item in [(9, 1), (8, 2), (7, 3), (6, 4), (5, 5)]:
        window.push(item)
    assert len(window) == 4
    assert window.newest == (5, 5)
    assert window.start == 5
    assert window.on_disk() == bytes([5, 4, 3, 2])


def test_window_matches_in_either_scan_direction():
    backward = SignatureWindow()
    for item in [(13, 0x06), (12, 0x05), (11, 0x4B), (10, 0x50)]:
        backward.push(item)
    forward = SignatureWindow()
    for item in [(10, 0x50), (11, 0x4B), (12, 0x05), (13, 0x06)]:
        forward.push(item)
    assert backward.matches(b"PK\x05\x06")
    assert forward.matches(b"PK\x05\x06")
    assert backward.start == forward.start == 10


def test_partial_window_never_matches():
    window = SignatureWindow()
    window.push((0, 0x50))
    assert not window.full
    assert not window.matches(b"P")
    assert not window.is_all_zero()


# --- Scenarios ---

def test_scenario_a_random_data_has_no_result():
    assert ends(build_noise(100)) == []


def test_scenario_b_empty_archive_with_zero_padding():
    data = build_eocdr() + b"\x00" * 5000
    assert ends(data) == [22]


def test_scenario_c_comment_and_no_padding():
    data = build_eocdr(b"hello")
    assert ends(data) == [len(data)]


def test_scenario_d_junk_after_comment_is_rejected():
    data = build_eocdr(b"abc") + b"\x01\x02"
    locator = EocdrLocator(source_of(data))
    assert list(locator) == []
    assert len(locator.rejected) == 1
    assert locator.rejected[0].candidate == 0


# --- Properties ---

def test_files_shorter_than_four_bytes_have_no_result():
    for data in (b"", b"P", b"PK", b"PK\x05"):
        assert ends(data) == []


@pytest.mark.parametrize("padding", [0, 1, 4, 100, 9000])
def test_logical_end_independent_of_zero_padding(padding):
    archive = build_minimal_zip(comment=b"built by tests")
    assert ends(archive + b"\x00" * padding) == [len(archive)]


def test_comment_length_zero_and_maximum():
    assert ends(build_eocdr()) == [22]
    longest = build_eocdr(b"c" * 0xFFFF)
    assert ends(longest) == [22 + 0xFFFF]
    assert ends(longest + b"\x00" * 10) == [22 + 0xFFFF]


def test_rejected_candidate_does_not_stop_the_search():
    # A signature inside the comment is found first and rejected (too few
    # bytes after it); the genuine record before it must still be found.
    data = build_eocdr(b"note PK\x05\x06 end")
    locator = EocdrLocator(source_of(data))
    trailers = list(locator)
    assert [t.logical_end for t in trailers] == [len(data)]
    assert trailers[0].offset == 0
    assert len(locator.rejected) == 1
    assert locator.rejected[0].candidate == 27


def test_search_is_bounded():
    data = build_eocdr(b"x" * 20)
    assert list(EocdrLocator(source_of(data), max_steps=5)) == []
    assert ends(data) == [len(data)]


def test_signature_beyond_bound_is_not_found():
    # Non-zero data longer than the largest possible EOCDR after the record
    data = build_eocdr() + b"\x01" * (MAX_SEARCH_STEPS + 10)
    locator = EocdrLocator(source_of(data))
    assert list(locator) == []
    assert locator.steps == MAX_SEARCH_STEPS
    assert locator.rejected == []


def test_all_zero_file_has_no_result():
    assert ends(b"\x00" * 100) == []


def test_zero_padding_longer_than_search_bound_is_skipped():
    # A run of zeros at the end is skipped before the bounded search starts,
    # so padding longer than the largest EOCDR still trims correctly.
    record = build_eocdr(b"hi")
    locator = EocdrLocator(source_of(record + b"\x00" * (MAX_SEARCH_STEPS + 1000)))
    assert [t.logical_end for t in locator] == [len(record)]
    assert locator.skipped_zeros > MAX_SEARCH_STEPS


def test_no_zero_skip_when_last_bytes_are_not_all_zero():
    record = build_eocdr(b"hi")
    locator = EocdrLocator(source_of(record + b"\x00\x00\x00"))
    assert [t.logical_end for t in locator] == [len(record)]
    assert locator.skipped_zeros == 0


def test_locator_yields_at_most_once():
    data = build_eocdr() + build_eocdr()
    results = list(EocdrLocator(source_of(data)))
    assert len(results) == 1
    # Closest to the end of the file wins
    assert results[0].offset == 22


# --- File-level entry points ---

def test_find_trailer_decodes_record():
    archive = build_minimal_zip()
    trailer = find_trailer(source_of(archive + b"\x00" * 50))
    assert trailer is not None
    assert trailer.entry_count == 1
    assert trailer.padding_length == 50
    assert trailer.physical_length == len(archive) + 50


def test_logical_end_of_path(tmp_path):
    archive = build_minimal_zip()
    path = write_file(tmp_path, "a.zip", archive + b"\x00" * 300)
    assert logical_end_of(path) == len(archive)


def test_read_trailer_errors(tmp_path):
    short = write_file(tmp_path, "short.zip", b"PK")
    with pytest.raises(FormatError, match="too short"):
        read_trailer(short)

    noise = write_file(tmp_path, "noise.zip", build_noise(100))
    with pytest.raises(FormatError, match="not a ZIP"):
        read_trailer(noise)

    junk = write_file(tmp_path, "junk.zip", build_eocdr(b"abc") + b"\x01\x02")
    with pytest.raises(FormatError, match="1 candidate"):
        read_trailer(junk)
