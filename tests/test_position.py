"""
Checked stream position arithmetic.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from trimzip.errors import PositionOverflowError
from trimzip.position import MAX_POSITION, StreamPosition


def test_add_and_subtract_counts():
    pos = StreamPosition(100)
    assert pos + 28 == StreamPosition(128)
    assert pos - 4 == StreamPosition(96)


def test_position_minus_position_is_a_distance():
    assert StreamPosition(100) - StreamPosition(40) == 60
    assert isinstance(StreamPosition(100) - StreamPosition(40), int)


def test_ordering():
    assert StreamPosition(3) < StreamPosition(4)
    assert StreamPosition(4) >= StreamPosition(4)
    assert max(StreamPosition(1), StreamPosition(9)) == StreamPosition(9)


def test_underflow_raises_instead_of_wrapping():
    with pytest.raises(PositionOverflowError):
        StreamPosition(0) - 1
    with pytest.raises(PositionOverflowError):
        StreamPosition(10) - StreamPosition(11)


def test_overflow_raises_instead_of_wrapping():
    top = StreamPosition(MAX_POSITION)
    with pytest.raises(PositionOverflowError):
        top + 1
    assert issubclass(PositionOverflowError, OverflowError)


def test_out_of_range_construction_rejected():
    with pytest.raises(PositionOverflowError):
        StreamPosition(-1)
    with pytest.raises(PositionOverflowError):
        StreamPosition(MAX_POSITION + 1)


def test_non_integer_rejected():
    with pytest.raises(TypeError):
        StreamPosition(1.5)
    with pytest.raises(TypeError):
        StreamPosition(1) + StreamPosition(2)


def test_usable_as_index():
    data = b"abcdef"
    assert data[StreamPosition(2)] == ord("c")
    assert int(StreamPosition(5)) == 5
