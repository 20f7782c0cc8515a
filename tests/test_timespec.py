"""Tests for the hex timespec helpers"""

import pytest

from sysagent.common.timespec import MAX_SECONDS, hex_to_timespec, timespec_to_hex


def test_format():
    assert timespec_to_hex(123456, 789) == "1e240:315"
    assert timespec_to_hex(60, 0) == "3c:0"


def test_parse():
    assert hex_to_timespec("1e240:315") == (123456, 789)
    assert hex_to_timespec("  3C:0\n") == (60, 0)


@pytest.mark.parametrize(
    "bad", ["", "1e240", "1:2:3", "xyz:1", "1:3b9aca00", "ffffffffffffffff:0", "-1:0"],
)
def test_parse_rejects(bad):
    with pytest.raises(ValueError):
        hex_to_timespec(bad)


def test_largest_seconds_fits_clock_value():
    seconds, nanoseconds = hex_to_timespec(f"{MAX_SECONDS:x}:3b9ac9ff")

    assert seconds * 1_000_000_000 + nanoseconds <= 2 ** 63 - 1
    with pytest.raises(ValueError):
        hex_to_timespec(f"{MAX_SECONDS + 1:x}:0")
