"""
Hex Timespec Helpers

The clock and uptime routes exchange time as ``"<seconds>:<nanoseconds>"``
with both parts written in lowercase hexadecimal, e.g. ``"1e240:315"``.
"""

# Largest second count for which seconds * 10**9 + nanoseconds fits in int64
MAX_SECONDS = (2 ** 63 - 1) // 1_000_000_000 - 1


def timespec_to_hex(seconds: int, nanoseconds: int) -> str:
    """Format a (seconds, nanoseconds) pair as hex timespec"""
    return f"{seconds:x}:{nanoseconds:x}"


def hex_to_timespec(hex_str: str) -> tuple[int, int]:
    """
    Parse a hex timespec.

    Raises:
        ValueError: if the string is not two ':' separated hex numbers
    """
    parts = hex_str.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Expected '<sec>:<nsec>' hex timespec, got {hex_str!r}")

    seconds = int(parts[0], 16)
    nanoseconds = int(parts[1], 16)

    if not 0 <= seconds <= MAX_SECONDS:
        raise ValueError(f"Seconds out of range: {seconds}")

    if not 0 <= nanoseconds < 1_000_000_000:
        raise ValueError(f"Nanoseconds out of range: {nanoseconds}")

    return seconds, nanoseconds
