from typing import TypeVar

T = TypeVar("T")


def ifnone(val: T | None, default: T) -> T:
    """Return the given value if it is not None, else return the default."""
    return val if val is not None else default


def ms_to_seconds(value_ms: int | float) -> float:
    """Convert a millisecond duration from configuration into seconds for asyncio."""
    return max(float(value_ms), 0.0) / 1000.0
