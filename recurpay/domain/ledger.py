"""Overflow-checked counter and amount arithmetic.

Financial totals and due dates must never wrap or saturate. Every mutation of
a persisted counter goes through these helpers, which raise
:class:`ArithmeticOverflowError` when the result would leave its bound.
"""

from .constants import I64_MAX, I64_MIN, U32_MAX, U64_MAX
from .exceptions import ArithmeticOverflowError


def checked_add(value: int, delta: int, *, field: str, maximum: int = U64_MAX) -> int:
    """Add ``delta`` to an unsigned counter bounded by ``maximum``."""
    result = value + delta
    if result > maximum or result < 0:
        raise ArithmeticOverflowError(field, f"{value} + {delta}")
    return result


def checked_sub(value: int, delta: int, *, field: str) -> int:
    """Subtract ``delta`` from an unsigned counter; going below zero fails."""
    result = value - delta
    if result < 0:
        raise ArithmeticOverflowError(field, f"{value} - {delta}")
    return result


def checked_add_u32(value: int, delta: int, *, field: str) -> int:
    return checked_add(value, delta, field=field, maximum=U32_MAX)


def checked_add_u64(value: int, delta: int, *, field: str) -> int:
    return checked_add(value, delta, field=field, maximum=U64_MAX)


def checked_add_timestamp(timestamp: int, seconds: int, *, field: str) -> int:
    """Advance a signed 64-bit Unix timestamp."""
    result = timestamp + seconds
    if result > I64_MAX or result < I64_MIN:
        raise ArithmeticOverflowError(field, f"{timestamp} + {seconds}")
    return result
