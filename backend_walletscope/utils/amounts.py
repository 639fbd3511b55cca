"""
Decimal amount formatting for raw base-unit integers.

format_amount and parse_amount work on integers and digit strings only;
binary floating point is never involved. to_display_amount is the single
lossy helper and exists for ranking holdings, never for comparisons that
must be exact.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

LAMPORTS_DECIMALS = 9


def _check(raw: int, scale: int) -> None:
    if raw < 0:
        raise ValueError("raw amount must be non-negative")
    if scale < 0:
        raise ValueError("scale must be non-negative")


def format_amount(raw: int, scale: int) -> str:
    """
    Render raw base units as a trimmed decimal string.

    >>> format_amount(1234567890, 9)
    '1.23456789'
    >>> format_amount(1000000000, 9)
    '1'
    """
    raw = int(raw)
    scale = int(scale)
    _check(raw, scale)
    if scale == 0:
        return str(raw)
    integer_part, fractional_part = divmod(raw, 10**scale)
    fractional = str(fractional_part).rjust(scale, "0").rstrip("0")
    if not fractional:
        return str(integer_part)
    return f"{integer_part}.{fractional}"


def parse_amount(text: str, scale: int) -> int:
    """
    Parse a decimal string into raw base units, exactly.

    Raises ValueError for negative, non-decimal, or over-precise input
    (more significant fractional digits than scale).
    """
    if scale < 0:
        raise ValueError("scale must be non-negative")
    value = (text or "").strip()
    try:
        parsed = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"not a decimal amount: {text!r}") from None
    if not parsed.is_finite() or "e" in value.lower():
        raise ValueError(f"not a plain decimal amount: {text!r}")
    if parsed < 0 or value.startswith("-"):
        raise ValueError("amount must be non-negative")

    integer_digits, _, fractional_digits = value.lstrip("+").partition(".")
    fractional_digits = fractional_digits.rstrip("0")
    if len(fractional_digits) > scale:
        raise ValueError(f"amount {text!r} has more than {scale} decimal places")
    integer_value = int(integer_digits) if integer_digits else 0
    fractional_value = int(fractional_digits.ljust(scale, "0")) if scale else 0
    return integer_value * 10**scale + fractional_value


def to_display_amount(raw: int, scale: int) -> float:
    """Lossy float of raw / 10**scale. For sorting and ranking only."""
    return int(raw) / (10 ** int(scale))


def format_lamports(lamports: int) -> str:
    """Native balance in SOL, exact."""
    return format_amount(lamports, LAMPORTS_DECIMALS)
