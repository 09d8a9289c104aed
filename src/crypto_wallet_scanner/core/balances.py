"""
Balance normalization helpers.

Providers report amounts as atomic-unit integer strings, hex-encoded
integers or already-scaled decimals. Every helper here degrades to zero on
malformed input: one bad token entry must never abort an otherwise valid
provider response.
"""

import math
from typing import Any


def to_float(value: Any) -> float:
    """
    Coerce a provider value to a finite float.

    Parameters
    ----------
    value : Any
        Number or numeric string

    Returns
    -------
    float
        Parsed value, or 0.0 when missing, non-numeric or non-finite

    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def normalize(value: Any, decimals: int) -> float:
    """
    Convert a raw balance into native units.

    A plain integer is treated as atomic units and divided by
    ``10 ** decimals``. A value that already contains a decimal point is
    treated as human-scaled and returned as-is.

    Parameters
    ----------
    value : Any
        Raw balance (string or number)
    decimals : int
        Token decimals

    Returns
    -------
    float
        Balance in native units, 0.0 on any parse failure

    Examples
    --------
    >>> normalize("1000000", 6)
    1.0
    >>> normalize("12.5", 18)
    12.5

    """
    if value is None or isinstance(value, bool):
        return 0.0

    raw = str(value).strip()
    if raw.isascii() and raw.isdigit():
        try:
            return int(raw) / (10**decimals)
        except (ValueError, OverflowError):
            return 0.0

    parsed = to_float(raw)
    if parsed == 0.0:
        return 0.0

    if "." in raw:
        return parsed

    try:
        return int(raw) / (10**decimals)
    except (ValueError, OverflowError):
        # Exponent notation and similar: fall back to float arithmetic
        return parsed / (10**decimals)


def normalize_hex(value: Any, decimals: int) -> float:
    """
    Convert a hex-encoded atomic amount into native units.

    Parameters
    ----------
    value : Any
        Hex string such as ``"0xde0b6b3a7640000"``
    decimals : int
        Token decimals

    Returns
    -------
    float
        Balance in native units, 0.0 on any parse failure

    """
    if not isinstance(value, str):
        return 0.0

    try:
        atomic = int(value, 16)
    except ValueError:
        return 0.0
    if atomic < 0:
        return 0.0

    divisor = 10**decimals
    whole, remainder = divmod(atomic, divisor)
    try:
        result = float(whole) + remainder / divisor
    except OverflowError:
        return 0.0
    return result if math.isfinite(result) else 0.0


def normalize_decimals(value: Any, fallback: int) -> int:
    """Parse a decimals count, using ``fallback`` when missing or negative."""
    if value is None or isinstance(value, bool):
        return fallback
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(parsed) or parsed < 0:
        return fallback
    return int(parsed)


def normalize_symbol(value: Any) -> str:
    """Trim and upper-case a token symbol, empty string when missing."""
    if value is None:
        return ""
    return str(value).strip().upper()
