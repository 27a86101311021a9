"""
Utility functions for the account data synchronizer.

Includes timestamps, exact decimal-string arithmetic and string helpers.
"""

import time
from decimal import Decimal, InvalidOperation

from .exceptions import ParseError


# =============================================================================
# Time-related functions
# =============================================================================


def now_timestamp(unit: str = "ms") -> int:
    """
    Get current timestamp.

    Args:
        unit: "ms" for milliseconds, "s" for seconds

    Returns:
        Current timestamp as integer
    """
    ts = time.time()
    if unit == "ms":
        return int(ts * 1000)
    return int(ts)


# =============================================================================
# Decimal strings
# =============================================================================


def parse_decimal(value: str | int | float | Decimal, field: str = "amount") -> Decimal:
    """
    Parse an exchange decimal string exactly.

    Args:
        value: Decimal string such as "10.00000000" or "+1.5"
        field: Field name used in the error message

    Returns:
        Decimal value

    Raises:
        ParseError: If the value is not a finite decimal number

    Example:
        >>> parse_decimal("+1.5")
        Decimal('1.5')
    """
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ParseError(f"Invalid decimal for {field}: {value!r}") from e
    if not result.is_finite():
        raise ParseError(f"Invalid decimal for {field}: {value!r}")
    return result


def format_decimal(value: Decimal) -> str:
    """
    Render a Decimal as a plain (non-scientific) decimal string.

    Example:
        >>> format_decimal(Decimal("10.0") + Decimal("1.5"))
        '11.5'
    """
    return format(value, "f")


def add_decimal_strings(base: str, delta: str) -> str:
    """
    Add two exchange decimal strings without going through floats.

    Raises:
        ParseError: If either operand is malformed
    """
    return format_decimal(parse_decimal(base, "base") + parse_decimal(delta, "delta"))


# =============================================================================
# String helpers
# =============================================================================


def mask_secret(secret: str, show_chars: int = 4) -> str:
    """
    Mask a sensitive string, showing only first and last N characters.

    Example:
        >>> mask_secret("abcdefghijklmnop", 4)
        'abcd********mnop'
        >>> mask_secret("short", 4)
        '***'
    """
    if len(secret) <= show_chars * 2:
        return "*" * min(len(secret), 3)

    start = secret[:show_chars]
    end = secret[-show_chars:]
    middle_len = len(secret) - show_chars * 2
    return f"{start}{'*' * middle_len}{end}"
