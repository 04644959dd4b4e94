"""Conversions from script literals to the hex strings patch primitives consume."""

from __future__ import annotations


class HexEncodingError(ValueError):
    """Raised when a literal operand cannot be encoded."""


def ascii_to_hex(text: str) -> str:
    """Encode text as uppercase hex, two digits per UTF-8 byte.

    >>> ascii_to_hex("AB")
    '4142'
    """
    return text.encode("utf-8").hex().upper()


def decimal_to_hex(decimal: str) -> str:
    """Big-endian hex of a non-negative decimal, padded to whole bytes.

    >>> decimal_to_hex("4660")
    '1234'
    >>> decimal_to_hex("10")
    '0A'
    """
    value = _parse_decimal(decimal)
    digits = format(value, "X")
    if len(digits) % 2:
        digits = "0" + digits
    return digits


def decimal_to_reversed_hex(decimal: str, order: int = 2) -> str:
    """Hex of a decimal with its byte groups reversed (little-endian).

    >>> decimal_to_reversed_hex("4660")
    '3412'
    """
    digits = decimal_to_hex(decimal)
    groups = [digits[i:i + order] for i in range(0, len(digits), order)]
    return "".join(reversed(groups))


def pad_to_equal_length(first: str, second: str) -> tuple[str, str]:
    """Right-pad the shorter hex string with null bytes so both match."""
    width = max(len(first), len(second))
    return first.ljust(width, "0"), second.ljust(width, "0")


def _parse_decimal(decimal: str) -> int:
    text = decimal.strip()
    if not (text.isascii() and text.isdigit()):
        raise HexEncodingError(f"Not a non-negative decimal: {decimal!r}")
    return int(text)
