"""
Hex quantity codec for the Ethereum JSON-RPC wire format.

Quantities are encoded as hex, prefixed with "0x", using the most compact
representation. Zero is represented as "0x0".
"""

import re

from .exceptions import InvalidQuantityError


QUANTITY_PREFIX = "0x"
MAX_UINT64 = 2 ** 64 - 1

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")


def has_quantity_prefix(value: str) -> bool:
    """
    Check whether a string carries the quantity prefix.

    The bare string "0x" passes this check even though it is not a
    valid quantity.

    Args:
        value: Candidate quantity string

    Returns:
        bool: True if the string starts with "0x"
    """
    return len(value) >= 2 and value[:2] == QUANTITY_PREFIX


def decode_to_big_int(value: str) -> int:
    """
    Decode a hex quantity into an arbitrary precision integer.

    Args:
        value: Hex quantity string (e.g. "0x1b4")

    Returns:
        int: Decoded non-negative integer

    Raises:
        InvalidQuantityError: If the prefix is missing or the digits are not hex
    """
    if not isinstance(value, str) or not has_quantity_prefix(value):
        raise InvalidQuantityError(f"invalid hex number: {value!r}")

    digits = value[2:]
    if not _HEX_DIGITS.fullmatch(digits):
        raise InvalidQuantityError(f"invalid hex number: {value!r}")

    return int(digits, 16)


def decode_to_uint64(value: str) -> int:
    """
    Decode a hex quantity that must fit into 64 unsigned bits.

    Block numbers, timestamps and nonces are decoded through this.

    Raises:
        InvalidQuantityError: If the string is malformed or the value overflows
    """
    number = decode_to_big_int(value)
    if number > MAX_UINT64:
        raise InvalidQuantityError(f"hex number overflows uint64: {value!r}")
    return number


def decode_to_decimal_string(value: str) -> str:
    """Decode a hex quantity into its base-10 string form."""
    return str(decode_to_big_int(value))


def encode_uint64(number: int) -> str:
    """
    Encode an unsigned 64-bit integer as a hex quantity.

    Args:
        number: Value to encode

    Returns:
        str: "0x0" for zero, otherwise "0x" followed by lowercase hex digits

    Raises:
        InvalidQuantityError: If the value is negative or wider than 64 bits
    """
    if number < 0 or number > MAX_UINT64:
        raise InvalidQuantityError(f"cannot encode {number} as uint64 quantity")
    return f"{QUANTITY_PREFIX}{number:x}"
