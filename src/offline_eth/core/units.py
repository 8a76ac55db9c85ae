"""
Big-integer helpers.

Exact unsigned integer handling for wei amounts, gas figures and the other
quantities of a fee-market transaction. Python integers are unbounded, so the
work here is range checking, canonical byte conversion and exact unit
conversion.
"""

import decimal
from decimal import Decimal
from typing import Union

from eth_utils import from_wei as _from_wei

from offline_eth.core.errors import (
    ConfigurationError,
    IntegerOverflowError,
    NonCanonicalIntegerError,
)


WEI_PER_GWEI = 10**9
WEI_PER_ETHER = 10**18

UINT64_MAX = 2**64 - 1
UINT256_MAX = 2**256 - 1

_UNIT_SCALE = {
    "wei": 1,
    "gwei": WEI_PER_GWEI,
    "ether": WEI_PER_ETHER,
}


def validate_uint(value: int, bits: int = 256, name: str = "value") -> int:
    """
    Check that a value is an unsigned integer fitting in ``bits`` bits.

    Args:
        value: The value to check
        bits: Target width
        name: Field name used in the error message

    Returns:
        The value, unchanged

    Raises:
        ValueError: If the value is not an int, is negative or is too wide
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    if value.bit_length() > bits:
        raise ValueError(f"{name} does not fit in {bits} bits")
    return value


def int_to_big_endian(value: int) -> bytes:
    """Minimal big-endian encoding of an unsigned integer; zero is empty."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"Expected an unsigned integer, got {value!r}")
    if value == 0:
        return b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def big_endian_to_int(data: bytes) -> int:
    return int.from_bytes(data, "big")


def decode_uint(data: bytes, bits: int = 256, name: str = "integer") -> int:
    """
    Decode a canonical RLP integer payload.

    Args:
        data: Big-endian bytes, empty for zero
        bits: Target width
        name: Field name used in the error message

    Returns:
        The decoded integer

    Raises:
        NonCanonicalIntegerError: If the payload has a leading zero byte
        IntegerOverflowError: If the value is wider than ``bits``
    """
    if not data:
        return 0
    if data[0] == 0:
        raise NonCanonicalIntegerError(f"{name} has a leading zero byte")
    value = big_endian_to_int(data)
    if value.bit_length() > bits:
        raise IntegerOverflowError(f"{name} does not fit in {bits} bits")
    return value


def ceil_percent(value: int, percent: int) -> int:
    """Exact ``ceil(value * percent / 100)`` for non-negative integers."""
    validate_uint(value, name="value")
    validate_uint(percent, name="percent")
    return -(-value * percent // 100)


# ============================================================================
# Unit conversion
# ============================================================================

def to_wei(amount: Union[str, int, Decimal], unit: str = "ether") -> int:
    """
    Convert an amount expressed in ``unit`` to wei.

    The amount must resolve to a whole, non-negative number of wei that fits
    in 256 bits.

    Raises:
        ConfigurationError: If the amount is malformed or out of range
    """
    if unit not in _UNIT_SCALE:
        raise ConfigurationError(f"Unknown unit: {unit}")
    try:
        number = Decimal(str(amount).strip())
    except decimal.InvalidOperation:
        raise ConfigurationError(f"Not a decimal amount: {amount!r}")

    if not number.is_finite() or number < 0:
        raise ConfigurationError(f"Amount must be a non-negative number: {amount!r}")

    with decimal.localcontext() as ctx:
        ctx.prec = 100
        scaled = number * _UNIT_SCALE[unit]
        if scaled != scaled.to_integral_value():
            raise ConfigurationError(f"Amount {amount} {unit} is not a whole number of wei")
        if scaled > UINT256_MAX:
            raise ConfigurationError(f"Amount {amount} {unit} exceeds 256 bits of wei")

    return int(scaled)


def from_wei(wei: int, unit: str = "ether") -> Decimal:
    """Convert wei to ``unit`` without loss of precision."""
    validate_uint(wei, name="wei")
    return Decimal(_from_wei(wei, unit))


def format_ether(wei: int) -> str:
    """Render a wei amount as a plain decimal ether string, e.g. ``0.5``."""
    amount = from_wei(wei, "ether")
    if amount == 0:
        return "0"
    with decimal.localcontext() as ctx:
        ctx.prec = 100
        return format(amount.normalize(), "f")


def parse_wei_amount(text: str) -> int:
    """
    Parse a decimal integer wei amount.

    Raises:
        ConfigurationError: If the text is not a non-negative integer
    """
    cleaned = text.strip()
    if not (cleaned.isascii() and cleaned.isdigit()):
        raise ConfigurationError(f"Wei amount must be a non-negative integer: {text!r}")
    value = int(cleaned)
    if value > UINT256_MAX:
        raise ConfigurationError(f"Wei amount exceeds 256 bits: {text}")
    return value
