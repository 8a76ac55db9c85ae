"""
RLP (Recursive Length Prefix) codec.

An item is either a byte string or an ordered sequence of items. Encoding is
canonical and decoding accepts only canonical input, so a byte string has
exactly one decoding and every decoded item re-encodes to the same bytes.
"""

from typing import List, Sequence, Tuple, Union

from offline_eth.core.errors import (
    DecodeError,
    LeadingZeroLengthError,
    NestingTooDeepError,
    NonCanonicalEncodingError,
    TrailingBytesError,
    TruncatedInputError,
)
from offline_eth.core.units import int_to_big_endian

RLPItem = Union[bytes, Sequence["RLPItem"]]

SHORT_STRING_OFFSET = 0x80
LONG_STRING_OFFSET = 0xB7
SHORT_LIST_OFFSET = 0xC0
LONG_LIST_OFFSET = 0xF7
SHORT_PAYLOAD_MAX = 55

# Deepest list nesting accepted; a transaction nests three levels
MAX_DEPTH = 64


# ============================================================================
# Encoding
# ============================================================================

def encode(item: RLPItem) -> bytes:
    """
    Encode a byte string or a nested sequence of byte strings.

    Args:
        item: bytes, bytearray, or a list/tuple of items

    Returns:
        The RLP encoding

    Raises:
        TypeError: If the item (or a nested element) is of another type
        ValueError: If lists nest deeper than ``MAX_DEPTH``
    """
    return _encode_item(item, 0)


def _encode_item(item: RLPItem, depth: int) -> bytes:
    if isinstance(item, (bytes, bytearray, memoryview)):
        return _encode_bytes(bytes(item))
    if isinstance(item, (list, tuple)):
        if depth >= MAX_DEPTH:
            raise ValueError(f"Lists nest deeper than {MAX_DEPTH} levels")
        payload = b"".join(_encode_item(element, depth + 1) for element in item)
        return _prefix(len(payload), SHORT_LIST_OFFSET, LONG_LIST_OFFSET) + payload
    raise TypeError(f"Cannot RLP-encode {type(item).__name__}")


def encode_uint(value: int) -> bytes:
    """Encode an unsigned integer as an RLP string (zero is the empty string)."""
    return encode(int_to_big_endian(value))


def _encode_bytes(data: bytes) -> bytes:
    if len(data) == 1 and data[0] < SHORT_STRING_OFFSET:
        return data
    return _prefix(len(data), SHORT_STRING_OFFSET, LONG_STRING_OFFSET) + data


def _prefix(length: int, short_offset: int, long_offset: int) -> bytes:
    if length <= SHORT_PAYLOAD_MAX:
        return bytes([short_offset + length])
    length_bytes = int_to_big_endian(length)
    if len(length_bytes) > 8:
        raise ValueError("RLP payload too long")
    return bytes([long_offset + len(length_bytes)]) + length_bytes


# ============================================================================
# Decoding
# ============================================================================

def decode(data: bytes) -> RLPItem:
    """
    Decode exactly one RLP item.

    Byte strings come back as ``bytes`` and sequences as ``list``.

    Raises:
        TruncatedInputError: If the input is empty or a length runs past it
        LeadingZeroLengthError: If a long-form length has a leading zero
        NonCanonicalEncodingError: If an item is not in its shortest form
        TrailingBytesError: If bytes follow the top-level item
        NestingTooDeepError: If lists nest deeper than ``MAX_DEPTH``
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"Cannot RLP-decode {type(data).__name__}")
    data = bytes(data)
    item, end = _decode_item(data, 0, len(data), 0)
    if end != len(data):
        raise TrailingBytesError(
            f"{len(data) - end} trailing byte(s) after the top-level item"
        )
    return item


def decode_list(data: bytes) -> List[RLPItem]:
    """Decode exactly one RLP item and require it to be a list."""
    item = decode(data)
    if not isinstance(item, list):
        raise DecodeError("Expected an RLP list, got a byte string")
    return item


def _decode_item(data: bytes, offset: int, limit: int, depth: int) -> Tuple[RLPItem, int]:
    """Decode the item at ``offset`` within ``data[:limit]``; return it with its end."""
    if offset >= limit:
        raise TruncatedInputError("Unexpected end of input")

    prefix = data[offset]

    if prefix < SHORT_STRING_OFFSET:
        return data[offset:offset + 1], offset + 1

    if prefix < SHORT_LIST_OFFSET:
        start, end = _read_length(data, offset, limit, SHORT_STRING_OFFSET, LONG_STRING_OFFSET)
        if end - start == 1 and data[start] < SHORT_STRING_OFFSET:
            raise NonCanonicalEncodingError(
                f"Single byte 0x{data[start]:02x} must not carry a length prefix"
            )
        return data[start:end], end

    if depth >= MAX_DEPTH:
        raise NestingTooDeepError(f"Lists nest deeper than {MAX_DEPTH} levels")
    start, end = _read_length(data, offset, limit, SHORT_LIST_OFFSET, LONG_LIST_OFFSET)
    items = []
    position = start
    while position < end:
        item, position = _decode_item(data, position, end, depth + 1)
        items.append(item)
    return items, end


def _read_length(
    data: bytes,
    offset: int,
    limit: int,
    short_offset: int,
    long_offset: int,
) -> Tuple[int, int]:
    """Parse the prefix at ``offset``; return the payload's (start, end)."""
    prefix = data[offset]

    if prefix <= long_offset:
        start = offset + 1
        length = prefix - short_offset
    else:
        length_of_length = prefix - long_offset
        start = offset + 1 + length_of_length
        if start > limit:
            raise TruncatedInputError("Length field runs past the end of input")
        length_bytes = data[offset + 1:start]
        if length_bytes[0] == 0:
            raise LeadingZeroLengthError("Length field has a leading zero byte")
        length = int.from_bytes(length_bytes, "big")
        if length <= SHORT_PAYLOAD_MAX:
            raise NonCanonicalEncodingError(
                f"Payload of {length} bytes must use the short form"
            )

    end = start + length
    if end > limit:
        raise TruncatedInputError(
            f"Payload of {length} bytes runs past the end of its container"
        )
    return start, end
