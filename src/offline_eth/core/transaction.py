"""
Fee-market (EIP-1559) transaction model.

Maps the typed transaction to and from its wire form::

    0x02 || rlp([chain_id, nonce, max_priority_fee_per_gas, max_fee_per_gas,
                 gas_limit, to, value, data, access_list])

with ``[y_parity, r, s]`` appended to the list once the transaction is signed.
"""

import dataclasses
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from eth_utils import keccak, to_checksum_address

from offline_eth.core import rlp
from offline_eth.core.errors import (
    DecodeError,
    FieldCountError,
    InvalidFieldError,
    UnsupportedTransactionTypeError,
)
from offline_eth.core.units import decode_uint, int_to_big_endian, validate_uint

TRANSACTION_TYPE = 0x02
ADDRESS_LENGTH = 20
STORAGE_KEY_LENGTH = 32
PLAIN_TRANSFER_GAS = 21000

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]*")

UNSIGNED_FIELD_COUNT = 9
SIGNED_FIELD_COUNT = 12

# (name, bit width) of the leading integer fields, in wire order
_HEAD_INT_FIELDS = (
    ("chain_id", 256),
    ("nonce", 64),
    ("max_priority_fee_per_gas", 256),
    ("max_fee_per_gas", 256),
    ("gas_limit", 64),
)


@dataclass(frozen=True)
class AccessListEntry:
    """An address and the storage keys the transaction pre-declares for it."""
    address: bytes
    storage_keys: Tuple[bytes, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "storage_keys", tuple(self.storage_keys))
        _check_length(self.address, ADDRESS_LENGTH, "access list address")
        for key in self.storage_keys:
            _check_length(key, STORAGE_KEY_LENGTH, "storage key")


@dataclass(frozen=True)
class Signature:
    """
    Recoverable ECDSA signature.

    Attributes:
        y_parity: Recovery id, 0 or 1
        r: Signature r value
        s: Signature s value
    """
    y_parity: int
    r: int
    s: int

    def __post_init__(self):
        validate_uint(self.y_parity, bits=1, name="y_parity")
        validate_uint(self.r, name="r")
        validate_uint(self.s, name="s")


@dataclass(frozen=True)
class FeeMarketTransaction:
    """
    A fee-market (type 2) transaction, unsigned or signed.

    Signedness is not stored separately: a transaction is signed exactly when
    ``signature`` is set. Instances are immutable; signing produces a new one.
    """

    chain_id: int
    nonce: int
    max_priority_fee_per_gas: int
    max_fee_per_gas: int
    gas_limit: int
    to: bytes
    value: int
    data: bytes = b""
    access_list: Tuple[AccessListEntry, ...] = ()
    signature: Optional[Signature] = None

    def __post_init__(self):
        """Validate field ranges and the fee cap invariant."""
        for name, bits in _HEAD_INT_FIELDS:
            validate_uint(getattr(self, name), bits=bits, name=name)
        validate_uint(self.value, name="value")
        _check_length(self.to, ADDRESS_LENGTH, "to")
        if not isinstance(self.data, (bytes, bytearray)):
            raise ValueError("data must be bytes")
        object.__setattr__(self, "to", bytes(self.to))
        object.__setattr__(self, "data", bytes(self.data))
        object.__setattr__(self, "access_list", tuple(self.access_list))

        if self.max_fee_per_gas < self.max_priority_fee_per_gas:
            raise ValueError(
                f"max_fee_per_gas ({self.max_fee_per_gas}) is below "
                f"max_priority_fee_per_gas ({self.max_priority_fee_per_gas})"
            )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    @property
    def max_total_fee(self) -> int:
        """Most the sender can pay for gas: ``gas_limit * max_fee_per_gas``."""
        return self.gas_limit * self.max_fee_per_gas

    def with_signature(self, signature: Signature) -> "FeeMarketTransaction":
        """Return a copy of this transaction carrying ``signature``."""
        return dataclasses.replace(self, signature=signature)

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def unsigned_fields(self) -> List[rlp.RLPItem]:
        """The nine RLP items of the unsigned body, in wire order."""
        return [
            int_to_big_endian(self.chain_id),
            int_to_big_endian(self.nonce),
            int_to_big_endian(self.max_priority_fee_per_gas),
            int_to_big_endian(self.max_fee_per_gas),
            int_to_big_endian(self.gas_limit),
            self.to,
            int_to_big_endian(self.value),
            self.data,
            [[entry.address, list(entry.storage_keys)] for entry in self.access_list],
        ]

    def rlp_fields(self) -> List[rlp.RLPItem]:
        fields = self.unsigned_fields()
        if self.signature is not None:
            fields += [
                int_to_big_endian(self.signature.y_parity),
                int_to_big_endian(self.signature.r),
                int_to_big_endian(self.signature.s),
            ]
        return fields

    def to_bytes(self) -> bytes:
        """Type byte followed by the RLP encoding of all present fields."""
        return bytes([TRANSACTION_TYPE]) + rlp.encode(self.rlp_fields())

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()

    def signing_hash(self) -> bytes:
        """
        Keccak-256 of the type byte and the unsigned body.

        This is the digest that gets signed, whether or not this instance
        already carries a signature.
        """
        return keccak(bytes([TRANSACTION_TYPE]) + rlp.encode(self.unsigned_fields()))

    def hash(self) -> bytes:
        """Keccak-256 of the full wire bytes (the hash a node reports)."""
        return keccak(self.to_bytes())

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly field view with hex quantities."""
        result: Dict[str, Any] = {
            "type": hex(TRANSACTION_TYPE),
            "chainId": hex(self.chain_id),
            "nonce": hex(self.nonce),
            "maxPriorityFeePerGas": hex(self.max_priority_fee_per_gas),
            "maxFeePerGas": hex(self.max_fee_per_gas),
            "gasLimit": hex(self.gas_limit),
            "to": to_checksum_address(self.to),
            "value": hex(self.value),
            "data": "0x" + self.data.hex(),
            "accessList": [
                {
                    "address": to_checksum_address(entry.address),
                    "storageKeys": ["0x" + key.hex() for key in entry.storage_keys],
                }
                for entry in self.access_list
            ],
        }
        if self.signature is not None:
            result["v"] = hex(self.signature.y_parity)
            result["r"] = hex(self.signature.r)
            result["s"] = hex(self.signature.s)
        return result

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    @classmethod
    def from_hex(cls, text: str) -> "FeeMarketTransaction":
        """Decode a hex wire string, with or without a ``0x`` prefix."""
        return cls.from_bytes(hex_to_bytes(text))

    @classmethod
    def from_bytes(cls, raw: bytes) -> "FeeMarketTransaction":
        """
        Decode wire bytes into an unsigned or signed transaction.

        Args:
            raw: Type byte followed by the RLP payload

        Returns:
            The decoded transaction; signed iff the payload has 12 fields

        Raises:
            DecodeError: On any malformed input (see the subclasses)
        """
        if not raw or raw[0] != TRANSACTION_TYPE:
            found = f"0x{raw[0]:02x}" if raw else "nothing"
            raise UnsupportedTransactionTypeError(
                f"Expected transaction type 0x{TRANSACTION_TYPE:02x}, found {found}"
            )

        fields = rlp.decode_list(raw[1:])
        if len(fields) not in (UNSIGNED_FIELD_COUNT, SIGNED_FIELD_COUNT):
            raise FieldCountError(
                f"Expected {UNSIGNED_FIELD_COUNT} or {SIGNED_FIELD_COUNT} fields, "
                f"got {len(fields)}"
            )

        values = {
            name: _decode_int_field(fields[index], bits, name)
            for index, (name, bits) in enumerate(_HEAD_INT_FIELDS)
        }
        values["to"] = _decode_bytes_field(fields[5], "to", ADDRESS_LENGTH)
        values["value"] = _decode_int_field(fields[6], 256, "value")
        values["data"] = _decode_bytes_field(fields[7], "data")
        values["access_list"] = _decode_access_list(fields[8])

        if len(fields) == SIGNED_FIELD_COUNT:
            values["signature"] = Signature(
                y_parity=_decode_int_field(fields[9], 1, "y_parity"),
                r=_decode_int_field(fields[10], 256, "r"),
                s=_decode_int_field(fields[11], 256, "s"),
            )

        try:
            return cls(**values)
        except ValueError as e:
            raise InvalidFieldError(str(e)) from e


# ============================================================================
# Helpers
# ============================================================================

def hex_to_bytes(text: str) -> bytes:
    """
    Parse a hex string with an optional ``0x`` prefix.

    Surrounding whitespace is ignored; whitespace between digits is not.

    Raises:
        DecodeError: If the text is not valid hex
    """
    if not isinstance(text, str):
        raise DecodeError(f"Expected a hex string, got {type(text).__name__}")
    cleaned = text.strip()
    if cleaned[:2] in ("0x", "0X"):
        cleaned = cleaned[2:]
    if not _HEX_DIGITS.fullmatch(cleaned):
        raise DecodeError("Hex string contains non-hex characters")
    try:
        return bytes.fromhex(cleaned)
    except ValueError as e:
        raise DecodeError(f"Invalid hex string: {e}") from e


def _check_length(value: Union[bytes, bytearray], length: int, name: str) -> None:
    if not isinstance(value, (bytes, bytearray)) or len(value) != length:
        raise ValueError(f"{name} must be exactly {length} bytes")


def _decode_int_field(item: rlp.RLPItem, bits: int, name: str) -> int:
    if not isinstance(item, bytes):
        raise InvalidFieldError(f"{name} must be a byte string, got a list")
    return decode_uint(item, bits=bits, name=name)


def _decode_bytes_field(
    item: rlp.RLPItem,
    name: str,
    length: Optional[int] = None,
) -> bytes:
    if not isinstance(item, bytes):
        raise InvalidFieldError(f"{name} must be a byte string, got a list")
    if length is not None and len(item) != length:
        raise InvalidFieldError(f"{name} must be exactly {length} bytes, got {len(item)}")
    return item


def _decode_access_list(item: rlp.RLPItem) -> Tuple[AccessListEntry, ...]:
    if not isinstance(item, list):
        raise InvalidFieldError("access list must be a list")

    entries = []
    for entry in item:
        if not isinstance(entry, list) or len(entry) != 2:
            raise InvalidFieldError("access list entry must be [address, storage_keys]")
        address, keys = entry
        if not isinstance(keys, list):
            raise InvalidFieldError("access list storage keys must be a list")
        entries.append(AccessListEntry(
            address=_decode_bytes_field(address, "access list address", ADDRESS_LENGTH),
            storage_keys=tuple(
                _decode_bytes_field(key, "storage key", STORAGE_KEY_LENGTH)
                for key in keys
            ),
        ))
    return tuple(entries)
