"""
Error types raised by the offline-eth core.

Every failure is local and deterministic. Callers distinguish them by type;
none of them is ever turned into a default value.
"""

from typing import Optional


class OfflineEthError(Exception):
    """Base class for all offline-eth errors."""
    pass


# ============================================================================
# Decoding
# ============================================================================

class DecodeError(OfflineEthError):
    """Raised when bytes cannot be decoded into an RLP item or transaction."""
    pass


class TruncatedInputError(DecodeError):
    """A length prefix announces more bytes than the input holds."""
    pass


class LeadingZeroLengthError(DecodeError):
    """A long-form length field starts with a zero byte."""
    pass


class NonCanonicalEncodingError(DecodeError):
    """An item was encoded in a longer form than the canonical one."""
    pass


class TrailingBytesError(DecodeError):
    """Bytes remain after the single top-level item."""
    pass


class NestingTooDeepError(DecodeError):
    """Lists are nested deeper than the decoder allows."""
    pass


class NonCanonicalIntegerError(DecodeError):
    """An integer field carries a leading zero byte."""
    pass


class IntegerOverflowError(DecodeError):
    """An integer field is wider than its target width."""
    pass


class UnsupportedTransactionTypeError(DecodeError):
    """The envelope type byte is not the fee-market type."""
    pass


class FieldCountError(DecodeError):
    """The transaction payload has neither 9 nor 12 fields."""
    pass


class InvalidFieldError(DecodeError):
    """A decoded field has the wrong shape or violates a model invariant."""
    pass


# ============================================================================
# Fees, keys and signatures
# ============================================================================

class InsufficientFundsError(OfflineEthError):
    """Raised when the balance cannot cover the maximum gas cost."""

    def __init__(
        self,
        message: str,
        balance: Optional[int] = None,
        required: Optional[int] = None,
    ):
        super().__init__(message)
        self.balance = balance
        self.required = required


class InvalidKeyError(OfflineEthError):
    """Raised for a private key of the wrong length or outside the curve order."""
    pass


class InvalidSignatureError(OfflineEthError):
    """Raised when a signature is missing, non-canonical or unrecoverable."""
    pass


class ConfigurationError(OfflineEthError):
    """Raised for missing, conflicting or malformed parameters."""
    pass
