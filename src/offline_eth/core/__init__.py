"""
Core module.

Pure, synchronous building blocks: errors, big-integer helpers, the RLP codec
and the fee-market transaction model.
"""

from offline_eth.core.errors import (
    ConfigurationError,
    DecodeError,
    InsufficientFundsError,
    InvalidKeyError,
    InvalidSignatureError,
    OfflineEthError,
)
from offline_eth.core.transaction import (
    AccessListEntry,
    FeeMarketTransaction,
    PLAIN_TRANSFER_GAS,
    Signature,
)

__all__ = [
    "AccessListEntry",
    "ConfigurationError",
    "DecodeError",
    "FeeMarketTransaction",
    "InsufficientFundsError",
    "InvalidKeyError",
    "InvalidSignatureError",
    "OfflineEthError",
    "PLAIN_TRANSFER_GAS",
    "Signature",
]
