"""
offline-eth

Create, sign and submit Ethereum transactions so that keys and signing can be
isolated on an offline computer. Unsigned and signed transactions cross the
air gap as hex strings.
"""

__version__ = "0.1.0"

from offline_eth.core.transaction import FeeMarketTransaction, Signature
from offline_eth.tx.fees import ExplicitAmount, SpendAllAvailable
from offline_eth.tx.signer import TransactionSigner

__all__ = [
    "ExplicitAmount",
    "FeeMarketTransaction",
    "Signature",
    "SpendAllAvailable",
    "TransactionSigner",
]
