"""
Transaction module.

Handles fee estimation, transaction construction, signing and display.
"""

from offline_eth.tx.builder import TransactionBuilder
from offline_eth.tx.display import TransactionSummary, summarize
from offline_eth.tx.fees import (
    ExplicitAmount,
    FeeQuote,
    SpendAllAvailable,
    compute_fees,
    compute_max_spendable_value,
)
from offline_eth.tx.signer import (
    TransactionSigner,
    private_key_to_address,
    recover_address,
    sign_transaction,
)

__all__ = [
    "ExplicitAmount",
    "FeeQuote",
    "SpendAllAvailable",
    "TransactionBuilder",
    "TransactionSigner",
    "TransactionSummary",
    "compute_fees",
    "compute_max_spendable_value",
    "private_key_to_address",
    "recover_address",
    "sign_transaction",
    "summarize",
]
