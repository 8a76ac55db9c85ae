"""
Human-readable view of a transaction, for confirming it before signing or
broadcasting.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from offline_eth.core.transaction import FeeMarketTransaction
from offline_eth.core.units import format_ether
from offline_eth.tx.signer import format_address, recover_address


@dataclass(frozen=True)
class TransactionSummary:
    """
    Structural view of a transaction plus derived quantities.

    Attributes:
        fields: The transaction's JSON-friendly field view
        is_signed: Whether a signature is present
        sender: Checksummed address recovered from the signature, if signed
        to: Checksummed recipient address
        value_wei: Transferred amount in wei
        max_fee_wei: gas_limit * max_fee_per_gas
    """
    fields: Dict[str, Any]
    is_signed: bool
    sender: Optional[str]
    to: str
    value_wei: int
    max_fee_wei: int

    @property
    def value_ether(self) -> str:
        return format_ether(self.value_wei)

    @property
    def max_fee_ether(self) -> str:
        return format_ether(self.max_fee_wei)

    def lines(self) -> List[str]:
        """The summary as indented text lines."""
        lines = [f"  Is signed: {str(self.is_signed).lower()}"]
        if self.sender:
            lines.append(f"  'From' address implied by sig: {self.sender}")
        lines.append(f"  To: {self.to}")
        lines.append(f"  Value: {self.value_wei} wei ({self.value_ether} eth)")
        lines.append(f"  Max gas fee: {self.max_fee_wei} wei ({self.max_fee_ether} eth)")
        return lines


def summarize(tx: FeeMarketTransaction) -> TransactionSummary:
    """
    Build the summary of a transaction.

    Raises:
        InvalidSignatureError: If the transaction is signed but the sender
            cannot be recovered
    """
    sender = format_address(recover_address(tx)) if tx.is_signed else None
    return TransactionSummary(
        fields=tx.to_dict(),
        is_signed=tx.is_signed,
        sender=sender,
        to=format_address(tx.to),
        value_wei=tx.value,
        max_fee_wei=tx.max_total_fee,
    )
