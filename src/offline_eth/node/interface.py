"""
Abstract interface for Ethereum chain access.

Defines the contract for the online steps: reading the data a transfer needs
and broadcasting signed transactions. The offline core never calls it; results
are fetched once and passed in as plain values.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class ChainClient(ABC):
    """
    Abstract interface for Ethereum node access.

    This interface defines all chain operations needed by the tool:
    - Account queries (nonce, balance)
    - Fee data (gas price, base fee history)
    - Transaction broadcast and receipt monitoring

    Addresses are passed as 0x-prefixed hex strings.
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the node.

        Raises:
            NodeConnectionError: If connection cannot be established
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the node."""
        pass

    @abstractmethod
    async def get_chain_id(self) -> int:
        """Get the chain id the node serves."""
        pass

    @abstractmethod
    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """
        Get the number of transactions sent from an address.

        At the pending block this is the nonce of the address's next
        transaction.

        Args:
            address: Hex address
            block: Block tag to count at

        Returns:
            Transaction count at the given block
        """
        pass

    @abstractmethod
    async def get_gas_price(self) -> int:
        """Get the node's current gas price suggestion in wei."""
        pass

    @abstractmethod
    async def get_base_fee_history(self, block_count: int) -> List[int]:
        """
        Get the base fee per gas of recent blocks.

        Args:
            block_count: Number of most recent blocks

        Returns:
            Base fees in wei, oldest first
        """
        pass

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Get the balance of an address in wei."""
        pass

    @abstractmethod
    async def send_raw_transaction(self, raw_transaction: str) -> str:
        """
        Broadcast a signed transaction.

        Args:
            raw_transaction: Signed transaction as 0x-prefixed hex

        Returns:
            Transaction hash

        Raises:
            TransactionSubmitError: If the node rejects the transaction
        """
        pass

    @abstractmethod
    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """
        Get the receipt of an included transaction.

        Returns:
            The receipt, or None while the transaction is pending
        """
        pass

    @abstractmethod
    async def await_transaction_receipt(
        self,
        tx_hash: str,
        timeout_seconds: Optional[float] = None,
        poll_interval_seconds: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Wait until a transaction is included.

        Args:
            tx_hash: Hash of the transaction to monitor
            timeout_seconds: Maximum time to wait
            poll_interval_seconds: Delay between lookups

        Returns:
            The receipt

        Raises:
            TransactionTimeoutError: If it is not included in time
        """
        pass

    async def send_signed_transaction(self, raw_transaction: str) -> Dict[str, Any]:
        """
        Broadcast a signed transaction and wait for its receipt.

        Args:
            raw_transaction: Signed transaction as 0x-prefixed hex

        Returns:
            The receipt of the included transaction
        """
        tx_hash = await self.send_raw_transaction(raw_transaction)
        return await self.await_transaction_receipt(tx_hash)


class NodeConnectionError(Exception):
    """Raised when connection to node fails."""
    pass


class TransactionSubmitError(Exception):
    """Raised when transaction submission fails."""

    def __init__(self, message: str, error_code: Optional[int] = None):
        super().__init__(message)
        self.error_code = error_code


class TransactionTimeoutError(Exception):
    """Raised when a transaction is not included before the timeout."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash
