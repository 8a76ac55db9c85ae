"""
Pytest configuration and shared fixtures for the test suite.
"""

from typing import Any, Dict, List, Optional

import pytest

from offline_eth.config import BaseFeeSource, Chain, OfflineEthConfig
from offline_eth.core.transaction import PLAIN_TRANSFER_GAS, FeeMarketTransaction
from offline_eth.node.interface import ChainClient, TransactionSubmitError


# Private key 0x4646...46 and its address (the EIP-155 example key)
TEST_PRIVATE_KEY = bytes.fromhex("46" * 32)
TEST_ADDRESS = "0x9d8A62f656a8d1615C1294fd71e9CFb3E4855A4F"

RECIPIENT = bytes.fromhex("35" * 20)
RECIPIENT_ADDRESS = "0x3535353535353535353535353535353535353535"

ONE_GWEI = 10**9


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> OfflineEthConfig:
    """Create a test configuration."""
    return OfflineEthConfig(
        chain=Chain.SEPOLIA,
        rpc_url="http://node.test",
        receipt_timeout_seconds=2,
        receipt_poll_interval_seconds=0.01,
        log_level="DEBUG",
    )


@pytest.fixture
def median_config(test_config) -> OfflineEthConfig:
    """Test configuration using the fee history median."""
    return test_config.model_copy(update={
        "base_fee_source": BaseFeeSource.FEE_HISTORY_MEDIAN,
        "fee_history_blocks": 5,
    })


# ============================================================================
# Test Data
# ============================================================================

@pytest.fixture
def private_key() -> bytes:
    """Well-known signing key."""
    return TEST_PRIVATE_KEY


@pytest.fixture
def sender_address() -> str:
    """Checksummed address of the signing key."""
    return TEST_ADDRESS


@pytest.fixture
def recipient() -> bytes:
    return RECIPIENT


@pytest.fixture
def recipient_address() -> str:
    return RECIPIENT_ADDRESS


@pytest.fixture
def unsigned_tx() -> FeeMarketTransaction:
    """A plain 1 ether transfer on mainnet."""
    return FeeMarketTransaction(
        chain_id=1,
        nonce=0,
        max_priority_fee_per_gas=ONE_GWEI,
        max_fee_per_gas=2 * ONE_GWEI,
        gas_limit=PLAIN_TRANSFER_GAS,
        to=RECIPIENT,
        value=10**18,
    )


# ============================================================================
# Mock Chain Client
# ============================================================================

class MockChainClient(ChainClient):
    """Mock chain client for testing."""

    def __init__(
        self,
        chain_id: int = 11155111,
        nonce: int = 7,
        gas_price: int = 100,
        balance: int = 10**18,
        base_fees: Optional[List[int]] = None,
    ):
        self.chain_id = chain_id
        self.nonce = nonce
        self.gas_price = gas_price
        self.balance = balance
        self.base_fees = base_fees if base_fees is not None else [100, 120, 90, 130, 110, 105]
        self.calls: List[str] = []
        self.sent: List[str] = []
        self.reject_with: Optional[str] = None
        self._connected = False

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def get_chain_id(self) -> int:
        return self.chain_id

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        self.calls.append("get_transaction_count")
        return self.nonce

    async def get_gas_price(self) -> int:
        self.calls.append("get_gas_price")
        return self.gas_price

    async def get_base_fee_history(self, block_count: int) -> List[int]:
        self.calls.append("get_base_fee_history")
        return list(self.base_fees)

    async def get_balance(self, address: str) -> int:
        self.calls.append("get_balance")
        return self.balance

    async def send_raw_transaction(self, raw_transaction: str) -> str:
        if self.reject_with:
            raise TransactionSubmitError(self.reject_with, error_code=-32000)
        self.sent.append(raw_transaction)
        return "0x" + "ab" * 32

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return {"transactionHash": tx_hash, "blockNumber": "0x10", "status": "0x1"}

    async def await_transaction_receipt(
        self,
        tx_hash: str,
        timeout_seconds: Optional[float] = None,
        poll_interval_seconds: Optional[float] = None,
    ) -> Dict[str, Any]:
        return await self.get_transaction_receipt(tx_hash)


@pytest.fixture
def mock_node() -> MockChainClient:
    """Create a mock chain client."""
    return MockChainClient()
