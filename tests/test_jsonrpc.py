"""
Tests for the JSON-RPC adapter, against an in-process httpx transport.
"""

import json
from typing import Any, Dict, List

import httpx
import pytest

from offline_eth.config import Chain
from offline_eth.core.errors import ConfigurationError
from offline_eth.node.interface import (
    NodeConnectionError,
    TransactionSubmitError,
    TransactionTimeoutError,
)
from offline_eth.node.jsonrpc import JsonRpcAdapter, JsonRpcError


TX_HASH = "0x" + "ab" * 32


class FakeNode:
    """Answers JSON-RPC calls from a table of results keyed by method."""

    def __init__(self, results: Dict[str, Any]):
        self.results = {"eth_chainId": hex(11155111), **results}
        self.requests: List[Dict[str, Any]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        result = self.results.get(payload["method"])
        if callable(result):
            result = result(payload)
        if isinstance(result, httpx.Response):
            return result
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], **result})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    def params_of(self, method: str) -> List[Any]:
        return [r["params"] for r in self.requests if r["method"] == method]

    def adapter(self, config) -> JsonRpcAdapter:
        return JsonRpcAdapter(config, transport=httpx.MockTransport(self.handler))


# ============================================================================
# Connection
# ============================================================================

class TestConnect:
    """Tests for connecting and chain id checks."""

    @pytest.mark.asyncio
    async def test_connect_checks_chain_id(self, test_config):
        node = FakeNode({})
        adapter = node.adapter(test_config)
        await adapter.connect()
        assert node.params_of("eth_chainId") == [[]]
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_wrong_chain(self, test_config):
        node = FakeNode({"eth_chainId": "0x1"})
        adapter = node.adapter(test_config)
        with pytest.raises(ConfigurationError):
            await adapter.connect()

    @pytest.mark.asyncio
    async def test_local_chain_accepts_any_id(self, test_config):
        config = test_config.model_copy(update={"chain": Chain.LOCAL})
        node = FakeNode({"eth_chainId": "0x7a69"})
        adapter = node.adapter(config)
        await adapter.connect()
        assert await adapter.get_chain_id() == 31337
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_http_error(self, test_config):
        node = FakeNode({"eth_chainId": httpx.Response(503, text="unavailable")})
        adapter = node.adapter(test_config)
        with pytest.raises(NodeConnectionError):
            await adapter.connect()

    @pytest.mark.asyncio
    async def test_invalid_json(self, test_config):
        node = FakeNode({"eth_chainId": httpx.Response(200, text="not json")})
        adapter = node.adapter(test_config)
        with pytest.raises(NodeConnectionError):
            await adapter.connect()


# ============================================================================
# Queries
# ============================================================================

class TestQueries:
    """Tests for the read-only calls."""

    @pytest.mark.asyncio
    async def test_transaction_count_uses_pending_block(self, test_config):
        node = FakeNode({"eth_getTransactionCount": "0x7"})
        adapter = node.adapter(test_config)

        assert await adapter.get_transaction_count("0xabc") == 7
        assert await adapter.get_transaction_count("0xabc", block="latest") == 7
        assert node.params_of("eth_getTransactionCount") == [
            ["0xabc", "pending"],
            ["0xabc", "latest"],
        ]
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_gas_price_and_balance(self, test_config):
        node = FakeNode({
            "eth_gasPrice": hex(30 * 10**9),
            "eth_getBalance": hex(10**18),
        })
        adapter = node.adapter(test_config)

        assert await adapter.get_gas_price() == 30 * 10**9
        assert await adapter.get_balance("0xabc") == 10**18
        assert node.params_of("eth_getBalance") == [["0xabc", "latest"]]
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_base_fee_history(self, test_config):
        node = FakeNode({"eth_feeHistory": {"baseFeePerGas": ["0x64", "0x6e", "0x78"]}})
        adapter = node.adapter(test_config)

        assert await adapter.get_base_fee_history(2) == [100, 110, 120]
        assert node.params_of("eth_feeHistory") == [["0x2", "latest", []]]
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_empty_base_fee_history(self, test_config):
        node = FakeNode({"eth_feeHistory": {"baseFeePerGas": []}})
        adapter = node.adapter(test_config)

        with pytest.raises(NodeConnectionError):
            await adapter.get_base_fee_history(2)
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_malformed_quantity(self, test_config):
        node = FakeNode({"eth_gasPrice": 100})
        adapter = node.adapter(test_config)

        with pytest.raises(NodeConnectionError):
            await adapter.get_gas_price()
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_rpc_error(self, test_config):
        node = FakeNode({"eth_gasPrice": {"error": {"code": -32601, "message": "not found"}}})
        adapter = node.adapter(test_config)

        with pytest.raises(JsonRpcError) as exc_info:
            await adapter.get_gas_price()
        assert exc_info.value.code == -32601
        await adapter.disconnect()


# ============================================================================
# Submission
# ============================================================================

class TestSubmission:
    """Tests for broadcasting and waiting for inclusion."""

    @pytest.mark.asyncio
    async def test_send_raw_transaction(self, test_config):
        node = FakeNode({"eth_sendRawTransaction": TX_HASH})
        adapter = node.adapter(test_config)

        assert await adapter.send_raw_transaction("0x02c0") == TX_HASH
        assert node.params_of("eth_sendRawTransaction") == [["0x02c0"]]
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_rejected_transaction(self, test_config):
        node = FakeNode({
            "eth_sendRawTransaction": {"error": {"code": -32000, "message": "nonce too low"}},
        })
        adapter = node.adapter(test_config)

        with pytest.raises(TransactionSubmitError) as exc_info:
            await adapter.send_raw_transaction("0x02c0")
        assert exc_info.value.error_code == -32000
        assert "nonce too low" in str(exc_info.value)
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_waits_for_receipt(self, test_config):
        receipts = iter([None, None, {"transactionHash": TX_HASH, "blockNumber": "0x10", "status": "0x1"}])
        node = FakeNode({
            "eth_sendRawTransaction": TX_HASH,
            "eth_getTransactionReceipt": lambda payload: next(receipts),
        })
        adapter = node.adapter(test_config)

        receipt = await adapter.send_signed_transaction("0x02c0")
        assert receipt["blockNumber"] == "0x10"
        assert len(node.params_of("eth_getTransactionReceipt")) == 3
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_receipt_timeout(self, test_config):
        node = FakeNode({"eth_getTransactionReceipt": None})
        adapter = node.adapter(test_config)

        with pytest.raises(TransactionTimeoutError) as exc_info:
            await adapter.await_transaction_receipt(
                TX_HASH,
                timeout_seconds=0.05,
                poll_interval_seconds=0.01,
            )
        assert exc_info.value.tx_hash == TX_HASH
        await adapter.disconnect()
