"""
JSON-RPC adapter for chain access.

Provides chain access through a node's standard Ethereum JSON-RPC API over HTTP.
"""

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import httpx
import structlog

from offline_eth.config import Chain, OfflineEthConfig, get_config
from offline_eth.core.errors import ConfigurationError
from offline_eth.node.interface import (
    ChainClient,
    NodeConnectionError,
    TransactionSubmitError,
    TransactionTimeoutError,
)


class JsonRpcError(NodeConnectionError):
    """Raised when the node answers a request with a JSON-RPC error object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


def _to_int(quantity: Any, field: str) -> int:
    """Parse a JSON-RPC hex quantity."""
    if not isinstance(quantity, str) or not quantity.startswith("0x"):
        raise NodeConnectionError(f"Malformed quantity for {field}: {quantity!r}")
    try:
        return int(quantity, 16)
    except ValueError:
        raise NodeConnectionError(f"Malformed quantity for {field}: {quantity!r}")


class JsonRpcAdapter(ChainClient):
    """
    Ethereum JSON-RPC adapter.

    Implements the ChainClient using a node's HTTP JSON-RPC endpoint.
    """

    def __init__(
        self,
        config: Optional[OfflineEthConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[Any] = None,
    ):
        """
        Initialize the JSON-RPC adapter.

        Args:
            config: Configuration. Uses global config if not provided.
            transport: Custom httpx transport (tests inject a mock here)
            logger: structlog logger, uses the module logger if not provided
        """
        self.config = config or get_config()
        self.url = self.config.client_url
        self.logger = logger or structlog.get_logger(__name__)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)

    async def connect(self) -> None:
        """Establish connection (create HTTP client) and check the chain id."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=self.config.rpc_timeout_seconds,
            transport=self._transport,
        )

        try:
            chain_id = await self.get_chain_id()
        except NodeConnectionError:
            await self.disconnect()
            raise

        if self.config.chain != Chain.LOCAL and chain_id != self.config.chain_id:
            await self.disconnect()
            raise ConfigurationError(
                f"Node at {self.url} serves chain id {chain_id}, "
                f"expected {self.config.chain_id} ({self.config.chain.value})"
            )
        self.logger.info("node_connected", url=self.url, chain_id=chain_id)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            self.logger.info("node_disconnected")

    async def _request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make a JSON-RPC call and return its result."""
        if not self._client:
            await self.connect()

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.RequestError as e:
            self.logger.error("rpc_request_error", method=method, error=str(e))
            raise NodeConnectionError(f"JSON-RPC request failed: {e}")

        if response.status_code != 200:
            self.logger.error(
                "rpc_request_failed",
                method=method,
                status=response.status_code,
                error=response.text,
            )
            raise NodeConnectionError(
                f"JSON-RPC endpoint returned HTTP {response.status_code}: {response.text}"
            )

        try:
            body = response.json()
        except ValueError:
            raise NodeConnectionError(f"JSON-RPC endpoint returned invalid JSON for {method}")

        if not isinstance(body, dict):
            raise NodeConnectionError(f"JSON-RPC endpoint returned a non-object for {method}")

        error = body.get("error")
        if error:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            self.logger.error("rpc_error", method=method, error=error)
            raise JsonRpcError(
                f"{method} failed: {error.get('message', error)}",
                code=error.get("code"),
                data=error.get("data"),
            )

        return body.get("result")

    async def get_chain_id(self) -> int:
        """Get the chain id the node serves."""
        return _to_int(await self._request("eth_chainId"), "chainId")

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Get the transaction count (next nonce) of an address."""
        result = await self._request("eth_getTransactionCount", [address, block])
        count = _to_int(result, "transactionCount")
        self.logger.debug("transaction_count_fetched", address=address, count=count)
        return count

    async def get_gas_price(self) -> int:
        """Get the node's gas price suggestion."""
        return _to_int(await self._request("eth_gasPrice"), "gasPrice")

    async def get_base_fee_history(self, block_count: int) -> List[int]:
        """Get base fees of recent blocks (plus the next block's)."""
        result = await self._request("eth_feeHistory", [hex(block_count), "latest", []])
        if not result or not result.get("baseFeePerGas"):
            raise NodeConnectionError("eth_feeHistory returned no base fees")

        fees = [_to_int(fee, "baseFeePerGas") for fee in result["baseFeePerGas"]]
        self.logger.debug("base_fee_history_fetched", blocks=block_count, samples=len(fees))
        return fees

    async def get_balance(self, address: str) -> int:
        """Get the balance of an address at the latest block."""
        return _to_int(await self._request("eth_getBalance", [address, "latest"]), "balance")

    async def send_raw_transaction(self, raw_transaction: str) -> str:
        """Broadcast a signed transaction."""
        try:
            tx_hash = await self._request("eth_sendRawTransaction", [raw_transaction])
        except JsonRpcError as e:
            self.logger.error("tx_submit_failed", error=str(e), code=e.code)
            raise TransactionSubmitError(f"Transaction submission failed: {e}", error_code=e.code)

        self.logger.info("tx_submitted", tx_hash=tx_hash)
        return tx_hash

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Get a transaction receipt, None while pending."""
        return await self._request("eth_getTransactionReceipt", [tx_hash])

    async def await_transaction_receipt(
        self,
        tx_hash: str,
        timeout_seconds: Optional[float] = None,
        poll_interval_seconds: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Poll for the receipt until the transaction is included."""
        timeout = timeout_seconds or self.config.receipt_timeout_seconds
        interval = poll_interval_seconds or self.config.receipt_poll_interval_seconds
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt and receipt.get("blockNumber"):
                self.logger.info(
                    "tx_included",
                    tx_hash=tx_hash,
                    block_number=_to_int(receipt["blockNumber"], "blockNumber"),
                    status=receipt.get("status"),
                )
                return receipt

            if loop.time() - start_time > timeout:
                self.logger.warning("tx_receipt_timeout", tx_hash=tx_hash)
                raise TransactionTimeoutError(
                    f"Transaction {tx_hash} not included after {timeout} seconds",
                    tx_hash=tx_hash,
                )

            await asyncio.sleep(interval)
