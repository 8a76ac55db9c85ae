"""
Node Integration Layer.

Provides abstracted access to Ethereum chain data and transaction broadcast.
Used only by the online commands; signing never touches it.
"""

from offline_eth.node.interface import (
    ChainClient,
    NodeConnectionError,
    TransactionSubmitError,
    TransactionTimeoutError,
)
from offline_eth.node.jsonrpc import JsonRpcAdapter, JsonRpcError

__all__ = [
    "ChainClient",
    "JsonRpcAdapter",
    "JsonRpcError",
    "NodeConnectionError",
    "TransactionSubmitError",
    "TransactionTimeoutError",
]
