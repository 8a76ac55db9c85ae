"""
Transaction Builder - constructs unsigned transfers from chain data.

This is the online half of ``make-tx``: it reads the nonce, a base fee sample
and (for spend-all transfers) the balance, then hands plain values to the fee
estimator and the transaction model.
"""

from typing import Any, Optional

import structlog

from offline_eth.config import BaseFeeSource, OfflineEthConfig, get_config
from offline_eth.core.transaction import PLAIN_TRANSFER_GAS, FeeMarketTransaction
from offline_eth.node.interface import ChainClient
from offline_eth.tx.fees import (
    FeeQuote,
    SpendAllAvailable,
    ValueIntent,
    compute_fees,
    median_base_fee,
    resolve_value,
)
from offline_eth.tx.signer import format_address


class TransactionBuilder:
    """
    Builds unsigned fee-market transfers.

    Coordinates between the chain client and the fee estimator to produce a
    transaction ready to be carried to the offline signer. Either every field
    is filled in or the build raises; nothing partial is returned.
    """

    def __init__(
        self,
        node: ChainClient,
        config: Optional[OfflineEthConfig] = None,
        logger: Optional[Any] = None,
    ):
        """
        Initialize the transaction builder.

        Args:
            node: Chain client for nonce, fee and balance lookups
            config: Configuration
            logger: structlog logger, uses the module logger if not provided
        """
        self.node = node
        self.config = config or get_config()
        self.logger = logger or structlog.get_logger(__name__)

    async def sample_base_fee(self) -> int:
        """Get the base fee sample the fee cap is derived from."""
        if self.config.base_fee_source == BaseFeeSource.FEE_HISTORY_MEDIAN:
            history = await self.node.get_base_fee_history(self.config.fee_history_blocks)
            return median_base_fee(history)
        return await self.node.get_gas_price()

    async def quote_fees(self) -> FeeQuote:
        """Fetch a base fee sample and derive the fee fields from it."""
        base_fee = await self.sample_base_fee()
        quote = compute_fees(
            base_fee,
            priority_fee_per_gas=self.config.priority_fee_wei,
            margin_percent=self.config.gas_cap_margin_percent,
        )
        self.logger.debug(
            "fees_quoted",
            source=self.config.base_fee_source.value,
            base_fee=base_fee,
            max_fee_per_gas=quote.max_fee_per_gas,
            max_priority_fee_per_gas=quote.max_priority_fee_per_gas,
        )
        return quote

    async def build_transfer(
        self,
        from_address: bytes,
        to_address: bytes,
        value_intent: ValueIntent,
    ) -> FeeMarketTransaction:
        """
        Build an unsigned plain-value transfer.

        Args:
            from_address: Sender; only used to look up the nonce and balance
            to_address: Recipient
            value_intent: Explicit amount or spend-all

        Returns:
            Unsigned transaction

        Raises:
            InsufficientFundsError: If spend-all cannot cover the gas cost
        """
        sender = format_address(from_address)
        nonce = await self.node.get_transaction_count(sender)
        quote = await self.quote_fees()

        balance = None
        if isinstance(value_intent, SpendAllAvailable):
            balance = await self.node.get_balance(sender)

        value = resolve_value(
            value_intent,
            balance=balance,
            gas_limit=PLAIN_TRANSFER_GAS,
            max_fee_per_gas=quote.max_fee_per_gas,
        )

        tx = FeeMarketTransaction(
            chain_id=self.config.chain_id,
            nonce=nonce,
            max_priority_fee_per_gas=quote.max_priority_fee_per_gas,
            max_fee_per_gas=quote.max_fee_per_gas,
            gas_limit=PLAIN_TRANSFER_GAS,
            to=to_address,
            value=value,
        )

        self.logger.info(
            "transaction_built",
            sender=sender,
            to=format_address(to_address),
            nonce=nonce,
            value=value,
            spend_all=balance is not None,
            max_total_fee=tx.max_total_fee,
        )
        return tx
