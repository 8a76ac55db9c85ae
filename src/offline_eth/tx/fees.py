"""
Fee Estimator - derives fee caps and the spendable value of a transfer.

The heuristic: the fee cap is 10% above a recent base fee sample (rounded up)
and the priority fee is a fixed 1 gwei.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from offline_eth.core.errors import ConfigurationError, InsufficientFundsError
from offline_eth.core.units import (
    WEI_PER_GWEI,
    ceil_percent,
    parse_wei_amount,
    to_wei,
    validate_uint,
)

DEFAULT_PRIORITY_FEE_WEI = 1 * WEI_PER_GWEI
DEFAULT_GAS_CAP_MARGIN_PERCENT = 10

MAX_VALUE_SENTINEL = "max"


@dataclass(frozen=True)
class FeeQuote:
    """Fee fields for a fee-market transaction, in wei per gas."""
    max_fee_per_gas: int
    max_priority_fee_per_gas: int


@dataclass(frozen=True)
class ExplicitAmount:
    """Transfer exactly ``wei``."""
    wei: int

    def __post_init__(self):
        validate_uint(self.wei, name="wei")


@dataclass(frozen=True)
class SpendAllAvailable:
    """Transfer the whole balance less the most the gas can cost."""
    pass


ValueIntent = Union[ExplicitAmount, SpendAllAvailable]


def compute_fees(
    recent_base_fee_per_gas: int,
    priority_fee_per_gas: int = DEFAULT_PRIORITY_FEE_WEI,
    margin_percent: int = DEFAULT_GAS_CAP_MARGIN_PERCENT,
) -> FeeQuote:
    """
    Derive the fee fields from a recent base fee.

    ``max_fee_per_gas`` is ``ceil(base * (100 + margin) / 100)``, so the cap is
    never below the margin. The priority fee is lowered to the cap when the
    cap is smaller, keeping ``max_fee_per_gas >= max_priority_fee_per_gas``.

    Args:
        recent_base_fee_per_gas: Observed base fee (or gas price) in wei
        priority_fee_per_gas: Tip offered to the block producer
        margin_percent: Head-room above the observed base fee

    Returns:
        FeeQuote with both fee fields
    """
    validate_uint(recent_base_fee_per_gas, name="recent_base_fee_per_gas")
    validate_uint(priority_fee_per_gas, name="priority_fee_per_gas")
    validate_uint(margin_percent, name="margin_percent")

    max_fee = ceil_percent(recent_base_fee_per_gas, 100 + margin_percent)
    return FeeQuote(
        max_fee_per_gas=max_fee,
        max_priority_fee_per_gas=min(priority_fee_per_gas, max_fee),
    )


def compute_max_spendable_value(balance: int, gas_limit: int, max_fee_per_gas: int) -> int:
    """
    Compute ``balance - gas_limit * max_fee_per_gas``.

    Raises:
        InsufficientFundsError: If the balance does not cover the gas cost
    """
    validate_uint(balance, name="balance")
    validate_uint(gas_limit, name="gas_limit")
    validate_uint(max_fee_per_gas, name="max_fee_per_gas")

    max_gas_cost = gas_limit * max_fee_per_gas
    if balance < max_gas_cost:
        raise InsufficientFundsError(
            f"Balance of {balance} wei cannot cover the maximum gas cost of "
            f"{max_gas_cost} wei",
            balance=balance,
            required=max_gas_cost,
        )
    return balance - max_gas_cost


def resolve_value(
    intent: ValueIntent,
    balance: Optional[int],
    gas_limit: int,
    max_fee_per_gas: int,
) -> int:
    """
    Turn a value intent into a wei amount.

    The balance is only read for ``SpendAllAvailable``.
    """
    if isinstance(intent, ExplicitAmount):
        return intent.wei
    if isinstance(intent, SpendAllAvailable):
        if balance is None:
            raise ConfigurationError("Spending the whole balance requires the balance")
        return compute_max_spendable_value(balance, gas_limit, max_fee_per_gas)
    raise TypeError(f"Unknown value intent: {intent!r}")


def value_intent_from_args(
    value_wei: Optional[str] = None,
    value_ether: Optional[str] = None,
) -> ValueIntent:
    """
    Build a value intent from user input.

    Exactly one of the two amounts must be given; either may be ``"max"``.

    Raises:
        ConfigurationError: If both or neither are set, or the amount is malformed
    """
    if (value_wei is None) == (value_ether is None):
        raise ConfigurationError("Must set value_ether or value_wei but not both")

    text = value_wei if value_wei is not None else value_ether
    if text.strip().lower() == MAX_VALUE_SENTINEL:
        return SpendAllAvailable()
    if value_wei is not None:
        return ExplicitAmount(parse_wei_amount(value_wei))
    return ExplicitAmount(to_wei(value_ether, "ether"))


def median_base_fee(samples: Sequence[int]) -> int:
    """
    Median of recent base fees; the upper median for an even count.

    Raises:
        ValueError: If there are no samples
    """
    if not samples:
        raise ValueError("No base fee samples")
    ordered = sorted(samples)
    return ordered[len(ordered) // 2]
