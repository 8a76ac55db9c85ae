"""
Configuration management for offline-eth.

Supports configuration via environment variables and .env files.
"""

from enum import Enum
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from offline_eth.core.errors import ConfigurationError


class Chain(str, Enum):
    """Supported Ethereum networks."""
    MAINNET = "mainnet"
    SEPOLIA = "sepolia"
    GOERLI = "goerli"
    LOCAL = "local"


class BaseFeeSource(str, Enum):
    """Where the fee cap's base fee sample comes from."""
    GAS_PRICE = "gas_price"                       # single eth_gasPrice sample
    FEE_HISTORY_MEDIAN = "fee_history_median"     # median of recent block base fees


CHAIN_IDS = {
    Chain.MAINNET: 1,
    Chain.SEPOLIA: 11155111,
    Chain.GOERLI: 5,
    Chain.LOCAL: 1337,
}

DEFAULT_RPC_URLS = {
    Chain.MAINNET: "https://rpc.ankr.com/eth",
    Chain.SEPOLIA: "https://rpc.ankr.com/eth_sepolia",
    Chain.GOERLI: "https://rpc.ankr.com/eth_goerli",
}


class OfflineEthConfig(BaseSettings):
    """
    Configuration settings for offline-eth.

    All settings can be configured via environment variables with the
    OFFLINE_ETH_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="OFFLINE_ETH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Network settings
    chain: Chain = Field(
        default=Chain.MAINNET,
        description="Ethereum network to build transactions for"
    )
    rpc_url: Optional[str] = Field(
        default=None,
        description="JSON-RPC endpoint (defaults to a public endpoint per chain)"
    )
    rpc_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for JSON-RPC requests"
    )

    # Receipt polling
    receipt_timeout_seconds: int = Field(
        default=600,
        ge=1,
        description="Maximum time to wait for a broadcast transaction to be included"
    )
    receipt_poll_interval_seconds: float = Field(
        default=4.0,
        gt=0,
        description="Delay between receipt lookups"
    )

    # Fee heuristic
    priority_fee_wei: int = Field(
        default=10**9,
        ge=0,
        description="Priority fee offered to the block producer (wei per gas)"
    )
    gas_cap_margin_percent: int = Field(
        default=10,
        ge=0,
        description="Head-room of the fee cap above the base fee sample"
    )
    base_fee_source: BaseFeeSource = Field(
        default=BaseFeeSource.GAS_PRICE,
        description="Base fee sample used for the fee cap"
    )
    fee_history_blocks: int = Field(
        default=20,
        ge=1,
        le=1024,
        description="Number of recent blocks for the fee history median"
    )

    # Signing
    private_key_path: Optional[str] = Field(
        default=None,
        description="Path to a file holding the hex private key"
    )

    # Logging settings
    log_level: str = Field(
        default="WARNING",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|debug|info|warning|error)$",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    @property
    def chain_id(self) -> int:
        """Chain id of the configured network."""
        return CHAIN_IDS[self.chain]

    @property
    def client_url(self) -> str:
        """Get the JSON-RPC URL for the configured network."""
        if self.rpc_url:
            return self.rpc_url

        if self.chain not in DEFAULT_RPC_URLS:
            raise ConfigurationError(
                f"No default RPC endpoint for the chain: {self.chain.value}"
            )
        return DEFAULT_RPC_URLS[self.chain]


# Global config instance
_config: Optional[OfflineEthConfig] = None


def get_config() -> OfflineEthConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = OfflineEthConfig()
    return _config


def set_config(config: OfflineEthConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
