"""
Tests for configuration.
"""

import pytest
from pydantic import ValidationError

from offline_eth.config import (
    BaseFeeSource,
    Chain,
    OfflineEthConfig,
    get_config,
    set_config,
)
from offline_eth.core.errors import ConfigurationError


class TestConfig:
    """Tests for OfflineEthConfig."""

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        config = OfflineEthConfig()
        assert config.chain == Chain.MAINNET
        assert config.chain_id == 1
        assert config.client_url == "https://rpc.ankr.com/eth"
        assert config.priority_fee_wei == 10**9
        assert config.gas_cap_margin_percent == 10
        assert config.base_fee_source == BaseFeeSource.GAS_PRICE

    @pytest.mark.parametrize("chain, chain_id", [
        (Chain.MAINNET, 1),
        (Chain.SEPOLIA, 11155111),
        (Chain.GOERLI, 5),
        (Chain.LOCAL, 1337),
    ])
    def test_chain_ids(self, chain, chain_id):
        assert OfflineEthConfig(chain=chain).chain_id == chain_id

    def test_rpc_url_override(self):
        config = OfflineEthConfig(chain=Chain.SEPOLIA, rpc_url="http://localhost:8545")
        assert config.client_url == "http://localhost:8545"

    def test_local_chain_needs_rpc_url(self):
        with pytest.raises(ConfigurationError):
            OfflineEthConfig(chain=Chain.LOCAL).client_url

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("OFFLINE_ETH_CHAIN", "sepolia")
        monkeypatch.setenv("OFFLINE_ETH_BASE_FEE_SOURCE", "fee_history_median")
        monkeypatch.setenv("OFFLINE_ETH_PRIORITY_FEE_WEI", "2000000000")

        config = OfflineEthConfig()
        assert config.chain == Chain.SEPOLIA
        assert config.base_fee_source == BaseFeeSource.FEE_HISTORY_MEDIAN
        assert config.priority_fee_wei == 2 * 10**9

    def test_rejects_invalid_values(self):
        with pytest.raises(ValidationError):
            OfflineEthConfig(fee_history_blocks=0)
        with pytest.raises(ValidationError):
            OfflineEthConfig(chain="ropsten")
        with pytest.raises(ValidationError):
            OfflineEthConfig(log_level="verbose")

    def test_global_config(self, test_config):
        set_config(test_config)
        assert get_config() is test_config
