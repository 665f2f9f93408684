"""
Configuration Test Suite

Settings parsing from the environment, network / token lookups and the
logging setup.

Usage:
    pytest tests/test_config.py -v
"""

import logging

import pytest

from cryptopay_facilitator.chains import constants
from cryptopay_facilitator.chains.constants import (
    ZERO_ADDRESS,
    get_available_networks,
    get_available_tokens,
    get_network_by_chain_id,
    get_network_config,
    get_rpc_url,
    get_token_address,
    is_token_available,
    rpc_env_key,
)
from cryptopay_facilitator.config import PACKAGE_LOGGER, FacilitatorSettings, configure_logging
from cryptopay_facilitator.engine.exceptions import (
    ConfigurationError,
    UnsupportedNetworkError,
    UnsupportedTokenError,
)
from cryptopay_facilitator.signers import GcpKmsP256Config, LocalSignerConfig

from facilitator_mocks import FACILITATOR_PRIVATE_KEY


LOCAL_ENV = {"FACILITATOR_PRIVATE_KEY": FACILITATOR_PRIVATE_KEY}


class TestFacilitatorSettings:

    def test_defaults(self):
        settings = FacilitatorSettings.from_env(LOCAL_ENV)

        assert isinstance(settings.signer, LocalSignerConfig)
        assert settings.rpc_urls == {}
        assert settings.rpc_timeout == 30.0
        assert settings.kms_timeout == 10.0
        assert settings.confirmation_timeout == 120.0
        assert settings.poll_interval == 2.0
        assert settings.allow_attested_settlement is False
        assert settings.log_level == "INFO"

    def test_overrides(self):
        settings = FacilitatorSettings.from_env({
            **LOCAL_ENV,
            "RPC_URL_BASE_SEPOLIA": "https://base-sepolia.example.org",
            "FACILITATOR_RPC_TIMEOUT": "5",
            "FACILITATOR_CONFIRMATION_TIMEOUT": "60.5",
            "FACILITATOR_ALLOW_ATTESTED_SETTLEMENT": "Yes",
            "FACILITATOR_LOG_LEVEL": "debug",
        })

        assert settings.rpc_urls == {"base-sepolia": "https://base-sepolia.example.org"}
        assert settings.rpc_timeout == 5.0
        assert settings.confirmation_timeout == 60.5
        assert settings.allow_attested_settlement is True
        assert settings.log_level == "DEBUG"

    def test_kms_signer_from_env(self):
        settings = FacilitatorSettings.from_env({
            "SIGNER_TYPE": "gcp-kms-p256",
            "GCP_PROJECT_ID": "proj",
            "GCP_KMS_KEY_RING": "ring",
            "GCP_KMS_KEY_ID": "key",
            "GCP_KMS_LOCATION": "asia-northeast1",
        })

        assert isinstance(settings.signer, GcpKmsP256Config)
        assert settings.signer.location_id == "asia-northeast1"
        assert settings.signer.smart_account_address is None

    @pytest.mark.parametrize("value", ["maybe", "2"])
    def test_invalid_bool(self, value):
        with pytest.raises(ConfigurationError, match="FACILITATOR_ALLOW_ATTESTED_SETTLEMENT"):
            FacilitatorSettings.from_env({**LOCAL_ENV, "FACILITATOR_ALLOW_ATTESTED_SETTLEMENT": value})

    @pytest.mark.parametrize("name, value", [
        ("FACILITATOR_RPC_TIMEOUT", "fast"),
        ("FACILITATOR_POLL_INTERVAL", "0"),
        ("FACILITATOR_KMS_TIMEOUT", "-1"),
    ])
    def test_invalid_number(self, name, value):
        with pytest.raises(ConfigurationError, match="Invalid facilitator settings"):
            FacilitatorSettings.from_env({**LOCAL_ENV, name: value})

    def test_missing_signer_is_startup_error(self):
        with pytest.raises(ConfigurationError):
            FacilitatorSettings.from_env({})


class TestNetworks:

    def test_rpc_env_key(self):
        assert rpc_env_key("base-sepolia") == "RPC_URL_BASE_SEPOLIA"
        assert rpc_env_key("avalanche-fuji") == "RPC_URL_AVALANCHE_FUJI"

    def test_rpc_url_resolution_order(self, monkeypatch):
        monkeypatch.delenv("RPC_URL_SEPOLIA", raising=False)
        assert get_rpc_url("sepolia") == get_network_config("sepolia").rpc_url

        monkeypatch.setenv("RPC_URL_SEPOLIA", "https://env.example.org")
        assert get_rpc_url("sepolia") == "https://env.example.org"
        assert get_rpc_url("sepolia", {"sepolia": "https://explicit.example.org"}) == "https://explicit.example.org"

    def test_unknown_network(self):
        with pytest.raises(UnsupportedNetworkError, match="Supported networks"):
            get_network_config("ethereum-mainnet")

    def test_chain_id_lookup(self):
        assert get_network_by_chain_id(84532) == "base-sepolia"
        assert get_network_by_chain_id(11155111) == "sepolia"
        assert get_network_by_chain_id(1) is None

    def test_jpyc_not_on_base_sepolia(self):
        assert get_token_address("JPYC", "base-sepolia") == ZERO_ADDRESS
        assert not is_token_available("JPYC", "base-sepolia")
        assert is_token_available("JPYC", "sepolia")
        assert "base-sepolia" not in get_available_networks("JPYC")
        assert get_available_tokens("base-sepolia") == ["USDC"]

    def test_unknown_token(self):
        with pytest.raises(UnsupportedTokenError):
            get_token_address("DOGE", "sepolia")

    def test_minimum_balance_is_one_hundredth_ether(self):
        assert constants.MIN_NATIVE_BALANCE_WEI == 10**16


class TestLogging:

    @pytest.fixture(autouse=True)
    def _restore_logger(self):
        logger = logging.getLogger(PACKAGE_LOGGER)
        handlers, level = list(logger.handlers), logger.level
        yield
        logger.handlers = handlers
        logger.setLevel(level)

    def test_configure_logging_is_idempotent(self):
        configure_logging("info")
        logger = configure_logging("DEBUG")

        marked = [h for h in logger.handlers if getattr(h, "_facilitator_handler", False)]
        assert len(marked) == 1
        assert logger.level == logging.DEBUG
