"""Tests for runtime settings."""

import pytest
from pydantic import ValidationError

from crypto_wallet_scanner.config import ScannerConfig


def test_defaults():
    """Defaults match the documented caps."""
    config = ScannerConfig.from_env()

    assert config.timeout == 10.0
    assert config.max_positions == 500
    assert config.per_chain_token_limit == 100
    assert config.tronscan_api_key is None
    assert config.derive_tron_from_evm is True
    assert config.solana_rpc_url is None


def test_from_env(monkeypatch):
    """Environment variables override the defaults."""
    monkeypatch.setenv("TRONSCAN_API_KEY", " secret ")
    monkeypatch.setenv("WALLET_SCANNER_TIMEOUT", "4.5")
    monkeypatch.setenv("WALLET_SCANNER_DERIVE_TRON", "off")
    monkeypatch.setenv("SOLANA_RPC_URL", "https://rpc.example.com ")

    config = ScannerConfig.from_env()

    assert config.tronscan_api_key == "secret"
    assert config.timeout == 4.5
    assert config.derive_tron_from_evm is False
    assert config.solana_rpc_url == "https://rpc.example.com"


def test_derive_tron_truthy(monkeypatch):
    """Any value outside the false set keeps derivation on."""
    monkeypatch.setenv("WALLET_SCANNER_DERIVE_TRON", "yes")

    assert ScannerConfig.from_env().derive_tron_from_evm is True


def test_invalid_timeout(monkeypatch):
    """Non-positive timeouts are rejected."""
    monkeypatch.setenv("WALLET_SCANNER_TIMEOUT", "0")

    with pytest.raises(ValidationError):
        ScannerConfig.from_env()
