"""Tests for data loading and configuration."""

from crypto_wallet_scanner.core.chains import Chain
from crypto_wallet_scanner.data import (
    get_chain_config,
    get_explorer_endpoints,
    get_provider_config,
    load_chains,
)


def test_configured_chains_match_enum():
    """Configured chains match the Chain enum, in order."""
    assert list(load_chains()["chains"]) == [chain.value for chain in Chain]


def test_get_chain_config():
    """Test getting chain configuration."""
    config = get_chain_config("ethereum")

    assert config["source"] == "blockscout"
    assert config["native_symbol"] == "ETH"
    assert config["native_decimals"] == 18


def test_get_explorer_endpoints():
    """Hyperliquid EVM has several explorer endpoints, tried in order."""
    endpoints = get_explorer_endpoints("hyperliquid")

    assert len(endpoints) == 3
    assert all(endpoint.startswith("https://") for endpoint in endpoints)
    assert get_explorer_endpoints("tron") == []


def test_get_provider_config():
    """Provider sections carry endpoints and retry settings."""
    platform = get_provider_config("avalanche_platform")

    assert platform["retry_delays"] == [0.35, 0.9]
    assert len(platform["rpc_endpoints"]) == 2
    assert get_provider_config("nonexistent") == {}


def test_chain_config_structure():
    """Test that chain config has required structure."""
    for chain in load_chains()["chains"]:
        config = get_chain_config(chain)

        assert {"source", "native_symbol", "native_decimals"} <= config.keys()
        assert isinstance(config["native_decimals"], int)
        if config["source"] == "blockscout":
            assert len(config["explorer_endpoints"]) > 0


def test_solana_provider_config():
    """Known Solana mints carry a symbol and a name."""
    solana = get_provider_config("solana_rpc")

    assert solana["rpc_endpoints"] == ["https://api.mainnet-beta.solana.com"]
    assert len(solana["known_tokens"]) == 15
    assert solana["known_tokens"]["EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"] == {"symbol": "USDC", "name": "USD Coin"}
    assert all({"symbol", "name"} <= entry.keys() for entry in solana["known_tokens"].values())
