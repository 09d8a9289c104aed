"""Data loading and configuration management."""

from crypto_wallet_scanner.data.loader import (
    get_chain_config,
    get_explorer_endpoints,
    get_provider_config,
    load_chains,
)

__all__ = [
    "get_chain_config",
    "get_explorer_endpoints",
    "get_provider_config",
    "load_chains",
]
