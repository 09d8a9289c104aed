"""Chain adapters. Importing this package registers every adapter."""

from crypto_wallet_scanner.providers.avalanche import AvalancheCRpcClient, AvalanchePlatformAdapter
from crypto_wallet_scanner.providers.base import ChainAdapter, ScanContext, ScanStrategy, run_strategies
from crypto_wallet_scanner.providers.blockscout import BlockscoutAdapter
from crypto_wallet_scanner.providers.hyperliquid import HyperliquidAdapter, HyperliquidInfoClient
from crypto_wallet_scanner.providers.registry import AdapterRegistry
from crypto_wallet_scanner.providers.solana import SolanaAdapter, SolanaRpcClient
from crypto_wallet_scanner.providers.tron import TronAdapter

__all__ = [
    "AdapterRegistry",
    "AvalancheCRpcClient",
    "AvalanchePlatformAdapter",
    "BlockscoutAdapter",
    "ChainAdapter",
    "HyperliquidAdapter",
    "HyperliquidInfoClient",
    "ScanContext",
    "ScanStrategy",
    "SolanaAdapter",
    "SolanaRpcClient",
    "TronAdapter",
    "run_strategies",
]
