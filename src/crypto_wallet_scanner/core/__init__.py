"""Core functionality: models, chain resolution, normalization and deduplication."""

from crypto_wallet_scanner.core.chains import Chain, ProviderSource, resolve_chains
from crypto_wallet_scanner.core.dedupe import dedupe_positions
from crypto_wallet_scanner.core.errors import (
    InvalidAddressError,
    ProviderError,
    ScanFailedError,
    ScannerError,
    UnsupportedChainError,
)
from crypto_wallet_scanner.core.models import (
    ChainScanResult,
    ChainSummary,
    CompositeResult,
    NativeBalanceEntry,
    PositionKind,
    ScanRequest,
    ScanStatus,
    WalletPosition,
)

__all__ = [
    "Chain",
    "ChainScanResult",
    "ChainSummary",
    "CompositeResult",
    "InvalidAddressError",
    "NativeBalanceEntry",
    "PositionKind",
    "ProviderError",
    "ProviderSource",
    "ScanFailedError",
    "ScanRequest",
    "ScanStatus",
    "ScannerError",
    "UnsupportedChainError",
    "WalletPosition",
    "dedupe_positions",
    "resolve_chains",
]
