"""Chain identifiers, aliases and scan-target resolution."""

from enum import StrEnum
from urllib.parse import quote

from crypto_wallet_scanner.core.errors import UnsupportedChainError
from crypto_wallet_scanner.data import get_chain_config, get_provider_config


class Chain(StrEnum):
    """Concrete chain identifiers. Declaration order is the auto-scan order."""

    ETHEREUM = "ethereum"
    OPTIMISM = "optimism"
    BASE = "base"
    ARBITRUM = "arbitrum"
    HYPERLIQUID = "hyperliquid"
    HYPERLIQUID_MAINNET = "hyperliquid-mainnet"
    TRON = "tron"
    POLYGON = "polygon"
    AVALANCHE_C = "avalanche-c"
    AVALANCHE_P = "avalanche-p"
    SOLANA = "solana"


class ProviderSource(StrEnum):
    """Identity of the adapter family that produced a chain result."""

    BLOCKSCOUT = "blockscout"
    TRONSCAN = "tronscan"
    HYPERLIQUID = "hyperliquid"
    AVALANCHE_PLATFORM = "avalanche-platform"
    SOLANA_RPC = "solana-rpc"


CHAIN_ALIASES: dict[str, tuple[Chain, ...]] = {
    "avalanche": (Chain.AVALANCHE_C, Chain.AVALANCHE_P),
    "avax": (Chain.AVALANCHE_C, Chain.AVALANCHE_P),
}

# Chains that are addressed by a platform-chain address instead of an EVM one
PLATFORM_CHAINS = frozenset({Chain.AVALANCHE_P})

# Chains addressed by a Base58 Solana account
SOLANA_CHAINS = frozenset({Chain.SOLANA})

AUTO_SELECTORS = frozenset({"", "auto", "all"})


def supported_selectors() -> list[str]:
    """List every accepted chain selector: concrete chains, then aliases."""
    return [chain.value for chain in Chain] + list(CHAIN_ALIASES)


def _is_available(
    chain: Chain,
    has_evm_address: bool,
    has_platform_address: bool,
    has_solana_address: bool = False,
) -> bool:
    if chain in PLATFORM_CHAINS:
        return has_platform_address
    if chain in SOLANA_CHAINS:
        return has_solana_address
    return has_evm_address


def resolve_chains(
    selector: str | None,
    has_evm_address: bool,
    has_platform_address: bool,
    has_solana_address: bool = False,
) -> list[Chain]:
    """
    Resolve a chain selector into the concrete chains to scan.

    Parameters
    ----------
    selector : str | None
        ``auto``/``all`` (or empty), an alias such as ``avalanche``, or a
        concrete chain id. Case-insensitive.
    has_evm_address : bool
        Whether an EVM-format address was supplied
    has_platform_address : bool
        Whether a platform-chain (P-Chain) address was supplied
    has_solana_address : bool, optional
        Whether a Solana account address was supplied

    Returns
    -------
    list[Chain]
        Ordered, de-duplicated chains

    Raises
    ------
    UnsupportedChainError
        If the selector is unknown, or none of its chains can be scanned with
        the available address kinds

    """
    normalized = (selector or "").strip().lower()

    available = [
        chain for chain in Chain if _is_available(chain, has_evm_address, has_platform_address, has_solana_address)
    ]

    if normalized in AUTO_SELECTORS:
        if not available:
            raise UnsupportedChainError(normalized or "auto", supported_selectors())
        return available

    if normalized in CHAIN_ALIASES:
        members = [
            chain
            for chain in dict.fromkeys(CHAIN_ALIASES[normalized])
            if chain in available
        ]
        if members:
            return members
        raise UnsupportedChainError(normalized, supported_selectors())

    try:
        chain = Chain(normalized)
    except ValueError:
        raise UnsupportedChainError(normalized, supported_selectors()) from None

    if chain not in available:
        raise UnsupportedChainError(normalized, supported_selectors())
    return [chain]


def get_source(chain: Chain) -> ProviderSource:
    """Get the provider family that serves a chain."""
    return ProviderSource(get_chain_config(chain)["source"])


def get_native_symbol(chain: Chain) -> str:
    """Get the native asset symbol of a chain (e.g., 'ETH', 'AVAX')."""
    return get_chain_config(chain)["native_symbol"]


def get_native_decimals(chain: Chain) -> int:
    """Get the native asset decimals of a chain."""
    return int(get_chain_config(chain)["native_decimals"])


def get_explorer_base_url(endpoint: str) -> str:
    """Strip a trailing ``/api`` from an explorer endpoint."""
    endpoint = endpoint.rstrip("/")
    if endpoint.endswith("/api"):
        return endpoint[: -len("/api")]
    return endpoint


def get_address_explorer_url(chain: Chain, address: str) -> str:
    """
    Build the block-explorer URL for an address on a chain.

    Parameters
    ----------
    chain : Chain
        Chain the address lives on
    address : str
        Address in the chain's own format

    Returns
    -------
    str
        Explorer URL

    """
    if chain == Chain.TRON:
        return f"{get_provider_config('tronscan')['explorer_base']}/#/address/{address}"
    if chain == Chain.AVALANCHE_P:
        return f"{get_provider_config('avalanche_platform')['explorer_base']}/address/{address}"
    if chain == Chain.SOLANA:
        return f"{get_provider_config('solana_rpc')['explorer_base']}/account/{address}"
    if chain == Chain.HYPERLIQUID_MAINNET:
        return f"{get_provider_config('hyperliquid')['explorer_base']}/address/{address}"
    if chain == Chain.AVALANCHE_C:
        routescan = get_provider_config("routescan")
        return f"{routescan['explorer_base']}/address/{address}?chainid={routescan['avalanche_chain_id']}"

    endpoint = get_chain_config(chain)["explorer_endpoints"][0]
    return f"{get_explorer_base_url(endpoint)}/address/{address}"


def get_token_explorer_url(chain: Chain, token_address: str, endpoint: str) -> str:
    """Build the explorer URL for a token contract, relative to the endpoint that reported it."""
    if chain == Chain.AVALANCHE_C:
        routescan = get_provider_config("routescan")
        return f"{routescan['explorer_base']}/token/{token_address}?chainid={routescan['avalanche_chain_id']}"
    return f"{get_explorer_base_url(endpoint)}/token/{token_address}"


def get_tron_token_explorer_url(token_type: str, token_id: str) -> str:
    """Build the TronScan URL for a TRC-10 or TRC-20 token."""
    base = get_provider_config("tronscan")["explorer_base"]
    if "TRC20" in token_type.upper():
        return f"{base}/#/token20/{token_id}"
    return f"{base}/#/token/{token_id}"


def get_hyperliquid_market_url(symbol: str, market_type: str) -> str:
    """Build the Hyperliquid explorer URL for a spot or perp market."""
    base = get_provider_config("hyperliquid")["explorer_base"]
    return f"{base}?market={market_type}&symbol={quote(symbol, safe='')}"


def get_solana_token_explorer_url(mint: str) -> str:
    """Build the Solscan URL for an SPL token mint."""
    return f"{get_provider_config('solana_rpc')['explorer_base']}/token/{mint}"
