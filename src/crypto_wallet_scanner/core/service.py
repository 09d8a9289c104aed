"""Primary entry point: validate, resolve chains and scan a wallet."""

import logging

import httpx

from crypto_wallet_scanner.config import ScannerConfig
from crypto_wallet_scanner.core.aggregator import WalletAggregator
from crypto_wallet_scanner.core.chains import resolve_chains
from crypto_wallet_scanner.core.models import CompositeResult, ScanRequest
from crypto_wallet_scanner.providers import ScanContext
from crypto_wallet_scanner.rpc import RequestCache

logger = logging.getLogger(__name__)

USER_AGENT = "crypto-wallet-scanner"


def scan_wallet(
    address: str,
    chain_selector: str = "auto",
    platform_address: str | None = None,
    *,
    config: ScannerConfig | None = None,
    client: httpx.Client | None = None,
) -> CompositeResult:
    """
    Scan a wallet across the selected chains.

    Parameters
    ----------
    address : str
        EVM hex address or Avalanche P-Chain address
    chain_selector : str
        ``auto``, an alias such as ``avalanche``, or a chain id
    platform_address : str | None
        P-Chain address to use for ``avalanche-p`` alongside an EVM address
    config : ScannerConfig | None
        Runtime settings, read from the environment when None
    client : httpx.Client | None
        HTTP client to use; one is created and closed per scan when None

    Returns
    -------
    CompositeResult
        Merged result across every successful chain

    Raises
    ------
    InvalidAddressError
        If the address is malformed; raised before any network call
    UnsupportedChainError
        If the selector cannot be resolved for the supplied addresses
    ScanFailedError
        If every requested chain failed

    Examples
    --------
    >>> result = scan_wallet("0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045", "ethereum")
    >>> payload = result.to_response()

    """
    request = ScanRequest.from_params(address, chain_selector, platform_address)
    chains = resolve_chains(
        request.chain_selector,
        has_evm_address=request.evm_address is not None,
        has_platform_address=request.platform_address is not None,
        has_solana_address=request.solana_address is not None,
    )
    config = config or ScannerConfig.from_env()
    logger.debug("Scanning %s on %s", request.address, ", ".join(chains))

    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=config.timeout, headers={"User-Agent": USER_AGENT}, follow_redirects=True)

    try:
        context = ScanContext(client, config, RequestCache(namespace=request.address))
        return WalletAggregator(context).scan(request, chains)
    finally:
        if owns_client:
            client.close()
