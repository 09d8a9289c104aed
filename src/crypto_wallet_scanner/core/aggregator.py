"""Wallet aggregator: fan out chain scans and merge them into one result."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from crypto_wallet_scanner.core.chains import (
    PLATFORM_CHAINS,
    SOLANA_CHAINS,
    Chain,
    get_address_explorer_url,
    get_native_decimals,
    get_native_symbol,
    get_source,
)
from crypto_wallet_scanner.core.dedupe import dedupe_positions
from crypto_wallet_scanner.core.errors import ScanFailedError
from crypto_wallet_scanner.core.models import (
    ChainScanResult,
    CompositeResult,
    NativeBalanceEntry,
    ScanRequest,
    WalletPosition,
)
from crypto_wallet_scanner.providers import AdapterRegistry, ScanContext

logger = logging.getLogger(__name__)

MULTI_CHAIN_LABEL = "multi-evm"


class WalletAggregator:
    """
    Orchestrates wallet scans across chains.

    Workflow:
    1. Build one adapter per requested chain
    2. Scan every chain concurrently
    3. Fail the request only when no chain succeeded
    4. Merge native balances and positions, dedupe, sort and cap

    Parameters
    ----------
    context : ScanContext
        Shared HTTP client, settings and request cache of this scan

    """

    def __init__(self, context: ScanContext) -> None:
        self.context = context
        self.config = context.config

    def scan(
        self,
        request: ScanRequest,
        chains: list[Chain],
        progress: Any | None = None,
        task_id: Any | None = None,
    ) -> CompositeResult:
        """
        Scan the requested chains and build the composite result.

        Parameters
        ----------
        request : ScanRequest
            Validated scan request
        chains : list[Chain]
            Resolved chains, in scan order
        progress : Any | None
            Rich progress bar instance (optional)
        task_id : Any | None
            Task ID for progress updates (optional)

        Returns
        -------
        CompositeResult
            Merged result across every successful chain

        Raises
        ------
        ScanFailedError
            If no chain produced data

        """
        results = self.scan_chains(request, chains, progress, task_id)

        successes = [result for result in results if result.is_ok]
        if not successes:
            logger.warning("All %d chain scans failed for %s", len(results), request.address)
            raise ScanFailedError([result.summary() for result in results])

        failed = len(results) - len(successes)
        if failed:
            logger.info("%d of %d chain scans failed for %s", failed, len(results), request.address)

        return self.build_result(request, chains, results)

    def scan_chains(
        self,
        request: ScanRequest,
        chains: list[Chain],
        progress: Any | None = None,
        task_id: Any | None = None,
    ) -> list[ChainScanResult]:
        """
        Run every chain scan concurrently.

        Returns
        -------
        list[ChainScanResult]
            One result per chain, in the order of ``chains``

        """
        if not chains:
            return []

        with ThreadPoolExecutor(max_workers=min(len(chains), self.config.max_workers)) as executor:
            futures = [executor.submit(self.scan_chain, request, chain) for chain in chains]

            results = []
            for i, (chain, future) in enumerate(zip(chains, futures, strict=True)):
                try:
                    result = future.result()
                except Exception as e:
                    logger.warning("Scan of %s raised unexpectedly: %s", chain, e, exc_info=True)
                    result = ChainScanResult.failed(chain, get_source(chain), str(e) or type(e).__name__)
                results.append(result)

                if progress and task_id is not None:
                    progress.update(
                        task_id,
                        description=f"Scanned {chain}",
                        completed=100 * (i + 1) // len(chains),
                    )

        return results

    def scan_chain(self, request: ScanRequest, chain: Chain) -> ChainScanResult:
        """
        Scan a single chain with its registered adapter.

        Parameters
        ----------
        request : ScanRequest
            Validated scan request
        chain : Chain
            Chain to scan

        Returns
        -------
        ChainScanResult
            The adapter's result, or an error result when no adapter exists

        """
        adapter_class = AdapterRegistry.get_adapter_for_chain(chain)
        if adapter_class is None:
            return ChainScanResult.failed(chain, get_source(chain), f"No adapter registered for {chain}")

        logger.debug("Scanning %s with %s", chain, adapter_class.__name__)
        return adapter_class(chain, self.context).scan(request)

    def build_result(
        self,
        request: ScanRequest,
        chains: list[Chain],
        results: list[ChainScanResult],
    ) -> CompositeResult:
        """Merge chain results into the composite result."""
        successes = [result for result in results if result.is_ok]
        native_balances = [result.native_balance for result in successes if result.native_balance is not None]

        positions: list[WalletPosition] = [position for result in successes for position in result.positions]
        positions.extend(position for native in native_balances if (position := native.to_position()))

        positions = sorted(
            dedupe_positions(positions),
            key=lambda p: (p.value_usd or 0.0, p.balance),
            reverse=True,
        )[: self.config.max_positions]

        return CompositeResult(
            address=request.address,
            chain=chains[0].value if len(chains) == 1 else MULTI_CHAIN_LABEL,
            native_balance=native_balances[0] if native_balances else self.empty_native(request, chains[0]),
            native_balances=native_balances,
            positions=positions,
            token_count=len(positions),
            chains_searched=chains,
            chain_results=[result.summary() for result in results],
        )

    def empty_native(self, request: ScanRequest, chain: Chain) -> NativeBalanceEntry:
        """Zero native balance for the first scanned chain."""
        if chain in PLATFORM_CHAINS and request.platform_address:
            address = request.platform_address
        elif chain in SOLANA_CHAINS and request.solana_address:
            address = request.solana_address
        else:
            address = request.evm_address or request.address

        return NativeBalanceEntry(
            chain=chain,
            symbol=get_native_symbol(chain),
            balance=0.0,
            decimals=get_native_decimals(chain),
            explorer_url=get_address_explorer_url(chain, address),
        )
