"""Base chain adapter, scan context and fallback strategy runner."""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, ClassVar, Generic, TypeVar

import httpx

from crypto_wallet_scanner.config import ScannerConfig
from crypto_wallet_scanner.core.chains import Chain, ProviderSource, get_address_explorer_url
from crypto_wallet_scanner.core.errors import ProviderError
from crypto_wallet_scanner.core.models import ChainScanResult, ScanRequest, WalletPosition
from crypto_wallet_scanner.data import get_provider_config
from crypto_wallet_scanner.rpc import HttpJsonClient, RequestCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScanContext:
    """
    Resources shared by the adapters of one scan.

    Parameters
    ----------
    client : httpx.Client
        HTTP client used for every provider call of the scan
    config : ScannerConfig
        Runtime settings
    cache : RequestCache | None
        Memo scoped to this scan; a fresh one is created when None
    sleep : Callable[[float], None]
        Sleep used by retry policies, injectable for tests

    """

    def __init__(
        self,
        client: httpx.Client,
        config: ScannerConfig | None = None,
        cache: RequestCache | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.config = config or ScannerConfig()
        self.cache = cache if cache is not None else RequestCache()
        self.sleep = sleep

    def http(self, provider: str, label: str | None = None) -> HttpJsonClient:
        """
        Build a JSON client for a provider using its configured timeout.

        Parameters
        ----------
        provider : str
            Provider key in chains.yaml (e.g., 'tronscan')
        label : str | None
            Name used in error messages, the provider key when None

        Returns
        -------
        HttpJsonClient
            Client bound to the scan's ``httpx.Client``

        """
        timeout = get_provider_config(provider).get("timeout", self.config.timeout)
        return HttpJsonClient(self.client, label or provider, timeout=min(float(timeout), self.config.timeout))


class ScanStrategy(ABC, Generic[T]):
    """
    One way of obtaining data from a provider.

    ``attempt`` returns data, returns None for "no usable data, try the next
    strategy", or raises :class:`ProviderError`.

    """

    name: ClassVar[str] = ""

    @abstractmethod
    def attempt(self, *args: Any) -> T | None: ...


def run_strategies(strategies: Sequence[ScanStrategy[T]], *args: Any, no_data_message: str) -> T:
    """
    Try strategies in order and return the first usable result.

    Parameters
    ----------
    strategies : Sequence[ScanStrategy[T]]
        Strategies in preference order
    *args
        Forwarded to each ``attempt``
    no_data_message : str
        Error message when every strategy returned None

    Returns
    -------
    T
        First non-None result

    Raises
    ------
    ProviderError
        The last strategy failure, or ``no_data_message`` when none failed

    """
    last_error: ProviderError | None = None

    for strategy in strategies:
        try:
            result = strategy.attempt(*args)
        except ProviderError as e:
            logger.debug("Strategy %s failed: %s", strategy.name or type(strategy).__name__, e)
            last_error = e
            continue
        if result is not None:
            return result
        logger.debug("Strategy %s returned no data", strategy.name or type(strategy).__name__)

    if last_error:
        raise last_error
    raise ProviderError(no_data_message)


class ChainAdapter(ABC):
    """
    Abstract base class for chain adapters.

    An adapter scans one chain through one provider family. ``scan`` never
    raises: every failure becomes an ``error`` :class:`ChainScanResult`.

    Attributes
    ----------
    source : ProviderSource
        Provider family (must be set in subclass)

    """

    source: ClassVar[ProviderSource]

    def __init__(self, chain: Chain, context: ScanContext) -> None:
        if not getattr(self, "source", None):
            msg = f"{self.__class__.__name__} must define 'source' attribute"
            raise ValueError(msg)
        self.chain = chain
        self.context = context

    def scan(self, request: ScanRequest) -> ChainScanResult:
        """
        Scan the chain for the request's wallet.

        Parameters
        ----------
        request : ScanRequest
            Validated scan request

        Returns
        -------
        ChainScanResult
            ``ok`` with positions, or ``error`` with the failure reason

        """
        try:
            return self._scan(request)
        except ProviderError as e:
            logger.debug("%s scan on %s failed: %s", self.source, self.chain, e)
            return ChainScanResult.failed(self.chain, self.source, str(e))
        except Exception as e:
            logger.warning("Unexpected %s failure on %s: %s", self.source, self.chain, e, exc_info=True)
            return ChainScanResult.failed(self.chain, self.source, str(e) or type(e).__name__)

    @abstractmethod
    def _scan(self, request: ScanRequest) -> ChainScanResult:
        """
        Fetch and normalize provider data.

        Must be implemented by subclasses; may raise :class:`ProviderError`.

        """
        ...

    def address_url(self, address: str) -> str:
        """Explorer URL of an address on this adapter's chain."""
        return get_address_explorer_url(self.chain, address)

    @property
    def token_limit(self) -> int:
        return self.context.config.per_chain_token_limit

    def top_by_balance(self, positions: list[WalletPosition]) -> list[WalletPosition]:
        """Sort positions by balance, largest first, and apply the per-chain cap."""
        return sorted(positions, key=lambda p: p.balance, reverse=True)[: self.token_limit]
