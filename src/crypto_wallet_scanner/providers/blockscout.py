"""Blockscout-compatible EVM explorer adapter (legacy and v2 APIs)."""

import logging
from typing import Any

from pydantic import AliasChoices, Field

from crypto_wallet_scanner.core.balances import normalize, normalize_decimals
from crypto_wallet_scanner.core.chains import (
    Chain,
    ProviderSource,
    get_native_decimals,
    get_native_symbol,
    get_token_explorer_url,
)
from crypto_wallet_scanner.core.errors import ProviderError
from crypto_wallet_scanner.core.models import ChainScanResult, NativeBalanceEntry, PositionKind, ScanRequest, WalletPosition
from crypto_wallet_scanner.data import get_explorer_endpoints, get_provider_config
from crypto_wallet_scanner.providers.avalanche import AvalancheCRpcClient
from crypto_wallet_scanner.providers.base import ChainAdapter, ScanContext, ScanStrategy, run_strategies
from crypto_wallet_scanner.providers.registry import AdapterRegistry
from crypto_wallet_scanner.providers.schemas import ProviderSchema

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_DECIMALS = 18
DEFAULT_TOKEN_TYPE = "ERC-20"
UNKNOWN_SYMBOL = "UNKNOWN"
UNKNOWN_NAME = "Unknown Token"

EMPTY_RESULT_MARKERS = ("no transactions found", "no records found", "no tokens found")


class LegacyTokenItem(ProviderSchema):
    """Token entry of the etherscan-style ``tokenlist`` / ``addresstokenbalance`` actions."""

    contract_address: Any = Field(
        default=None,
        validation_alias=AliasChoices(
            "contractAddress", "contract_address", "tokenAddress", "token_address", "TokenAddress"
        ),
    )
    decimals: Any = Field(
        default=None,
        validation_alias=AliasChoices(
            "decimals", "tokenDecimal", "token_decimal", "TokenDecimal", "TokenDivisor", "divisor"
        ),
    )
    balance: Any = Field(
        default=None,
        validation_alias=AliasChoices("balance", "tokenBalance", "token_balance", "TokenQuantity", "value", "amount"),
    )
    symbol: Any = Field(default=UNKNOWN_SYMBOL, validation_alias=AliasChoices("symbol", "tokenSymbol", "TokenSymbol"))
    name: Any = Field(default=UNKNOWN_NAME, validation_alias=AliasChoices("name", "tokenName", "TokenName"))
    token_type: Any = Field(default=DEFAULT_TOKEN_TYPE, validation_alias=AliasChoices("type", "tokenType", "TokenType"))


class V2TokenMeta(ProviderSchema):
    """``token`` object nested in a v2 token-balance entry."""

    address: Any = None
    decimals: Any = None
    symbol: Any = None
    name: Any = None
    token_type: Any = Field(default=None, alias="type")


class V2TokenItem(ProviderSchema):
    """Entry of ``/api/v2/addresses/{address}/token-balances``."""

    token: V2TokenMeta | None = None
    token_address: Any = Field(default=None, validation_alias=AliasChoices("token_address", "address"))
    decimals: Any = None
    value: Any = Field(default=None, validation_alias=AliasChoices("value", "balance", "token_balance"))
    symbol: Any = None
    name: Any = None
    token_type: Any = Field(default=None, alias="type")


class V2AddressInfo(ProviderSchema):
    """``/api/v2/addresses/{address}`` response."""

    coin_balance: Any = Field(default="0", validation_alias=AliasChoices("coin_balance", "balance", "native_balance"))


def extract_legacy_token_items(payload: Any) -> list[Any] | None:
    """
    Find the token array in a legacy token response.

    Explorers disagree on where the list lives: the payload itself,
    ``result``, ``result.items``, ``result.tokens``, ``items`` or ``data``.

    Returns
    -------
    list[Any] | None
        Token items, an empty list for an explicit "nothing found" message,
        or None when the payload has no recognizable shape

    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return None

    result = payload.get("result")
    if isinstance(result, list):
        return result
    if isinstance(result, dict):
        for key in ("items", "tokens"):
            if isinstance(result.get(key), list):
                return result[key]
    for key in ("items", "data"):
        if isinstance(payload.get(key), list):
            return payload[key]

    if isinstance(result, str) and any(marker in result.lower() for marker in EMPTY_RESULT_MARKERS):
        return []
    return None


def is_routescan_endpoint(endpoint: str) -> bool:
    """Check for a Routescan etherscan-compatible endpoint, which has no v2 API."""
    return "api.routescan.io/v2/network" in endpoint and "/etherscan/api" in endpoint


def legacy_api_url(endpoint: str) -> str:
    endpoint = endpoint.rstrip("/")
    return endpoint if endpoint.endswith("/api") else f"{endpoint}/api"


def v2_api_url(endpoint: str, path: str) -> str:
    endpoint = endpoint.rstrip("/")
    if endpoint.endswith("/api"):
        endpoint = endpoint[: -len("/api")]
    return f"{endpoint}/api/v2{path}"


def _text(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return str(value)


class ExplorerStrategy(ScanStrategy[ChainScanResult]):
    """Base for the strategies that read one explorer endpoint."""

    def __init__(self, adapter: "BlockscoutAdapter", endpoint: str) -> None:
        self.adapter = adapter
        self.endpoint = endpoint
        self.http = adapter.http

    def token_position(
        self,
        contract_address: str,
        symbol: str,
        name: str,
        decimals: int,
        balance: float,
        token_type: str,
    ) -> WalletPosition:
        chain = self.adapter.chain
        return WalletPosition(
            source_id=contract_address,
            symbol=symbol,
            display_name=name,
            decimals=decimals,
            balance=balance,
            chain=chain,
            position_kind=PositionKind.FUNGIBLE_TOKEN,
            token_type=token_type,
            explorer_url=get_token_explorer_url(chain, contract_address, self.endpoint),
        )


class LegacyExplorerStrategy(ExplorerStrategy):
    """
    Etherscan-compatible ``/api?module=account`` flow.

    Reads the native balance with ``action=balance``, then tokens from
    ``tokenlist``, falling back to a single ``addresstokenbalance`` page.

    """

    name = "blockscout.legacy"

    def attempt(self, address: str) -> ChainScanResult | None:
        url = legacy_api_url(self.endpoint)
        params = {"module": "account", "action": "balance", "address": address}
        payload = self.http.get_json(url, params=params, optional=True)
        if not isinstance(payload, dict):
            return None

        raw_native = payload.get("result")
        if raw_native is None:
            raw_native = payload.get("balance")
        native_balance = normalize(raw_native, self.adapter.native_decimals)

        positions = []
        for item in self.fetch_token_items(url, address):
            position = self.map_token(item)
            if position is not None:
                positions.append(position)

        return self.adapter.build_result(address, native_balance, positions)

    def fetch_token_items(self, url: str, address: str) -> list[Any]:
        page_size = str(get_provider_config("blockscout").get("legacy_token_page_size", 200))
        queries = [
            {"module": "account", "action": "tokenlist", "address": address},
            {"module": "account", "action": "addresstokenbalance", "address": address, "page": "1", "offset": page_size},
        ]

        for params in queries:
            try:
                payload = self.http.get_json(url, params=params, optional=True)
            except ProviderError as e:
                logger.debug("Legacy %s lookup failed on %s: %s", params["action"], self.endpoint, e)
                continue
            items = extract_legacy_token_items(payload)
            if items is not None:
                return items

        return []

    def map_token(self, raw: Any) -> WalletPosition | None:
        item = LegacyTokenItem.parse(raw)
        if item is None or not item.contract_address:
            return None

        decimals = normalize_decimals(item.decimals, DEFAULT_TOKEN_DECIMALS)
        balance = normalize(item.balance, decimals)
        if balance <= 0:
            return None

        return self.token_position(
            str(item.contract_address),
            _text(item.symbol, UNKNOWN_SYMBOL),
            _text(item.name, UNKNOWN_NAME),
            decimals,
            balance,
            _text(item.token_type, DEFAULT_TOKEN_TYPE),
        )


class V2ExplorerStrategy(ExplorerStrategy):
    """Blockscout ``/api/v2`` flow: address summary plus token balances."""

    name = "blockscout.v2"

    def attempt(self, address: str) -> ChainScanResult | None:
        if is_routescan_endpoint(self.endpoint):
            return None

        address_data = self.http.get_json(v2_api_url(self.endpoint, f"/addresses/{address}"), optional=True)
        token_data = self.http.get_json(v2_api_url(self.endpoint, f"/addresses/{address}/token-balances"), optional=True)
        if address_data is None or token_data is None:
            return None

        info = V2AddressInfo.parse(address_data) or V2AddressInfo()
        native_balance = normalize(info.coin_balance, self.adapter.native_decimals)

        if isinstance(token_data, list):
            items = token_data
        elif isinstance(token_data, dict) and isinstance(token_data.get("items"), list):
            items = token_data["items"]
        else:
            items = []

        positions = []
        for raw in items:
            position = self.map_token(raw)
            if position is not None:
                positions.append(position)

        return self.adapter.build_result(address, native_balance, positions)

    def map_token(self, raw: Any) -> WalletPosition | None:
        item = V2TokenItem.parse(raw)
        if item is None:
            return None
        meta = item.token or V2TokenMeta()

        contract_address = meta.address or item.token_address
        if not contract_address or contract_address == "native":
            return None

        decimals = normalize_decimals(meta.decimals if meta.decimals is not None else item.decimals, DEFAULT_TOKEN_DECIMALS)
        balance = normalize(item.value if item.value is not None else "0", decimals)
        if balance <= 0:
            return None

        return self.token_position(
            str(contract_address),
            _text(meta.symbol or item.symbol, UNKNOWN_SYMBOL),
            _text(meta.name or item.name, UNKNOWN_NAME),
            decimals,
            balance,
            _text(meta.token_type or item.token_type, DEFAULT_TOKEN_TYPE),
        )


@AdapterRegistry.register
class BlockscoutAdapter(ChainAdapter):
    """
    EVM adapter over Blockscout and etherscan-compatible explorers.

    Every configured endpoint of the chain is tried in order, legacy API
    first, then the v2 API. The first endpoint that yields data wins.

    """

    source = ProviderSource.BLOCKSCOUT

    def __init__(self, chain: Chain, context: ScanContext) -> None:
        super().__init__(chain, context)
        self.http = context.http("blockscout", "Blockscout")
        self.native_symbol = get_native_symbol(chain)
        self.native_decimals = get_native_decimals(chain)
        self.strategies: list[ScanStrategy[ChainScanResult]] = []
        for endpoint in get_explorer_endpoints(chain):
            self.strategies.append(LegacyExplorerStrategy(self, endpoint))
            self.strategies.append(V2ExplorerStrategy(self, endpoint))
        self.c_chain_rpc = AvalancheCRpcClient(context) if chain == Chain.AVALANCHE_C else None

    def _scan(self, request: ScanRequest) -> ChainScanResult:
        if not request.evm_address:
            msg = f"An EVM address is required to scan {self.chain}"
            raise ProviderError(msg)

        return run_strategies(
            self.strategies,
            request.evm_address,
            no_data_message=f"Blockscout API unsupported on {self.chain}",
        )

    def build_result(self, address: str, native_balance: float, positions: list[WalletPosition]) -> ChainScanResult:
        """Assemble an ``ok`` result, applying the C-Chain RPC balance check."""
        if self.c_chain_rpc is not None and native_balance <= 0:
            native_balance = max(native_balance, self.c_chain_rpc.get_native_balance(address))

        native = NativeBalanceEntry(
            chain=self.chain,
            symbol=self.native_symbol,
            balance=max(native_balance, 0.0),
            decimals=self.native_decimals,
            explorer_url=self.address_url(address),
        )
        return ChainScanResult.ok(self.chain, self.source, self.top_by_balance(positions), native)
