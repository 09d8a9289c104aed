"""Hyperliquid adapter: spot, perp, vault and staking state from the info API."""

import logging
import re
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from pydantic import AliasChoices, Field

from crypto_wallet_scanner.core.addresses import shorten_address
from crypto_wallet_scanner.core.balances import normalize_symbol, to_float
from crypto_wallet_scanner.core.chains import (
    Chain,
    ProviderSource,
    get_hyperliquid_market_url,
    get_native_decimals,
    get_native_symbol,
)
from crypto_wallet_scanner.core.errors import ProviderError
from crypto_wallet_scanner.core.models import ChainScanResult, NativeBalanceEntry, PositionKind, ScanRequest, WalletPosition
from crypto_wallet_scanner.data import get_provider_config
from crypto_wallet_scanner.providers.base import ChainAdapter, ScanContext
from crypto_wallet_scanner.providers.registry import AdapterRegistry
from crypto_wallet_scanner.providers.schemas import ProviderSchema
from crypto_wallet_scanner.rpc import HttpJsonClient

logger = logging.getLogger(__name__)

USDC = "USDC"
PRICE_SOURCE = "hyperliquid"
SPOT_ARRAY_PATHS = (
    ("balances",),
    ("tokenBalances",),
    ("spotBalances",),
    ("state", "balances"),
    ("spotState", "balances"),
    ("evmEscrows",),
)
STAKING_FIELDS = (
    ("delegated", "delegated", "Delegated"),
    ("undelegated", "undelegated", "Undelegated"),
    ("total_pending_withdrawal", "pending", "Pending Withdrawal"),
)

_VAULT_PAREN_RE = re.compile(r"\(([A-Za-z0-9._-]{2,12})\)")
_HLP_RE = re.compile(r"hyperliquidity\s+provider", re.IGNORECASE)
_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")


class SpotEntry(ProviderSchema):
    """One spot balance entry, in any of the shapes the info API has used."""

    symbol: Any = Field(default=None, validation_alias=AliasChoices("coin", "symbol", "token", "asset", "name"))
    balance: Any = Field(default=None, validation_alias=AliasChoices("total", "balance", "amount", "size", "position"))
    value_usd: Any = Field(
        default=None,
        validation_alias=AliasChoices("usdValue", "usdcValue", "notionalValue", "positionValue", "entryNtl"),
    )


class PerpPosition(ProviderSchema):
    """Perp position, either bare or nested under an ``assetPositions`` item."""

    symbol: Any = Field(default=None, validation_alias=AliasChoices("coin", "symbol", "asset"))
    size: Any = Field(default=None, validation_alias=AliasChoices("szi", "size", "position", "sz"))
    mark_px: Any = Field(default=None, validation_alias=AliasChoices("markPx", "oraclePx"))
    value_usd: Any = Field(default=None, validation_alias=AliasChoices("positionValue", "notionalValue", "usdValue"))


class MarginSummary(ProviderSchema):
    account_value: Any = Field(default=None, alias="accountValue")


class PerpAccountState(ProviderSchema):
    """``clearinghouseState`` response."""

    withdrawable: Any = None
    cross_margin_summary: MarginSummary | None = Field(default=None, alias="crossMarginSummary")
    margin_summary: MarginSummary | None = Field(default=None, alias="marginSummary")
    account_value: Any = Field(default=None, alias="accountValue")

    @property
    def resolved_account_value(self) -> Any:
        for summary in (self.cross_margin_summary, self.margin_summary):
            if summary is not None and summary.account_value is not None:
                return summary.account_value
        return self.account_value

    @property
    def collateral(self) -> float:
        """Withdrawable margin, or the account value when not reported."""
        if self.withdrawable is not None:
            return to_float(self.withdrawable)
        return to_float(self.resolved_account_value)


class VaultEquity(ProviderSchema):
    """``userVaultEquities`` entry."""

    vault_address: Any = Field(default="", alias="vaultAddress")
    equity: Any = None
    locked_until_timestamp: Any = Field(default=0, alias="lockedUntilTimestamp")


class DelegatorSummary(ProviderSchema):
    """``delegatorSummary`` response."""

    delegated: Any = None
    undelegated: Any = None
    total_pending_withdrawal: Any = Field(default=None, alias="totalPendingWithdrawal")


def _dig(data: Any, path: tuple[str, ...]) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def sort_by_value(positions: list[WalletPosition]) -> list[WalletPosition]:
    """Sort by USD value, then balance, both descending."""
    return sorted(positions, key=lambda p: (p.value_usd or 0.0, p.balance), reverse=True)


def derive_vault_symbol(vault_name: str, vault_address: str) -> str:
    """
    Derive a short ticker for a vault.

    Tries, in order: a parenthesized ticker in the name, ``HLP`` for the
    Hyperliquidity Provider vault, the alphanumeric name when 2 to 10
    characters long, and finally a ``VLT-`` label built from the address.

    Examples
    --------
    >>> derive_vault_symbol("Growi HF (GRW)", "0xabc")
    'GRW'
    >>> derive_vault_symbol("", "0x1234567890abcdef1234567890abcdef12345678")
    'VLT-0x123456'

    """
    name = (vault_name or "").strip()

    match = _VAULT_PAREN_RE.search(name)
    if match:
        return match.group(1).upper()

    if _HLP_RE.search(name):
        return "HLP"

    alnum = _NON_ALNUM_RE.sub("", name)
    if 2 <= len(alnum) <= 10:
        return alnum.upper()

    return f"VLT-{shorten_address(vault_address).replace('...', '')}"[:12]


class HyperliquidInfoClient:
    """
    Typed requests against the Hyperliquid ``/info`` endpoint.

    Every request is a JSON POST whose ``type`` selects the query.

    """

    def __init__(self, http: HttpJsonClient, info_url: str) -> None:
        self.http = http
        self.info_url = info_url

    def spot_clearinghouse_state(self, user: str) -> Any:
        return self._info("spotClearinghouseState", user=user)

    def clearinghouse_state(self, user: str) -> Any:
        return self._info("clearinghouseState", user=user)

    def user_vault_equities(self, user: str) -> Any:
        return self._info("userVaultEquities", user=user)

    def delegator_summary(self, user: str) -> Any:
        return self._info("delegatorSummary", user=user)

    def vault_details(self, vault_address: str) -> Any:
        return self._info("vaultDetails", vaultAddress=vault_address)

    def _info(self, request_type: str, **fields: str) -> Any:
        return self.http.post_json(self.info_url, {"type": request_type, **fields})


@AdapterRegistry.register
class HyperliquidAdapter(ChainAdapter):
    """
    Hyperliquid L1 account adapter.

    Spot, perp, vault and staking state are queried concurrently; a failed
    query only drops its own positions, unless both spot and perp state
    fail. Perp positions and the perp collateral entry are listed ahead of
    every other asset so they survive the per-chain cap.

    """

    source = ProviderSource.HYPERLIQUID

    def __init__(self, chain: Chain, context: ScanContext, clock: Callable[[], float] = time.time) -> None:
        super().__init__(chain, context)
        self.config = get_provider_config("hyperliquid")
        self.client = HyperliquidInfoClient(context.http("hyperliquid", "Hyperliquid info"), self.config["info_url"])
        self.explorer_base = self.config["explorer_base"]
        self.clock = clock

    def _scan(self, request: ScanRequest) -> ChainScanResult:
        if not request.evm_address:
            msg = "An EVM address is required to scan Hyperliquid"
            raise ProviderError(msg)
        address = request.evm_address

        queries = {
            "spot": self.client.spot_clearinghouse_state,
            "perp": self.client.clearinghouse_state,
            "vaults": self.client.user_vault_equities,
            "staking": self.client.delegator_summary,
        }
        results: dict[str, Any] = {}
        errors: dict[str, str] = {}
        with ThreadPoolExecutor(max_workers=len(queries)) as executor:
            futures = {name: executor.submit(query, address) for name, query in queries.items()}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except Exception as e:
                    logger.debug("Hyperliquid %s query failed for %s: %s", name, address, e)
                    results[name] = None
                    errors[name] = str(e)

        spot_data, perp_data = results["spot"], results["perp"]
        if spot_data is None and perp_data is None:
            reason = errors.get("spot") or errors.get("perp") or "No data available"
            msg = f"Hyperliquid API error: {reason}"
            raise ProviderError(msg)

        spot_positions, spot_usdc = self.parse_spot_state(spot_data)
        perp_state = PerpAccountState.parse(perp_data)
        perps = self.parse_perp_positions(perp_data)
        collateral = self.perp_collateral(perp_state)
        vaults = self.parse_vault_equities(results["vaults"])
        staking = self.resolve_staking(results["staking"], spot_data)

        if spot_usdc > 0:
            native_usdc = spot_usdc
        elif perp_state is not None and to_float(perp_state.withdrawable) > 0:
            native_usdc = to_float(perp_state.withdrawable)
        else:
            native_usdc = to_float(perp_state.resolved_account_value) if perp_state else 0.0

        prioritized = sort_by_value(perps + ([collateral] if collateral else []))
        others = sort_by_value(spot_positions + vaults + staking)

        native = NativeBalanceEntry(
            chain=self.chain,
            symbol=get_native_symbol(self.chain),
            balance=max(native_usdc, 0.0),
            decimals=get_native_decimals(self.chain),
            explorer_url=self.address_url(address),
        )
        return ChainScanResult.ok(self.chain, self.source, (prioritized + others)[: self.token_limit], native)

    def parse_spot_state(self, data: Any) -> tuple[list[WalletPosition], float]:
        """
        Aggregate spot balances by normalized symbol.

        Returns
        -------
        tuple[list[WalletPosition], float]
            Non-USDC spot positions, and the USDC balance reported separately

        """
        aggregated: dict[str, list[float | None]] = {}

        def add(symbol: str, balance: float, value: float) -> None:
            previous_balance, previous_value = aggregated.get(symbol, [0.0, None])
            next_value = (previous_value or 0.0) + value if value > 0 else previous_value
            aggregated[symbol] = [previous_balance + balance, next_value]

        for path in SPOT_ARRAY_PATHS:
            entries = _dig(data, path)
            if not isinstance(entries, list):
                continue
            for raw in entries:
                entry = SpotEntry.parse(raw)
                if entry is None:
                    continue
                symbol = normalize_symbol(entry.symbol)
                balance = to_float(entry.balance)
                if symbol and balance > 0:
                    add(symbol, balance, to_float(entry.value_usd))

        object_balances = _dig(data, ("balances",))
        if isinstance(object_balances, dict):
            for raw_symbol, raw in object_balances.items():
                symbol = normalize_symbol(raw_symbol)
                if isinstance(raw, dict):
                    entry = SpotEntry.parse(raw) or SpotEntry()
                    balance, value = to_float(entry.balance), to_float(entry.value_usd)
                else:
                    balance, value = to_float(raw), 0.0
                if symbol and balance > 0:
                    add(symbol, balance, value)

        positions = []
        for symbol, (balance, value) in aggregated.items():
            if symbol == USDC:
                continue
            price = value / balance if value and balance > 0 else None
            positions.append(
                WalletPosition(
                    source_id=f"hyperliquid-spot:{symbol}",
                    symbol=symbol,
                    display_name=f"{symbol} (Hyperliquid Spot)",
                    decimals=8,
                    balance=balance,
                    chain=self.chain,
                    position_kind=PositionKind.FUNGIBLE_TOKEN,
                    token_type="HYPERLIQUID_SPOT",
                    price_usd=price,
                    value_usd=value,
                    price_source=PRICE_SOURCE if price else None,
                    explorer_url=get_hyperliquid_market_url(symbol, "spot"),
                )
            )

        usdc = aggregated.get(USDC)
        return positions, usdc[0] if usdc else 0.0

    def parse_perp_positions(self, data: Any) -> list[WalletPosition]:
        """Map open perp positions to long/short positions sized by absolute size."""
        if not isinstance(data, dict):
            return []
        items = data.get("assetPositions")
        if not isinstance(items, list):
            items = data.get("positions")
        if not isinstance(items, list):
            return []

        positions = []
        for item in items:
            if not isinstance(item, dict):
                continue
            inner = item.get("position") if isinstance(item.get("position"), dict) else item
            position = PerpPosition.parse(inner)
            if position is None:
                continue

            raw_symbol = position.symbol if position.symbol is not None else item.get("coin", item.get("symbol"))
            symbol = normalize_symbol(raw_symbol)
            signed_size = to_float(position.size)
            if not symbol or signed_size == 0:
                continue

            side = "long" if signed_size > 0 else "short"
            balance = abs(signed_size)
            mark_px = to_float(position.mark_px)
            raw_value = to_float(position.value_usd if position.value_usd is not None else item.get("positionValue"))
            if raw_value > 0:
                value = raw_value
            elif mark_px > 0:
                value = balance * mark_px
            else:
                value = None

            positions.append(
                WalletPosition(
                    source_id=f"hyperliquid-perp:{symbol}:{side}",
                    symbol=symbol,
                    display_name=f"{symbol} Perp ({side.capitalize()})",
                    decimals=6,
                    balance=balance,
                    chain=self.chain,
                    position_kind=PositionKind.PERP,
                    token_type="HYPERLIQUID_PERP",
                    price_usd=mark_px if mark_px > 0 else None,
                    value_usd=value,
                    price_source=PRICE_SOURCE if mark_px > 0 else None,
                    explorer_url=get_hyperliquid_market_url(symbol, "perp"),
                )
            )
        return positions

    def perp_collateral(self, state: PerpAccountState | None) -> WalletPosition | None:
        """Synthetic USDC position for the perp account's margin."""
        if state is None:
            return None
        value = state.collateral
        if value <= 0:
            return None

        return WalletPosition(
            source_id="hyperliquid-perp:USDC-collateral",
            symbol=USDC,
            display_name="USDC Perp Collateral",
            decimals=6,
            balance=value,
            chain=self.chain,
            position_kind=PositionKind.PERP_COLLATERAL,
            token_type="HYPERLIQUID_PERP_COLLATERAL",
            price_usd=1.0,
            value_usd=value,
            price_source=PRICE_SOURCE,
            explorer_url=f"{self.explorer_base}/portfolio",
        )

    def parse_vault_equities(self, data: Any) -> list[WalletPosition]:
        """Map vault equities to positions named through ``vaultDetails``."""
        if not isinstance(data, list):
            return []

        equities = []
        for raw in data:
            entry = VaultEquity.parse(raw)
            if entry is None:
                continue
            vault_address = str(entry.vault_address or "").strip()
            equity = to_float(entry.equity)
            if vault_address and equity > 0:
                equities.append((vault_address, equity, to_float(entry.locked_until_timestamp)))
        if not equities:
            return []

        with ThreadPoolExecutor(max_workers=min(len(equities), self.context.config.max_workers)) as executor:
            names = list(executor.map(self.vault_name, [vault_address for vault_address, _, _ in equities]))

        now_ms = self.clock() * 1000
        positions = []
        for (vault_address, equity, locked_until), vault_name in zip(equities, names, strict=True):
            suffix = " (Locked)" if locked_until > now_ms else ""
            label = vault_name or f"Vault {shorten_address(vault_address)}"
            positions.append(
                WalletPosition(
                    source_id=f"hyperliquid-vault:{vault_address}",
                    symbol=derive_vault_symbol(vault_name, vault_address),
                    display_name=f"{label}{suffix}",
                    decimals=6,
                    balance=equity,
                    chain=self.chain,
                    position_kind=PositionKind.VAULT,
                    market_id=vault_address.lower(),
                    token_type="HYPERLIQUID_VAULT",
                    price_usd=1.0,
                    value_usd=equity,
                    price_source=PRICE_SOURCE,
                    explorer_url=self.address_url(vault_address),
                )
            )
        return positions

    def vault_name(self, vault_address: str) -> str:
        """Vault display name, memoized per scan; empty when the lookup fails."""
        try:
            details = self.context.cache.get_or_compute(
                ("vaultDetails", vault_address.lower()),
                lambda: self.client.vault_details(vault_address),
            )
        except ProviderError as e:
            logger.debug("vaultDetails lookup failed for %s: %s", vault_address, e)
            return ""

        name = details.get("name") if isinstance(details, dict) else None
        return name.strip() if isinstance(name, str) else ""

    def resolve_staking(self, direct: Any, spot_data: Any) -> list[WalletPosition]:
        """
        Staking positions from ``delegatorSummary``.

        A summary embedded in the spot state is only used when the direct
        query produced nothing, so one stake is never reported twice.

        """
        positions = self.parse_staking_summary(direct)
        if positions or isinstance(direct, dict):
            return positions

        embedded = _dig(spot_data, ("delegatorSummary",))
        if embedded is None:
            embedded = _dig(spot_data, ("staking",))
        return self.parse_staking_summary(embedded)

    def parse_staking_summary(self, data: Any) -> list[WalletPosition]:
        summary = DelegatorSummary.parse(data)
        if summary is None:
            return []

        positions = []
        for field, kind, label in STAKING_FIELDS:
            amount = to_float(getattr(summary, field))
            if amount <= 0:
                continue
            positions.append(
                WalletPosition(
                    source_id=f"hyperliquid-staking:{kind}",
                    symbol="HYPE",
                    display_name=f"HYPE Staking ({label})",
                    decimals=8,
                    balance=amount,
                    chain=self.chain,
                    position_kind=PositionKind.STAKING,
                    token_type="HYPERLIQUID_STAKING",
                    explorer_url=f"{self.explorer_base}/staking",
                )
            )
        return positions
