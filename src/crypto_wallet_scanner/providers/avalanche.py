"""Avalanche P-Chain adapter and C-Chain native-balance RPC client."""

import logging
import time
from collections.abc import Callable
from typing import Any

from pydantic import AliasChoices, Field

from crypto_wallet_scanner.core.addresses import platform_address_candidates
from crypto_wallet_scanner.core.balances import normalize, normalize_hex, to_float
from crypto_wallet_scanner.core.chains import Chain, ProviderSource, get_native_decimals, get_native_symbol
from crypto_wallet_scanner.core.errors import ProviderError
from crypto_wallet_scanner.core.models import ChainScanResult, NativeBalanceEntry, PositionKind, ScanRequest, WalletPosition
from crypto_wallet_scanner.data import get_provider_config
from crypto_wallet_scanner.providers.base import ChainAdapter, ScanContext, ScanStrategy, run_strategies
from crypto_wallet_scanner.providers.registry import AdapterRegistry
from crypto_wallet_scanner.providers.schemas import ProviderSchema
from crypto_wallet_scanner.rpc import HttpJsonClient, JsonRpcClient, RetryPolicy

logger = logging.getLogger(__name__)

AVAX_SYMBOL = "AVAX"


class PlatformBalance(ProviderSchema):
    """``platform.getBalance`` result."""

    balance: Any = None
    unlocked: Any = None
    locked_stakeable: Any = Field(default=None, alias="lockedStakeable")
    locked_not_stakeable: Any = Field(default=None, alias="lockedNotStakeable")

    @property
    def has_breakdown(self) -> bool:
        return any(v is not None for v in (self.unlocked, self.locked_stakeable, self.locked_not_stakeable))


class StakeOutput(ProviderSchema):
    """One staked UTXO in a ``platform.getStake`` result."""

    amount: Any = Field(default=None, validation_alias=AliasChoices("amount", "stakeAmount", "stakedAmount"))
    output: dict[str, Any] | None = None

    def raw_amount(self) -> Any:
        if self.amount is not None:
            return self.amount
        if self.output:
            return self.output.get("amount", self.output.get("stakeAmount"))
        return None


class PlatformStake(ProviderSchema):
    """``platform.getStake`` result, or the equivalent built from Glacier."""

    staked: Any = None
    staked_outputs: list[Any] = Field(default_factory=list, validation_alias=AliasChoices("stakedOutputs", "outputs"))


class GlacierAmount(ProviderSchema):
    amount: Any = None
    symbol: str | None = None


class GlacierStakingTransaction(ProviderSchema):
    """One entry of Glacier's ``transactions:listStaking``."""

    start_timestamp: Any = Field(default=None, alias="startTimestamp")
    end_timestamp: Any = Field(default=None, alias="endTimestamp")
    amount_staked: list[Any] = Field(default_factory=list, alias="amountStaked")


def _unix_timestamp(value: Any) -> int | None:
    parsed = to_float(value)
    return int(parsed) if parsed > 0 else None


def _atomic_avax(amounts: list[Any]) -> int:
    """Sum AVAX atomic amounts, skipping other assets and malformed entries."""
    total = 0
    for raw in amounts:
        entry = GlacierAmount.parse(raw)
        if entry is None:
            continue
        symbol = (entry.symbol or "").upper()
        if symbol and symbol != AVAX_SYMBOL:
            continue
        try:
            atomic = int(str(entry.amount if entry.amount is not None else "0"))
        except ValueError:
            continue
        if atomic > 0:
            total += atomic
    return total


class PlatformRpcClient:
    """
    ``platform.*`` JSON-RPC client.

    Each endpoint is retried on rate limiting with the configured delay
    schedule before the next endpoint is tried.

    """

    def __init__(self, context: ScanContext) -> None:
        config = get_provider_config("avalanche_platform")
        policy = RetryPolicy(delays=config.get("retry_delays", (0.35, 0.9)), sleep=context.sleep)
        self.rpc = JsonRpcClient(context.http("avalanche_platform", "Avalanche"), config["rpc_endpoints"], policy)

    def get_balance(self, candidates: list[str]) -> PlatformBalance:
        """
        Call ``platform.getBalance`` with each address spelling in turn.

        Raises
        ------
        ProviderError
            If every spelling failed on every endpoint

        """
        return self._first_success("platform.getBalance", candidates, lambda a: {"address": a}, PlatformBalance)

    def get_stake(self, candidates: list[str]) -> PlatformStake:
        """Call ``platform.getStake`` with each address spelling in turn."""
        return self._first_success("platform.getStake", candidates, lambda a: {"addresses": [a]}, PlatformStake)

    def _first_success(self, method: str, candidates: list[str], build_params: Callable, schema: type) -> Any:
        last_error: ProviderError | None = None
        for address in candidates:
            try:
                result = self.rpc.call(method, build_params(address))
            except ProviderError as e:
                last_error = e
                continue
            parsed = schema.parse(result)
            if parsed is None:
                last_error = ProviderError(f"Avalanche RPC {method} returned an unexpected result")
                continue
            return parsed

        raise last_error or ProviderError(f"Avalanche RPC {method} failed")


class RpcStakeStrategy(ScanStrategy[PlatformStake]):
    name = "platform.getStake"

    def __init__(self, rpc: PlatformRpcClient) -> None:
        self.rpc = rpc

    def attempt(self, candidates: list[str]) -> PlatformStake | None:
        return self.rpc.get_stake(candidates)


class GlacierStakingStrategy(ScanStrategy[PlatformStake]):
    """
    Staking fallback over Glacier's REST staking-transactions listing.

    Sums the AVAX staked by transactions whose time window contains now.

    """

    name = "glacier.listStaking"

    def __init__(self, context: ScanContext, clock: Callable[[], float] = time.time) -> None:
        config = get_provider_config("avalanche_platform")
        self.http: HttpJsonClient = context.http("avalanche_platform", "Glacier")
        self.url = f"{config['glacier_api_base']}/networks/mainnet/blockchains/p-chain/transactions:listStaking"
        self.page_size = int(config.get("glacier_page_size", 100))
        self.clock = clock

    def attempt(self, candidates: list[str]) -> PlatformStake | None:
        now = int(self.clock())
        prefixed = list(dict.fromkeys(a if a.startswith("P-") else f"P-{a}" for a in candidates))

        for address in prefixed:
            try:
                payload = self.http.get_json(
                    self.url, params={"addresses": address, "pageSize": str(self.page_size)}, optional=True
                )
            except ProviderError as e:
                logger.debug("Glacier staking lookup failed for %s: %s", address, e)
                continue
            if not isinstance(payload, dict):
                continue

            transactions = payload.get("transactions")
            total = 0
            for raw in transactions if isinstance(transactions, list) else []:
                tx = GlacierStakingTransaction.parse(raw)
                if tx is None:
                    continue
                start = _unix_timestamp(tx.start_timestamp)
                end = _unix_timestamp(tx.end_timestamp)
                if start is not None and now < start:
                    continue
                if end is not None and now > end:
                    continue
                total += _atomic_avax(tx.amount_staked)

            return PlatformStake(staked=str(total))

        return None


@AdapterRegistry.register
class AvalanchePlatformAdapter(ChainAdapter):
    """
    Avalanche P-Chain adapter.

    Stake is fetched before balance, sequentially, because the public
    endpoints rate-limit bursts. The unlocked amount is the native balance;
    an active stake is reported as one position, otherwise locked amounts
    are reported as separate positions when non-zero.

    """

    source = ProviderSource.AVALANCHE_PLATFORM

    def __init__(self, chain: Chain, context: ScanContext) -> None:
        super().__init__(chain, context)
        self.rpc = PlatformRpcClient(context)
        self.stake_strategies: list[ScanStrategy[PlatformStake]] = [
            RpcStakeStrategy(self.rpc),
            GlacierStakingStrategy(context),
        ]
        self.decimals = get_native_decimals(chain)

    def _scan(self, request: ScanRequest) -> ChainScanResult:
        candidates = platform_address_candidates(request.platform_address)
        if not candidates:
            msg = "Avalanche P-Chain address is required"
            raise ProviderError(msg)
        primary = candidates[0] if candidates[0].startswith("P-") else f"P-{candidates[0]}"

        stake: PlatformStake | None = None
        stake_error: ProviderError | None = None
        try:
            stake = run_strategies(self.stake_strategies, candidates, no_data_message="Unable to resolve P-Chain stake")
        except ProviderError as e:
            stake_error = e

        balance: PlatformBalance | None = None
        balance_error: ProviderError | None = None
        try:
            balance = self.rpc.get_balance(candidates)
        except ProviderError as e:
            balance_error = e

        if stake is None and balance is None:
            reason = stake_error or balance_error or "No data available"
            msg = f"Avalanche P-Chain RPC error: {reason}"
            raise ProviderError(msg)

        unlocked = self.unlocked_balance(balance) if balance else 0.0
        locked_stakeable = normalize(balance.locked_stakeable, self.decimals) if balance else 0.0
        locked_not_stakeable = normalize(balance.locked_not_stakeable, self.decimals) if balance else 0.0
        total_staked = self.staked_amount(stake) if stake else 0.0

        explorer_url = self.address_url(primary)
        positions: list[WalletPosition] = []
        if total_staked > 0:
            positions.append(
                self._position(f"avalanche-p-staking:{primary}", "AVAX Staked (Avalanche P-Chain)",
                               total_staked, PositionKind.STAKE, "AVALANCHE_P_STAKING", explorer_url)
            )
        else:
            if locked_stakeable > 0:
                positions.append(
                    self._position(f"avalanche-p-locked:stakeable:{primary}", "AVAX Locked Stakeable (Avalanche P-Chain)",
                                   locked_stakeable, PositionKind.NATIVE, "AVALANCHE_P_LOCKED_STAKEABLE", explorer_url)
                )
            if locked_not_stakeable > 0:
                positions.append(
                    self._position(f"avalanche-p-locked:nonstakeable:{primary}", "AVAX Locked (Avalanche P-Chain)",
                                   locked_not_stakeable, PositionKind.NATIVE, "AVALANCHE_P_LOCKED", explorer_url)
                )

        native = NativeBalanceEntry(
            chain=self.chain,
            symbol=get_native_symbol(self.chain),
            balance=unlocked,
            decimals=self.decimals,
            explorer_url=explorer_url,
        )
        return ChainScanResult.ok(self.chain, self.source, positions, native)

    def unlocked_balance(self, balance: PlatformBalance) -> float:
        """Unlocked amount when the breakdown is reported, total balance otherwise."""
        if balance.has_breakdown:
            return max(0.0, normalize(balance.unlocked, self.decimals))
        return max(0.0, normalize(balance.balance, self.decimals))

    def staked_amount(self, stake: PlatformStake) -> float:
        """Larger of the reported total and the sum over staked outputs."""
        direct = normalize(stake.staked, self.decimals)
        from_outputs = 0.0
        for raw in stake.staked_outputs:
            output = StakeOutput.parse(raw)
            if output is None:
                continue
            amount = normalize(output.raw_amount(), self.decimals)
            if amount > 0:
                from_outputs += amount
        return max(direct, from_outputs)

    def _position(
        self,
        source_id: str,
        name: str,
        balance: float,
        kind: PositionKind,
        token_type: str,
        explorer_url: str,
    ) -> WalletPosition:
        return WalletPosition(
            source_id=source_id,
            symbol=AVAX_SYMBOL,
            display_name=name,
            decimals=self.decimals,
            balance=balance,
            chain=self.chain,
            position_kind=kind,
            token_type=token_type,
            explorer_url=explorer_url,
        )


class AvalancheCRpcClient:
    """
    Direct C-Chain ``eth_getBalance`` lookup.

    Explorers can lag behind the chain head, so a zero explorer balance on
    the C-Chain is double-checked here.

    """

    def __init__(self, context: ScanContext) -> None:
        config = get_provider_config("avalanche_c_rpc")
        self.rpc = JsonRpcClient(context.http("avalanche_c_rpc", "Avalanche C-Chain"), [config["rpc_endpoint"]])
        self.decimals = get_native_decimals(Chain.AVALANCHE_C)

    def get_native_balance(self, address: str) -> float:
        """
        Fetch the native AVAX balance of an EVM address.

        Returns
        -------
        float
            Balance in AVAX, 0.0 on any failure

        """
        try:
            result = self.rpc.call("eth_getBalance", [address, "latest"])
        except ProviderError as e:
            logger.debug("C-Chain eth_getBalance failed for %s: %s", address, e)
            return 0.0
        return normalize_hex(result, self.decimals)
