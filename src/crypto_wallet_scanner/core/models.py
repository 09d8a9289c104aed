"""Data models for positions, per-chain scan results and composite results."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from crypto_wallet_scanner.core.addresses import is_evm_address, is_solana_address, normalize_platform_address
from crypto_wallet_scanner.core.chains import Chain, ProviderSource
from crypto_wallet_scanner.core.errors import InvalidAddressError


class PositionKind(StrEnum):
    """Kind of wallet position."""

    NATIVE = "native"
    FUNGIBLE_TOKEN = "fungible-token"
    STAKE = "stake"
    LEND = "lend"
    VAULT = "vault"
    PERP = "perp"
    PERP_COLLATERAL = "perp-collateral"
    STAKING = "staking"


class ScanStatus(StrEnum):
    """Outcome of one chain scan."""

    OK = "ok"
    ERROR = "error"


class _ResponseModel(BaseModel):
    """Frozen model serialized with camelCase field names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class WalletPosition(_ResponseModel):
    """
    One holding discovered on a chain.

    Attributes
    ----------
    source_id : str
        Opaque key of the contract, account, vault or stake the position comes from
    symbol : str
        Asset symbol
    display_name : str
        Human readable name
    decimals : int
        Decimals of the underlying asset
    balance : float
        Balance in native units, always positive
    chain : Chain
        Chain the position was found on
    position_kind : PositionKind
        Kind of position
    market_id : str | None
        Obligation, vault or market identifier used for deduplication
    token_type : str
        Provider label (e.g., 'ERC-20', 'TRC20', 'HYPERLIQUID_PERP')
    price_usd : float | None
        Unit price when the provider reports one
    value_usd : float | None
        Position value when the provider reports one
    price_source : str | None
        Where ``price_usd`` came from
    explorer_url : str
        Link to the position on a block explorer

    """

    source_id: str = Field(serialization_alias="contractAddress")
    symbol: str
    display_name: str = Field(serialization_alias="name")
    decimals: int = Field(ge=0)
    balance: float = Field(gt=0, allow_inf_nan=False)
    chain: Chain
    position_kind: PositionKind
    market_id: str | None = None
    token_type: str = Field(serialization_alias="type")
    price_usd: float | None = None
    value_usd: float | None = None
    price_source: str | None = None
    explorer_url: str


class NativeBalanceEntry(_ResponseModel):
    """Native asset balance reported by a chain."""

    chain: Chain
    symbol: str
    balance: float = Field(ge=0, allow_inf_nan=False)
    decimals: int
    explorer_url: str

    def to_position(self) -> WalletPosition | None:
        """
        Map a positive native balance to a ``native`` position.

        Returns
        -------
        WalletPosition | None
            The position, or None when the balance is zero

        """
        if self.balance <= 0:
            return None

        return WalletPosition(
            source_id=f"native:{self.chain}",
            symbol=self.symbol,
            display_name=f"{self.symbol} ({self.chain} native)",
            decimals=self.decimals,
            balance=self.balance,
            chain=self.chain,
            position_kind=PositionKind.NATIVE,
            token_type="NATIVE",
            explorer_url=self.explorer_url,
        )


class ChainScanResult(_ResponseModel):
    """
    Result of scanning one chain with one adapter.

    Created once per chain per scan and never mutated afterward.

    """

    chain: Chain
    source: ProviderSource
    status: ScanStatus
    positions: list[WalletPosition] = Field(default_factory=list)
    native_balance: NativeBalanceEntry | None = None
    error: str | None = None

    @classmethod
    def ok(
        cls,
        chain: Chain,
        source: ProviderSource,
        positions: list[WalletPosition],
        native_balance: NativeBalanceEntry | None = None,
    ) -> "ChainScanResult":
        """Build a successful result."""
        return cls(
            chain=chain,
            source=source,
            status=ScanStatus.OK,
            positions=positions,
            native_balance=native_balance,
        )

    @classmethod
    def failed(cls, chain: Chain, source: ProviderSource, error: str) -> "ChainScanResult":
        """Build an error result with no positions."""
        return cls(chain=chain, source=source, status=ScanStatus.ERROR, error=error or "Unknown scan error")

    @property
    def is_ok(self) -> bool:
        return self.status == ScanStatus.OK

    def summary(self) -> "ChainSummary":
        """Summarize this result for the ``chainResults`` section of a response."""
        native = self.native_balance.balance if self.native_balance else 0.0
        return ChainSummary(
            chain=self.chain,
            source=self.source,
            status=self.status,
            token_count=len(self.positions) + (1 if native > 0 else 0),
            native_balance=native,
            native_symbol=self.native_balance.symbol if self.native_balance else None,
            error=self.error,
        )


class ChainSummary(_ResponseModel):
    """Per-chain status line of a composite result."""

    chain: Chain
    source: ProviderSource
    status: ScanStatus
    token_count: int
    native_balance: float
    native_symbol: str | None = None
    error: str | None = None


class ScanRequest(BaseModel):
    """
    Validated scan request.

    Attributes
    ----------
    address : str
        Address as supplied by the caller
    evm_address : str | None
        EVM hex address, when the supplied address is one
    platform_address : str | None
        Normalized ``P-avax1...`` address from the override or the address itself
    solana_address : str | None
        Base58 Solana account, when the supplied address is one
    chain_selector : str
        Lower-cased chain selector

    """

    model_config = ConfigDict(frozen=True)

    address: str
    evm_address: str | None = None
    platform_address: str | None = None
    solana_address: str | None = None
    chain_selector: str = "auto"

    @classmethod
    def from_params(
        cls,
        address: str | None,
        chain_selector: str | None = "auto",
        platform_address: str | None = None,
    ) -> "ScanRequest":
        """
        Validate boundary parameters into a request.

        Parameters
        ----------
        address : str | None
            Wallet address: EVM hex, a P-Chain address or a Solana account
        chain_selector : str | None
            Chain selector, ``auto`` when empty
        platform_address : str | None
            Optional P-Chain address override

        Returns
        -------
        ScanRequest
            Validated request

        Raises
        ------
        InvalidAddressError
            If the address is missing or matches no supported format, or a
            P-Chain scan is requested without a P-Chain address

        """
        address = (address or "").strip()
        if not address:
            raise InvalidAddressError("Wallet address is required")

        selector = (chain_selector or "auto").strip().lower() or "auto"
        evm_address = address if is_evm_address(address) else None
        inline_platform = None if evm_address else normalize_platform_address(address)
        solana_address = address if not (evm_address or inline_platform) and is_solana_address(address) else None

        if not evm_address and not inline_platform and not solana_address:
            raise InvalidAddressError(
                "Invalid wallet address format",
                details=(
                    "Expected a 0x-prefixed 40-hex-character EVM address, a P-avax1... address "
                    "or a Base58 Solana address."
                ),
            )

        resolved_platform = normalize_platform_address(platform_address) or inline_platform
        if selector == Chain.AVALANCHE_P and not resolved_platform:
            raise InvalidAddressError(
                "Avalanche P-Chain address is required",
                details="Provide a P-avax1... address using `address` or `pAddress`.",
            )

        return cls(
            address=address,
            evm_address=evm_address,
            platform_address=resolved_platform,
            solana_address=solana_address,
            chain_selector=selector,
        )


class CompositeResult(_ResponseModel):
    """
    Merged, deduplicated view across every scanned chain.

    Serialize with :meth:`to_response` for the stable response shape.

    """

    address: str
    chain: str
    native_balance: NativeBalanceEntry
    native_balances: list[NativeBalanceEntry]
    positions: list[WalletPosition] = Field(serialization_alias="tokens")
    token_count: int
    chains_searched: list[Chain]
    chain_results: list[ChainSummary]
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_response(self) -> dict[str, Any]:
        """
        Serialize to the response payload.

        Returns
        -------
        dict[str, Any]
            JSON-ready dict with keys ``address, chain, nativeBalance,
            nativeBalances, tokens, tokenCount, chainsSearched, chainResults,
            fetchedAt``

        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
