"""TronScan adapter for Tron accounts derived from an EVM address."""

import logging
from typing import Any

from pydantic import Field

from crypto_wallet_scanner.core.addresses import to_tron_address
from crypto_wallet_scanner.core.balances import normalize, normalize_decimals
from crypto_wallet_scanner.core.chains import (
    Chain,
    ProviderSource,
    get_native_decimals,
    get_native_symbol,
    get_tron_token_explorer_url,
)
from crypto_wallet_scanner.core.errors import ProviderError
from crypto_wallet_scanner.core.models import ChainScanResult, NativeBalanceEntry, PositionKind, ScanRequest, WalletPosition
from crypto_wallet_scanner.data import get_provider_config
from crypto_wallet_scanner.providers.base import ChainAdapter, ScanContext
from crypto_wallet_scanner.providers.registry import AdapterRegistry
from crypto_wallet_scanner.providers.schemas import ProviderSchema

logger = logging.getLogger(__name__)

NATIVE_TOKEN_ID = "_"
TRON_TOKEN_TYPES = ("TRC20", "TRC10")


class TronAssetEntry(ProviderSchema):
    """Entry of TronScan's ``token_asset_overview`` ``data`` array."""

    token_id: Any = Field(default=None, alias="tokenId")
    token_abbr: Any = Field(default=None, alias="tokenAbbr")
    token_name: Any = Field(default=None, alias="tokenName")
    token_type: Any = Field(default=None, alias="tokenType")
    token_decimal: Any = Field(default=None, alias="tokenDecimal")
    balance: Any = None

    @property
    def is_native(self) -> bool:
        return str(self.token_id) == NATIVE_TOKEN_ID or str(self.token_abbr or "").upper() == "TRX"


@AdapterRegistry.register
class TronAdapter(ChainAdapter):
    """
    Tron adapter over the TronScan asset overview API.

    The Tron address is derived from the EVM address, which only finds the
    Tron account controlled by the same key. Derivation can be switched off
    with ``ScannerConfig.derive_tron_from_evm``.

    """

    source = ProviderSource.TRONSCAN

    def __init__(self, chain: Chain, context: ScanContext) -> None:
        super().__init__(chain, context)
        self.config = get_provider_config("tronscan")
        self.http = context.http("tronscan", "TronScan")
        self.native_decimals = get_native_decimals(chain)

    def _scan(self, request: ScanRequest) -> ChainScanResult:
        if not self.context.config.derive_tron_from_evm:
            msg = "Tron address derivation from EVM addresses is disabled"
            raise ProviderError(msg)

        tron_address = to_tron_address(request.evm_address or "")
        if not tron_address:
            msg = "Unable to derive a Tron address from the wallet address"
            raise ProviderError(msg)

        url = f"{self.config['api_base']}/api/account/token_asset_overview"
        payload = self.http.get_json(url, params={"address": tron_address}, headers=self.headers())

        entries = payload.get("data") if isinstance(payload, dict) else None
        assets = [entry for entry in map(TronAssetEntry.parse, entries if isinstance(entries, list) else []) if entry]

        native_balance = 0.0
        native = next((entry for entry in assets if entry.is_native), None)
        if native is not None:
            native_balance = max(
                normalize(native.balance, normalize_decimals(native.token_decimal, self.native_decimals)), 0.0
            )

        positions = [position for position in map(self.map_token, assets) if position is not None]
        logger.debug("TronScan returned %d assets for %s", len(assets), tron_address)

        return ChainScanResult.ok(
            self.chain,
            self.source,
            self.top_by_balance(positions),
            NativeBalanceEntry(
                chain=self.chain,
                symbol=get_native_symbol(self.chain),
                balance=native_balance,
                decimals=self.native_decimals,
                explorer_url=self.address_url(tron_address),
            ),
        )

    def headers(self) -> dict[str, str]:
        """Request headers, with the API key when one is configured."""
        api_key = self.context.config.tronscan_api_key
        if not api_key:
            return {}
        return {self.config.get("api_key_header", "TRON-PRO-API-KEY"): api_key}

    def map_token(self, entry: TronAssetEntry) -> WalletPosition | None:
        """Map a TRC-10 or TRC-20 entry to a position, None for anything else."""
        token_id = str(entry.token_id or "")
        if not token_id or token_id == NATIVE_TOKEN_ID:
            return None

        token_type = str(entry.token_type or "").upper()
        if not any(kind in token_type for kind in TRON_TOKEN_TYPES):
            return None

        decimals = normalize_decimals(entry.token_decimal, self.native_decimals)
        balance = normalize(entry.balance, decimals)
        if balance <= 0:
            return None

        return WalletPosition(
            source_id=token_id,
            symbol=str(entry.token_abbr or "UNKNOWN"),
            display_name=str(entry.token_name or "Unknown Token"),
            decimals=decimals,
            balance=balance,
            chain=self.chain,
            position_kind=PositionKind.FUNGIBLE_TOKEN,
            token_type=token_type,
            explorer_url=get_tron_token_explorer_url(token_type, token_id),
        )
