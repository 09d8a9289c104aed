"""Solana adapter over the public JSON-RPC API."""

import base64
import binascii
import logging
import struct
from typing import Any

from pydantic import Field

from crypto_wallet_scanner.core.balances import normalize, normalize_decimals, to_float
from crypto_wallet_scanner.core.chains import (
    Chain,
    ProviderSource,
    get_native_decimals,
    get_native_symbol,
    get_solana_token_explorer_url,
)
from crypto_wallet_scanner.core.errors import ProviderError
from crypto_wallet_scanner.core.models import ChainScanResult, NativeBalanceEntry, PositionKind, ScanRequest, WalletPosition
from crypto_wallet_scanner.data import get_provider_config
from crypto_wallet_scanner.providers.base import ChainAdapter, ScanContext
from crypto_wallet_scanner.providers.registry import AdapterRegistry
from crypto_wallet_scanner.providers.schemas import ProviderSchema
from crypto_wallet_scanner.rpc import JsonRpcClient, RetryPolicy

logger = logging.getLogger(__name__)

SPL_TOKEN_TYPE = "SPL"
UNKNOWN_TOKEN_NAME = "Unknown Token"

# Metaplex metadata account: key (1), update authority (32), then the mint
METADATA_MINT_OFFSET = 1 + 32
METADATA_NAME_OFFSET = 1 + 32 + 32
MAX_SYMBOL_LENGTH = 10
MAX_NAME_LENGTH = 50


class RpcValue(ProviderSchema):
    """``{"context": ..., "value": ...}`` envelope of Solana RPC results."""

    value: Any = None


class TokenAmount(ProviderSchema):
    amount: Any = None
    decimals: Any = None
    ui_amount: Any = Field(default=None, alias="uiAmount")
    ui_amount_string: Any = Field(default=None, alias="uiAmountString")


class ParsedTokenAccount(ProviderSchema):
    """``account.data.parsed.info`` of a jsonParsed SPL token account."""

    mint: str | None = None
    token_amount: dict[str, Any] | None = Field(default=None, alias="tokenAmount")

    @classmethod
    def from_keyed_account(cls, entry: Any) -> "ParsedTokenAccount | None":
        """Dig the parsed ``info`` object out of a ``getTokenAccountsByOwner`` entry."""
        if not isinstance(entry, dict):
            return None
        account = entry.get("account")
        data = account.get("data") if isinstance(account, dict) else None
        parsed = data.get("parsed") if isinstance(data, dict) else None
        return cls.parse(parsed.get("info") if isinstance(parsed, dict) else None)


def parse_metadata(data: bytes) -> tuple[str, str] | None:
    """
    Read symbol and name from a Metaplex token metadata account.

    Parameters
    ----------
    data : bytes
        Raw account data

    Returns
    -------
    tuple[str, str] | None
        ``(symbol, name)`` with NUL padding stripped, or None when the data
        is truncated or either field is empty

    """
    offset = METADATA_NAME_OFFSET
    try:
        (name_length,) = struct.unpack_from("<I", data, offset)
        offset += 4
        name = data[offset : offset + name_length]
        offset += name_length
        (symbol_length,) = struct.unpack_from("<I", data, offset)
        offset += 4
        symbol = data[offset : offset + symbol_length]
    except struct.error:
        return None

    name_text = name.decode("utf-8", errors="ignore").replace("\x00", "").strip()
    symbol_text = symbol.decode("utf-8", errors="ignore").replace("\x00", "").strip()
    if not name_text or not symbol_text:
        return None
    return symbol_text[:MAX_SYMBOL_LENGTH], name_text[:MAX_NAME_LENGTH]


def truncated_mint(mint: str) -> str:
    """Short label for a mint without metadata, e.g. ``AbCd...WxYz``."""
    return f"{mint[:4]}...{mint[-4:]}"


class SolanaRpcClient:
    """
    Solana JSON-RPC client.

    A ``SOLANA_RPC_URL`` override is tried before the configured public
    endpoints; each endpoint is retried on rate limiting.

    """

    def __init__(self, context: ScanContext) -> None:
        self.config = get_provider_config("solana_rpc")
        endpoints = list(self.config["rpc_endpoints"])
        if context.config.solana_rpc_url:
            endpoints.insert(0, context.config.solana_rpc_url)
        policy = RetryPolicy(delays=self.config.get("retry_delays", (0.35, 0.9)), sleep=context.sleep)
        self.rpc = JsonRpcClient(context.http("solana_rpc", "Solana"), list(dict.fromkeys(endpoints)), policy)

    def get_balance(self, address: str) -> Any:
        """Lamport balance of an account."""
        result = RpcValue.parse(self.rpc.call("getBalance", [address]))
        if result is None:
            msg = "Solana RPC getBalance returned an unexpected result"
            raise ProviderError(msg)
        return result.value

    def get_token_accounts(self, address: str) -> list[Any]:
        """SPL token accounts owned by ``address``, jsonParsed."""
        result = self.rpc.call(
            "getTokenAccountsByOwner",
            [address, {"programId": self.config["token_program"]}, {"encoding": "jsonParsed"}],
        )
        parsed = RpcValue.parse(result)
        if parsed is None or not isinstance(parsed.value, list):
            msg = "Solana RPC getTokenAccountsByOwner returned an unexpected result"
            raise ProviderError(msg)
        return parsed.value

    def get_metadata(self, mint: str) -> tuple[str, str] | None:
        """
        Look up the Metaplex metadata account of a mint.

        Returns
        -------
        tuple[str, str] | None
            ``(symbol, name)``, None when the mint has no usable metadata

        Raises
        ------
        ProviderError
            If the RPC call fails

        """
        accounts = self.rpc.call(
            "getProgramAccounts",
            [
                self.config["metadata_program"],
                {
                    "encoding": "base64",
                    "filters": [{"memcmp": {"offset": METADATA_MINT_OFFSET, "bytes": mint}}],
                },
            ],
        )
        for entry in accounts if isinstance(accounts, list) else []:
            account = entry.get("account") if isinstance(entry, dict) else None
            data = account.get("data") if isinstance(account, dict) else None
            if not isinstance(data, list) or not data or not isinstance(data[0], str):
                continue
            try:
                raw = base64.b64decode(data[0], validate=True)
            except (binascii.Error, ValueError):
                continue
            metadata = parse_metadata(raw)
            if metadata:
                return metadata
        return None


@AdapterRegistry.register
class SolanaAdapter(ChainAdapter):
    """
    Solana adapter: native SOL plus SPL token accounts.

    Token names come from the configured known-token table, then from
    Metaplex metadata (memoized per scan), and finally fall back to a
    truncated mint label.

    """

    source = ProviderSource.SOLANA_RPC

    def __init__(self, chain: Chain, context: ScanContext) -> None:
        super().__init__(chain, context)
        self.rpc = SolanaRpcClient(context)
        self.known_tokens: dict[str, dict[str, str]] = self.rpc.config.get("known_tokens") or {}
        self.native_decimals = get_native_decimals(chain)

    def _scan(self, request: ScanRequest) -> ChainScanResult:
        address = request.solana_address
        if not address:
            msg = "Solana address is required"
            raise ProviderError(msg)

        lamports = self.rpc.get_balance(address)
        accounts = self.rpc.get_token_accounts(address)

        holdings = [
            holding
            for holding in map(self.parse_holding, map(ParsedTokenAccount.from_keyed_account, accounts))
            if holding is not None
        ]
        holdings = sorted(holdings, key=lambda h: h[1], reverse=True)[: self.token_limit]
        logger.debug("Solana returned %d token accounts, %d non-zero for %s", len(accounts), len(holdings), address)

        positions = [self.map_token(mint, balance, decimals) for mint, balance, decimals in holdings]

        return ChainScanResult.ok(
            self.chain,
            self.source,
            positions,
            NativeBalanceEntry(
                chain=self.chain,
                symbol=get_native_symbol(self.chain),
                balance=max(normalize(lamports, self.native_decimals), 0.0),
                decimals=self.native_decimals,
                explorer_url=self.address_url(address),
            ),
        )

    def parse_holding(self, account: ParsedTokenAccount | None) -> tuple[str, float, int] | None:
        """``(mint, balance, decimals)`` of a token account, None when empty or malformed."""
        if account is None or not account.mint:
            return None
        amount = TokenAmount.parse(account.token_amount)
        if amount is None:
            return None

        decimals = normalize_decimals(amount.decimals, 0)
        if amount.amount is not None:
            balance = normalize(amount.amount, decimals)
        else:
            balance = to_float(amount.ui_amount_string if amount.ui_amount_string is not None else amount.ui_amount)
        if balance <= 0:
            return None
        return account.mint, balance, decimals

    def token_names(self, mint: str) -> tuple[str, str]:
        """``(symbol, name)`` for a mint."""
        known = self.known_tokens.get(mint)
        if known:
            return known["symbol"], known["name"]

        try:
            metadata = self.context.cache.get_or_compute(
                ("solanaMetadata", mint),
                lambda: self.rpc.get_metadata(mint),
            )
        except ProviderError as e:
            logger.debug("Metadata lookup failed for %s: %s", mint, e)
            metadata = None

        if metadata:
            return metadata
        return truncated_mint(mint), UNKNOWN_TOKEN_NAME

    def map_token(self, mint: str, balance: float, decimals: int) -> WalletPosition:
        symbol, name = self.token_names(mint)
        return WalletPosition(
            source_id=mint,
            symbol=symbol,
            display_name=name,
            decimals=decimals,
            balance=balance,
            chain=self.chain,
            position_kind=PositionKind.FUNGIBLE_TOKEN,
            token_type=SPL_TOKEN_TYPE,
            explorer_url=get_solana_token_explorer_url(mint),
        )
