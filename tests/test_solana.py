"""Tests for the Solana adapter."""

import base64
import struct

import httpx

from crypto_wallet_scanner.config import ScannerConfig
from crypto_wallet_scanner.core.chains import Chain
from crypto_wallet_scanner.core.models import PositionKind, ScanRequest, ScanStatus
from crypto_wallet_scanner.providers.solana import SolanaAdapter, parse_metadata, truncated_mint

from conftest import EVM_ADDRESS, SOLANA_ADDRESS, rpc_body, rpc_error, rpc_result

TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
METADATA_PROGRAM = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
UNKNOWN_MINT = "4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU"


def token_account(mint, amount, decimals, ui_amount=None):
    token_amount = {"amount": amount, "decimals": decimals, "uiAmount": ui_amount}
    if amount is None:
        del token_amount["amount"]
    return {
        "pubkey": "8opHzTAnfzRpPEx21XtnrVTX28YQuCpAjcn1PczScKh",
        "account": {
            "data": {
                "program": "spl-token",
                "parsed": {"type": "account", "info": {"mint": mint, "owner": SOLANA_ADDRESS, "tokenAmount": token_amount}},
            },
        },
    }


def metadata_bytes(name: str, symbol: str) -> bytes:
    """Metaplex metadata layout with NUL-padded name and symbol."""
    name_field = name.encode().ljust(32, b"\x00")
    symbol_field = symbol.encode().ljust(10, b"\x00")
    return (
        b"\x04"
        + bytes(32)
        + bytes(32)
        + struct.pack("<I", len(name_field))
        + name_field
        + struct.pack("<I", len(symbol_field))
        + symbol_field
    )


def metadata_account(name: str, symbol: str) -> dict:
    encoded = base64.b64encode(metadata_bytes(name, symbol)).decode()
    return {"pubkey": "meta", "account": {"data": [encoded, "base64"]}}


def rpc_value(value) -> httpx.Response:
    return rpc_result({"context": {"slot": 250_000_000}, "value": value})


def solana_handler(lamports, accounts, metadata=None, calls=None):
    """Answer getBalance, getTokenAccountsByOwner and getProgramAccounts."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = rpc_body(request)
        if calls is not None:
            calls.append(body["method"])
        if body["method"] == "getBalance":
            return rpc_value(lamports)
        if body["method"] == "getTokenAccountsByOwner":
            return rpc_value(accounts)
        if body["method"] == "getProgramAccounts":
            mint = body["params"][1]["filters"][0]["memcmp"]["bytes"]
            answer = (metadata or {}).get(mint, [])
            return answer if isinstance(answer, httpx.Response) else rpc_result(answer)
        raise AssertionError(f"unexpected method {body['method']}")

    return handler


def scan(make_context, handler, config=None, address=SOLANA_ADDRESS):
    context = make_context(handler, config)
    adapter = SolanaAdapter(Chain.SOLANA, context)
    return adapter.scan(ScanRequest.from_params(address)), context


def test_native_and_known_tokens(make_context):
    """Lamports become SOL; known mints are named without a metadata lookup."""
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = rpc_body(request)
        bodies.append(body)
        return solana_handler(
            2_500_000_000,
            [token_account(USDC_MINT, "1500000", 6, 1.5), token_account(BONK_MINT, "0", 5, 0)],
        )(request)

    result, _ = scan(make_context, handler)

    assert result.is_ok
    assert [body["method"] for body in bodies] == ["getBalance", "getTokenAccountsByOwner"]
    assert bodies[0]["params"] == [SOLANA_ADDRESS]
    assert bodies[1]["params"] == [SOLANA_ADDRESS, {"programId": TOKEN_PROGRAM}, {"encoding": "jsonParsed"}]

    assert result.native_balance.symbol == "SOL"
    assert result.native_balance.balance == 2.5
    assert result.native_balance.decimals == 9
    assert result.native_balance.explorer_url == f"https://solscan.io/account/{SOLANA_ADDRESS}"

    [usdc] = result.positions
    assert usdc.source_id == USDC_MINT
    assert usdc.symbol == "USDC"
    assert usdc.display_name == "USD Coin"
    assert usdc.balance == 1.5
    assert usdc.decimals == 6
    assert usdc.chain == Chain.SOLANA
    assert usdc.position_kind == PositionKind.FUNGIBLE_TOKEN
    assert usdc.token_type == "SPL"
    assert usdc.explorer_url == f"https://solscan.io/token/{USDC_MINT}"


def test_metadata_lookup_is_memoized(make_context):
    """Unknown mints are named from Metaplex metadata, looked up once per scan."""
    calls = []
    metaplex_params = []
    long_name = "A" * 60

    def handler(request: httpx.Request) -> httpx.Response:
        body = rpc_body(request)
        if body["method"] == "getProgramAccounts":
            metaplex_params.append(body["params"])
        return solana_handler(
            0,
            [token_account(UNKNOWN_MINT, "2000", 3), token_account(UNKNOWN_MINT, "1000", 3)],
            {UNKNOWN_MINT: [metadata_account(long_name, "LONGSYMBOL1")]},
            calls,
        )(request)

    result, context = scan(make_context, handler)

    assert result.is_ok
    assert calls.count("getProgramAccounts") == 1
    assert metaplex_params == [
        [
            METADATA_PROGRAM,
            {"encoding": "base64", "filters": [{"memcmp": {"offset": 33, "bytes": UNKNOWN_MINT}}]},
        ]
    ]
    assert ("solanaMetadata", UNKNOWN_MINT) in context.cache

    assert [position.balance for position in result.positions] == [2.0, 1.0]
    assert {position.symbol for position in result.positions} == {"LONGSYMBOL"}
    assert {position.display_name for position in result.positions} == {"A" * 50}


def test_missing_metadata_uses_truncated_mint(make_context):
    """Without metadata the mint is shortened and the name is generic."""
    handler = solana_handler(0, [token_account(UNKNOWN_MINT, "5", 0)], {UNKNOWN_MINT: []})

    result, _ = scan(make_context, handler)

    [position] = result.positions
    assert position.symbol == "4zMM...ncDU"
    assert position.display_name == "Unknown Token"


def test_metadata_failure_does_not_fail_scan(make_context):
    """A failing metadata lookup degrades to the truncated label."""
    handler = solana_handler(
        1_000_000_000,
        [token_account(UNKNOWN_MINT, "5", 0)],
        {UNKNOWN_MINT: rpc_error("Method not found")},
    )

    result, _ = scan(make_context, handler)

    assert result.is_ok
    assert result.native_balance.balance == 1.0
    [position] = result.positions
    assert position.symbol == truncated_mint(UNKNOWN_MINT)


def test_positions_sorted_and_capped(make_context):
    """Largest balances first; names are only resolved for kept tokens."""
    calls = []
    accounts = [
        token_account(UNKNOWN_MINT, "1", 0),
        token_account(USDC_MINT, "3000000", 6),
        token_account(BONK_MINT, "200000", 5),
    ]
    handler = solana_handler(0, accounts, calls=calls)

    result, _ = scan(make_context, handler, ScannerConfig(per_chain_token_limit=2))

    assert [position.symbol for position in result.positions] == ["USDC", "BONK"]
    assert [position.balance for position in result.positions] == [3.0, 2.0]
    assert "getProgramAccounts" not in calls


def test_ui_amount_used_when_raw_amount_missing(make_context):
    """Accounts without a raw amount fall back to the UI amount."""
    handler = solana_handler(0, [token_account(USDC_MINT, None, 6, 12.25)])

    result, _ = scan(make_context, handler)

    [position] = result.positions
    assert position.balance == 12.25


def test_rpc_override_is_tried_first(make_context, sleeps):
    """The configured RPC URL comes first; a server error falls through to the public endpoint."""
    hosts = []
    inner = solana_handler(3_000_000_000, [])

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "rpc.example.com":
            return httpx.Response(500, text="Internal Server Error")
        return inner(request)

    result, _ = scan(make_context, handler, ScannerConfig(solana_rpc_url="https://rpc.example.com"))

    assert result.is_ok
    assert result.native_balance.balance == 3.0
    assert hosts[:2] == ["rpc.example.com", "api.mainnet-beta.solana.com"]
    assert sleeps == []


def test_rate_limited_balance_is_retried(make_context, sleeps):
    """A 429 is retried on the same endpoint after the first delay."""
    calls = []
    inner = solana_handler(1_000_000_000, [])

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(rpc_body(request)["method"])
        if calls == ["getBalance"]:
            return httpx.Response(429, text="Too Many Requests")
        return inner(request)

    result, _ = scan(make_context, handler)

    assert result.is_ok
    assert calls == ["getBalance", "getBalance", "getTokenAccountsByOwner"]
    assert sleeps == [0.35]


def test_rpc_failure_fails_chain(make_context):
    """An unreachable RPC yields an error result instead of raising."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="Internal Server Error")

    result, _ = scan(make_context, handler)

    assert result.status == ScanStatus.ERROR
    assert result.error == "Solana RPC HTTP 500"
    assert result.positions == []


def test_requires_solana_address(make_context):
    """An EVM request cannot be scanned on Solana."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    result, _ = scan(make_context, handler, address=EVM_ADDRESS)

    assert result.status == ScanStatus.ERROR
    assert result.error == "Solana address is required"


def test_parse_metadata():
    """Name and symbol are read from the length-prefixed fields."""
    assert parse_metadata(metadata_bytes("Dogwifhat", "WIF")) == ("WIF", "Dogwifhat")
    assert parse_metadata(metadata_bytes("", "WIF")) is None
    assert parse_metadata(b"\x04" + bytes(40)) is None
