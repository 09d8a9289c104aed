"""Tests for the Hyperliquid info API adapter."""

import httpx

from crypto_wallet_scanner.core.chains import Chain
from crypto_wallet_scanner.core.models import PositionKind, ScanRequest, ScanStatus
from crypto_wallet_scanner.providers.hyperliquid import HyperliquidAdapter, derive_vault_symbol

from conftest import EVM_ADDRESS, rpc_body

HLP_VAULT = "0xdfc24b077bc1425ad1dea75bcb6f8158e10df303"
NOW = 1_700_000_000

SPOT_STATE = {
    "balances": [
        {"coin": "USDC", "total": "150.5", "hold": "0.0"},
        {"coin": "PURR", "total": "100", "entryNtl": "20"},
        {"coin": "DUST", "total": "0"},
    ]
}
PERP_STATE = {
    "assetPositions": [
        {"type": "oneWay", "position": {"coin": "BTC", "szi": "-0.5", "positionValue": "30000"}},
        {"type": "oneWay", "position": {"coin": "ETH", "szi": "2", "markPx": "3000"}},
        {"type": "oneWay", "position": {"coin": "SOL", "szi": "0"}},
    ],
    "marginSummary": {"accountValue": "1000"},
    "withdrawable": "500",
}
VAULT_EQUITIES = [
    {"vaultAddress": HLP_VAULT, "equity": "1200", "lockedUntilTimestamp": (NOW + 86_400) * 1000},
]
DELEGATOR_SUMMARY = {"delegated": "10", "undelegated": "0", "totalPendingWithdrawal": "2", "nPendingWithdrawals": 1}


def info_handler(responses):
    """Serve info queries by ``type``; a missing type answers 500."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = rpc_body(request)
        seen.append(body)
        if body["type"] not in responses:
            return httpx.Response(500)
        return httpx.Response(200, json=responses[body["type"]])

    handler.seen = seen
    return handler


def scan(make_context, handler):
    adapter = HyperliquidAdapter(Chain.HYPERLIQUID_MAINNET, make_context(handler), clock=lambda: NOW)
    return adapter.scan(ScanRequest.from_params(EVM_ADDRESS, "hyperliquid-mainnet"))


def test_full_account_scan(make_context):
    """Spot, perps, collateral, vaults and staking are merged with perps first."""
    handler = info_handler(
        {
            "spotClearinghouseState": SPOT_STATE,
            "clearinghouseState": PERP_STATE,
            "userVaultEquities": VAULT_EQUITIES,
            "delegatorSummary": DELEGATOR_SUMMARY,
            "vaultDetails": {"name": "Hyperliquidity Provider (HLP)"},
        }
    )

    result = scan(make_context, handler)

    assert result.status == ScanStatus.OK
    assert result.native_balance.symbol == "USDC"
    assert result.native_balance.balance == 150.5

    assert [p.source_id for p in result.positions] == [
        "hyperliquid-perp:BTC:short",
        "hyperliquid-perp:ETH:long",
        "hyperliquid-perp:USDC-collateral",
        f"hyperliquid-vault:{HLP_VAULT}",
        "hyperliquid-spot:PURR",
        "hyperliquid-staking:delegated",
        "hyperliquid-staking:pending",
    ]

    btc, eth, collateral, vault, purr, delegated, pending = result.positions
    assert btc.display_name == "BTC Perp (Short)"
    assert btc.balance == 0.5
    assert btc.value_usd == 30000.0
    assert btc.position_kind == PositionKind.PERP
    assert eth.value_usd == 6000.0
    assert eth.price_usd == 3000.0

    assert collateral.position_kind == PositionKind.PERP_COLLATERAL
    assert collateral.balance == 500.0

    assert vault.symbol == "HLP"
    assert vault.display_name == "Hyperliquidity Provider (HLP) (Locked)"
    assert vault.position_kind == PositionKind.VAULT
    assert vault.market_id == HLP_VAULT

    assert purr.price_usd == 0.2
    assert purr.value_usd == 20.0
    assert purr.position_kind == PositionKind.FUNGIBLE_TOKEN

    assert delegated.balance == 10.0
    assert delegated.position_kind == PositionKind.STAKING
    assert pending.display_name == "HYPE Staking (Pending Withdrawal)"
    assert pending.balance == 2.0

    assert {body["type"] for body in handler.seen} == {
        "spotClearinghouseState",
        "clearinghouseState",
        "userVaultEquities",
        "delegatorSummary",
        "vaultDetails",
    }


def test_spot_and_perp_failure_is_an_error(make_context):
    """Losing both account states fails the chain."""
    result = scan(make_context, info_handler({"userVaultEquities": [], "delegatorSummary": {}}))

    assert result.status == ScanStatus.ERROR
    assert result.error.startswith("Hyperliquid API error:")
    assert "500" in result.error


def test_perp_failure_keeps_spot(make_context):
    """One failed account state only drops its own positions."""
    result = scan(make_context, info_handler({"spotClearinghouseState": SPOT_STATE}))

    assert result.is_ok
    assert result.native_balance.balance == 150.5
    assert [p.symbol for p in result.positions] == ["PURR"]


def test_native_falls_back_to_withdrawable(make_context):
    """Without spot USDC, withdrawable margin is the native balance."""
    result = scan(make_context, info_handler({"spotClearinghouseState": {"balances": []}, "clearinghouseState": PERP_STATE}))

    assert result.native_balance.balance == 500.0


def test_unnamed_vault(make_context):
    """A failed vaultDetails lookup falls back to an address label."""
    handler = info_handler(
        {
            "spotClearinghouseState": SPOT_STATE,
            "clearinghouseState": {},
            "userVaultEquities": [{"vaultAddress": HLP_VAULT, "equity": "5", "lockedUntilTimestamp": 0}],
        }
    )

    result = scan(make_context, handler)

    [vault] = [p for p in result.positions if p.position_kind == PositionKind.VAULT]
    assert vault.display_name == "Vault 0xdfc2...f303"
    assert vault.symbol == "VLT-0xdfc2f3"


def test_embedded_staking_used_when_direct_query_fails(make_context):
    """A delegator summary inside the spot state stands in for a failed query."""
    spot_state = {**SPOT_STATE, "delegatorSummary": {"delegated": "7"}}
    handler = info_handler({"spotClearinghouseState": spot_state, "clearinghouseState": {}})

    result = scan(make_context, handler)

    [staking] = [p for p in result.positions if p.position_kind == PositionKind.STAKING]
    assert staking.balance == 7.0


def test_direct_staking_wins_over_embedded(make_context):
    """The embedded summary is ignored when the direct query answered."""
    spot_state = {**SPOT_STATE, "delegatorSummary": {"delegated": "7"}}
    handler = info_handler(
        {
            "spotClearinghouseState": spot_state,
            "clearinghouseState": {},
            "delegatorSummary": {"delegated": "0", "undelegated": "0", "totalPendingWithdrawal": "0"},
        }
    )

    result = scan(make_context, handler)

    assert not [p for p in result.positions if p.position_kind == PositionKind.STAKING]


def test_vault_name_is_memoized(make_context):
    """Repeated lookups of one vault hit the network once."""
    handler = info_handler({"vaultDetails": {"name": "  Growi HF  "}})
    adapter = HyperliquidAdapter(Chain.HYPERLIQUID_MAINNET, make_context(handler))

    assert adapter.vault_name(HLP_VAULT) == "Growi HF"
    assert adapter.vault_name(HLP_VAULT.upper().replace("0X", "0x")) == "Growi HF"
    assert len(handler.seen) == 1
    assert handler.seen[0] == {"type": "vaultDetails", "vaultAddress": HLP_VAULT}


def test_derive_vault_symbol():
    """Vault tickers come from the name when possible."""
    assert derive_vault_symbol("Growi HF (grw)", HLP_VAULT) == "GRW"
    assert derive_vault_symbol("Hyperliquidity Provider", HLP_VAULT) == "HLP"
    assert derive_vault_symbol("Sifu-1", HLP_VAULT) == "SIFU1"
    assert derive_vault_symbol("A very long vault name", HLP_VAULT) == "VLT-0xdfc2f3"
    assert derive_vault_symbol("", HLP_VAULT) == "VLT-0xdfc2f3"


def test_empty_account_is_ok(make_context):
    """Empty but successful answers are an empty account, not a failure."""
    handler = info_handler(
        {
            "spotClearinghouseState": {},
            "clearinghouseState": {},
            "userVaultEquities": [],
            "delegatorSummary": {},
        }
    )

    result = scan(make_context, handler)

    assert result.status == ScanStatus.OK
    assert result.native_balance.balance == 0.0
    assert result.positions == []
