"""Tests for the scan_wallet entry point."""

import httpx
import pytest

from crypto_wallet_scanner.config import ScannerConfig
from crypto_wallet_scanner.core.chains import Chain
from crypto_wallet_scanner.core.errors import InvalidAddressError, UnsupportedChainError
from crypto_wallet_scanner.core.models import PositionKind, ScanStatus
from crypto_wallet_scanner.core.service import scan_wallet

from conftest import EVM_ADDRESS, P_ADDRESS, SOLANA_ADDRESS, rpc_body, rpc_result


def refuse(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


def test_invalid_address_fails_before_network(make_client):
    """Malformed addresses are rejected without any request."""
    with pytest.raises(InvalidAddressError) as exc_info:
        scan_wallet("0x1234", client=make_client(refuse), config=ScannerConfig())

    assert exc_info.value.status_code == 400
    assert "0x-prefixed" in exc_info.value.details


def test_missing_address(make_client):
    """An empty address is rejected."""
    with pytest.raises(InvalidAddressError, match="Wallet address is required"):
        scan_wallet("  ", client=make_client(refuse), config=ScannerConfig())


def test_unsupported_chain(make_client):
    """Unknown selectors list the supported ones."""
    with pytest.raises(UnsupportedChainError) as exc_info:
        scan_wallet(EVM_ADDRESS, "cosmos", client=make_client(refuse), config=ScannerConfig())

    assert "avalanche" in exc_info.value.supported
    assert "ethereum" in exc_info.value.supported


def test_platform_chain_requires_platform_address(make_client):
    """Selecting the P-Chain with only an EVM address is invalid."""
    with pytest.raises(InvalidAddressError, match="P-Chain address is required"):
        scan_wallet(EVM_ADDRESS, "avalanche-p", client=make_client(refuse), config=ScannerConfig())


def test_platform_address_scan(make_client):
    """A bare P-Chain address scans the P-Chain only."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = rpc_body(request)
        if body["method"] == "platform.getStake":
            return rpc_result({"staked": "0"})
        return rpc_result({"balance": "2000000000"})

    result = scan_wallet(P_ADDRESS, client=make_client(handler), config=ScannerConfig())

    assert result.chain == "avalanche-p"
    assert result.chains_searched == [Chain.AVALANCHE_P]
    assert result.chain_results[0].status == ScanStatus.OK
    assert result.native_balance.balance == 2.0

    [position] = result.positions
    assert position.position_kind == PositionKind.NATIVE
    assert position.symbol == "AVAX"

    response = result.to_response()
    assert response["tokenCount"] == 1
    assert response["tokens"][0]["contractAddress"] == "native:avalanche-p"
    assert response["chainsSearched"] == ["avalanche-p"]


def test_solana_address_scan(make_client):
    """A Base58 Solana address scans Solana only."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = rpc_body(request)
        assert body["params"][0] == SOLANA_ADDRESS
        if body["method"] == "getBalance":
            return rpc_result({"context": {"slot": 1}, "value": 1_500_000_000})
        return rpc_result({"context": {"slot": 1}, "value": []})

    result = scan_wallet(SOLANA_ADDRESS, client=make_client(handler), config=ScannerConfig())

    assert result.chain == "solana"
    assert result.chains_searched == [Chain.SOLANA]
    assert result.native_balance.symbol == "SOL"
    assert result.native_balance.balance == 1.5
    assert result.native_balance.explorer_url == f"https://solscan.io/account/{SOLANA_ADDRESS}"
    assert [position.source_id for position in result.positions] == ["native:solana"]
