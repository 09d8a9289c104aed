"""Pytest configuration for crypto-wallet-scanner tests."""

import json

import httpx
import pytest

from crypto_wallet_scanner.config import ScannerConfig
from crypto_wallet_scanner.providers import ScanContext

EVM_ADDRESS = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"  # vitalik.eth
P_ADDRESS = "P-avax1qxyz9m7rk5lldqqpqz3f9yj2v6eg0lzz4u3dtg"
SOLANA_ADDRESS = "83astBRguLMdt2h5U1Tpdq5tjFoJ6noeGwaY3mDLVcri"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep scanner settings independent of the developer's environment."""
    for name in ("TRONSCAN_API_KEY", "SOLANA_RPC_URL", "WALLET_SCANNER_TIMEOUT", "WALLET_SCANNER_DERIVE_TRON"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_client():
    """Build ``httpx.Client`` instances served by a handler function."""
    clients = []

    def factory(handler):
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


@pytest.fixture
def sleeps():
    """Delays requested by retry policies, recorded instead of slept."""
    return []


@pytest.fixture
def make_context(make_client, sleeps):
    """Build a ScanContext over a mocked transport."""

    def factory(handler, config=None):
        return ScanContext(make_client(handler), config or ScannerConfig(), sleep=sleeps.append)

    return factory


def rpc_body(request: httpx.Request) -> dict:
    """Decode the JSON body of a mocked request."""
    return json.loads(request.content)


def rpc_result(result) -> httpx.Response:
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})


def rpc_error(message: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": message}})
