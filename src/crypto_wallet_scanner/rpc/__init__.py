"""RPC layer with HTTP/JSON-RPC clients, retry policy and request-scoped caching."""

from crypto_wallet_scanner.rpc.cache import RequestCache
from crypto_wallet_scanner.rpc.client import HttpJsonClient, JsonRpcClient
from crypto_wallet_scanner.rpc.retry import RetryPolicy, is_rate_limit_message, is_rate_limited

__all__ = [
    "HttpJsonClient",
    "JsonRpcClient",
    "RequestCache",
    "RetryPolicy",
    "is_rate_limit_message",
    "is_rate_limited",
]
