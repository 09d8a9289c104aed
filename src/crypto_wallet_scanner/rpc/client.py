"""HTTP and JSON-RPC helpers shared by the provider adapters."""

import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from crypto_wallet_scanner.core.errors import ProviderError
from crypto_wallet_scanner.rpc.retry import RetryPolicy, is_rate_limit_message

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class HttpJsonClient:
    """
    Thin JSON layer over a shared ``httpx.Client``.

    Translates transport and status failures into :class:`ProviderError`.
    A 404 on an optional endpoint means "no data for this shape" and yields
    None instead of an error.

    Parameters
    ----------
    client : httpx.Client
        HTTP client owned by the enclosing scan
    provider : str
        Provider name used in error messages
    timeout : float
        Per-request timeout in seconds

    """

    def __init__(self, client: httpx.Client, provider: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.client = client
        self.provider = provider
        self.timeout = timeout

    def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        *,
        optional: bool = False,
    ) -> Any | None:
        """
        GET ``url`` and decode its JSON body.

        Parameters
        ----------
        url : str
            Request URL
        params : dict[str, Any] | None
            Query parameters
        headers : dict[str, str] | None
            Extra headers
        optional : bool
            Treat 404 as "no data" and return None

        Returns
        -------
        Any | None
            Decoded JSON, or None for a 404 on an optional endpoint

        Raises
        ------
        ProviderError
            On timeouts, transport errors, non-success statuses and invalid JSON

        """
        response = self._send("GET", url, params=params, headers=headers)
        if optional and response.status_code == 404:
            logger.debug("%s: %s returned 404, no data for this shape", self.provider, url)
            return None
        self._raise_for_status(response)
        return self._decode(response)

    def post_json(self, url: str, payload: Any, headers: dict[str, str] | None = None) -> Any:
        """POST a JSON payload and decode the JSON response."""
        response = self._send("POST", url, json=payload, headers=headers)
        self._raise_for_status(response)
        return self._decode(response)

    def post_raw(self, url: str, payload: Any) -> httpx.Response:
        """POST a JSON payload and return the response without status handling."""
        return self._send("POST", url, json=payload)

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self.client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            msg = f"{self.provider} request timeout: {e}"
            raise ProviderError(msg) from e
        except httpx.HTTPError as e:
            msg = f"{self.provider} request failed: {e}"
            raise ProviderError(msg) from e

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        status = response.status_code
        msg = f"{self.provider} API error: {status}"
        raise ProviderError(msg, status, rate_limited=status == 429)

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            msg = f"{self.provider} returned invalid JSON"
            raise ProviderError(msg, response.status_code, rate_limited=is_rate_limit_message(response.text)) from e


class JsonRpcClient:
    """
    JSON-RPC 2.0 client over an ordered list of endpoints.

    Each endpoint is tried under the retry policy (sequential attempts with
    the policy's delay schedule on rate-limit failures) before moving on to
    the next endpoint.

    Parameters
    ----------
    http : HttpJsonClient
        JSON transport
    endpoints : Sequence[str]
        RPC URLs in preference order
    retry_policy : RetryPolicy | None
        Policy applied per endpoint; no retries when None

    """

    def __init__(
        self,
        http: HttpJsonClient,
        endpoints: Sequence[str],
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.http = http
        self.endpoints = list(endpoints)
        self.retry_policy = retry_policy or RetryPolicy(delays=())

    def call(self, method: str, params: Any) -> Any:
        """
        Call an RPC method, falling through endpoints on failure.

        Parameters
        ----------
        method : str
            RPC method name (e.g., 'platform.getBalance', 'eth_getBalance')
        params : Any
            Method params (object or list)

        Returns
        -------
        Any
            The ``result`` member of the response

        Raises
        ------
        ProviderError
            The last endpoint's failure once every endpoint is exhausted

        """
        last_error: ProviderError | None = None

        for endpoint in self.endpoints:
            try:
                return self.retry_policy.call(self._call_endpoint, endpoint, method, params)
            except ProviderError as e:
                logger.debug("%s %s failed on %s: %s", self.http.provider, method, endpoint, e)
                last_error = e

        if last_error:
            raise last_error
        msg = f"{self.http.provider} RPC {method} failed: no endpoints configured"
        raise ProviderError(msg)

    def _call_endpoint(self, endpoint: str, method: str, params: Any) -> Any:
        body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        response = self.http.post_raw(endpoint, body)
        raw = response.text

        if not response.is_success:
            status = response.status_code
            msg = f"{self.http.provider} RPC HTTP {status}"
            raise ProviderError(msg, status, rate_limited=status == 429 or is_rate_limit_message(raw))

        try:
            payload = json.loads(raw)
        except ValueError as e:
            msg = f"Invalid {self.http.provider} RPC response"
            raise ProviderError(msg, response.status_code, rate_limited=is_rate_limit_message(raw)) from e

        if not isinstance(payload, dict):
            msg = f"Invalid {self.http.provider} RPC response"
            raise ProviderError(msg, response.status_code)

        error = payload.get("error")
        if error:
            message = (error.get("message") if isinstance(error, dict) else str(error)) or f"RPC {method} failed"
            raise ProviderError(message, response.status_code, rate_limited=is_rate_limit_message(message))

        if payload.get("result") is None:
            msg = f"{self.http.provider} RPC {method} returned no result"
            raise ProviderError(msg, response.status_code)

        return payload["result"]
