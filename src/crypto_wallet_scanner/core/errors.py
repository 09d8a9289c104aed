"""Exception hierarchy for wallet scanning."""

from typing import Any


class ScannerError(Exception):
    """
    Base class for all scanner errors.

    Attributes
    ----------
    status_code : int
        HTTP status class a boundary layer should map this error to

    """

    status_code = 500


class InvalidAddressError(ScannerError):
    """Raised when the wallet address matches no supported format."""

    status_code = 400

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.details = details


class UnsupportedChainError(ScannerError):
    """Raised when a chain selector cannot be resolved for the given addresses."""

    status_code = 400

    def __init__(self, selector: str, supported: list[str] | None = None) -> None:
        super().__init__(f"Unsupported chain: {selector}")
        self.selector = selector
        self.supported = supported or []


class ProviderError(ScannerError):
    """
    Raised by a provider client when a call fails.

    Never escapes a chain adapter; it becomes an ``error`` chain result.

    Parameters
    ----------
    message : str
        Human readable failure reason
    status_code : int | None
        HTTP status returned by the provider, if any
    rate_limited : bool
        Whether the failure is a rate-limit signal worth retrying

    """

    status_code = 502

    def __init__(self, message: str, status_code: int | None = None, *, rate_limited: bool = False) -> None:
        super().__init__(message)
        self.http_status = status_code
        self.rate_limited = rate_limited


class ScanFailedError(ScannerError):
    """Raised when every requested chain failed to produce data."""

    status_code = 502

    def __init__(self, chain_results: list[Any]) -> None:
        super().__init__("Failed to fetch wallet data on all requested chains")
        self.chain_results = chain_results
