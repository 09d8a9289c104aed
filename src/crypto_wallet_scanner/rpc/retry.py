"""Retry policy with a fixed delay schedule for rate-limited providers."""

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from crypto_wallet_scanner.core.errors import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_MARKERS = ("429", "1015", "rate limit")


def is_rate_limit_message(message: str) -> bool:
    """Check whether an error message or response body signals rate limiting."""
    normalized = (message or "").lower()
    return any(marker in normalized for marker in RATE_LIMIT_MARKERS)


def is_rate_limited(exc: BaseException) -> bool:
    """
    Default retry predicate: rate-limit shaped provider failures.

    Parameters
    ----------
    exc : BaseException
        Exception raised by the wrapped call

    Returns
    -------
    bool
        True for HTTP 429 and for messages carrying a rate-limit marker

    """
    if isinstance(exc, ProviderError) and (exc.rate_limited or exc.http_status == 429):
        return True
    return is_rate_limit_message(str(exc))


class RetryPolicy:
    """
    Bounded retry with a fixed, escalating delay schedule.

    The call is attempted once, then once more after each delay in
    ``delays`` while the failure is retryable. Retries are sequential.

    Parameters
    ----------
    delays : Sequence[float]
        Seconds to wait before each retry; its length is the retry count
    retryable : Callable[[BaseException], bool]
        Predicate deciding whether a failure is worth retrying
    sleep : Callable[[float], None]
        Sleep function, injectable for tests

    """

    def __init__(
        self,
        delays: Sequence[float] = (0.35, 0.9),
        retryable: Callable[[BaseException], bool] = is_rate_limited,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.delays = tuple(delays)
        self.retryable = retryable
        self.sleep = sleep

    @property
    def max_attempts(self) -> int:
        return len(self.delays) + 1

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Call ``func`` under this policy.

        Parameters
        ----------
        func : Callable[..., T]
            Function to call
        *args, **kwargs
            Forwarded to ``func``

        Returns
        -------
        T
            Result of the first successful attempt

        Raises
        ------
        Exception
            The last failure, once it is not retryable or attempts run out

        """
        for attempt in range(self.max_attempts):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if attempt >= len(self.delays) or not self.retryable(e):
                    raise

                delay = self.delays[attempt]
                logger.debug(
                    "Call %s failed (attempt %d/%d): %s; retrying in %.2fs",
                    getattr(func, "__name__", repr(func)),
                    attempt + 1,
                    self.max_attempts,
                    e,
                    delay,
                )
                self.sleep(delay)

        msg = "RetryPolicy requires at least one attempt"
        raise RuntimeError(msg)
