"""Request-scoped memoization for provider lookups."""

import threading
from collections.abc import Callable, Hashable
from typing import Any


class RequestCache:
    """
    In-memory memo that lives for exactly one scan.

    Adapters receive the cache by reference instead of keeping module-level
    state, so two scans never observe each other's lookups. Safe to share
    across the worker threads of one scan.

    Parameters
    ----------
    namespace : str
        Label used in ``repr`` only

    """

    def __init__(self, namespace: str = "scan") -> None:
        self.namespace = namespace
        self._values: dict[Hashable, Any] = {}
        self._lock = threading.Lock()

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """
        Return the cached value for ``key``, computing and storing it on a miss.

        Failures of ``compute`` propagate and are not cached.

        """
        with self._lock:
            if key in self._values:
                return self._values[key]

        value = compute()
        with self._lock:
            return self._values.setdefault(key, value)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __repr__(self) -> str:
        return f"RequestCache(namespace={self.namespace!r}, entries={len(self)})"
