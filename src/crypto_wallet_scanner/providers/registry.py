"""Adapter registry with auto-registration pattern."""

from crypto_wallet_scanner.core.chains import Chain, ProviderSource, get_source


class AdapterRegistry:
    """
    Registry mapping provider sources to chain adapter classes.

    Adapters register themselves with the ``@AdapterRegistry.register``
    decorator; the aggregator then looks up the adapter for each chain
    through the chain's configured source.

    """

    _adapters: dict[ProviderSource, type] = {}

    @classmethod
    def register(cls, adapter_class: type) -> type:
        """
        Decorator to register a chain adapter.

        Parameters
        ----------
        adapter_class : type
            Adapter class to register

        Returns
        -------
        type
            The adapter class (for decorator chaining)

        Examples
        --------
        >>> @AdapterRegistry.register
        ... class TronAdapter(ChainAdapter):
        ...     source = ProviderSource.TRONSCAN

        """
        if not getattr(adapter_class, "source", None):
            msg = f"Adapter {adapter_class.__name__} must define 'source' attribute"
            raise ValueError(msg)

        cls._adapters[adapter_class.source] = adapter_class
        return adapter_class

    @classmethod
    def get_adapter(cls, source: ProviderSource) -> type | None:
        """Get adapter class by provider source, None if not registered."""
        return cls._adapters.get(source)

    @classmethod
    def get_adapter_for_chain(cls, chain: Chain) -> type | None:
        """
        Get the adapter class that scans a chain.

        Parameters
        ----------
        chain : Chain
            Chain identifier

        Returns
        -------
        type | None
            Adapter class or None if the chain's source has no adapter

        """
        return cls._adapters.get(get_source(chain))

    @classmethod
    def list_sources(cls) -> list[ProviderSource]:
        """Get all registered provider sources."""
        return list(cls._adapters.keys())
