"""Chain and provider configuration loader."""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml


@lru_cache(maxsize=1)
def load_chains() -> dict[str, Any]:
    """
    Load chain and provider configuration from chains.yaml.

    The file is read-only package data, so the parsed result is memoized.

    Returns
    -------
    dict[str, Any]
        Configuration with ``chains`` and ``providers`` sections

    """
    path = Path(__file__).parent / "chains.yaml"
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def get_chain_config(chain: str) -> dict[str, Any]:
    """
    Get configuration for a specific chain.

    Parameters
    ----------
    chain : str
        Chain identifier (e.g., 'ethereum', 'avalanche-p')

    Returns
    -------
    dict[str, Any]
        Chain configuration including source, native asset and endpoints

    Raises
    ------
    KeyError
        If chain is not found in configuration

    """
    return load_chains()["chains"][str(chain)]


def get_provider_config(provider: str) -> dict[str, Any]:
    """
    Get configuration for a data provider.

    Parameters
    ----------
    provider : str
        Provider key (e.g., 'tronscan', 'avalanche_platform')

    Returns
    -------
    dict[str, Any]
        Provider configuration, empty if the provider has no section

    """
    return load_chains().get("providers", {}).get(provider, {})


def get_explorer_endpoints(chain: str) -> list[str]:
    """
    Get the ordered list of explorer endpoints for an EVM chain.

    Parameters
    ----------
    chain : str
        Chain identifier

    Returns
    -------
    list[str]
        Explorer base URLs, tried in order

    """
    return list(get_chain_config(chain).get("explorer_endpoints", []))
