"""Runtime settings for a wallet scan."""

import os

from pydantic import BaseModel, ConfigDict, Field

_FALSE_VALUES = {"0", "false", "no", "off"}


class ScannerConfig(BaseModel):
    """
    Runtime settings for a wallet scan.

    Attributes
    ----------
    timeout : float
        Default per-request timeout in seconds for every provider call
    max_workers : int
        Upper bound on concurrent chain scans
    max_positions : int
        Cap on positions in the composite result
    per_chain_token_limit : int
        Cap on tokens kept per chain before merging
    tronscan_api_key : str | None
        Optional TronScan API key sent as ``TRON-PRO-API-KEY``
    derive_tron_from_evm : bool
        Whether to derive a Tron address from the EVM address at all
    solana_rpc_url : str | None
        Solana JSON-RPC endpoint tried before the configured public ones

    """

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(default=10.0, gt=0)
    max_workers: int = Field(default=10, ge=1)
    max_positions: int = Field(default=500, ge=1)
    per_chain_token_limit: int = Field(default=100, ge=1)
    tronscan_api_key: str | None = None
    derive_tron_from_evm: bool = True
    solana_rpc_url: str | None = None

    @classmethod
    def from_env(cls) -> "ScannerConfig":
        """
        Build settings from environment variables.

        Reads ``TRONSCAN_API_KEY``, ``SOLANA_RPC_URL``, ``WALLET_SCANNER_TIMEOUT``
        and ``WALLET_SCANNER_DERIVE_TRON``; anything unset keeps its default.

        """
        values: dict[str, object] = {}

        api_key = os.environ.get("TRONSCAN_API_KEY", "").strip()
        if api_key:
            values["tronscan_api_key"] = api_key

        solana_rpc_url = os.environ.get("SOLANA_RPC_URL", "").strip()
        if solana_rpc_url:
            values["solana_rpc_url"] = solana_rpc_url

        timeout = os.environ.get("WALLET_SCANNER_TIMEOUT", "").strip()
        if timeout:
            values["timeout"] = float(timeout)

        derive_tron = os.environ.get("WALLET_SCANNER_DERIVE_TRON", "").strip().lower()
        if derive_tron:
            values["derive_tron_from_evm"] = derive_tron not in _FALSE_VALUES

        return cls(**values)
