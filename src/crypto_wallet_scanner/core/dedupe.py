"""Position deduplication across adapters."""

from crypto_wallet_scanner.core.models import WalletPosition

DedupeKey = tuple[str, str, str, str, str]


def dedupe_key(position: WalletPosition) -> DedupeKey:
    """
    Identity of a position for deduplication.

    Parameters
    ----------
    position : WalletPosition
        Position to key

    Returns
    -------
    DedupeKey
        ``(chain, kind, market or source id, symbol, display name)``

    """
    return (
        position.chain.value,
        position.position_kind.value,
        position.market_id or position.source_id,
        position.symbol,
        position.display_name,
    )


def _weight(position: WalletPosition) -> float:
    return position.value_usd if position.value_usd is not None else position.balance


def dedupe_positions(positions: list[WalletPosition]) -> list[WalletPosition]:
    """
    Collapse positions that describe the same holding.

    When two positions share a key, the one with the larger USD value (or
    balance, when the value is unknown) is kept. The survivor takes the
    slot of the first occurrence, so input order is otherwise preserved.

    Parameters
    ----------
    positions : list[WalletPosition]
        Positions from every scanned chain

    Returns
    -------
    list[WalletPosition]
        Deduplicated positions

    """
    kept: dict[DedupeKey, WalletPosition] = {}

    for position in positions:
        key = dedupe_key(position)
        current = kept.get(key)
        if current is None or _weight(position) > _weight(current):
            kept[key] = position

    return list(kept.values())
