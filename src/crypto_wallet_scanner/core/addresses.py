"""
Address format helpers.

Covers EVM hex validation, Avalanche P-Chain address normalization, Solana
account validation and the EVM to Tron Base58Check derivation.
"""

import hashlib
import re

import base58

TRON_ADDRESS_PREFIX = b"\x41"

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_P_CHAIN_PREFIXED_RE = re.compile(r"^p-avax1[0-9a-z]+$")
_P_CHAIN_BARE_RE = re.compile(r"^avax1[0-9a-z]+$")
_SOLANA_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")

SOLANA_PUBKEY_LENGTH = 32


def is_evm_address(address: str | None) -> bool:
    """Check for a 0x-prefixed, 40-hex-character address."""
    return bool(address) and bool(_EVM_ADDRESS_RE.match(address.strip()))


def is_solana_address(address: str | None) -> bool:
    """Check for a Base58 string that decodes to a 32-byte Solana public key."""
    raw = (address or "").strip()
    if not _SOLANA_ADDRESS_RE.match(raw):
        return False
    try:
        return len(base58.b58decode(raw)) == SOLANA_PUBKEY_LENGTH
    except ValueError:
        return False


def normalize_platform_address(address: str | None) -> str | None:
    """
    Normalize an Avalanche P-Chain address to its ``P-avax1...`` form.

    Parameters
    ----------
    address : str | None
        ``P-avax1...`` or bare ``avax1...`` address, any case

    Returns
    -------
    str | None
        Canonical ``P-`` prefixed lower-case address, or None when the input
        is empty or not a P-Chain address

    """
    raw = (address or "").strip()
    if not raw:
        return None

    normalized = raw.lower()
    if _P_CHAIN_PREFIXED_RE.match(normalized):
        return f"P-{normalized[2:]}"
    if _P_CHAIN_BARE_RE.match(normalized):
        return f"P-{normalized}"
    return None


def platform_address_candidates(address: str | None) -> list[str]:
    """
    Expand a P-Chain address into the spellings providers accept.

    Some P-Chain endpoints want the ``P-`` prefix and some reject it, so both
    forms are tried, prefixed first.

    """
    if not address:
        return []
    candidates = [address, re.sub(r"^P-", "", address)]
    return list(dict.fromkeys(candidates))


def to_tron_address(evm_address: str) -> str:
    """
    Derive a Tron Base58Check address from a 20-byte EVM address.

    The payload is the Tron version byte ``0x41`` followed by the 20 address
    bytes; the checksum is the first 4 bytes of a double SHA-256 over that
    payload. Only meaningful for Tron accounts derived from the same key as
    the EVM account.

    Parameters
    ----------
    evm_address : str
        Hex address with or without ``0x``

    Returns
    -------
    str
        Base58Check Tron address (``T...``), or an empty string when the input
        is not valid hex

    """
    normalized = (evm_address or "").strip().lower()
    if normalized.startswith("0x"):
        normalized = normalized[2:]

    try:
        payload = TRON_ADDRESS_PREFIX + bytes.fromhex(normalized)
    except ValueError:
        return ""
    if len(payload) == 1:
        return ""

    checksum = hashlib.sha256(hashlib.sha256(payload).digest()).digest()[:4]
    return base58.b58encode(payload + checksum).decode("ascii")


def shorten_address(address: str) -> str:
    """Shorten an address to ``0x1234...abcd`` form for display labels."""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"
