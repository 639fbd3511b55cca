"""Wallet address validation utilities."""

from solders.pubkey import Pubkey


def is_valid_wallet(w: str) -> bool:
    """Return True if w is a valid Solana wallet (Pubkey) address."""
    try:
        Pubkey.from_string((w or "").strip())
        return True
    except ValueError:
        return False


def validate_address(address: str) -> str:
    """Return the stripped address; raise ValueError if it is not a valid public key."""
    value = (address or "").strip()
    if not value:
        raise ValueError("address must be non-empty")
    if not is_valid_wallet(value):
        raise ValueError(f"Invalid Solana address: {value!r}")
    return value


def short_address(address: str | None, head: int = 4, tail: int = 0) -> str:
    """'Abcd...' or 'Abcd...wxyz' form used in transaction descriptions."""
    if not address:
        return "Unknown"
    if tail:
        return f"{address[:head]}...{address[-tail:]}"
    return f"{address[:head]}..."
