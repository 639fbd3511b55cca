"""
Data models for ledger RPC results.

Mirrors the Solana RPC response fields the pipeline consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SignatureInfo:
    """
    Normalized transaction signature info from getSignaturesForAddress.

    The unit of work for one history page; signature doubles as the
    pagination cursor.
    """

    signature: str
    slot: int
    err: Any  # None if success; dict/object from RPC if failed
    block_time: int | None  # Unix timestamp; None if not available
    memo: str | None = None
    confirmation_status: str | None = None  # processed | confirmed | finalized

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "SignatureInfo":
        """Build from a single getSignaturesForAddress result item."""
        block_time = item.get("blockTime")
        return cls(
            signature=item["signature"],
            slot=int(item.get("slot") or 0),
            err=item.get("err"),
            block_time=int(block_time) if block_time is not None else None,
            memo=item.get("memo"),
            confirmation_status=item.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class TokenAccountEntry:
    """One raw getTokenAccountsByOwner entry: sub-account address + undecoded account."""

    pubkey: str
    account: dict[str, Any]

    @classmethod
    def from_rpc_item(cls, item: Any) -> "TokenAccountEntry":
        """Rows without an address keep pubkey empty so the enumerator can count them."""
        if not isinstance(item, dict):
            return cls(pubkey="", account={})
        account = item.get("account")
        return cls(pubkey=str(item.get("pubkey") or ""), account=account if isinstance(account, dict) else {})
