"""
The ledger RPC surface consumed by the pipeline.

Any transport works as long as it provides these coroutines and raises
LedgerError (or anything normalize_error understands) on failure.
"""

from __future__ import annotations

from typing import Any, Protocol

from backend_walletscope.rpc.models import SignatureInfo, TokenAccountEntry
from backend_walletscope.rpc.spl_layouts import MintState


class LedgerRpc(Protocol):
    async def get_balance(self, address: str) -> int:
        """Native balance in base units (lamports)."""
        ...

    async def list_token_accounts(self, owner: str) -> list[TokenAccountEntry]:
        """Every SPL token sub-account owned by owner, in one bulk call."""
        ...

    async def get_token_kind_info(self, mint: str) -> MintState:
        """Unit scale of one token kind. NotFound when the mint does not exist."""
        ...

    async def list_signatures(
        self, address: str, limit: int, before: str | None = None
    ) -> list[SignatureInfo]:
        """Newest-first signatures older than before (or the latest when None)."""
        ...

    async def get_transaction_detail(self, signature: str) -> dict[str, Any] | None:
        """jsonParsed transaction body, or None when the ledger does not know it."""
        ...
