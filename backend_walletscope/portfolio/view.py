"""
Portfolio view: session-bound refreshes of one owner's holdings.

refresh(address) activates the address on the session, enumerates with the
resulting token and publishes the HoldingsResult. A refresh overtaken by a
newer one (or by a subject change) raises Superseded and publishes nothing;
a failed listing raises and the last published holdings stay in place.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from backend_walletscope.core.exceptions import LedgerError
from backend_walletscope.core.session import SubjectSession
from backend_walletscope.portfolio.enumerator import DEFAULT_LOOKUP_DELAY_SEC, BalanceEnumerator
from backend_walletscope.portfolio.models import HoldingsResult
from backend_walletscope.rpc.protocol import LedgerRpc
from backend_walletscope.walletscope_logging import bind_wallet

SNAPSHOT_NAME = "portfolio"


class PortfolioView:
    """Latest holdings for the session's subject address."""

    def __init__(
        self,
        rpc: LedgerRpc,
        session: SubjectSession | None = None,
        *,
        lookup_delay_sec: float = DEFAULT_LOOKUP_DELAY_SEC,
        include_native: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.session = session or SubjectSession()
        self._enumerator = BalanceEnumerator(rpc, lookup_delay_sec=lookup_delay_sec, sleep=sleep)
        self._include_native = include_native

    @property
    def current(self) -> HoldingsResult | None:
        """Last successfully published holdings for the active subject."""
        return self.session.snapshot(SNAPSHOT_NAME)

    async def refresh(self, address: str) -> HoldingsResult:
        """
        Enumerate and publish holdings for address.

        Raises:
            LedgerError: the native balance read or the account listing failed.
            Superseded: a newer refresh took over while this one was waiting.
        """
        token = self.session.activate(address)
        log = bind_wallet(address, __name__)
        try:
            result = await self._enumerator.enumerate(
                address, include_native=self._include_native, token=token
            )
        except LedgerError as e:
            log.warning(
                "portfolio_refresh_failed",
                kind=e.kind.value,
                kept_previous=self.current is not None,
            )
            raise
        token.ensure_current()
        self.session.publish(token, SNAPSHOT_NAME, result)
        log.info("portfolio_published", holdings=len(result.holdings), errors=result.errors)
        return result
