"""
Activity history service.

Ties the cursor pager, detail fetcher and classifier together for one
browsing session. load_page(address, n) is the single entry point: it
activates the address on the session (superseding any older operation),
lists page n's signatures, reads their bodies under the pacing budget,
classifies each one and publishes the resulting ActivityPage. Per-item
failures become FETCH_ERROR placeholders; a failed signature listing raises
and leaves the previously published page in place.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from backend_walletscope.activity.classifier import classify
from backend_walletscope.activity.fetcher import (
    DEFAULT_DETAIL_DELAY_SEC,
    DetailFetcher,
    DetailResult,
    RateLimitNotifier,
)
from backend_walletscope.activity.models import ActivityPage, ClassifiedTransaction, TxKind, TxStatus
from backend_walletscope.activity.pager import CursorPager, PagerError, PagerState
from backend_walletscope.core.exceptions import ErrorInfo, LedgerError
from backend_walletscope.core.session import SubjectSession
from backend_walletscope.rpc.protocol import LedgerRpc
from backend_walletscope.walletscope_logging import bind_wallet, get_logger, short_wallet

logger = get_logger(__name__)

SNAPSHOT_NAME = "activity"
DEFAULT_PAGE_SIZE = 5


def fetch_error_placeholder(result: DetailResult, error: ErrorInfo) -> ClassifiedTransaction:
    """FETCH_ERROR record for a signature whose body could not be read or classified."""
    return ClassifiedTransaction(
        signature=result.info.signature,
        timestamp=result.info.block_time,
        status=TxStatus.FAILED,
        kind=TxKind.FETCH_ERROR,
        description=f"Error getting details: {error.message}",
        error=error.kind,
    )


class ActivityHistory:
    """
    Paged, classified history for the session's subject address.

    The pager and the rate-limit notifier are reset whenever the session's
    subject changes; cursors from one address are never used for another.
    """

    def __init__(
        self,
        rpc: LedgerRpc,
        session: SubjectSession | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        detail_delay_sec: float = DEFAULT_DETAIL_DELAY_SEC,
        on_rate_limited: Callable[[], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._rpc = rpc
        self.session = session or SubjectSession()
        self.pager = CursorPager(self.session.address or "", page_size)
        self.notifier = RateLimitNotifier(on_rate_limited)
        self._fetcher = DetailFetcher(rpc, delay_sec=detail_delay_sec, notifier=self.notifier, sleep=sleep)
        self.session.add_change_listener(self._on_subject_change)

    def _on_subject_change(self, address: str) -> None:
        self.pager.reset()
        self.pager.owner = address
        self.notifier.reset()

    @property
    def current_page(self) -> ActivityPage | None:
        """Last successfully published page for the active subject."""
        return self.session.snapshot(SNAPSHOT_NAME)

    def _to_items(self, address: str, results: list[DetailResult]) -> list[ClassifiedTransaction]:
        items: list[ClassifiedTransaction] = []
        for result in results:
            if result.error is not None:
                items.append(fetch_error_placeholder(result, result.error))
                continue
            try:
                items.append(classify(result.body or {}, address, signature=result.info.signature))
            except LedgerError as e:
                logger.warning(
                    "activity_classify_failed",
                    wallet_id=short_wallet(address),
                    signature=result.info.signature,
                    error=str(e),
                )
                items.append(fetch_error_placeholder(result, e.to_info()))
        return items

    async def load_page(self, address: str, page_index: int = 0) -> ActivityPage:
        """
        Load and publish page page_index for address.

        Raises:
            PagerError: page_index is not reachable yet.
            LedgerError: the signature listing failed.
            Superseded: a newer load_page call took over while this one was waiting.
        """
        # Rejected before activate so an unreachable request cannot supersede a valid one.
        reachable = page_index == 0 if address != self.session.address else self.pager.can_goto(page_index)
        if not reachable:
            raise PagerError(f"page {page_index} is not reachable")

        token = self.session.activate(address)
        if self.pager.state is PagerState.FETCHING:
            self.pager.abandon()
        log = bind_wallet(address, __name__).bind(page_index=page_index)

        signatures = await self.pager.fetch_page(self._rpc, page_index, token)
        results = await self._fetcher.fetch_details(address, signatures, token)
        items = self._to_items(address, results)

        page = ActivityPage(
            page_index=page_index,
            items=tuple(items),
            cursor_before=signatures[-1].signature if signatures else None,
            has_more=self.pager.has_more,
        )
        token.ensure_current()
        self.session.publish(token, SNAPSHOT_NAME, page)
        log.info(
            "activity_page_loaded",
            items=len(items),
            errors=sum(1 for i in items if i.kind is TxKind.FETCH_ERROR),
            has_more=page.has_more,
        )
        return page

    async def next_page(self) -> ActivityPage | None:
        """Load the page after the last ready one; None when there is none."""
        index = self.pager.next_index()
        if index is None or self.session.address is None:
            return None
        return await self.load_page(self.session.address, index)

    async def previous_page(self) -> ActivityPage | None:
        index = self.pager.previous_index()
        if index is None or self.session.address is None:
            return None
        return await self.load_page(self.session.address, index)
