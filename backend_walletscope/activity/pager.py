"""
Cursor pager for reverse-chronological signature history.

The ledger pages history with a "before" signature bound, so page n can only
be reached once page n-1 has been fetched and was full. The pager keeps the
page index -> cursor table for one subject address and enforces that
reachability rule; reset() discards it when the subject changes.

States: IDLE -> FETCHING(n) -> READY(n) | ERROR. A failed fetch keeps the
last ready page so callers can keep showing it.
"""

from __future__ import annotations

from enum import Enum

from backend_walletscope.core.exceptions import normalize_error
from backend_walletscope.core.session import SubjectToken
from backend_walletscope.rpc.models import SignatureInfo
from backend_walletscope.rpc.protocol import LedgerRpc
from backend_walletscope.walletscope_logging import bind_wallet


class PagerState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    READY = "ready"
    ERROR = "error"


class PagerError(ValueError):
    """Page index not reachable, or a transition not allowed in the current state."""


class CursorPager:
    """Page index -> cursor table plus fetch state for one subject address."""

    def __init__(self, owner: str, page_size: int) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.owner = owner
        self.page_size = page_size
        self._table: dict[int, str | None] = {0: None}
        self.state = PagerState.IDLE
        self.current_index = 0
        self.has_more = True
        self.current_page: tuple[SignatureInfo, ...] | None = None
        self.ready_index: int | None = None
        self.last_error: BaseException | None = None

    @property
    def cursors(self) -> dict[int, str | None]:
        """Copy of the page cursor table."""
        return dict(self._table)

    @property
    def is_empty_history(self) -> bool:
        return self.ready_index == 0 and self.current_page is not None and not self.current_page

    def can_goto(self, n: int) -> bool:
        return n >= 0 and (n == 0 or n in self._table)

    def next_index(self) -> int | None:
        if self.ready_index is None or not self.has_more:
            return None
        return self.ready_index + 1

    def previous_index(self) -> int | None:
        if self.ready_index is None or self.ready_index == 0:
            return None
        return self.ready_index - 1

    def begin(self, n: int) -> str | None:
        """Enter FETCHING(n) and return the cursor for page n."""
        if self.state is PagerState.FETCHING:
            raise PagerError(f"page {self.current_index} fetch already in flight")
        if not self.can_goto(n):
            raise PagerError(f"page {n} is not reachable")
        self.state = PagerState.FETCHING
        self.current_index = n
        return self._table[n]

    def complete(self, n: int, signatures: list[SignatureInfo]) -> None:
        """Record a successful fetch of page n."""
        self._require_fetching(n)
        if len(signatures) == self.page_size:
            self._table[n + 1] = signatures[-1].signature
            self.has_more = True
        else:
            self.has_more = False
            for index in [i for i in self._table if i > n]:
                del self._table[index]
        self.current_page = tuple(signatures)
        self.ready_index = n
        self.last_error = None
        self.state = PagerState.READY

    def fail(self, n: int, error: BaseException) -> None:
        """Record a failed fetch of page n; the last ready page is kept."""
        self._require_fetching(n)
        self.last_error = error
        self.state = PagerState.ERROR

    def abandon(self) -> None:
        """Drop an in-flight fetch whose operation was superseded."""
        if self.state is not PagerState.FETCHING:
            return
        if self.ready_index is not None:
            self.current_index = self.ready_index
            self.state = PagerState.READY
        else:
            self.current_index = 0
            self.state = PagerState.IDLE

    def reset(self) -> None:
        self._table = {0: None}
        self.state = PagerState.IDLE
        self.current_index = 0
        self.has_more = True
        self.current_page = None
        self.ready_index = None
        self.last_error = None

    def _require_fetching(self, n: int) -> None:
        if self.state is not PagerState.FETCHING or self.current_index != n:
            raise PagerError(f"page {n} is not being fetched")

    async def fetch_page(
        self, rpc: LedgerRpc, n: int, token: SubjectToken | None = None
    ) -> tuple[SignatureInfo, ...]:
        """
        Fetch the signatures of page n: begin, list, then complete or fail.

        Raises PagerError for an unreachable page, LedgerError when the
        listing fails, Superseded when token went stale during the call (the
        pager is then left for the newer operation to reclaim).
        """
        cursor = self.begin(n)
        log = bind_wallet(self.owner, __name__).bind(page_index=n)
        try:
            signatures = await rpc.list_signatures(self.owner, limit=self.page_size, before=cursor)
        except Exception as e:
            if token is not None:
                token.ensure_current()
            err = normalize_error(e)
            self.fail(n, err)
            log.warning("activity_page_fetch_failed", kind=err.kind.value, error=str(err))
            raise err from e
        if token is not None:
            token.ensure_current()
        self.complete(n, signatures)
        log.debug("activity_page_fetched", count=len(signatures), has_more=self.has_more)
        return self.current_page or ()
