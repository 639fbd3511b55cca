"""
Subject session: supersession of in-flight operations by address.

One SubjectSession per browsing session. activate(address) starts a new
generation; operations carry the SubjectToken they were started with and
call ensure_current() after every suspension point (network round-trip or
pacing delay). A stale token raises Superseded so the operation unwinds
without mutating shared state. Only the latest generation may publish.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from backend_walletscope.core.exceptions import Superseded
from backend_walletscope.walletscope_logging import get_logger, short_wallet

logger = get_logger(__name__)


@dataclass(frozen=True)
class SubjectToken:
    """Handle given to one operation; remembers the generation it belongs to."""

    session: "SubjectSession"
    address: str
    generation: int

    def is_current(self) -> bool:
        return self.session.is_current(self)

    def ensure_current(self) -> None:
        if not self.is_current():
            logger.info(
                "operation_superseded",
                wallet_id=short_wallet(self.address),
                generation=self.generation,
                active_generation=self.session.generation,
            )
            raise Superseded(self.address)


class SubjectSession:
    """
    Tracks the active subject address and the last published snapshots.

    on_change callbacks run when the subject changes (used to reset the
    cursor pager and re-arm rate-limit notifications).
    """

    def __init__(self) -> None:
        self._address: str | None = None
        self._generation = 0
        self._snapshots: dict[str, Any] = {}
        self._on_change: list[Callable[[str], None]] = []

    @property
    def address(self) -> str | None:
        return self._address

    @property
    def generation(self) -> int:
        return self._generation

    def add_change_listener(self, callback: Callable[[str], None]) -> None:
        self._on_change.append(callback)

    def activate(self, address: str) -> SubjectToken:
        """
        Start a new operation for address and return its token.

        Any token issued earlier becomes stale. Switching to a different
        address clears snapshots and notifies change listeners; re-activating
        the same address (manual refresh, page navigation) keeps them.
        """
        self._generation += 1
        if address != self._address:
            previous = self._address
            self._address = address
            self._snapshots.clear()
            for callback in self._on_change:
                callback(address)
            logger.info(
                "subject_changed",
                wallet_id=short_wallet(address),
                previous=short_wallet(previous) if previous else None,
                generation=self._generation,
            )
        return SubjectToken(session=self, address=address, generation=self._generation)

    def is_current(self, token: SubjectToken) -> bool:
        return token.generation == self._generation and token.address == self._address

    def publish(self, token: SubjectToken, name: str, snapshot: Any) -> bool:
        """Store snapshot under name if token is still current. Returns True when stored."""
        if not self.is_current(token):
            return False
        self._snapshots[name] = snapshot
        return True

    def snapshot(self, name: str) -> Any:
        return self._snapshots.get(name)
