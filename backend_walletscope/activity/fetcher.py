"""
Throttled detail fetcher.

Reads full transaction bodies for one page of signatures, strictly in
order, with a fixed delay before every request. Failures never abort the
page: each is captured as an inline ErrorInfo on its DetailResult. Rate
limiting is reported once per session through a RateLimitNotifier.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from backend_walletscope.core.exceptions import ErrorInfo, ErrorKind, normalize_error
from backend_walletscope.core.session import SubjectToken
from backend_walletscope.rpc.models import SignatureInfo
from backend_walletscope.rpc.protocol import LedgerRpc
from backend_walletscope.walletscope_logging import get_logger, short_wallet

logger = get_logger(__name__)

DEFAULT_DETAIL_DELAY_SEC = 0.25
MAX_ERROR_MESSAGE_LEN = 80


@dataclass(frozen=True)
class DetailResult:
    """Body of one signature, or the error that prevented reading it."""

    info: SignatureInfo
    body: dict[str, Any] | None = None
    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RateLimitNotifier:
    """
    Coalesces rate-limit occurrences into one notification per session.

    The first occurrence logs a warning and calls on_rate_limited; later
    ones only increment count. reset() re-arms it.
    """

    def __init__(self, on_rate_limited: Callable[[], None] | None = None) -> None:
        self._callback = on_rate_limited
        self.count = 0
        self.notified = False

    def record(self, address: str, signature: str | None = None) -> None:
        self.count += 1
        if self.notified:
            return
        self.notified = True
        logger.warning(
            "activity_rate_limited",
            wallet_id=short_wallet(address),
            signature=signature,
        )
        if self._callback is not None:
            self._callback()

    def reset(self) -> None:
        self.count = 0
        self.notified = False


def _truncate(message: str, limit: int = MAX_ERROR_MESSAGE_LEN) -> str:
    return message if len(message) <= limit else message[:limit]


class DetailFetcher:
    """Sequential, paced getTransaction reads for one page."""

    def __init__(
        self,
        rpc: LedgerRpc,
        *,
        delay_sec: float = DEFAULT_DETAIL_DELAY_SEC,
        notifier: RateLimitNotifier | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._rpc = rpc
        self._delay = max(0.0, delay_sec)
        self.notifier = notifier or RateLimitNotifier()
        self._sleep = sleep

    async def fetch_details(
        self,
        address: str,
        signatures: list[SignatureInfo] | tuple[SignatureInfo, ...],
        token: SubjectToken | None = None,
    ) -> list[DetailResult]:
        results: list[DetailResult] = []
        for info in signatures:
            if self._delay:
                await self._sleep(self._delay)
                if token is not None:
                    token.ensure_current()
            try:
                body = await self._rpc.get_transaction_detail(info.signature)
            except Exception as e:
                if token is not None:
                    token.ensure_current()
                err = normalize_error(e)
                if err.rate_limited:
                    self.notifier.record(address, info.signature)
                else:
                    logger.warning(
                        "activity_detail_fetch_failed",
                        wallet_id=short_wallet(address),
                        signature=info.signature,
                        kind=err.kind.value,
                        error=str(err),
                    )
                results.append(
                    DetailResult(info=info, error=ErrorInfo(kind=err.kind, message=_truncate(str(err))))
                )
                continue
            if token is not None:
                token.ensure_current()
            if body is None:
                results.append(
                    DetailResult(
                        info=info,
                        error=ErrorInfo(kind=ErrorKind.NOT_FOUND, message="Transaction not found"),
                    )
                )
                continue
            results.append(DetailResult(info=info, body=body))
        return results
