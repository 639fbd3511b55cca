"""
Balance enumerator: token holdings for one owner.

Flow:
- One bulk getTokenAccountsByOwner call lists every sub-account.
- Each entry is decoded locally (mint, raw amount); zero balances are skipped;
  entries without an address or with undecodable data are counted as errors.
- Each distinct mint's unit scale is looked up once, paced by a fixed delay.
- Lookup failures are counted and skipped; the enumeration continues.
- Holdings are ranked by display amount, descending, stable on ties.

A failure of the bulk listing (or of the native balance read) fails the
whole enumeration with the normalized LedgerError.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from backend_walletscope.core.exceptions import ErrorKind, normalize_error
from backend_walletscope.core.session import SubjectToken
from backend_walletscope.portfolio.models import Holding, HoldingsResult
from backend_walletscope.rpc.protocol import LedgerRpc
from backend_walletscope.rpc.spl_layouts import decode_token_account
from backend_walletscope.walletscope_logging import bind_wallet

DEFAULT_LOOKUP_DELAY_SEC = 0.06


class BalanceEnumerator:
    """
    Enumerates and decimal-corrects token balances across sub-accounts.

    Args:
        rpc: Ledger RPC implementation.
        lookup_delay_sec: Delay awaited before every token-kind lookup.
        sleep: Awaitable sleep (injectable for tests).
    """

    def __init__(
        self,
        rpc: LedgerRpc,
        *,
        lookup_delay_sec: float = DEFAULT_LOOKUP_DELAY_SEC,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._rpc = rpc
        self._delay = max(0.0, lookup_delay_sec)
        self._sleep = sleep

    async def enumerate(
        self,
        owner: str,
        *,
        include_native: bool = False,
        token: SubjectToken | None = None,
    ) -> HoldingsResult:
        """
        Return ranked holdings for owner.

        When token is given it is checked after every suspension point and a
        stale token raises Superseded before anything is returned.
        """
        log = bind_wallet(owner, __name__)

        native_raw: int | None = None
        if include_native:
            try:
                native_raw = await self._rpc.get_balance(owner)
            except Exception as e:
                raise normalize_error(e) from e
            _checkpoint(token)

        try:
            entries = await self._rpc.list_token_accounts(owner)
        except Exception as e:
            err = normalize_error(e)
            log.warning("portfolio_listing_failed", kind=err.kind.value, error=str(err))
            raise err from e
        _checkpoint(token)

        errors = 0
        rate_limited = False
        scales: dict[str, int] = {}
        failed_kinds: set[str] = set()
        holdings: list[Holding] = []

        for entry in entries:
            if not entry.pubkey:
                errors += 1
                log.warning("portfolio_sub_account_unaddressed", kind=ErrorKind.MALFORMED.value)
                continue
            try:
                state = decode_token_account(entry.pubkey, entry.account)
            except ValueError as e:
                errors += 1
                log.warning(
                    "portfolio_sub_account_undecodable",
                    sub_account=entry.pubkey,
                    kind=ErrorKind.MALFORMED.value,
                    error=str(e),
                )
                continue
            if state.amount == 0:
                continue

            if state.mint in failed_kinds:
                errors += 1
                continue
            scale = scales.get(state.mint)
            if scale is None:
                if self._delay:
                    await self._sleep(self._delay)
                    _checkpoint(token)
                try:
                    info = await self._rpc.get_token_kind_info(state.mint)
                except Exception as e:
                    _checkpoint(token)
                    err = normalize_error(e)
                    errors += 1
                    rate_limited = rate_limited or err.rate_limited
                    failed_kinds.add(state.mint)
                    log.warning(
                        "portfolio_token_kind_lookup_failed",
                        mint=state.mint,
                        kind=err.kind.value,
                        error=str(err),
                    )
                    continue
                _checkpoint(token)
                scale = info.decimals
                scales[state.mint] = scale

            holdings.append(
                Holding(token_kind=state.mint, sub_account=state.address, raw=state.amount, scale=scale)
            )

        holdings.sort(key=lambda h: h.ui_amount, reverse=True)
        log.info(
            "portfolio_enumerated",
            sub_accounts=len(entries),
            holdings=len(holdings),
            errors=errors,
            rate_limited=rate_limited,
        )
        return HoldingsResult(
            owner=owner,
            holdings=tuple(holdings),
            errors=errors,
            rate_limited=rate_limited,
            native_raw=native_raw,
        )


def _checkpoint(token: SubjectToken | None) -> None:
    if token is not None:
        token.ensure_current()
