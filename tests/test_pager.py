"""
Tests for the cursor pager state machine and page reachability.
"""

from __future__ import annotations

import asyncio

import pytest

from backend_walletscope.activity.pager import CursorPager, PagerError, PagerState
from backend_walletscope.core.exceptions import ErrorKind, LedgerError
from backend_walletscope.rpc.models import SignatureInfo


def _sigs(*names: str) -> list[SignatureInfo]:
    return [SignatureInfo(signature=n, slot=0, err=None, block_time=None) for n in names]


def test_initial_state():
    """Page 0 is always reachable; nothing else is."""
    pager = CursorPager("owner", page_size=3)
    assert pager.state is PagerState.IDLE
    assert pager.can_goto(0)
    assert not pager.can_goto(1)
    assert not pager.can_goto(-1)
    assert pager.cursors == {0: None}
    assert pager.has_more


def test_full_page_records_next_cursor():
    """A full page records the oldest signature as the cursor for the next page."""
    pager = CursorPager("owner", page_size=3)
    assert pager.begin(0) is None
    pager.complete(0, _sigs("a", "b", "c"))
    assert pager.state is PagerState.READY
    assert pager.has_more
    assert pager.can_goto(1)
    assert pager.cursors[1] == "c"
    assert pager.next_index() == 1
    assert pager.previous_index() is None


def test_short_page_truncates_and_stops():
    """After a short page at k, has_more is false and k+1 is unreachable until reset."""
    pager = CursorPager("owner", page_size=2)
    pager.begin(0)
    pager.complete(0, _sigs("a", "b"))
    assert pager.begin(1) == "b"
    pager.complete(1, _sigs("c", "d"))
    assert pager.can_goto(2)

    # going back to page 0 then seeing a short page drops everything after it
    pager.begin(0)
    pager.complete(0, _sigs("a"))
    assert not pager.has_more
    assert not pager.can_goto(1)
    assert not pager.can_goto(2)
    assert pager.next_index() is None

    pager.reset()
    assert pager.can_goto(0)
    assert not pager.can_goto(1)
    assert pager.has_more


def test_empty_pages():
    """Empty page 0 is empty history; empty page n > 0 is the end, not an error."""
    pager = CursorPager("owner", page_size=2)
    pager.begin(0)
    pager.complete(0, [])
    assert pager.is_empty_history
    assert pager.state is PagerState.READY

    pager = CursorPager("owner", page_size=2)
    pager.begin(0)
    pager.complete(0, _sigs("a", "b"))
    pager.begin(1)
    pager.complete(1, [])
    assert pager.state is PagerState.READY
    assert not pager.has_more
    assert not pager.is_empty_history


def test_begin_rejects_unreachable_and_concurrent():
    """Unreachable pages and overlapping fetches raise PagerError."""
    pager = CursorPager("owner", page_size=2)
    with pytest.raises(PagerError):
        pager.begin(3)
    pager.begin(0)
    with pytest.raises(PagerError):
        pager.begin(0)
    with pytest.raises(ValueError):
        pager.complete(1, [])


def test_fail_preserves_last_ready_page():
    """A failed fetch moves to ERROR and keeps the previous page."""
    pager = CursorPager("owner", page_size=2)
    pager.begin(0)
    pager.complete(0, _sigs("a", "b"))
    pager.begin(1)
    err = LedgerError(kind=ErrorKind.TRANSIENT, message="down")
    pager.fail(1, err)
    assert pager.state is PagerState.ERROR
    assert pager.last_error is err
    assert [s.signature for s in pager.current_page] == ["a", "b"]
    assert pager.ready_index == 0
    # retry allowed from ERROR
    assert pager.begin(1) == "b"


def test_abandon_returns_to_last_ready():
    """abandon() drops an in-flight fetch without touching the table."""
    pager = CursorPager("owner", page_size=2)
    pager.begin(0)
    pager.abandon()
    assert pager.state is PagerState.IDLE
    pager.begin(0)
    pager.complete(0, _sigs("a", "b"))
    pager.begin(1)
    pager.abandon()
    assert pager.state is PagerState.READY
    assert pager.current_index == 0
    assert pager.cursors == {0: None, 1: "b"}


def test_fetch_page_end_to_end(fake_rpc, subject):
    """Page size 5: 7 signatures give a full page 0 then a short page 1."""
    fake_rpc.add_history(subject, 7)
    pager = CursorPager(subject, page_size=5)

    page0 = asyncio.run(pager.fetch_page(fake_rpc, 0))
    assert len(page0) == 5
    assert pager.has_more
    assert pager.cursors[1] == "sig004"

    page1 = asyncio.run(pager.fetch_page(fake_rpc, 1))
    assert [s.signature for s in page1] == ["sig005", "sig006"]
    assert not pager.has_more
    assert 2 not in pager.cursors
    assert fake_rpc.calls[-1] == ("list_signatures", (subject, 5, "sig004"))


def test_fetch_page_failure(fake_rpc, subject):
    """A listing failure re-raises the LedgerError and leaves the pager in ERROR."""
    fake_rpc.signature_errors[subject] = LedgerError(kind=ErrorKind.RATE_LIMITED, message="429")
    pager = CursorPager(subject, page_size=5)
    with pytest.raises(LedgerError):
        asyncio.run(pager.fetch_page(fake_rpc, 0))
    assert pager.state is PagerState.ERROR
