"""
Tests for the balance enumerator: decoding, zero filtering, decimal
correction, ranking, per-kind failure accounting and pacing.
"""

from __future__ import annotations

import asyncio

import pytest

from backend_walletscope.core.exceptions import ErrorKind, LedgerError, Superseded
from backend_walletscope.core.session import SubjectSession
from backend_walletscope.portfolio.enumerator import BalanceEnumerator
from backend_walletscope.rpc.models import TokenAccountEntry


def _enumerate(rpc, owner, sleep, **kwargs):
    enumerator = BalanceEnumerator(rpc, lookup_delay_sec=0.06, sleep=sleep)
    return asyncio.run(enumerator.enumerate(owner, **kwargs))


def test_end_to_end_three_sub_accounts(fake_rpc, subject, address_factory, sleep_recorder):
    """Raws [5e9, 0, 250000] at scales [9, 6, 2] give 2 holdings, '2500' first."""
    mints = [address_factory(21), address_factory(22), address_factory(23)]
    for i, (mint, raw, scale) in enumerate(zip(mints, [5_000_000_000, 0, 250_000], [9, 6, 2])):
        fake_rpc.add_token_account(subject, address_factory(31 + i), mint, raw)
        fake_rpc.add_mint(mint, scale)

    result = _enumerate(fake_rpc, subject, sleep_recorder)

    assert [h.display for h in result.holdings] == ["2500", "5"]
    assert [h.token_kind for h in result.holdings] == [mints[2], mints[0]]
    assert result.errors == 0
    assert result.rate_limited is False
    # zero-balance mint never looked up
    assert ("get_token_kind_info", mints[1]) not in fake_rpc.calls
    assert fake_rpc.count("list_token_accounts") == 1


def test_no_zero_holdings_and_sorted(fake_rpc, subject, address_factory, sleep_recorder):
    """No raw == 0 holding is produced; output is descending by display amount."""
    for i, (raw, scale) in enumerate([(1, 0), (0, 3), (10**9, 9), (999, 2), (0, 0), (50, 1)]):
        mint = address_factory(40 + i)
        fake_rpc.add_token_account(subject, address_factory(60 + i), mint, raw)
        fake_rpc.add_mint(mint, scale)

    result = _enumerate(fake_rpc, subject, sleep_recorder)

    assert all(h.raw > 0 for h in result.holdings)
    amounts = [h.ui_amount for h in result.holdings]
    assert amounts == sorted(amounts, reverse=True)
    assert len(result.holdings) == 4


def test_ties_keep_listing_order(fake_rpc, subject, address_factory, sleep_recorder):
    """Equal display amounts stay in ledger listing order."""
    first, second = address_factory(70), address_factory(71)
    fake_rpc.add_token_account(subject, address_factory(72), first, 100)
    fake_rpc.add_token_account(subject, address_factory(73), second, 1000)
    fake_rpc.add_mint(first, 0)
    fake_rpc.add_mint(second, 1)

    result = _enumerate(fake_rpc, subject, sleep_recorder)

    assert [h.token_kind for h in result.holdings] == [first, second]


def test_single_lookup_failure_drops_one_holding(fake_rpc, subject, address_factory, sleep_recorder):
    """One failed kind lookup removes at most one holding and counts exactly one error."""
    good, bad = address_factory(80), address_factory(81)
    fake_rpc.add_token_account(subject, address_factory(82), good, 5)
    fake_rpc.add_token_account(subject, address_factory(83), bad, 7)
    fake_rpc.add_mint(good, 0)
    fake_rpc.mints[bad] = LedgerError(kind=ErrorKind.TRANSIENT, message="boom")

    result = _enumerate(fake_rpc, subject, sleep_recorder)

    assert len(result.holdings) == 1
    assert result.errors == 1
    assert result.rate_limited is False


def test_rate_limited_lookup_sets_flag(fake_rpc, subject, address_factory, sleep_recorder):
    """A RateLimited lookup failure sets rate_limited and the loop continues."""
    limited, fine = address_factory(90), address_factory(91)
    fake_rpc.add_token_account(subject, address_factory(92), limited, 5)
    fake_rpc.add_token_account(subject, address_factory(93), fine, 6)
    fake_rpc.mints[limited] = LedgerError(kind=ErrorKind.RATE_LIMITED, message="429")
    fake_rpc.add_mint(fine, 0)

    result = _enumerate(fake_rpc, subject, sleep_recorder)

    assert result.rate_limited is True
    assert result.errors == 1
    assert [h.token_kind for h in result.holdings] == [fine]


def test_scale_cached_per_kind_and_lookups_paced(fake_rpc, subject, address_factory, sleep_recorder):
    """A kind held in two sub-accounts is looked up once; each lookup is preceded by the delay."""
    mint = address_factory(100)
    fake_rpc.add_token_account(subject, address_factory(101), mint, 5)
    fake_rpc.add_token_account(subject, address_factory(102), mint, 6)
    fake_rpc.add_mint(mint, 0)

    result = _enumerate(fake_rpc, subject, sleep_recorder)

    assert len(result.holdings) == 2
    assert fake_rpc.count("get_token_kind_info") == 1
    assert sleep_recorder.delays == [0.06]


def test_undecodable_sub_account_counts_error(fake_rpc, subject, address_factory, sleep_recorder):
    """An entry whose data cannot be decoded is skipped and counted."""
    mint = address_factory(110)
    fake_rpc.add_token_account(subject, address_factory(111), mint, 5)
    fake_rpc.add_mint(mint, 0)
    fake_rpc.token_accounts[subject].append(TokenAccountEntry(pubkey="junk", account={"data": ["AAAA", "base64"]}))

    result = _enumerate(fake_rpc, subject, sleep_recorder)

    assert len(result.holdings) == 1
    assert result.errors == 1


def test_unaddressed_row_counts_error(fake_rpc, subject, address_factory, sleep_recorder):
    """A listing row without a sub-account address is counted, not silently dropped."""
    mint = address_factory(112)
    fake_rpc.add_token_account(subject, address_factory(113), mint, 5)
    fake_rpc.add_mint(mint, 0)
    fake_rpc.token_accounts[subject].append(TokenAccountEntry.from_rpc_item({"account": {"data": ["", "base64"]}}))
    fake_rpc.token_accounts[subject].append(TokenAccountEntry.from_rpc_item("not-a-row"))

    result = _enumerate(fake_rpc, subject, sleep_recorder)

    assert len(result.holdings) == 1
    assert result.errors == 2


def test_listing_failure_fails_whole_operation(fake_rpc, subject, sleep_recorder):
    """A failed bulk listing raises the normalized LedgerError."""
    fake_rpc.token_accounts[subject] = LedgerError(kind=ErrorKind.RATE_LIMITED, message="429")
    with pytest.raises(LedgerError) as exc_info:
        _enumerate(fake_rpc, subject, sleep_recorder)
    assert exc_info.value.kind is ErrorKind.RATE_LIMITED


def test_native_balance_included(fake_rpc, subject, sleep_recorder):
    """include_native reads the native balance first and reports it exactly."""
    fake_rpc.balances[subject] = 2_500_000_000
    result = _enumerate(fake_rpc, subject, sleep_recorder, include_native=True)
    assert result.native_raw == 2_500_000_000
    assert result.native_display == "2.5"
    assert fake_rpc.calls[0] == ("get_balance", subject)


def test_superseded_enumeration_does_not_return(fake_rpc, subject, other, address_factory):
    """Changing the subject during a paced lookup unwinds the old enumeration."""
    mint = address_factory(120)
    fake_rpc.add_token_account(subject, address_factory(121), mint, 5)
    fake_rpc.add_mint(mint, 0)
    session = SubjectSession()
    token = session.activate(subject)

    async def switching_sleep(delay: float) -> None:
        session.activate(other)

    enumerator = BalanceEnumerator(fake_rpc, lookup_delay_sec=0.06, sleep=switching_sleep)
    with pytest.raises(Superseded):
        asyncio.run(enumerator.enumerate(subject, token=token))
    assert fake_rpc.count("get_token_kind_info") == 0
