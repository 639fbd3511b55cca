"""
Pytest fixtures for WalletScope tests: an in-memory LedgerRpc fake, valid
addresses, and builders for jsonParsed transaction bodies.
"""

from __future__ import annotations

from typing import Any

import pytest
from solders.pubkey import Pubkey

from backend_walletscope.core.exceptions import ErrorKind, LedgerError
from backend_walletscope.rpc.models import SignatureInfo, TokenAccountEntry
from backend_walletscope.rpc.spl_layouts import MintState, encode_token_account


def make_address(n: int) -> str:
    """Deterministic valid base58 address; n in 1..255."""
    return str(Pubkey(bytes([n]) * 32))


class FakeLedgerRpc:
    """
    In-memory LedgerRpc. Values that are exceptions are raised instead of
    returned. Every call is appended to calls as (method, arg).
    """

    def __init__(self) -> None:
        self.balances: dict[str, Any] = {}
        self.token_accounts: dict[str, Any] = {}
        self.mints: dict[str, Any] = {}
        self.history: dict[str, list[SignatureInfo]] = {}
        self.signature_errors: dict[str, BaseException] = {}
        self.details: dict[str, Any] = {}
        self.calls: list[tuple[str, Any]] = []

    @staticmethod
    def _value(value: Any) -> Any:
        if isinstance(value, BaseException):
            raise value
        return value

    async def get_balance(self, address: str) -> int:
        self.calls.append(("get_balance", address))
        return self._value(self.balances.get(address, 0))

    async def list_token_accounts(self, owner: str) -> list[TokenAccountEntry]:
        self.calls.append(("list_token_accounts", owner))
        return list(self._value(self.token_accounts.get(owner, [])))

    async def get_token_kind_info(self, mint: str) -> MintState:
        self.calls.append(("get_token_kind_info", mint))
        if mint not in self.mints:
            raise LedgerError(kind=ErrorKind.NOT_FOUND, message=f"mint account not found: {mint}")
        return self._value(self.mints[mint])

    async def list_signatures(
        self, address: str, limit: int, before: str | None = None
    ) -> list[SignatureInfo]:
        self.calls.append(("list_signatures", (address, limit, before)))
        if address in self.signature_errors:
            raise self.signature_errors[address]
        rows = self.history.get(address, [])
        start = 0
        if before is not None:
            names = [r.signature for r in rows]
            start = names.index(before) + 1
        return rows[start : start + limit]

    async def get_transaction_detail(self, signature: str) -> dict[str, Any] | None:
        self.calls.append(("get_transaction_detail", signature))
        return self._value(self.details.get(signature))

    def add_token_account(self, owner: str, sub_account: str, mint: str, amount: int) -> None:
        entry = TokenAccountEntry(
            pubkey=sub_account,
            account={"data": [encode_token_account(mint, owner, amount), "base64"]},
        )
        self.token_accounts.setdefault(owner, []).append(entry)

    def add_mint(self, mint: str, decimals: int) -> None:
        self.mints[mint] = MintState(mint=mint, decimals=decimals, supply=0)

    def add_history(self, address: str, count: int, prefix: str = "sig") -> list[SignatureInfo]:
        """count signatures, newest first, block times descending."""
        rows = [
            SignatureInfo(signature=f"{prefix}{i:03d}", slot=1000 - i, err=None, block_time=1_700_000_000 - i)
            for i in range(count)
        ]
        self.history[address] = rows
        return rows

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)


def build_tx_body(
    account_keys: list[str],
    instructions: list[dict[str, Any]] | None = None,
    pre_balances: list[int] | None = None,
    post_balances: list[int] | None = None,
    err: Any = None,
    block_time: int | None = 1_700_000_000,
    signature: str = "sig000",
) -> dict[str, Any]:
    """Minimal jsonParsed getTransaction result."""
    n = len(account_keys)
    return {
        "blockTime": block_time,
        "slot": 1,
        "meta": {
            "err": err,
            "fee": 5000,
            "preBalances": pre_balances if pre_balances is not None else [0] * n,
            "postBalances": post_balances if post_balances is not None else [0] * n,
        },
        "transaction": {
            "signatures": [signature],
            "message": {
                "accountKeys": [{"pubkey": k, "signer": i == 0, "writable": True} for i, k in enumerate(account_keys)],
                "instructions": instructions or [],
            },
        },
    }


def token_ix(ix_type: str, info: dict[str, Any]) -> dict[str, Any]:
    return {
        "program": "spl-token",
        "programId": "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
        "parsed": {"type": ix_type, "info": info},
    }


def ata_ix(ix_type: str, info: dict[str, Any]) -> dict[str, Any]:
    return {
        "program": "spl-associated-token-account",
        "programId": "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL",
        "parsed": {"type": ix_type, "info": info},
    }


@pytest.fixture
def fake_rpc() -> FakeLedgerRpc:
    return FakeLedgerRpc()


@pytest.fixture
def subject() -> str:
    return make_address(7)


@pytest.fixture
def other() -> str:
    return make_address(9)


@pytest.fixture
def tx_builders():
    """(build_tx_body, token_ix, ata_ix) for classifier tests."""
    return build_tx_body, token_ix, ata_ix


@pytest.fixture
def address_factory():
    return make_address


@pytest.fixture
def sleep_recorder():
    """Async sleep that records requested delays without waiting."""
    delays: list[float] = []

    async def _sleep(delay: float) -> None:
        delays.append(delay)

    _sleep.delays = delays  # type: ignore[attr-defined]
    return _sleep


@pytest.fixture
def api_settings():
    from backend_walletscope.config.settings import Settings

    return Settings(
        rpc_url="https://api.devnet.solana.com",
        history_page_size=5,
        detail_fetch_delay_sec=0,
        token_lookup_delay_sec=0,
    )


@pytest.fixture
def client(fake_rpc, api_settings):
    """FastAPI TestClient over the fake RPC. Entered as a context so lifespan runs."""
    from fastapi.testclient import TestClient

    from backend_walletscope.api_server.server import create_app

    with TestClient(create_app(api_settings, rpc=fake_rpc)) as test_client:
        yield test_client
