"""
Async Solana JSON-RPC client over httpx.

One httpx.AsyncClient per LedgerRpcClient; use as an async context manager.
Every transport failure, non-200 response, undecodable body and JSON-RPC
error member is normalized to LedgerError so callers only ever see the
ErrorKind taxonomy. An optional minimum spacing between any two requests
protects the per-caller request budget.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from typing import Any

import httpx

from backend_walletscope.config.env import mask_rpc_url
from backend_walletscope.core.exceptions import (
    ErrorKind,
    LedgerError,
    error_from_rpc_payload,
    normalize_error,
)
from backend_walletscope.rpc.models import SignatureInfo, TokenAccountEntry
from backend_walletscope.rpc.spl_layouts import TOKEN_PROGRAM_ID, MintState, decode_mint
from backend_walletscope.walletscope_logging import get_logger, short_wallet

logger = get_logger(__name__)

DEFAULT_COMMITMENT = "confirmed"
DEFAULT_TIMEOUT_SEC = 30.0


class _RateLimiter:
    """Minimum interval between acquires."""

    def __init__(self, min_interval_sec: float) -> None:
        self._interval = max(0.0, min_interval_sec)
        self._last_acquire = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        if self._interval <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_acquire
            if elapsed < self._interval:
                await asyncio.sleep(self._interval - elapsed)
            self._last_acquire = time.monotonic()


class LedgerRpcClient:
    """
    JSON-RPC 2.0 client implementing the LedgerRpc protocol.

    Args:
        rpc_url: Solana RPC HTTP endpoint.
        commitment: Commitment level for every read.
        timeout_sec: HTTP timeout for each request.
        min_request_interval_sec: Minimum spacing between any two requests (0 = off).
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        commitment: str = DEFAULT_COMMITMENT,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        min_request_interval_sec: float = 0.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.strip()
        self._commitment = commitment
        self._limiter = _RateLimiter(min_request_interval_sec)
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_sec),
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def __aenter__(self) -> "LedgerRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _build_body(self, method: str, params: list[Any]) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

    async def call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call and return its result; raise LedgerError on any failure."""
        body = self._build_body(method, params)
        await self._limiter.acquire()
        try:
            resp = await self._client.post(self._rpc_url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except Exception as e:
            err = normalize_error(e)
            logger.warning(
                "rpc_request_failed",
                method=method,
                kind=err.kind.value,
                rpc_url=mask_rpc_url(self._rpc_url),
                error=str(err),
            )
            raise err from e

        if not isinstance(data, dict):
            raise LedgerError(kind=ErrorKind.MALFORMED, message=f"{method}: response is not a JSON object")
        if data.get("error") is not None:
            err = error_from_rpc_payload(data["error"])
            logger.warning("rpc_error_response", method=method, kind=err.kind.value, error=str(err))
            raise err
        if "result" not in data:
            raise LedgerError(kind=ErrorKind.MALFORMED, message=f"{method}: response has no result")
        return data["result"]

    @staticmethod
    def _context_value(result: Any, method: str) -> Any:
        """Unwrap {"context": ..., "value": ...} results."""
        if not isinstance(result, dict) or "value" not in result:
            raise LedgerError(kind=ErrorKind.MALFORMED, message=f"{method}: result has no value")
        return result["value"]

    async def get_balance(self, address: str) -> int:
        result = await self.call("getBalance", [address, {"commitment": self._commitment}])
        value = self._context_value(result, "getBalance")
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise normalize_error(e) from e

    async def list_token_accounts(self, owner: str) -> list[TokenAccountEntry]:
        result = await self.call(
            "getTokenAccountsByOwner",
            [
                owner,
                {"programId": TOKEN_PROGRAM_ID},
                {"commitment": self._commitment, "encoding": "base64"},
            ],
        )
        value = self._context_value(result, "getTokenAccountsByOwner")
        if not isinstance(value, list):
            raise LedgerError(kind=ErrorKind.MALFORMED, message="getTokenAccountsByOwner: value is not a list")
        entries = [TokenAccountEntry.from_rpc_item(item) for item in value]
        logger.debug("rpc_token_accounts_listed", wallet_id=short_wallet(owner), count=len(entries))
        return entries

    async def get_token_kind_info(self, mint: str) -> MintState:
        result = await self.call(
            "getAccountInfo",
            [mint, {"commitment": self._commitment, "encoding": "base64"}],
        )
        value = self._context_value(result, "getAccountInfo")
        if value is None:
            raise LedgerError(kind=ErrorKind.NOT_FOUND, message=f"mint account not found: {mint}")
        try:
            return decode_mint(mint, value)
        except ValueError as e:
            raise normalize_error(e) from e

    async def list_signatures(
        self, address: str, limit: int, before: str | None = None
    ) -> list[SignatureInfo]:
        opts: dict[str, Any] = {"limit": limit, "commitment": self._commitment}
        if before is not None:
            opts["before"] = before
        result = await self.call("getSignaturesForAddress", [address, opts])
        if not isinstance(result, list):
            raise LedgerError(kind=ErrorKind.MALFORMED, message="getSignaturesForAddress: result is not a list")
        try:
            return [SignatureInfo.from_rpc_item(item) for item in result]
        except (KeyError, TypeError, ValueError) as e:
            raise normalize_error(e) from e

    async def get_transaction_detail(self, signature: str) -> dict[str, Any] | None:
        result = await self.call(
            "getTransaction",
            [
                signature,
                {
                    "commitment": self._commitment,
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is not None and not isinstance(result, dict):
            raise LedgerError(kind=ErrorKind.MALFORMED, message="getTransaction: result is not an object")
        return result
