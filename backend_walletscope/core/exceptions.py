"""
Application-level exceptions and ledger error normalization.

Responsibilities:
- Define the ErrorKind taxonomy shared by every component that talks to
  the ledger: RATE_LIMITED, NOT_FOUND, TRANSIENT, MALFORMED.
- Map raw transport failures (httpx errors, HTTP status codes, JSON-RPC
  error members, unexpected payload shapes) onto that taxonomy.
- Provide the uniform {kind, message} error object handed to callers.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

_RATE_LIMIT_PATTERN = re.compile(r"\b429\b|too many requests|rate[ -]?limit", re.IGNORECASE)
_NOT_FOUND_PATTERN = re.compile(r"not found|could not find|invalid param", re.IGNORECASE)

# JSON-RPC error codes
RPC_INVALID_REQUEST = -32600
RPC_PARSE_ERROR = -32700
RPC_INVALID_PARAMS = -32602


class ErrorKind(str, Enum):
    RATE_LIMITED = "RateLimited"
    NOT_FOUND = "NotFound"
    TRANSIENT = "Transient"
    MALFORMED = "Malformed"


@dataclass(frozen=True)
class ErrorInfo:
    """Uniform error object for a failed refresh or a failed item."""

    kind: ErrorKind
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(eq=False)
class LedgerError(Exception):
    """Domain error for any failed ledger call, carrying its ErrorKind."""

    kind: ErrorKind
    message: str
    http_status: int | None = None
    rpc_code: int | None = None
    cause: BaseException | None = None

    def __str__(self) -> str:
        suffix = []
        if self.http_status is not None:
            suffix.append(f"status={self.http_status}")
        if self.rpc_code is not None:
            suffix.append(f"code={self.rpc_code}")
        detail = ", ".join(suffix)
        return f"{self.message} ({detail})" if detail else self.message

    @property
    def rate_limited(self) -> bool:
        return self.kind is ErrorKind.RATE_LIMITED

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(kind=self.kind, message=str(self))


class Superseded(Exception):
    """Raised inside an operation whose subject address is no longer active."""


def _kind_for_status(status: int) -> ErrorKind:
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status == 404:
        return ErrorKind.NOT_FOUND
    return ErrorKind.TRANSIENT


def error_from_rpc_payload(error_obj: Any) -> LedgerError:
    """Map a JSON-RPC 'error' member to a LedgerError."""
    if isinstance(error_obj, dict):
        message = str(error_obj.get("message") or error_obj)
        code = error_obj.get("code")
    else:
        message = str(error_obj)
        code = None
    try:
        code = int(code) if code is not None else None
    except (TypeError, ValueError):
        code = None

    if code == 429 or _RATE_LIMIT_PATTERN.search(message):
        kind = ErrorKind.RATE_LIMITED
    elif code == RPC_INVALID_PARAMS or _NOT_FOUND_PATTERN.search(message):
        kind = ErrorKind.NOT_FOUND
    elif code in (RPC_INVALID_REQUEST, RPC_PARSE_ERROR):
        kind = ErrorKind.MALFORMED
    else:
        kind = ErrorKind.TRANSIENT
    return LedgerError(kind=kind, message=f"Solana RPC error: {message}", rpc_code=code)


def normalize_error(exc: BaseException) -> LedgerError:
    """Return the LedgerError equivalent of any exception raised by a ledger call."""
    if isinstance(exc, LedgerError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return LedgerError(
            kind=_kind_for_status(status),
            message="RPC request returned non-200 status",
            http_status=status,
            cause=exc,
        )

    text = str(exc)
    if _RATE_LIMIT_PATTERN.search(text):
        return LedgerError(kind=ErrorKind.RATE_LIMITED, message=text or "rate limited", cause=exc)

    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return LedgerError(kind=ErrorKind.TRANSIENT, message=text or "RPC request timed out", cause=exc)
    if isinstance(exc, (httpx.TransportError, OSError)):
        return LedgerError(kind=ErrorKind.TRANSIENT, message=text or "RPC request failed", cause=exc)
    if isinstance(exc, (ValueError, KeyError, TypeError, IndexError)):
        return LedgerError(
            kind=ErrorKind.MALFORMED,
            message=f"Unexpected response shape: {text or type(exc).__name__}",
            cause=exc,
        )
    return LedgerError(kind=ErrorKind.TRANSIENT, message=text or type(exc).__name__, cause=exc)
