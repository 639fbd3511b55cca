"""
Data models for classified activity.

Responsibilities:
- TxKind / TxStatus: the fixed classification vocabulary (string values are
  the labels shown to users).
- ClassifiedTransaction: one signature's dominant effect relative to the
  subject address, or a FETCH_ERROR placeholder when its detail could not
  be read.
- ActivityPage: one history page in descending recency order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from backend_walletscope.core.exceptions import ErrorKind


class TxKind(str, Enum):
    MINT = "Mint"
    TOKEN_TRANSFER = "Token Transfer"
    CREATE_TOKEN_ACCOUNT = "Create Token Acc"
    CREATE_ATA = "Create ATA"
    APPROVAL = "Approval"
    NATIVE_TRANSFER = "SOL Transfer"
    PROGRAM_CALL = "Program Call"
    UNCLASSIFIED = "System/Other"
    FETCH_ERROR = "Fetch Error"


class TxStatus(str, Enum):
    SUCCESS = "Success"
    FAILED = "Failed"


@dataclass(frozen=True)
class ClassifiedTransaction:
    """
    One transaction as seen from the subject address.

    error is set only on FETCH_ERROR placeholders.
    """

    signature: str
    timestamp: int | None
    status: TxStatus
    kind: TxKind
    description: str
    error: ErrorKind | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "signature": self.signature,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "kind": self.kind.value,
            "description": self.description,
            "error": self.error.value if self.error is not None else None,
        }


@dataclass(frozen=True)
class ActivityPage:
    """
    One page of history.

    cursor_before is the signature of the oldest item (None for an empty
    page); has_more is true iff the signature page was full.
    """

    page_index: int
    items: tuple[ClassifiedTransaction, ...] = field(default_factory=tuple)
    cursor_before: str | None = None
    has_more: bool = False

    @property
    def is_empty_history(self) -> bool:
        return self.page_index == 0 and not self.items

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_index": self.page_index,
            "items": [item.to_dict() for item in self.items],
            "cursor_before": self.cursor_before,
            "has_more": self.has_more,
        }
