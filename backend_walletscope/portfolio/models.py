"""
Holdings produced by the balance enumerator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from backend_walletscope.utils.amounts import format_amount, format_lamports, to_display_amount


@dataclass(frozen=True)
class Holding:
    """One non-zero token balance in one sub-account. raw is exact base units."""

    token_kind: str
    sub_account: str
    raw: int
    scale: int

    @property
    def display(self) -> str:
        return format_amount(self.raw, self.scale)

    @property
    def ui_amount(self) -> float:
        """Lossy; ranking only."""
        return to_display_amount(self.raw, self.scale)

    def to_dict(self) -> dict[str, Any]:
        return {
            "token_kind": self.token_kind,
            "sub_account": self.sub_account,
            "raw": str(self.raw),
            "scale": self.scale,
            "display": self.display,
        }


@dataclass(frozen=True)
class HoldingsResult:
    """
    Output of one enumeration.

    errors counts per-item failures (undecodable sub-accounts and failed
    token-kind lookups); rate_limited is set when any of those lookups was
    rejected for exceeding the request budget. native_raw is the owner's
    native balance in lamports when it was requested.
    """

    owner: str
    holdings: tuple[Holding, ...] = field(default_factory=tuple)
    errors: int = 0
    rate_limited: bool = False
    native_raw: int | None = None

    @property
    def native_display(self) -> str | None:
        if self.native_raw is None:
            return None
        return format_lamports(self.native_raw)

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "holdings": [h.to_dict() for h in self.holdings],
            "errors": self.errors,
            "rate_limited": self.rate_limited,
            "native_raw": str(self.native_raw) if self.native_raw is not None else None,
            "native_display": self.native_display,
        }
