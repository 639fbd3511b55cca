"""
Instruction classifier: one transaction's dominant effect for a subject.

Signals, in priority order:
1. A token transfer or mint involving the subject (first in instruction order).
2. The subject's native balance delta.
3. Any other table instruction involving the subject (first in order).
4. External programs invoked ("Interacted with: ...").
5. Nothing recognised: "Transaction confirmed" / "Transaction failed".

Status comes from meta.err alone, independent of the classification.
"""

from __future__ import annotations

from typing import Any

from backend_walletscope.activity.instructions import Candidate, decode_instruction
from backend_walletscope.activity.models import ClassifiedTransaction, TxKind, TxStatus
from backend_walletscope.core.exceptions import ErrorKind, LedgerError
from backend_walletscope.rpc.spl_layouts import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from backend_walletscope.utils.amounts import format_lamports
from backend_walletscope.utils.wallet_utils import short_address

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
COMPUTE_BUDGET_PROGRAM_ID = "ComputeBudget111111111111111111111111111111"

# lamports; any change larger than this is a native transfer signal
NATIVE_DELTA_EPSILON = 0

INFRASTRUCTURE_PROGRAMS = frozenset(
    {
        SYSTEM_PROGRAM_ID,
        TOKEN_PROGRAM_ID,
        TOKEN_2022_PROGRAM_ID,
        ASSOCIATED_TOKEN_PROGRAM_ID,
        COMPUTE_BUDGET_PROGRAM_ID,
    }
)


def _account_key(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict) and entry.get("pubkey") is not None:
        return str(entry["pubkey"])
    return None


def native_delta(message: dict[str, Any], meta: dict[str, Any], subject: str) -> int:
    """Subject's post - pre native balance in lamports, 0 when unknown."""
    keys = [_account_key(k) for k in message.get("accountKeys") or []]
    if subject not in keys:
        return 0
    index = keys.index(subject)
    pre = meta.get("preBalances") or []
    post = meta.get("postBalances") or []
    if index >= len(pre) or index >= len(post) or pre[index] is None or post[index] is None:
        return 0
    return int(post[index]) - int(pre[index])


def _describe_native(delta: int) -> str:
    direction = "Received" if delta > 0 else "Sent"
    return f"{direction} {format_lamports(abs(delta))} SOL"


def _external_programs(instructions: list[Any]) -> list[str]:
    seen: list[str] = []
    for ix in instructions:
        if not isinstance(ix, dict):
            continue
        program_id = ix.get("programId")
        if not program_id or program_id in INFRASTRUCTURE_PROGRAMS or program_id in seen:
            continue
        seen.append(str(program_id))
    return seen


def select_candidate(candidates: list[Candidate]) -> Candidate | None:
    """First transfer or mint wins outright; otherwise the first candidate."""
    for candidate in candidates:
        if candidate.is_movement:
            return candidate
    return candidates[0] if candidates else None


def classify(body: dict[str, Any], subject: str, signature: str | None = None) -> ClassifiedTransaction:
    """
    Classify a jsonParsed getTransaction body relative to subject.

    Raises LedgerError(MALFORMED) when the body has no transaction message.
    """
    transaction = body.get("transaction") if isinstance(body, dict) else None
    message = transaction.get("message") if isinstance(transaction, dict) else None
    if not isinstance(message, dict):
        raise LedgerError(kind=ErrorKind.MALFORMED, message="transaction body has no message")
    meta = body.get("meta") if isinstance(body.get("meta"), dict) else {}

    if signature is None:
        signatures = transaction.get("signatures") or []
        signature = str(signatures[0]) if signatures else ""

    status = TxStatus.FAILED if meta.get("err") is not None else TxStatus.SUCCESS
    instructions = [ix for ix in message.get("instructions") or [] if isinstance(ix, dict)]

    candidates = [c for c in (decode_instruction(ix, subject) for ix in instructions) if c is not None]
    best = select_candidate(candidates)
    delta = native_delta(message, meta, subject)

    if best is not None and best.is_movement:
        kind, description = best.kind, best.description
    elif abs(delta) > NATIVE_DELTA_EPSILON:
        kind, description = TxKind.NATIVE_TRANSFER, _describe_native(delta)
    elif best is not None:
        kind, description = best.kind, best.description
    else:
        programs = _external_programs(instructions)
        if programs:
            kind = TxKind.PROGRAM_CALL
            description = "Interacted with: " + ", ".join(short_address(p) for p in programs)
        else:
            kind = TxKind.UNCLASSIFIED
            description = "Transaction confirmed" if status is TxStatus.SUCCESS else "Transaction failed"

    block_time = body.get("blockTime")
    return ClassifiedTransaction(
        signature=signature,
        timestamp=int(block_time) if block_time is not None else None,
        status=status,
        kind=kind,
        description=description,
    )
