"""
Fixed instruction vocabulary for the token and associated-token-account
programs.

Each InstructionRule names the program family, the jsonParsed instruction
types it covers, the resulting TxKind, the info fields in which the subject
address must appear for the instruction to count as the subject's, and how
to describe it. Instructions outside this table are never decoded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from backend_walletscope.activity.models import TxKind
from backend_walletscope.rpc.spl_layouts import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from backend_walletscope.utils.wallet_utils import short_address

TOKEN_FAMILY = "token"
ATA_FAMILY = "ata"

_PROGRAM_FAMILIES = {
    TOKEN_PROGRAM_ID: TOKEN_FAMILY,
    TOKEN_2022_PROGRAM_ID: TOKEN_FAMILY,
    "spl-token": TOKEN_FAMILY,
    "spl-token-2022": TOKEN_FAMILY,
    ASSOCIATED_TOKEN_PROGRAM_ID: ATA_FAMILY,
    "spl-associated-token-account": ATA_FAMILY,
}


def _amount_text(info: dict[str, Any]) -> str:
    token_amount = info.get("tokenAmount")
    if isinstance(token_amount, dict) and token_amount.get("uiAmountString") is not None:
        return str(token_amount["uiAmountString"])
    if info.get("amount") is not None:
        return str(info["amount"])
    return "N/A"


def _party(value: Any, subject: str) -> str:
    if value == subject:
        return "You"
    return short_address(value if isinstance(value, str) else None)


def _describe_mint(info: dict[str, Any], subject: str) -> str:
    text = f"Minted {_amount_text(info)} tokens To: {_party(info.get('account'), subject)}"
    if info.get("mintAuthority") == subject:
        text += " (As Authority)"
    return text


def _describe_transfer(info: dict[str, Any], subject: str) -> str:
    amount = _amount_text(info)
    # source and destination are sub-accounts; the owning wallet signs as authority
    if subject in (info.get("source"), info.get("authority"), info.get("multisigAuthority")):
        return f"Sent {amount} tokens To {_party(info.get('destination'), subject)}"
    return f"Received {amount} tokens From {_party(info.get('source'), subject)}"


def _describe_create_account(info: dict[str, Any], subject: str) -> str:
    account = info.get("account")
    mint = info.get("mint")
    account_text = short_address(account, tail=4) if account else "Unknown Account"
    mint_text = short_address(mint) if mint else "Unknown Mint"
    text = f"Created token account {account_text} for Mint {mint_text}"
    if info.get("owner") == subject:
        text += " (Owned by You)"
    return text


def _describe_approval(info: dict[str, Any], subject: str) -> str:
    return f"Approved {short_address(info.get('delegate'))} for {_amount_text(info)} tokens (Your account)"


def _describe_create_ata(info: dict[str, Any], subject: str) -> str:
    return f"Created Associated Token Account {short_address(info.get('account'))}"


@dataclass(frozen=True)
class InstructionRule:
    family: str
    types: frozenset[str]
    kind: TxKind
    subject_fields: tuple[str, ...]
    describe: Callable[[dict[str, Any], str], str]

    def involves(self, info: dict[str, Any], subject: str) -> bool:
        return any(info.get(name) == subject for name in self.subject_fields)


INSTRUCTION_TABLE: tuple[InstructionRule, ...] = (
    InstructionRule(
        TOKEN_FAMILY, frozenset({"mintTo", "mintToChecked"}), TxKind.MINT,
        ("account", "mintAuthority"), _describe_mint,
    ),
    InstructionRule(
        TOKEN_FAMILY, frozenset({"transfer", "transferChecked"}), TxKind.TOKEN_TRANSFER,
        ("source", "destination", "authority", "multisigAuthority"), _describe_transfer,
    ),
    InstructionRule(
        TOKEN_FAMILY,
        frozenset({"initializeAccount", "initializeAccount2", "initializeAccount3"}),
        TxKind.CREATE_TOKEN_ACCOUNT,
        ("owner", "payer", "wallet"),
        _describe_create_account,
    ),
    InstructionRule(
        TOKEN_FAMILY, frozenset({"approve", "approveChecked"}), TxKind.APPROVAL,
        ("owner",), _describe_approval,
    ),
    InstructionRule(
        ATA_FAMILY, frozenset({"create", "createIdempotent"}), TxKind.CREATE_ATA,
        ("payer", "wallet"), _describe_create_ata,
    ),
)

_RULES_BY_KEY = {(rule.family, t): rule for rule in INSTRUCTION_TABLE for t in rule.types}


@dataclass(frozen=True)
class Candidate:
    """An instruction from the table that involves the subject."""

    kind: TxKind
    description: str

    @property
    def is_movement(self) -> bool:
        return self.kind in (TxKind.TOKEN_TRANSFER, TxKind.MINT)


def program_family(instruction: dict[str, Any]) -> str | None:
    """Token / ATA family of a jsonParsed instruction, None for any other program."""
    family = _PROGRAM_FAMILIES.get(str(instruction.get("programId") or ""))
    if family is None:
        family = _PROGRAM_FAMILIES.get(str(instruction.get("program") or ""))
    return family


def lookup_rule(family: str, instruction_type: str) -> InstructionRule | None:
    return _RULES_BY_KEY.get((family, instruction_type))


def decode_instruction(instruction: dict[str, Any], subject: str) -> Candidate | None:
    """
    Decode one top-level instruction through the table.

    Returns None for unknown programs and types, unparsed instructions, and
    instructions that do not involve subject.
    """
    family = program_family(instruction)
    if family is None:
        return None
    parsed = instruction.get("parsed")
    if not isinstance(parsed, dict):
        return None
    rule = lookup_rule(family, str(parsed.get("type") or ""))
    if rule is None:
        return None
    info = parsed.get("info")
    if not isinstance(info, dict) or not rule.involves(info, subject):
        return None
    return Candidate(kind=rule.kind, description=rule.describe(info, subject))
