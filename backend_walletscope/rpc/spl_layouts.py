"""
SPL Token account layouts, decoded locally from getAccountInfo /
getTokenAccountsByOwner payloads.

Token account (165 bytes): mint[0:32], owner[32:64], amount u64 LE [64:72].
Mint (82 bytes): mint_authority COption<Pubkey> [0:36], supply u64 [36:44],
decimals u8 [44], is_initialized [45].

Both base64 (["<data>", "base64"]) and jsonParsed ({"parsed": {"info": ...}})
account data are accepted. Token-2022 accounts carry extensions after the
base layout, so only a minimum length is enforced.
"""

from __future__ import annotations

import base64
import binascii
import struct
from dataclasses import dataclass
from typing import Any

from solders.pubkey import Pubkey

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

TOKEN_ACCOUNT_LEN = 165
MINT_LEN = 82
_AMOUNT_OFFSET = 64
_SUPPLY_OFFSET = 36
_DECIMALS_OFFSET = 44


@dataclass(frozen=True)
class TokenAccountState:
    """Decoded sub-account: which mint it holds, who owns it, raw amount."""

    address: str
    mint: str
    owner: str
    amount: int


@dataclass(frozen=True)
class MintState:
    """Decoded mint: unit scale (decimals) and raw supply."""

    mint: str
    decimals: int
    supply: int


def _account_bytes(account: dict[str, Any]) -> bytes | None:
    """Return raw account bytes for base64-encoded data, None for parsed data."""
    data = account.get("data")
    if isinstance(data, list) and len(data) == 2 and data[1] == "base64":
        try:
            return base64.b64decode(data[0], validate=True)
        except (binascii.Error, TypeError) as e:
            raise ValueError(f"account data is not valid base64: {e}") from e
    if isinstance(data, str):
        try:
            return base64.b64decode(data, validate=True)
        except binascii.Error as e:
            raise ValueError(f"account data is not valid base64: {e}") from e
    return None


def _parsed_info(account: dict[str, Any]) -> dict[str, Any]:
    data = account.get("data")
    if not isinstance(data, dict):
        raise ValueError("account data is neither base64 nor jsonParsed")
    parsed = data.get("parsed")
    info = parsed.get("info") if isinstance(parsed, dict) else None
    if not isinstance(info, dict):
        raise ValueError("jsonParsed account data has no info")
    return info


def _pubkey_at(raw: bytes, offset: int) -> str:
    return str(Pubkey(raw[offset : offset + 32]))


def decode_token_account(address: str, account: dict[str, Any]) -> TokenAccountState:
    """
    Decode one sub-account entry's mint, owner and raw amount.

    Raises ValueError when the data is too short or the parsed shape is wrong.
    """
    if not isinstance(account, dict):
        raise ValueError("account must be a dict")
    raw = _account_bytes(account)
    if raw is not None:
        if len(raw) < TOKEN_ACCOUNT_LEN:
            raise ValueError(f"token account data too short: {len(raw)} bytes")
        (amount,) = struct.unpack_from("<Q", raw, _AMOUNT_OFFSET)
        return TokenAccountState(
            address=address,
            mint=_pubkey_at(raw, 0),
            owner=_pubkey_at(raw, 32),
            amount=amount,
        )

    info = _parsed_info(account)
    token_amount = info.get("tokenAmount") or {}
    mint = info.get("mint")
    if not mint or "amount" not in token_amount:
        raise ValueError("jsonParsed token account missing mint or tokenAmount.amount")
    return TokenAccountState(
        address=address,
        mint=str(mint),
        owner=str(info.get("owner") or ""),
        amount=int(token_amount["amount"]),
    )


def decode_mint(mint: str, account: dict[str, Any]) -> MintState:
    """Decode a mint account's decimals and supply. Raises ValueError on bad data."""
    if not isinstance(account, dict):
        raise ValueError("account must be a dict")
    raw = _account_bytes(account)
    if raw is not None:
        if len(raw) < MINT_LEN:
            raise ValueError(f"mint account data too short: {len(raw)} bytes")
        (supply,) = struct.unpack_from("<Q", raw, _SUPPLY_OFFSET)
        return MintState(mint=mint, decimals=raw[_DECIMALS_OFFSET], supply=supply)

    info = _parsed_info(account)
    if info.get("decimals") is None:
        raise ValueError("jsonParsed mint missing decimals")
    return MintState(mint=mint, decimals=int(info["decimals"]), supply=int(info.get("supply") or 0))


def encode_token_account(mint: str, owner: str, amount: int) -> str:
    """Base64 token-account data for the given fields (fixtures and local tooling)."""
    raw = bytearray(TOKEN_ACCOUNT_LEN)
    raw[0:32] = bytes(Pubkey.from_string(mint))
    raw[32:64] = bytes(Pubkey.from_string(owner))
    struct.pack_into("<Q", raw, _AMOUNT_OFFSET, amount)
    raw[108] = 1  # initialized
    return base64.b64encode(bytes(raw)).decode("ascii")


def encode_mint(decimals: int, supply: int = 0) -> str:
    """Base64 mint data with the given decimals and supply."""
    raw = bytearray(MINT_LEN)
    struct.pack_into("<Q", raw, _SUPPLY_OFFSET, supply)
    raw[_DECIMALS_OFFSET] = decimals
    raw[45] = 1
    return base64.b64encode(bytes(raw)).decode("ascii")
