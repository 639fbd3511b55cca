"""
Application settings and environment configuration.

Responsibilities:
- Load configuration from environment variables and the project .env file.
- Validate numeric settings and provide defaults for optional ones.
- Expose a typed, immutable Settings object (RPC URL, pacing delays,
  page size, API host/port) for the pipeline, API server and CLI.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from backend_walletscope.config.env import get_solana_rpc_url, load_walletscope_env

DEFAULT_COMMITMENT = "confirmed"
DEFAULT_RPC_TIMEOUT_SEC = 30.0
DEFAULT_RPC_MIN_INTERVAL_SEC = 0.0
DEFAULT_HISTORY_PAGE_SIZE = 5
DEFAULT_DETAIL_FETCH_DELAY_SEC = 0.25
DEFAULT_TOKEN_LOOKUP_DELAY_SEC = 0.06
MAX_SIGNATURES_PER_REQUEST = 1000


@dataclass(frozen=True)
class Settings:
    """Resolved service configuration."""

    rpc_url: str
    commitment: str = DEFAULT_COMMITMENT
    rpc_timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC
    rpc_min_interval_sec: float = DEFAULT_RPC_MIN_INTERVAL_SEC
    history_page_size: int = DEFAULT_HISTORY_PAGE_SIZE
    detail_fetch_delay_sec: float = DEFAULT_DETAIL_FETCH_DELAY_SEC
    token_lookup_delay_sec: float = DEFAULT_TOKEN_LOOKUP_DELAY_SEC
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    def __post_init__(self) -> None:
        if not self.rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if not (1 <= self.history_page_size <= MAX_SIGNATURES_PER_REQUEST):
            raise ValueError("HISTORY_PAGE_SIZE must be between 1 and 1000")
        for name in ("rpc_timeout_sec", "rpc_min_interval_sec", "detail_fetch_delay_sec", "token_lookup_delay_sec"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def get_settings() -> Settings:
    """
    Return the current application settings, read from the environment.

    Raises:
        ValueError: when a numeric variable cannot be parsed or is out of range.
    """
    load_walletscope_env()
    return Settings(
        rpc_url=get_solana_rpc_url(),
        commitment=(os.getenv("SOLANA_COMMITMENT") or DEFAULT_COMMITMENT).strip(),
        rpc_timeout_sec=_env_float("RPC_TIMEOUT_SEC", DEFAULT_RPC_TIMEOUT_SEC),
        rpc_min_interval_sec=_env_float("RPC_MIN_INTERVAL_SEC", DEFAULT_RPC_MIN_INTERVAL_SEC),
        history_page_size=_env_int("HISTORY_PAGE_SIZE", DEFAULT_HISTORY_PAGE_SIZE),
        detail_fetch_delay_sec=_env_float("DETAIL_FETCH_DELAY_SEC", DEFAULT_DETAIL_FETCH_DELAY_SEC),
        token_lookup_delay_sec=_env_float("TOKEN_LOOKUP_DELAY_SEC", DEFAULT_TOKEN_LOOKUP_DELAY_SEC),
        api_host=(os.getenv("API_HOST") or "0.0.0.0").strip(),
        api_port=_env_int("API_PORT", 8000),
    )
