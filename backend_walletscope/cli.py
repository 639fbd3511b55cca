"""
Command-line entry point.

    walletscope portfolio <ADDRESS>
    walletscope history <ADDRESS> [--pages N]
    walletscope serve [--host H] [--port P]

portfolio and history print JSON to stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from typing import Any

from backend_walletscope.activity.history import ActivityHistory
from backend_walletscope.config.env import mask_rpc_url
from backend_walletscope.config.settings import Settings, get_settings
from backend_walletscope.core.exceptions import LedgerError
from backend_walletscope.portfolio.view import PortfolioView
from backend_walletscope.rpc.client import LedgerRpcClient
from backend_walletscope.rpc.protocol import LedgerRpc
from backend_walletscope.utils.network import detect_network, explorer_url
from backend_walletscope.utils.wallet_utils import validate_address
from backend_walletscope.walletscope_logging import get_logger

logger = get_logger(__name__)


async def run_portfolio(rpc: LedgerRpc, address: str, settings: Settings) -> dict[str, Any]:
    view = PortfolioView(rpc, lookup_delay_sec=settings.token_lookup_delay_sec)
    result = await view.refresh(address)
    return result.to_dict()


async def run_history(rpc: LedgerRpc, address: str, settings: Settings, pages: int = 1) -> dict[str, Any]:
    """Walk up to pages pages from the newest; stops early at the end of history."""
    network = detect_network(settings.rpc_url)
    history = ActivityHistory(
        rpc,
        page_size=settings.history_page_size,
        detail_delay_sec=settings.detail_fetch_delay_sec,
    )
    out: list[dict[str, Any]] = []
    page = await history.load_page(address, 0)
    while True:
        data = page.to_dict()
        for item in data["items"]:
            item["explorer_url"] = explorer_url("tx", item["signature"], network)
        out.append(data)
        if len(out) >= pages or not page.has_more:
            break
        page = await history.next_page()
        if page is None:
            break
    return {"owner": address, "network": network, "pages": out}


async def _run_with_client(command: str, address: str, settings: Settings, pages: int) -> dict[str, Any]:
    async with LedgerRpcClient(
        settings.rpc_url,
        commitment=settings.commitment,
        timeout_sec=settings.rpc_timeout_sec,
        min_request_interval_sec=settings.rpc_min_interval_sec,
    ) as rpc:
        if command == "portfolio":
            return await run_portfolio(rpc, address, settings)
        return await run_history(rpc, address, settings, pages=pages)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="walletscope",
        description="Holdings and classified activity for a Solana address.",
    )
    parser.add_argument("--rpc-url", default=None, help="RPC endpoint (default: SOLANA_RPC_URL or network default)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_portfolio = sub.add_parser("portfolio", help="Token holdings sorted by amount, plus native balance")
    p_portfolio.add_argument("address", help="Owner address (base58)")

    p_history = sub.add_parser("history", help="Classified transaction history, newest first")
    p_history.add_argument("address", help="Subject address (base58)")
    p_history.add_argument("--pages", type=int, default=1, help="Pages to walk (default: 1)")

    p_serve = sub.add_parser("serve", help="Run the read-only HTTP API")
    p_serve.add_argument("--host", default=None, help="Bind host (default: API_HOST)")
    p_serve.add_argument("--port", type=int, default=None, help="Bind port (default: API_PORT)")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValueError as e:
        print("ERROR:", e, file=sys.stderr)
        return 2
    if args.rpc_url:
        settings = replace(settings, rpc_url=args.rpc_url.strip())

    if args.command == "serve":
        import uvicorn

        from backend_walletscope.api_server.server import create_app

        uvicorn.run(
            create_app(settings),
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
        )
        return 0

    try:
        address = validate_address(args.address)
    except ValueError as e:
        print("ERROR:", e, file=sys.stderr)
        return 2
    if args.command == "history" and args.pages < 1:
        print("ERROR: --pages must be >= 1", file=sys.stderr)
        return 2

    logger.info("cli_started", command=args.command, rpc_url=mask_rpc_url(settings.rpc_url))
    try:
        result = asyncio.run(_run_with_client(args.command, address, settings, getattr(args, "pages", 1)))
    except LedgerError as e:
        logger.warning("cli_failed", command=args.command, kind=e.kind.value, error=str(e))
        print(json.dumps({"error": e.to_info().to_dict()}), file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
