"""
FastAPI server: read-only API over the ledger aggregation pipeline.

Exposes GET /portfolio/{address} (ranked token holdings plus native balance)
and GET /history/{address}?page=N (classified activity). Each address gets
its own ActivityHistory and PortfolioView so page cursors survive across
requests; a page is only reachable after the previous one was fetched full. Config via env
(see backend_walletscope.config.settings).
"""

from __future__ import annotations

from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Any, Callable, Generic, TypeVar

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_walletscope.activity.history import ActivityHistory
from backend_walletscope.activity.pager import PagerError
from backend_walletscope.config.settings import Settings, get_settings
from backend_walletscope.core.exceptions import ErrorKind, LedgerError, Superseded
from backend_walletscope.portfolio.view import PortfolioView
from backend_walletscope.rpc.client import LedgerRpcClient
from backend_walletscope.rpc.protocol import LedgerRpc
from backend_walletscope.utils.network import detect_network, explorer_url
from backend_walletscope.utils.wallet_utils import validate_address
from backend_walletscope.walletscope_logging import get_logger, short_wallet

logger = get_logger(__name__)

MAX_TRACKED_ADDRESSES = 256

V = TypeVar("V")

_STATUS_FOR_KIND = {
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.NOT_FOUND: 404,
}


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------

class HoldingModel(BaseModel):
    token_kind: str = Field(..., description="Mint address (base58)")
    sub_account: str = Field(..., description="Token account holding the balance")
    raw: str = Field(..., description="Exact balance in base units, as a decimal string")
    scale: int = Field(..., ge=0, description="Token decimals")
    display: str = Field(..., description="Decimal-corrected balance")
    explorer_url: str


class PortfolioResponse(BaseModel):
    """GET /portfolio/{address} response: ranked holdings and partial-failure counters."""

    owner: str
    network: str
    native_raw: str | None = None
    native_display: str | None = None
    holdings: list[HoldingModel] = Field(default_factory=list)
    errors: int = Field(0, ge=0, description="Sub-accounts or token kinds that could not be read")
    rate_limited: bool = False


class TransactionModel(BaseModel):
    signature: str
    timestamp: int | None = None
    status: str
    kind: str
    description: str
    error: str | None = None
    explorer_url: str


class HistoryResponse(BaseModel):
    """GET /history/{address} response: one classified page, newest first."""

    owner: str
    network: str
    page_index: int
    items: list[TransactionModel] = Field(default_factory=list)
    has_more: bool
    cursor_before: str | None = None
    empty_history: bool = False


# -----------------------------------------------------------------------------
# Per-address view registry
# -----------------------------------------------------------------------------

class AddressRegistry(Generic[V]):
    """
    One view (ActivityHistory or PortfolioView) per address, least recently
    used evicted first. Each view owns its session, so requests for one
    address only supersede each other.
    """

    def __init__(self, factory: Callable[[], V], max_entries: int = MAX_TRACKED_ADDRESSES) -> None:
        self._factory = factory
        self._max = max_entries
        self._views: OrderedDict[str, V] = OrderedDict()

    def get(self, address: str) -> V:
        view = self._views.get(address)
        if view is None:
            view = self._factory()
            self._views[address] = view
            if len(self._views) > self._max:
                self._views.popitem(last=False)
        else:
            self._views.move_to_end(address)
        return view

    def __len__(self) -> int:
        return len(self._views)


def ledger_error_status(exc: LedgerError) -> int:
    return _STATUS_FOR_KIND.get(exc.kind, 502)


def _address_or_400(address: str) -> str:
    try:
        return validate_address(address)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid Solana wallet address")


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------

def create_app(settings: Settings | None = None, rpc: LedgerRpc | None = None) -> FastAPI:
    """
    Build the API app. When rpc is None a LedgerRpcClient is opened on
    startup and closed on shutdown.
    """
    settings = settings or get_settings()
    network = detect_network(settings.rpc_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client: LedgerRpcClient | None = None
        ledger = rpc
        if ledger is None:
            client = LedgerRpcClient(
                settings.rpc_url,
                commitment=settings.commitment,
                timeout_sec=settings.rpc_timeout_sec,
                min_request_interval_sec=settings.rpc_min_interval_sec,
            )
            ledger = client
        app.state.rpc = ledger
        app.state.histories = AddressRegistry(
            lambda: ActivityHistory(
                ledger,
                page_size=settings.history_page_size,
                detail_delay_sec=settings.detail_fetch_delay_sec,
            )
        )
        app.state.portfolios = AddressRegistry(
            lambda: PortfolioView(ledger, lookup_delay_sec=settings.token_lookup_delay_sec)
        )
        logger.info("api_started", network=network, page_size=settings.history_page_size)
        yield
        if client is not None:
            await client.aclose()
        logger.info("api_stopped")

    app = FastAPI(
        title="WalletScope API",
        description="Read-only holdings and classified activity for Solana addresses.",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        """Liveness probe: API is up."""
        return {"status": "ok", "network": network}

    @app.get("/portfolio/{address}", response_model=PortfolioResponse)
    async def get_portfolio(address: str, request: Request) -> PortfolioResponse:
        """
        Token holdings sorted by display amount, with the native balance.

        Per-token lookup failures are reported in errors / rate_limited; a
        failed account listing is a 429/404/502, and a refresh overtaken by a
        newer one for the same address is a 409.
        """
        address = _address_or_400(address)
        view: PortfolioView = request.app.state.portfolios.get(address)
        try:
            result = await view.refresh(address)
        except Superseded as e:
            raise HTTPException(status_code=409, detail="Superseded by a newer request") from e
        except LedgerError as e:
            logger.warning("api_portfolio_failed", wallet_id=short_wallet(address), kind=e.kind.value, error=str(e))
            raise

        return PortfolioResponse(
            owner=address,
            network=network,
            native_raw=str(result.native_raw) if result.native_raw is not None else None,
            native_display=result.native_display,
            holdings=[
                HoldingModel(
                    token_kind=h.token_kind,
                    sub_account=h.sub_account,
                    raw=str(h.raw),
                    scale=h.scale,
                    display=h.display,
                    explorer_url=explorer_url("address", h.token_kind, network),
                )
                for h in result.holdings
            ],
            errors=result.errors,
            rate_limited=result.rate_limited,
        )

    @app.get("/history/{address}", response_model=HistoryResponse)
    async def get_history(
        address: str,
        request: Request,
        page: int = Query(0, ge=0, description="0-based page index"),
    ) -> HistoryResponse:
        """
        One page of classified history, newest first.

        Page N is reachable only after page N-1 was loaded and full (409 otherwise).
        """
        address = _address_or_400(address)
        history: ActivityHistory = request.app.state.histories.get(address)
        try:
            result = await history.load_page(address, page)
        except PagerError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        except Superseded as e:
            raise HTTPException(status_code=409, detail="Superseded by a newer request") from e
        except LedgerError as e:
            logger.warning("api_history_failed", wallet_id=short_wallet(address), page_index=page, error=str(e))
            raise

        return HistoryResponse(
            owner=address,
            network=network,
            page_index=result.page_index,
            items=[
                TransactionModel(
                    signature=tx.signature,
                    timestamp=tx.timestamp,
                    status=tx.status.value,
                    kind=tx.kind.value,
                    description=tx.description,
                    error=tx.error.value if tx.error is not None else None,
                    explorer_url=explorer_url("tx", tx.signature, network),
                )
                for tx in result.items
            ],
            has_more=result.has_more,
            cursor_before=result.cursor_before,
            empty_history=result.is_empty_history,
        )

    @app.exception_handler(HTTPException)
    def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
        """Consistent JSON error response for HTTPException."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(LedgerError)
    def ledger_error_handler(request: Any, exc: LedgerError) -> JSONResponse:
        """Ledger failures as {kind, message} with 429 / 404 / 502."""
        return JSONResponse(status_code=ledger_error_status(exc), content=exc.to_info().to_dict())

    return app
