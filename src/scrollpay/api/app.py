"""FastAPI application factory exposing the oracle and ledger operations."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from scrollpay.api.routes import admin, ledger, oracle, tokens
from scrollpay.exceptions import (
    ContractNotPaused,
    ContractPaused,
    DisputeWindowClosed,
    FeedUnavailable,
    InvalidPaymentId,
    InvalidPriceFeed,
    LedgerError,
    NotOwner,
    PaymentAlreadyDisputed,
    ReentrantCall,
    StalePriceData,
    UnauthorizedWithdrawal,
    WithdrawalDelayNotMet,
)
from scrollpay.logging import get_logger

logger = get_logger(__name__)

_STATUS_BY_ERROR: dict[type[LedgerError], int] = {
    NotOwner: 403,
    UnauthorizedWithdrawal: 403,
    InvalidPaymentId: 404,
    ContractPaused: 409,
    ContractNotPaused: 409,
    ReentrantCall: 409,
    WithdrawalDelayNotMet: 409,
    DisputeWindowClosed: 409,
    PaymentAlreadyDisputed: 409,
    InvalidPriceFeed: 503,
    StalePriceData: 503,
    FeedUnavailable: 503,
}


def status_for(error: LedgerError) -> int:
    """HTTP status for a ledger failure; 400 unless mapped more specifically."""
    for error_cls in type(error).__mro__:
        if error_cls in _STATUS_BY_ERROR:
            return _STATUS_BY_ERROR[error_cls]
    return 400


async def _ledger_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, LedgerError)
    status = status_for(exc)
    logger.info(
        "request_rejected",
        path=request.url.path,
        error=type(exc).__name__,
        status=status,
    )
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the API application.

    Route handlers read the host, oracle, ledger, the tokens by symbol,
    the faucet flag and (optionally) the event indexer from app.state; the
    caller of create_app sets them.

    The transaction sender of every mutating route is the X-Caller header,
    taken on trust: anyone who can reach the port can act as the owner or
    any merchant. The server binds to 127.0.0.1 by default; put an
    authenticating proxy in front before exposing it.

    Args:
        lifespan: Optional async context manager for startup/shutdown.
    """
    app = FastAPI(title="ScrollPay Ledger API", lifespan=lifespan)
    app.state.indexer = None
    app.state.tokens = {}
    app.state.faucet = False

    app.add_exception_handler(LedgerError, _ledger_error_handler)

    app.include_router(oracle.router, prefix="/api")
    app.include_router(ledger.router, prefix="/api")
    app.include_router(tokens.router, prefix="/api")
    app.include_router(admin.router, prefix="/admin")

    return app
