"""Owner-restricted endpoints. The owner check happens in the components."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from scrollpay.api.routes.deps import Caller
from scrollpay.api.schemas import FallbackPriceBody

router = APIRouter(tags=["admin"])


@router.post("/pause")
async def pause(request: Request, caller: Caller) -> JSONResponse:
    ledger = request.app.state.ledger
    await ledger.pause(caller)
    return JSONResponse(content={"paused": ledger.paused})


@router.post("/unpause")
async def unpause(request: Request, caller: Caller) -> JSONResponse:
    ledger = request.app.state.ledger
    await ledger.unpause(caller)
    return JSONResponse(content={"paused": ledger.paused})


@router.post("/fallback-price")
async def update_fallback_price(
    request: Request, body: FallbackPriceBody, caller: Caller
) -> JSONResponse:
    oracle = request.app.state.oracle
    await oracle.update_fallback_price(caller, body.price)
    fallback = oracle.fallback
    return JSONResponse(content={
        "fallback_price": str(fallback.price),
        "fallback_updated_at": fallback.last_update,
    })
