"""Read-only price endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from scrollpay.api.schemas import ConvertRequest

router = APIRouter(tags=["oracle"])


@router.get("/price")
async def get_price(request: Request) -> JSONResponse:
    """Resolved price (8 decimals) and the fallback state."""
    oracle = request.app.state.oracle
    price = await oracle.resolve_price()
    fallback = oracle.fallback
    return JSONResponse(content={
        "price": str(price),
        "fallback_price": str(fallback.price),
        "fallback_updated_at": fallback.last_update,
    })


@router.get("/price/health")
async def get_price_health(request: Request) -> JSONResponse:
    healthy = await request.app.state.oracle.is_healthy()
    return JSONResponse(content={"healthy": healthy})


@router.post("/convert")
async def convert(request: Request, body: ConvertRequest) -> JSONResponse:
    converted = await request.app.state.oracle.convert(body.amount, body.direction)
    return JSONResponse(content={
        "amount": str(body.amount),
        "direction": body.direction.value,
        "converted": str(converted),
    })
