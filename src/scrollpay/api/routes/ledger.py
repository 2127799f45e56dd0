"""Payment, withdrawal, dispute and subscription endpoints.

Mutating endpoints act on behalf of the X-Caller header. Amounts in
responses are strings so large integers survive JSON clients.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from scrollpay.api.routes.deps import Caller
from scrollpay.api.schemas import (
    CompleteWithdrawalBody,
    GoodsPaymentRequest,
    PaymentRequest,
    ProcessSubscriptionsBody,
    ResolveDisputeBody,
    SubscriptionRequest,
    WithdrawalRequestBody,
)
from scrollpay.models import EventName

router = APIRouter(tags=["ledger"])

_AMOUNT_FIELDS = {"amount"}


def _serialize(record: Any) -> dict:
    data = asdict(record)
    return {k: str(v) if k in _AMOUNT_FIELDS else v for k, v in data.items()}


@router.post("/payments")
async def process_payment(request: Request, body: PaymentRequest, caller: Caller) -> JSONResponse:
    ledger = request.app.state.ledger
    payment_id = await ledger.process_payment(
        caller, body.merchant, body.amount, use_native=body.use_native, value=body.value
    )
    return JSONResponse(status_code=201, content=_serialize(ledger.get_payment(payment_id)))


@router.post("/goods")
async def pay_for_goods(request: Request, body: GoodsPaymentRequest, caller: Caller) -> JSONResponse:
    ledger = request.app.state.ledger
    payment_id = await ledger.pay_for_goods(caller, body.merchant, body.amount, body.order_ref)
    payload = _serialize(ledger.get_payment(payment_id))
    payload["order_ref"] = body.order_ref
    return JSONResponse(status_code=201, content=payload)


@router.get("/ledger")
async def get_ledger(request: Request) -> JSONResponse:
    """Ledger address (the spender clients approve), owner and pause state."""
    ledger = request.app.state.ledger
    return JSONResponse(content={
        "address": ledger.address,
        "owner": ledger.owner,
        "paused": ledger.paused,
        "withdrawal_delay": ledger.withdrawal_delay,
        "dispute_window": ledger.dispute_window,
    })


@router.get("/payments/{payment_id}")
async def get_payment(request: Request, payment_id: int) -> JSONResponse:
    return JSONResponse(content=_serialize(request.app.state.ledger.get_payment(payment_id)))


@router.get("/merchants/{merchant}/balance")
async def get_balance(request: Request, merchant: str) -> JSONResponse:
    ledger = request.app.state.ledger
    pending = ledger.get_withdrawal(merchant)
    return JSONResponse(content={
        "merchant": merchant,
        "balance": str(ledger.merchant_balance(merchant)),
        "held": str(ledger.held_balance(merchant)),
        "available": str(ledger.available_balance(merchant)),
        "pending_withdrawal": _serialize(pending) if pending is not None else None,
    })


@router.post("/withdrawals/request")
async def request_withdrawal(
    request: Request, body: WithdrawalRequestBody, caller: Caller
) -> JSONResponse:
    pending = await request.app.state.ledger.request_withdrawal(caller, body.amount)
    return JSONResponse(status_code=201, content=_serialize(pending))


@router.post("/withdrawals/complete")
async def complete_withdrawal(
    request: Request, body: CompleteWithdrawalBody, caller: Caller
) -> JSONResponse:
    paid = await request.app.state.ledger.complete_withdrawal(caller, as_native=body.as_native)
    return JSONResponse(content={"merchant": caller, "paid": str(paid), "as_native": body.as_native})


@router.post("/disputes/{payment_id}")
async def raise_dispute(request: Request, payment_id: int, caller: Caller) -> JSONResponse:
    ledger = request.app.state.ledger
    await ledger.raise_dispute(caller, payment_id)
    return JSONResponse(content=_serialize(ledger.get_payment(payment_id)))


@router.post("/disputes/{payment_id}/resolve")
async def resolve_dispute(
    request: Request, payment_id: int, body: ResolveDisputeBody, caller: Caller
) -> JSONResponse:
    ledger = request.app.state.ledger
    await ledger.resolve_dispute(caller, payment_id, body.merchant_favor)
    return JSONResponse(content=_serialize(ledger.get_payment(payment_id)))


@router.post("/subscriptions")
async def create_subscription(
    request: Request, body: SubscriptionRequest, caller: Caller
) -> JSONResponse:
    ledger = request.app.state.ledger
    subscription_id = await ledger.create_subscription(
        caller, body.merchant, body.amount, body.interval
    )
    return JSONResponse(
        status_code=201, content=_serialize(ledger.get_subscription(subscription_id))
    )


@router.post("/subscriptions/process")
async def process_subscriptions(
    request: Request, body: ProcessSubscriptionsBody, caller: Caller
) -> JSONResponse:
    run = await request.app.state.ledger.process_subscriptions(caller, limit=body.limit)
    return JSONResponse(content=asdict(run))


@router.get("/events")
async def get_events(request: Request, name: str | None = None, limit: int = 100) -> JSONResponse:
    """Committed events from the SQLite index when enabled, else from the host log."""
    try:
        event_name = EventName(name) if name else None
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "UnknownEvent", "detail": name})
    indexer = request.app.state.indexer
    if indexer is not None:
        await indexer.sync()
        events = await indexer.get_events(event_name, limit=limit)
    else:
        events = request.app.state.host.events(event_name)[:limit]
    return JSONResponse(content=[
        {
            "seq": e.seq,
            "name": e.name.value,
            "emitter": e.emitter,
            "timestamp": e.timestamp,
            "args": e.args,
        }
        for e in events
    ])
