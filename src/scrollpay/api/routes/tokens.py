"""Token endpoints for the simulated environment.

The service runs on in-memory tokens, so clients fund themselves through
the faucet and approve the ledger here before paying. The faucet is open
while the service runs on the manual price feed; otherwise only the
ledger owner may mint.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from scrollpay.api.routes.deps import Caller
from scrollpay.api.schemas import ApproveBody, MintBody
from scrollpay.exceptions import NotOwner
from scrollpay.logging import get_logger
from scrollpay.tokens.memory import InMemoryToken

logger = get_logger(__name__)

router = APIRouter(tags=["tokens"])


def _token(request: Request, symbol: str) -> InMemoryToken | None:
    return request.app.state.tokens.get(symbol.upper())


def _unknown(symbol: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "UnknownToken", "detail": symbol})


@router.get("/tokens")
async def list_tokens(request: Request) -> JSONResponse:
    return JSONResponse(content=[
        {"symbol": token.symbol, "decimals": token.decimals}
        for token in request.app.state.tokens.values()
    ])


@router.get("/tokens/{symbol}/balance/{account}")
async def get_balance(request: Request, symbol: str, account: str) -> JSONResponse:
    token = _token(request, symbol)
    if token is None:
        return _unknown(symbol)
    balance = await token.balance_of(account)
    return JSONResponse(content={"token": token.symbol, "account": account, "balance": str(balance)})


@router.get("/tokens/{symbol}/allowance/{owner}/{spender}")
async def get_allowance(request: Request, symbol: str, owner: str, spender: str) -> JSONResponse:
    token = _token(request, symbol)
    if token is None:
        return _unknown(symbol)
    allowance = await token.allowance(owner, spender)
    return JSONResponse(content={
        "token": token.symbol,
        "owner": owner,
        "spender": spender,
        "allowance": str(allowance),
    })


@router.post("/tokens/{symbol}/approve")
async def approve(request: Request, symbol: str, body: ApproveBody, caller: Caller) -> JSONResponse:
    token = _token(request, symbol)
    if token is None:
        return _unknown(symbol)
    async with request.app.state.host.atomic():
        await token.approve(caller, body.spender, body.amount)
    return JSONResponse(content={
        "token": token.symbol,
        "owner": caller,
        "spender": body.spender,
        "allowance": str(body.amount),
    })


@router.post("/tokens/{symbol}/mint")
async def mint(request: Request, symbol: str, body: MintBody, caller: Caller) -> JSONResponse:
    """Faucet: create tokens for an account."""
    token = _token(request, symbol)
    if token is None:
        return _unknown(symbol)
    owner = request.app.state.ledger.owner
    if not request.app.state.faucet and caller != owner:
        raise NotOwner(f"faucet is closed; only {owner} may mint")
    async with request.app.state.host.atomic():
        token.mint(body.to, body.amount)
    logger.info("faucet_mint", token=token.symbol, to=body.to, amount=body.amount, caller=caller)
    balance = await token.balance_of(body.to)
    return JSONResponse(status_code=201, content={
        "token": token.symbol,
        "account": body.to,
        "balance": str(balance),
    })
