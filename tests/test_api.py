"""Tests for the HTTP API.

Components are attached to app.state directly; the lifespan (background
loops, signal handlers) is not run.
"""

from collections.abc import AsyncIterator, Awaitable, Callable

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from scrollpay.api.app import create_app, status_for
from scrollpay.exceptions import (
    InsufficientBalance,
    InvalidPaymentId,
    NotOwner,
    StalePriceData,
    TransferFailed,
)
from scrollpay.host.chain import Host
from scrollpay.host.clock import ManualClock
from scrollpay.ledger.core import PaymentLedger
from scrollpay.oracle.manual_feed import ManualPriceFeed
from scrollpay.oracle.price_oracle import PriceOracle
from scrollpay.tokens.memory import InMemoryToken
from scrollpay.units import ONE_ETHER, ONE_USDC

MERCHANT = "0x000000000000000000000000000000000000beef"
CLIENT = "0x00000000000000000000000000000000000a11ce"
STRANGER = "0x0000000000000000000000000000000000000bad"

Fund = Callable[..., Awaitable[None]]


@pytest.fixture
def app(
    host: Host,
    oracle: PriceOracle,
    ledger: PaymentLedger,
    stable: InMemoryToken,
    native: InMemoryToken,
) -> FastAPI:
    app = create_app()
    app.state.host = host
    app.state.oracle = oracle
    app.state.ledger = ledger
    app.state.tokens = {"USDC": stable, "WETH": native}
    app.state.faucet = True
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def test_status_mapping() -> None:
    assert status_for(NotOwner("x")) == 403
    assert status_for(InvalidPaymentId("x")) == 404
    assert status_for(StalePriceData("x")) == 503
    assert status_for(InsufficientBalance("x")) == 400
    assert status_for(TransferFailed("x")) == 400


@pytest.mark.asyncio
async def test_get_price(client: httpx.AsyncClient) -> None:
    response = await client.get("/api/price")

    assert response.status_code == 200
    assert response.json() == {
        "price": str(2000 * 10**8),
        "fallback_price": "0",
        "fallback_updated_at": 0,
    }


@pytest.mark.asyncio
async def test_stale_price_is_service_unavailable(
    client: httpx.AsyncClient, clock: ManualClock
) -> None:
    clock.advance(3601)

    response = await client.get("/api/price")

    assert response.status_code == 503
    assert response.json()["error"] == "StalePriceData"

    health = await client.get("/api/price/health")
    assert health.json() == {"healthy": False}


@pytest.mark.asyncio
async def test_convert(client: httpx.AsyncClient, feed: ManualPriceFeed) -> None:
    response = await client.post(
        "/api/convert", json={"amount": ONE_ETHER, "direction": "eth_to_usdc"}
    )

    assert response.status_code == 200
    assert response.json()["converted"] == str(2000 * ONE_USDC)

    feed.fail()
    zero = await client.post("/api/convert", json={"amount": 0, "direction": "usdc_to_eth"})
    assert zero.json()["converted"] == "0"


@pytest.mark.asyncio
async def test_payment_flow(client: httpx.AsyncClient, fund: Fund) -> None:
    await fund(CLIENT, 100 * ONE_USDC)

    created = await client.post(
        "/api/payments",
        json={"merchant": MERCHANT, "amount": 40 * ONE_USDC},
        headers={"X-Caller": CLIENT},
    )
    assert created.status_code == 201
    payment = created.json()
    assert payment["id"] == 0
    assert payment["amount"] == str(40 * ONE_USDC)
    assert payment["client"] == CLIENT

    fetched = await client.get("/api/payments/0")
    assert fetched.json() == payment

    balance = await client.get(f"/api/merchants/{MERCHANT}/balance")
    assert balance.json() == {
        "merchant": MERCHANT,
        "balance": str(40 * ONE_USDC),
        "held": "0",
        "available": str(40 * ONE_USDC),
        "pending_withdrawal": None,
    }

    events = await client.get("/api/events", params={"name": "PaymentProcessed"})
    assert [e["args"]["payment_id"] for e in events.json()] == [0]


@pytest.mark.asyncio
async def test_payment_errors(client: httpx.AsyncClient) -> None:
    missing_caller = await client.post(
        "/api/payments", json={"merchant": MERCHANT, "amount": ONE_USDC}
    )
    assert missing_caller.status_code == 422

    unfunded = await client.post(
        "/api/payments",
        json={"merchant": MERCHANT, "amount": ONE_USDC},
        headers={"X-Caller": CLIENT},
    )
    assert unfunded.status_code == 400
    assert unfunded.json()["error"] == "TransferFailed"

    unknown = await client.get("/api/payments/99")
    assert unknown.status_code == 404
    assert unknown.json()["error"] == "InvalidPaymentId"


@pytest.mark.asyncio
async def test_dispute_and_withdrawal_endpoints(
    client: httpx.AsyncClient, ledger: PaymentLedger, fund: Fund
) -> None:
    await fund(CLIENT, 100 * ONE_USDC)
    await ledger.process_payment(CLIENT, MERCHANT, 100 * ONE_USDC)

    disputed = await client.post("/api/disputes/0", headers={"X-Caller": CLIENT})
    assert disputed.status_code == 200
    assert disputed.json()["disputed"] is True

    again = await client.post("/api/disputes/0", headers={"X-Caller": CLIENT})
    assert again.status_code == 409
    assert again.json()["error"] == "PaymentAlreadyDisputed"

    resolved = await client.post(
        "/api/disputes/0/resolve",
        json={"merchant_favor": True},
        headers={"X-Caller": ledger.owner},
    )
    assert resolved.json()["completed"] is True

    requested = await client.post(
        "/api/withdrawals/request",
        json={"amount": 100 * ONE_USDC},
        headers={"X-Caller": MERCHANT},
    )
    assert requested.status_code == 201

    early = await client.post(
        "/api/withdrawals/complete", json={}, headers={"X-Caller": MERCHANT}
    )
    assert early.status_code == 409
    assert early.json()["error"] == "WithdrawalDelayNotMet"


@pytest.mark.asyncio
async def test_subscription_endpoints(
    client: httpx.AsyncClient, clock: ManualClock, fund: Fund
) -> None:
    await fund(CLIENT, 100 * ONE_USDC)

    created = await client.post(
        "/api/subscriptions",
        json={"merchant": MERCHANT, "amount": 10 * ONE_USDC, "interval": 3600},
        headers={"X-Caller": CLIENT},
    )
    assert created.status_code == 201
    assert created.json()["amount"] == str(10 * ONE_USDC)

    clock.advance(3600)
    processed = await client.post(
        "/api/subscriptions/process", json={"limit": 10}, headers={"X-Caller": STRANGER}
    )
    assert processed.json()["charged"] == [0]


@pytest.mark.asyncio
async def test_admin_endpoints(client: httpx.AsyncClient, ledger: PaymentLedger) -> None:
    forbidden = await client.post("/admin/pause", headers={"X-Caller": STRANGER})
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "NotOwner"

    paused = await client.post("/admin/pause", headers={"X-Caller": ledger.owner})
    assert paused.json() == {"paused": True}

    blocked = await client.post(
        "/api/payments",
        json={"merchant": MERCHANT, "amount": ONE_USDC},
        headers={"X-Caller": CLIENT},
    )
    assert blocked.status_code == 409
    assert blocked.json()["error"] == "ContractPaused"

    unpaused = await client.post("/admin/unpause", headers={"X-Caller": ledger.owner})
    assert unpaused.json() == {"paused": False}

    invalid = await client.post(
        "/admin/fallback-price", json={"price": 0}, headers={"X-Caller": ledger.owner}
    )
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "InvalidPrice"


@pytest.mark.asyncio
async def test_unknown_event_name(client: httpx.AsyncClient) -> None:
    response = await client.get("/api/events", params={"name": "Nope"})

    assert response.status_code == 400
    assert response.json()["error"] == "UnknownEvent"


@pytest.mark.asyncio
async def test_payment_over_http_only(client: httpx.AsyncClient) -> None:
    info = await client.get("/api/ledger")
    assert info.status_code == 200
    ledger_address = info.json()["address"]

    minted = await client.post(
        "/api/tokens/usdc/mint",
        json={"to": CLIENT, "amount": 100 * ONE_USDC},
        headers={"X-Caller": CLIENT},
    )
    assert minted.status_code == 201
    assert minted.json() == {"token": "USDC", "account": CLIENT, "balance": str(100 * ONE_USDC)}

    approved = await client.post(
        "/api/tokens/USDC/approve",
        json={"spender": ledger_address, "amount": 40 * ONE_USDC},
        headers={"X-Caller": CLIENT},
    )
    assert approved.status_code == 200
    allowance = await client.get(f"/api/tokens/USDC/allowance/{CLIENT}/{ledger_address}")
    assert allowance.json()["allowance"] == str(40 * ONE_USDC)

    paid = await client.post(
        "/api/payments",
        json={"merchant": MERCHANT, "amount": 40 * ONE_USDC},
        headers={"X-Caller": CLIENT},
    )
    assert paid.status_code == 201
    assert paid.json()["amount"] == str(40 * ONE_USDC)

    client_balance = await client.get(f"/api/tokens/USDC/balance/{CLIENT}")
    assert client_balance.json()["balance"] == str(60 * ONE_USDC)
    ledger_balance = await client.get(f"/api/tokens/USDC/balance/{ledger_address}")
    assert ledger_balance.json()["balance"] == str(40 * ONE_USDC)
    allowance = await client.get(f"/api/tokens/USDC/allowance/{CLIENT}/{ledger_address}")
    assert allowance.json()["allowance"] == "0"


@pytest.mark.asyncio
async def test_native_payment_over_http_only(client: httpx.AsyncClient) -> None:
    await client.post(
        "/api/tokens/WETH/mint",
        json={"to": CLIENT, "amount": 5 * ONE_ETHER},
        headers={"X-Caller": CLIENT},
    )

    paid = await client.post(
        "/api/payments",
        json={"merchant": MERCHANT, "use_native": True, "value": ONE_ETHER},
        headers={"X-Caller": CLIENT},
    )

    assert paid.status_code == 201
    assert paid.json()["amount"] == "1974060000"
    weth = await client.get(f"/api/tokens/WETH/balance/{CLIENT}")
    assert weth.json()["balance"] == str(5 * ONE_ETHER - 992_961_063_270_000_000)


@pytest.mark.asyncio
async def test_closed_faucet_is_owner_only(
    app: FastAPI, client: httpx.AsyncClient, ledger: PaymentLedger, stable: InMemoryToken
) -> None:
    app.state.faucet = False

    refused = await client.post(
        "/api/tokens/USDC/mint",
        json={"to": STRANGER, "amount": ONE_USDC},
        headers={"X-Caller": STRANGER},
    )
    assert refused.status_code == 403
    assert refused.json()["error"] == "NotOwner"
    assert await stable.balance_of(STRANGER) == 0

    granted = await client.post(
        "/api/tokens/USDC/mint",
        json={"to": STRANGER, "amount": ONE_USDC},
        headers={"X-Caller": ledger.owner},
    )
    assert granted.status_code == 201
    assert await stable.balance_of(STRANGER) == ONE_USDC


@pytest.mark.asyncio
async def test_token_routes_validate_input(client: httpx.AsyncClient) -> None:
    unknown = await client.get(f"/api/tokens/DAI/balance/{CLIENT}")
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "UnknownToken", "detail": "DAI"}

    zero = await client.post(
        "/api/tokens/USDC/mint", json={"to": CLIENT, "amount": 0}, headers={"X-Caller": CLIENT}
    )
    assert zero.status_code == 422

    listed = await client.get("/api/tokens")
    assert listed.json() == [
        {"symbol": "USDC", "decimals": 6},
        {"symbol": "WETH", "decimals": 18},
    ]
