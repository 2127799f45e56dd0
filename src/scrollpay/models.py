"""Shared data models for the oracle and the payment ledger.

CRITICAL: amounts are integers in token base units and prices are 8-decimal
fixed point integers. Never use float for either.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ConversionDirection(str, Enum):
    """Direction of an oracle conversion."""

    ETH_TO_USDC = "eth_to_usdc"
    USDC_TO_ETH = "usdc_to_eth"


class EventName(str, Enum):
    """Events emitted for external observers and indexers."""

    PAYMENT_PROCESSED = "PaymentProcessed"
    WITHDRAWAL_REQUESTED = "WithdrawalRequested"
    WITHDRAWAL_COMPLETED = "WithdrawalCompleted"
    DISPUTE_RAISED = "DisputeRaised"
    DISPUTE_RESOLVED = "DisputeResolved"
    SUBSCRIPTION_CREATED = "SubscriptionCreated"
    FALLBACK_PRICE_UPDATED = "FallbackPriceUpdated"
    PAUSED = "Paused"
    UNPAUSED = "Unpaused"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


@dataclass(frozen=True)
class PriceFeedReading:
    """One round as reported by a price feed. Never persisted."""

    round_id: int
    answer: int  # signed, 8 decimals
    started_at: int
    updated_at: int
    answered_in_round: int


@dataclass
class FallbackPrice:
    """Owner-set price served when the primary feed is stale or unreachable."""

    price: int = 0
    last_update: int = 0


@dataclass
class Payment:
    """A single payment from a client to a merchant."""

    id: int
    merchant: str
    client: str
    amount: int
    timestamp: int
    disputed: bool = False
    completed: bool = False


@dataclass
class WithdrawalRequest:
    """A merchant's pending withdrawal. At most one per merchant."""

    amount: int
    request_time: int


@dataclass
class Subscription:
    """A recurring charge from a subscriber to a merchant."""

    id: int
    merchant: str
    subscriber: str
    amount: int
    interval: int
    last_payment: int


@dataclass
class SubscriptionRun:
    """Outcome of one subscription processing call."""

    charged: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)  # due but underfunded
    scanned: int = 0
    next_cursor: int = 0


@dataclass(frozen=True)
class LedgerEvent:
    """A committed event in the host event log."""

    seq: int
    name: EventName
    emitter: str
    timestamp: int
    args: dict[str, Any]
