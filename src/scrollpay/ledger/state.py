"""Persistent ledger store owned exclusively by one PaymentLedger.

Reads go straight to the mappings. Every write goes through a method here,
which records the overwritten value in the undo log, so a transaction
snapshot is a log mark and a rollback touches only what the operation
changed. Payment and subscription records are copied on edit; the record
a snapshot refers to is never mutated in place.
"""

from dataclasses import dataclass, field, replace

from scrollpay.host.journal import UndoLog
from scrollpay.models import Payment, Subscription, WithdrawalRequest


@dataclass
class LedgerState:
    """All mappings of the payment ledger.

    Payment and subscription ids are allocated sequentially from 0 and
    records are never deleted, so ids are also dense list positions.
    """

    payments: dict[int, Payment] = field(default_factory=dict)
    next_payment_id: int = 0
    balances: dict[str, int] = field(default_factory=dict)
    held: dict[str, int] = field(default_factory=dict)  # disputed, not yet resolved
    withdrawals: dict[str, WithdrawalRequest] = field(default_factory=dict)
    subscriptions: dict[int, Subscription] = field(default_factory=dict)
    next_subscription_id: int = 0
    subscription_cursor: int = 0
    journal: UndoLog = field(default_factory=UndoLog, repr=False, compare=False)

    # ── Journal ──

    def mark(self) -> int:
        return self.journal.mark()

    def rollback(self, mark: int) -> None:
        self.journal.rollback(mark)

    def commit(self) -> None:
        self.journal.commit()

    # ── Balances ──

    def credit(self, merchant: str, amount: int) -> None:
        self.journal.set_item(self.balances, merchant, self.balances.get(merchant, 0) + amount)

    def debit(self, merchant: str, amount: int) -> None:
        self.journal.set_item(self.balances, merchant, self.balances.get(merchant, 0) - amount)

    def hold(self, merchant: str, amount: int) -> None:
        self.journal.set_item(self.held, merchant, self.held.get(merchant, 0) + amount)

    def release(self, merchant: str, amount: int) -> None:
        remaining = self.held.get(merchant, 0) - amount
        if remaining > 0:
            self.journal.set_item(self.held, merchant, remaining)
        elif merchant in self.held:
            self.journal.pop_item(self.held, merchant)

    # ── Records ──

    def add_payment(self, merchant: str, client: str, amount: int, timestamp: int) -> int:
        payment_id = self.next_payment_id
        self.journal.set_attr(self, "next_payment_id", payment_id + 1)
        self.journal.set_item(
            self.payments,
            payment_id,
            Payment(
                id=payment_id,
                merchant=merchant,
                client=client,
                amount=amount,
                timestamp=timestamp,
            ),
        )
        return payment_id

    def edit_payment(self, payment_id: int) -> Payment:
        """Install and return a fresh copy of the payment for mutation."""
        payment = replace(self.payments[payment_id])
        self.journal.set_item(self.payments, payment_id, payment)
        return payment

    def put_withdrawal(self, merchant: str, request: WithdrawalRequest) -> None:
        self.journal.set_item(self.withdrawals, merchant, request)

    def pop_withdrawal(self, merchant: str) -> WithdrawalRequest:
        return self.journal.pop_item(self.withdrawals, merchant)

    def add_subscription(
        self, merchant: str, subscriber: str, amount: int, interval: int, timestamp: int
    ) -> int:
        subscription_id = self.next_subscription_id
        self.journal.set_attr(self, "next_subscription_id", subscription_id + 1)
        self.journal.set_item(
            self.subscriptions,
            subscription_id,
            Subscription(
                id=subscription_id,
                merchant=merchant,
                subscriber=subscriber,
                amount=amount,
                interval=interval,
                last_payment=timestamp,
            ),
        )
        return subscription_id

    def edit_subscription(self, subscription_id: int) -> Subscription:
        """Install and return a fresh copy of the subscription for mutation."""
        subscription = replace(self.subscriptions[subscription_id])
        self.journal.set_item(self.subscriptions, subscription_id, subscription)
        return subscription

    def move_cursor(self, cursor: int) -> None:
        self.journal.set_attr(self, "subscription_cursor", cursor)
