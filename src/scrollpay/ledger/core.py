"""Payment ledger: payments, delayed withdrawals, disputes and subscriptions.

Payment lifecycle:
    created -> disputed (client, once, within the dispute window)
            -> resolved (owner, merchant-favor or client-favor refund)

Every mutating operation runs inside one host transaction and holds the
ledger's re-entrancy guard, so it either completes entirely or leaves
balances, records, token movements and events exactly as they were.

Disputed amounts are held: they stay in the merchant's balance but are not
available for withdrawal until the dispute is resolved. A client-favor
resolution refunds the client out of the merchant's balance.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any

import structlog

from scrollpay.config import LedgerSettings, SwapSettings
from scrollpay.exceptions import (
    DisputeWindowClosed,
    InsufficientBalance,
    InvalidAddress,
    InvalidAmount,
    InvalidPaymentId,
    PaymentAlreadyDisputed,
    TransferFailed,
    UnauthorizedWithdrawal,
    WithdrawalDelayNotMet,
)
from scrollpay.host.access import Ownable, PauseController
from scrollpay.host.chain import Host
from scrollpay.host.guard import ReentrancyGuard
from scrollpay.ledger.state import LedgerState
from scrollpay.logging import get_logger
from scrollpay.models import (
    EventName,
    Payment,
    Subscription,
    SubscriptionRun,
    WithdrawalRequest,
)
from scrollpay.oracle.price_oracle import PriceOracle
from scrollpay.swap.router import ExactInputSingleParams, ExactOutputSingleParams, SwapRouter
from scrollpay.tokens.base import TokenLedger
from scrollpay.units import ZERO_ADDRESS

logger = get_logger(__name__)

_FEE_DENOMINATOR = 1_000_000
_BPS_DENOMINATOR = 10_000


class PaymentLedger:
    """Merchant balances, payment records, withdrawal requests and subscriptions.

    Args:
        host: Shared execution context (clock, transactions, events).
        oracle: Price source for native payments and native payouts.
        token: Stable token that balances are denominated in.
        native: Wrapped native asset attached to native payments.
        router: Swap capability used for native payments and payouts.
        settings: Delays, windows, batch size, address and owner.
        swap_settings: Pool fee, deadline and slippage tolerance.
    """

    def __init__(
        self,
        host: Host,
        oracle: PriceOracle,
        token: TokenLedger,
        native: TokenLedger,
        router: SwapRouter,
        settings: LedgerSettings | None = None,
        swap_settings: SwapSettings | None = None,
    ) -> None:
        self._host = host
        self._oracle = oracle
        self._token = token
        self._native = native
        self._router = router
        self._settings = settings or LedgerSettings()
        self._swap_settings = swap_settings or SwapSettings()
        self._state = LedgerState()
        self._guard = ReentrancyGuard("PaymentLedger")
        self._ownable = Ownable(host, self.address, self._settings.owner)
        self._pause = PauseController(host, self._ownable, self.address)
        host.register(self)

    # ──────────────────────────────────────────────
    # Properties and views
    # ──────────────────────────────────────────────

    @property
    def address(self) -> str:
        return self._settings.address

    @property
    def owner(self) -> str:
        return self._ownable.owner

    @property
    def paused(self) -> bool:
        return self._pause.paused

    @property
    def withdrawal_delay(self) -> int:
        return self._settings.withdrawal_delay

    @property
    def dispute_window(self) -> int:
        return self._settings.dispute_window

    @property
    def payment_count(self) -> int:
        return self._state.next_payment_id

    @property
    def subscription_count(self) -> int:
        return self._state.next_subscription_id

    def merchant_balance(self, merchant: str) -> int:
        return self._state.balances.get(merchant, 0)

    def held_balance(self, merchant: str) -> int:
        """Amount of the merchant's balance under open disputes."""
        return self._state.held.get(merchant, 0)

    def available_balance(self, merchant: str) -> int:
        """Balance the merchant may withdraw."""
        return max(0, self.merchant_balance(merchant) - self.held_balance(merchant))

    def get_payment(self, payment_id: int) -> Payment:
        payment = self._state.payments.get(payment_id)
        if payment is None:
            raise InvalidPaymentId(f"unknown payment {payment_id}")
        return replace(payment)

    def get_withdrawal(self, merchant: str) -> WithdrawalRequest | None:
        request = self._state.withdrawals.get(merchant)
        return replace(request) if request is not None else None

    def get_subscription(self, subscription_id: int) -> Subscription | None:
        subscription = self._state.subscriptions.get(subscription_id)
        return replace(subscription) if subscription is not None else None

    # ──────────────────────────────────────────────
    # Payments
    # ──────────────────────────────────────────────

    async def process_payment(
        self,
        caller: str,
        merchant: str,
        amount: int,
        use_native: bool = False,
        value: int = 0,
    ) -> int:
        """Pay a merchant in stable tokens, or in native value swapped to stable tokens.

        For native payments, amount is ignored: the attached value is
        converted at the oracle price, swapped exact-output into stable
        tokens and the unused native input is refunded to the caller.

        Returns:
            The new payment id.

        Raises:
            ContractPaused: The ledger is paused.
            InvalidAddress: merchant is the zero address.
            InvalidAmount: Zero amount, or native value on a token payment.
            TransferFailed: Tokens could not be pulled from the caller.
            SwapFailed, InvalidPriceFeed, StalePriceData, InvalidPrice: Native path.
        """
        async with self._operation("process_payment", caller):
            self._pause.require_not_paused()
            self._require_merchant(merchant)
            if use_native:
                amount = await self._swap_native_payment(caller, value)
            else:
                if value:
                    raise InvalidAmount("native value attached to a token payment")
                self._require_positive(amount, "payment amount")
                await self._pull(caller, amount)
            payment_id = self._create_payment(merchant, caller, amount)

        logger.info(
            "payment_processed",
            payment_id=payment_id,
            merchant=merchant,
            client=caller,
            amount=amount,
            native=use_native,
        )
        return payment_id

    async def pay_for_goods(
        self, caller: str, merchant: str, amount: int, order_ref: str
    ) -> int:
        """Pay for a merchant order in stable tokens; order_ref is recorded in the event."""
        async with self._operation("pay_for_goods", caller):
            self._pause.require_not_paused()
            self._require_merchant(merchant)
            self._require_positive(amount, "payment amount")
            await self._pull(caller, amount)
            payment_id = self._create_payment(merchant, caller, amount, order_ref=order_ref)

        logger.info(
            "goods_paid",
            payment_id=payment_id,
            merchant=merchant,
            client=caller,
            amount=amount,
            order_ref=order_ref,
        )
        return payment_id

    def _create_payment(
        self,
        merchant: str,
        client: str,
        amount: int,
        **extra: Any,
    ) -> int:
        """Record a payment and credit the merchant. Shared by every payment path."""
        payment_id = self._state.add_payment(merchant, client, amount, self._host.now())
        self._state.credit(merchant, amount)
        self._host.emit(
            self.address,
            EventName.PAYMENT_PROCESSED,
            payment_id=payment_id,
            merchant=merchant,
            client=client,
            amount=amount,
            **extra,
        )
        return payment_id

    async def _swap_native_payment(self, caller: str, value: int) -> int:
        self._require_positive(value, "native value")
        # value attached to the call moves with it
        if not await self._native.transfer(caller, self.address, value):
            raise TransferFailed(f"{caller} cannot attach {value} {self._native.symbol}")

        quoted = await self._oracle.eth_to_usdc(value)
        target = self._apply_tolerance(quoted)
        self._require_positive(target, "swapped amount")

        await self._approve(self._native, self._router.address, value)
        spent = await self._router.exact_output_single(
            self.address,
            ExactOutputSingleParams(
                token_in=self._native.symbol,
                token_out=self._token.symbol,
                fee=self._swap_settings.pool_fee,
                recipient=self.address,
                deadline=self._host.now() + self._swap_settings.deadline_seconds,
                amount_out=target,
                amount_in_maximum=value,
            ),
        )
        await self._approve(self._native, self._router.address, 0)

        refund = value - spent
        if refund > 0 and not await self._native.transfer(self.address, caller, refund):
            raise TransferFailed(f"could not refund {refund} {self._native.symbol}")

        logger.debug(
            "native_payment_swapped",
            value=value,
            spent=spent,
            refund=refund,
            amount_out=target,
        )
        return target

    # ──────────────────────────────────────────────
    # Withdrawals
    # ──────────────────────────────────────────────

    async def request_withdrawal(self, caller: str, amount: int) -> WithdrawalRequest:
        """Queue a withdrawal, replacing any pending one.

        The balance is not reserved; it is re-checked at completion.

        Raises:
            InvalidAmount: amount is zero.
            InsufficientBalance: amount exceeds the available balance.
        """
        async with self._operation("request_withdrawal", caller):
            self._require_positive(amount, "withdrawal amount")
            available = self.available_balance(caller)
            if available < amount:
                raise InsufficientBalance(
                    f"{caller} has {available} available, requested {amount}"
                )
            request = WithdrawalRequest(amount=amount, request_time=self._host.now())
            self._state.put_withdrawal(caller, request)
            self._host.emit(
                self.address,
                EventName.WITHDRAWAL_REQUESTED,
                merchant=caller,
                amount=amount,
                request_time=request.request_time,
            )

        logger.info("withdrawal_requested", merchant=caller, amount=amount)
        return replace(request)

    async def complete_withdrawal(self, caller: str, as_native: bool = False) -> int:
        """Pay out the caller's pending withdrawal once the delay has elapsed.

        Args:
            caller: The merchant.
            as_native: Pay out in the native asset via an exact-input swap
                instead of stable tokens.

        Returns:
            Amount paid out, in units of the payout asset.

        Raises:
            WithdrawalDelayNotMet: No pending request, or the delay has not elapsed.
            InsufficientBalance: The available balance dropped below the request.
            TransferFailed, SwapFailed: The payout failed.
        """
        async with self._operation("complete_withdrawal", caller):
            request = self._state.withdrawals.get(caller)
            if request is None:
                raise WithdrawalDelayNotMet(f"no pending withdrawal for {caller}")
            now = self._host.now()
            ready_at = request.request_time + self._settings.withdrawal_delay
            if now < ready_at:
                raise WithdrawalDelayNotMet(f"withdrawal ready at {ready_at}, now {now}")
            available = self.available_balance(caller)
            if available < request.amount:
                raise InsufficientBalance(
                    f"{caller} has {available} available, request is {request.amount}"
                )

            self._state.debit(caller, request.amount)
            self._state.pop_withdrawal(caller)

            if as_native:
                paid = await self._pay_out_native(caller, request.amount)
            else:
                await self._push(caller, request.amount)
                paid = request.amount

            self._host.emit(
                self.address,
                EventName.WITHDRAWAL_COMPLETED,
                merchant=caller,
                amount=request.amount,
                paid=paid,
                asset=self._native.symbol if as_native else self._token.symbol,
            )

        logger.info(
            "withdrawal_completed",
            merchant=caller,
            amount=request.amount,
            paid=paid,
            native=as_native,
        )
        return paid

    async def _pay_out_native(self, merchant: str, amount: int) -> int:
        quoted = await self._oracle.usdc_to_eth(amount)
        await self._approve(self._token, self._router.address, amount)
        received = await self._router.exact_input_single(
            self.address,
            ExactInputSingleParams(
                token_in=self._token.symbol,
                token_out=self._native.symbol,
                fee=self._swap_settings.pool_fee,
                recipient=merchant,
                deadline=self._host.now() + self._swap_settings.deadline_seconds,
                amount_in=amount,
                amount_out_minimum=self._apply_tolerance(quoted),
            ),
        )
        await self._approve(self._token, self._router.address, 0)
        return received

    # ──────────────────────────────────────────────
    # Disputes
    # ──────────────────────────────────────────────

    async def raise_dispute(self, caller: str, payment_id: int) -> None:
        """Contest a payment. Only its client may, once, within the dispute window.

        Raises:
            InvalidPaymentId: Unknown payment.
            UnauthorizedWithdrawal: caller is not the payment's client.
            DisputeWindowClosed: The window has passed.
            PaymentAlreadyDisputed: Disputed before (open or resolved).
        """
        async with self._operation("raise_dispute", caller):
            payment = self._state.payments.get(payment_id)
            if payment is None:
                raise InvalidPaymentId(f"unknown payment {payment_id}")
            if caller != payment.client:
                raise UnauthorizedWithdrawal(f"{caller} is not the client of payment {payment_id}")
            now = self._host.now()
            if now > payment.timestamp + self._settings.dispute_window:
                raise DisputeWindowClosed(f"dispute window for payment {payment_id} closed")
            if payment.disputed or payment.completed:
                raise PaymentAlreadyDisputed(f"payment {payment_id} already disputed")

            payment = self._state.edit_payment(payment_id)
            payment.disputed = True
            self._state.hold(payment.merchant, payment.amount)
            self._host.emit(
                self.address,
                EventName.DISPUTE_RAISED,
                payment_id=payment_id,
                client=caller,
                merchant=payment.merchant,
                amount=payment.amount,
            )

        logger.info("dispute_raised", payment_id=payment_id, client=caller)

    async def resolve_dispute(self, caller: str, payment_id: int, merchant_favor: bool) -> None:
        """Owner-only: settle an open dispute.

        Merchant-favor releases the held amount back to the merchant's
        available balance. Client-favor debits the merchant and refunds the
        client directly.

        Raises:
            NotOwner: caller is not the owner.
            InvalidPaymentId: The payment is not currently disputed.
            InsufficientBalance: Client-favor refund exceeds the merchant balance.
        """
        async with self._operation("resolve_dispute", caller):
            self._ownable.require_owner(caller)
            payment = self._state.payments.get(payment_id)
            if payment is None or not payment.disputed:
                raise InvalidPaymentId(f"payment {payment_id} is not disputed")

            merchant = payment.merchant
            self._state.release(merchant, payment.amount)

            if not merchant_favor:
                balance = self.merchant_balance(merchant)
                if balance < payment.amount:
                    raise InsufficientBalance(
                        f"{merchant} balance {balance} cannot refund {payment.amount}"
                    )
                self._state.debit(merchant, payment.amount)
                await self._push(payment.client, payment.amount)

            payment = self._state.edit_payment(payment_id)
            payment.completed = True
            payment.disputed = False
            self._host.emit(
                self.address,
                EventName.DISPUTE_RESOLVED,
                payment_id=payment_id,
                merchant_favor=merchant_favor,
                amount=payment.amount,
            )

        logger.info(
            "dispute_resolved",
            payment_id=payment_id,
            merchant_favor=merchant_favor,
            amount=payment.amount,
        )

    # ──────────────────────────────────────────────
    # Subscriptions
    # ──────────────────────────────────────────────

    async def create_subscription(
        self, caller: str, merchant: str, amount: int, interval: int
    ) -> int:
        """Subscribe caller to a merchant and charge the first cycle immediately.

        Returns:
            The new subscription id.
        """
        async with self._operation("create_subscription", caller):
            self._pause.require_not_paused()
            self._require_merchant(merchant)
            self._require_positive(amount, "subscription amount")
            self._require_positive(interval, "subscription interval")

            subscription_id = self._state.add_subscription(
                merchant, caller, amount, interval, self._host.now()
            )
            self._host.emit(
                self.address,
                EventName.SUBSCRIPTION_CREATED,
                subscription_id=subscription_id,
                merchant=merchant,
                subscriber=caller,
                amount=amount,
                interval=interval,
            )
            await self._pull(caller, amount)
            self._create_payment(merchant, caller, amount, subscription_id=subscription_id)

        logger.info(
            "subscription_created",
            subscription_id=subscription_id,
            merchant=merchant,
            subscriber=caller,
            amount=amount,
            interval=interval,
        )
        return subscription_id

    async def process_subscriptions(self, caller: str, limit: int | None = None) -> SubscriptionRun:
        """Charge due, funded subscriptions in one bounded batch.

        Scans at most limit subscriptions (default: the configured batch
        size) starting at a cursor that persists between calls and wraps
        around. Due subscriptions whose subscriber lacks balance or
        allowance are skipped and retried on a later call.
        """
        async with self._operation("process_subscriptions", caller):
            self._pause.require_not_paused()
            batch = self._settings.subscription_batch_size if limit is None else limit
            self._require_positive(batch, "batch size")

            state = self._state
            total = state.next_subscription_id
            run = SubscriptionRun()
            if total == 0:
                return run

            now = self._host.now()
            start = state.subscription_cursor % total
            for offset in range(min(batch, total)):
                subscription = state.subscriptions[(start + offset) % total]
                run.scanned += 1
                if now < subscription.last_payment + subscription.interval:
                    continue
                if not await self._can_charge(subscription):
                    run.skipped.append(subscription.id)
                    continue
                await self._pull(subscription.subscriber, subscription.amount)
                subscription = state.edit_subscription(subscription.id)
                subscription.last_payment = now
                self._create_payment(
                    subscription.merchant,
                    subscription.subscriber,
                    subscription.amount,
                    subscription_id=subscription.id,
                )
                run.charged.append(subscription.id)

            state.move_cursor((start + run.scanned) % total)
            run.next_cursor = state.subscription_cursor

        logger.info(
            "subscriptions_processed",
            scanned=run.scanned,
            charged=len(run.charged),
            skipped=len(run.skipped),
            next_cursor=run.next_cursor,
        )
        return run

    async def _can_charge(self, subscription: Subscription) -> bool:
        balance = await self._token.balance_of(subscription.subscriber)
        allowance = await self._token.allowance(subscription.subscriber, self.address)
        if balance < subscription.amount or allowance < subscription.amount:
            logger.debug(
                "subscription_underfunded",
                subscription_id=subscription.id,
                balance=balance,
                allowance=allowance,
                amount=subscription.amount,
            )
            return False
        return True

    # ──────────────────────────────────────────────
    # Owner operations
    # ──────────────────────────────────────────────

    async def pause(self, caller: str) -> None:
        await self._pause.pause(caller)

    async def unpause(self, caller: str) -> None:
        await self._pause.unpause(caller)

    async def transfer_ownership(self, caller: str, new_owner: str) -> None:
        await self._ownable.transfer_ownership(caller, new_owner)

    # ──────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────

    @asynccontextmanager
    async def _operation(self, name: str, caller: str) -> AsyncIterator[None]:
        """One transaction under the re-entrancy guard, with log context bound."""
        with structlog.contextvars.bound_contextvars(operation=name, caller=caller):
            async with self._host.atomic():
                with self._guard.hold(name):
                    yield

    async def _pull(self, owner: str, amount: int) -> None:
        if not await self._token.transfer_from(self.address, owner, self.address, amount):
            raise TransferFailed(f"could not pull {amount} {self._token.symbol} from {owner}")

    async def _push(self, to: str, amount: int) -> None:
        if not await self._token.transfer(self.address, to, amount):
            raise TransferFailed(f"could not send {amount} {self._token.symbol} to {to}")

    async def _approve(self, token: TokenLedger, spender: str, amount: int) -> None:
        if not await token.approve(self.address, spender, amount):
            raise TransferFailed(f"could not approve {spender} on {token.symbol}")

    def _apply_tolerance(self, amount: int) -> int:
        """Discount a quoted amount by the pool fee and the accepted slippage."""
        after_fee = amount * (_FEE_DENOMINATOR - self._swap_settings.pool_fee) // _FEE_DENOMINATOR
        return after_fee * (_BPS_DENOMINATOR - self._swap_settings.max_slippage_bps) // _BPS_DENOMINATOR

    @staticmethod
    def _require_positive(value: int, what: str) -> None:
        if value <= 0:
            raise InvalidAmount(f"{what} must be positive, got {value}")

    @staticmethod
    def _require_merchant(merchant: str) -> None:
        if not merchant or merchant == ZERO_ADDRESS:
            raise InvalidAddress("merchant cannot be the zero address")

    def snapshot(self) -> Any:
        return self._state.mark()

    def restore(self, snapshot: Any) -> None:
        self._state.rollback(snapshot)

    def commit(self) -> None:
        self._state.commit()
