"""Failure kinds raised by the oracle, the payment ledger and the host.

Every mutating operation runs inside a host transaction, so raising any of
these aborts the whole operation and discards its intermediate state.
"""


class LedgerError(Exception):
    """Base exception for all ledger, oracle and host failures."""


# Price oracle


class InvalidPriceFeed(LedgerError):
    """Raised when no feed is configured, or the feed is unreachable and no usable fallback exists."""


class StalePriceData(LedgerError):
    """Raised when the reading is too old without a valid fallback, or its round is incomplete."""


class InvalidPrice(LedgerError):
    """Raised for a non-positive answer, a zero timestamp, or a zero fallback price."""


class FeedUnavailable(LedgerError):
    """Raised by a feed whose source returned no usable reading."""


# Payment ledger


class InsufficientBalance(LedgerError):
    """Raised when a merchant's available balance cannot cover a withdrawal or refund."""


class WithdrawalDelayNotMet(LedgerError):
    """Raised when a withdrawal is completed before its delay elapsed, or none is pending."""


class InvalidPaymentId(LedgerError):
    """Raised for unknown payments or payments in the wrong dispute state."""


class DisputeWindowClosed(LedgerError):
    """Raised when a dispute is raised after the dispute window."""


class PaymentAlreadyDisputed(LedgerError):
    """Raised when a payment that was already disputed (open or resolved) is disputed again."""


class UnauthorizedWithdrawal(LedgerError):
    """Raised when someone other than the payment's client raises a dispute."""


class InvalidAmount(LedgerError):
    """Raised for zero amounts or zero subscription intervals."""


class InvalidAddress(LedgerError):
    """Raised when the zero address is used as a merchant."""


class TransferFailed(LedgerError):
    """Raised when the token ledger refuses a transfer."""


class SwapFailed(LedgerError):
    """Raised when the swap router cannot fill a swap within its limits."""


# Host primitives


class NotOwner(LedgerError):
    """Raised when a non-owner calls an owner-restricted operation."""


class ContractPaused(LedgerError):
    """Raised when a payment-creating operation is called while paused."""


class ContractNotPaused(LedgerError):
    """Raised when unpausing a component that is not paused."""


class ReentrantCall(LedgerError):
    """Raised when a guarded operation is entered while another is in flight."""
