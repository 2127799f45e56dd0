"""Payment ledger -- payments, delayed withdrawals, disputes and subscriptions."""

from scrollpay.ledger.core import PaymentLedger
from scrollpay.ledger.state import LedgerState

__all__ = ["LedgerState", "PaymentLedger"]
