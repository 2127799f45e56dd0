"""Host execution model -- clock, atomic transactions, events, guards and access control."""

from scrollpay.host.access import Ownable, PauseController
from scrollpay.host.chain import Host, Journaled
from scrollpay.host.clock import ManualClock, SystemClock
from scrollpay.host.guard import ReentrancyGuard
from scrollpay.host.journal import UndoLog

__all__ = [
    "Host",
    "Journaled",
    "ManualClock",
    "Ownable",
    "PauseController",
    "ReentrancyGuard",
    "SystemClock",
    "UndoLog",
]
