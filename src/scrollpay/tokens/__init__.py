"""Fungible-token capability -- abstract ledger and in-memory implementation."""

from scrollpay.tokens.base import TokenLedger
from scrollpay.tokens.memory import InMemoryToken

__all__ = ["InMemoryToken", "TokenLedger"]
