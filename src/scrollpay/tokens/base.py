"""Abstract fungible-token ledger interface.

The payment ledger depends only on this interface. Transfers report
success as a boolean; callers decide how to treat a refusal.
"""

from abc import ABC, abstractmethod


class TokenLedger(ABC):
    """External fungible-token capability."""

    @property
    @abstractmethod
    def symbol(self) -> str: ...

    @property
    @abstractmethod
    def decimals(self) -> int: ...

    @abstractmethod
    async def balance_of(self, account: str) -> int:
        """Return the token balance of an account in base units."""
        ...

    @abstractmethod
    async def allowance(self, owner: str, spender: str) -> int:
        """Return how much spender may still pull from owner."""
        ...

    @abstractmethod
    async def transfer(self, sender: str, to: str, amount: int) -> bool:
        """Move amount from sender to to. Returns False if refused."""
        ...

    @abstractmethod
    async def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        """Move amount from owner to to using spender's allowance. Returns False if refused."""
        ...

    @abstractmethod
    async def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Set spender's allowance over owner's tokens."""
        ...
