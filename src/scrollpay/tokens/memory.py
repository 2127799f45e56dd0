"""In-memory fungible token for the simulated environment.

Registered with the host as a journaled participant, so token movements
made by an operation that later fails are rolled back with it.
"""

from typing import Any

from scrollpay.host.chain import Host
from scrollpay.host.journal import UndoLog
from scrollpay.logging import get_logger
from scrollpay.tokens.base import TokenLedger

logger = get_logger(__name__)


class InMemoryToken(TokenLedger):
    """Balance and allowance tables held in process.

    Args:
        host: Host the token state is journaled with.
        symbol: Ticker, e.g. "USDC".
        decimals: Base-unit decimals.
    """

    def __init__(self, host: Host, symbol: str, decimals: int) -> None:
        self._symbol = symbol
        self._decimals = decimals
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._journal = UndoLog()
        host.register(self)

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def decimals(self) -> int:
        return self._decimals

    @property
    def total_supply(self) -> int:
        return sum(self._balances.values())

    def mint(self, to: str, amount: int) -> None:
        """Create tokens out of thin air (simulation funding only)."""
        if amount < 0:
            raise ValueError(f"mint amount must be non-negative: {amount}")
        self._journal.set_item(self._balances, to, self._balances.get(to, 0) + amount)

    async def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    async def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    async def transfer(self, sender: str, to: str, amount: int) -> bool:
        return self._move(sender, to, amount)

    async def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        allowed = self._allowances.get((owner, spender), 0)
        if amount < 0 or allowed < amount:
            logger.debug(
                "token_allowance_insufficient",
                token=self._symbol,
                owner=owner,
                spender=spender,
                allowed=allowed,
                amount=amount,
            )
            return False
        if not self._move(owner, to, amount):
            return False
        self._journal.set_item(self._allowances, (owner, spender), allowed - amount)
        return True

    async def approve(self, owner: str, spender: str, amount: int) -> bool:
        if amount < 0:
            return False
        self._journal.set_item(self._allowances, (owner, spender), amount)
        return True

    def _move(self, sender: str, to: str, amount: int) -> bool:
        balance = self._balances.get(sender, 0)
        if amount < 0 or balance < amount:
            logger.debug(
                "token_balance_insufficient",
                token=self._symbol,
                account=sender,
                balance=balance,
                amount=amount,
            )
            return False
        self._journal.set_item(self._balances, sender, balance - amount)
        self._journal.set_item(self._balances, to, self._balances.get(to, 0) + amount)
        return True

    def snapshot(self) -> Any:
        return self._journal.mark()

    def restore(self, snapshot: Any) -> None:
        self._journal.rollback(snapshot)

    def commit(self) -> None:
        self._journal.commit()
