"""Abstract swap router interface (single-pool exact-input / exact-output swaps)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ExactOutputSingleParams:
    """Buy exactly amount_out of token_out, spending at most amount_in_maximum."""

    token_in: str
    token_out: str
    fee: int  # pool fee in hundredths of a basis point
    recipient: str
    deadline: int
    amount_out: int
    amount_in_maximum: int


@dataclass(frozen=True)
class ExactInputSingleParams:
    """Sell exactly amount_in of token_in, receiving at least amount_out_minimum."""

    token_in: str
    token_out: str
    fee: int
    recipient: str
    deadline: int
    amount_in: int
    amount_out_minimum: int


class SwapRouter(ABC):
    """External swap capability.

    The router pulls its input from payer, who must have approved the
    router on the input token beforehand.
    """

    @property
    @abstractmethod
    def address(self) -> str: ...

    @abstractmethod
    async def exact_output_single(self, payer: str, params: ExactOutputSingleParams) -> int:
        """Execute an exact-output swap and return the input actually consumed.

        Raises:
            SwapFailed: Deadline passed, input limit exceeded, or no liquidity.
        """
        ...

    @abstractmethod
    async def exact_input_single(self, payer: str, params: ExactInputSingleParams) -> int:
        """Execute an exact-input swap and return the output produced.

        Raises:
            SwapFailed: Deadline passed, output below minimum, or no liquidity.
        """
        ...
