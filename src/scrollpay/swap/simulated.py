"""Simulated swap router priced by the oracle.

Fills native/stable swaps at the oracle price, worsened by the pool fee
and a configurable slippage, out of the router's own token reserves.
"""

from scrollpay.config import SwapSettings
from scrollpay.exceptions import SwapFailed
from scrollpay.host.chain import Host
from scrollpay.logging import get_logger
from scrollpay.oracle.price_oracle import PriceOracle
from scrollpay.swap.router import ExactInputSingleParams, ExactOutputSingleParams, SwapRouter
from scrollpay.tokens.base import TokenLedger

logger = get_logger(__name__)

_FEE_DENOMINATOR = 1_000_000
_BPS_DENOMINATOR = 10_000


class SimulatedSwapRouter(SwapRouter):
    """Oracle-priced router between one native and one stable token.

    Args:
        host: Provides block time for deadline checks.
        oracle: Price source for fills.
        native: Wrapped native token ledger.
        stable: Stable token ledger.
        settings: Router address and simulated slippage.
    """

    def __init__(
        self,
        host: Host,
        oracle: PriceOracle,
        native: TokenLedger,
        stable: TokenLedger,
        settings: SwapSettings | None = None,
    ) -> None:
        self._host = host
        self._oracle = oracle
        self._native = native
        self._stable = stable
        self._settings = settings or SwapSettings()

    @property
    def address(self) -> str:
        return self._settings.router_address

    async def exact_output_single(self, payer: str, params: ExactOutputSingleParams) -> int:
        self._check_deadline(params.deadline)
        token_in, token_out = self._pair(params.token_in, params.token_out)

        fair_in = await self._quote(token_in, params.amount_out)
        numerator = fair_in * (_FEE_DENOMINATOR + params.fee) * (_BPS_DENOMINATOR + self._settings.slippage_bps)
        denominator = _FEE_DENOMINATOR * _BPS_DENOMINATOR
        amount_in = -(-numerator // denominator)  # round up against the payer

        if amount_in > params.amount_in_maximum:
            raise SwapFailed(
                f"too much requested: {amount_in} {token_in.symbol} > max {params.amount_in_maximum}"
            )
        await self._settle(payer, token_in, token_out, amount_in, params.amount_out, params.recipient)

        logger.info(
            "swap_exact_output",
            token_in=token_in.symbol,
            token_out=token_out.symbol,
            amount_in=amount_in,
            amount_out=params.amount_out,
        )
        return amount_in

    async def exact_input_single(self, payer: str, params: ExactInputSingleParams) -> int:
        self._check_deadline(params.deadline)
        token_in, token_out = self._pair(params.token_in, params.token_out)

        fair_out = await self._quote(token_out, params.amount_in)
        amount_out = (
            fair_out
            * _FEE_DENOMINATOR
            * _BPS_DENOMINATOR
            // ((_FEE_DENOMINATOR + params.fee) * (_BPS_DENOMINATOR + self._settings.slippage_bps))
        )

        if amount_out < params.amount_out_minimum:
            raise SwapFailed(
                f"too little received: {amount_out} {token_out.symbol} < min {params.amount_out_minimum}"
            )
        await self._settle(payer, token_in, token_out, params.amount_in, amount_out, params.recipient)

        logger.info(
            "swap_exact_input",
            token_in=token_in.symbol,
            token_out=token_out.symbol,
            amount_in=params.amount_in,
            amount_out=amount_out,
        )
        return amount_out

    def _check_deadline(self, deadline: int) -> None:
        if self._host.now() > deadline:
            raise SwapFailed(f"transaction too old: deadline {deadline}")

    def _pair(self, token_in: str, token_out: str) -> tuple[TokenLedger, TokenLedger]:
        by_symbol = {self._native.symbol: self._native, self._stable.symbol: self._stable}
        if token_in == token_out or token_in not in by_symbol or token_out not in by_symbol:
            raise SwapFailed(f"no pool for {token_in}/{token_out}")
        return by_symbol[token_in], by_symbol[token_out]

    async def _quote(self, target: TokenLedger, amount: int) -> int:
        """Convert amount of the other token into target units at the oracle price."""
        if target is self._native:
            return await self._oracle.usdc_to_eth(amount)
        return await self._oracle.eth_to_usdc(amount)

    async def _settle(
        self,
        payer: str,
        token_in: TokenLedger,
        token_out: TokenLedger,
        amount_in: int,
        amount_out: int,
        recipient: str,
    ) -> None:
        reserve = await token_out.balance_of(self.address)
        if reserve < amount_out:
            raise SwapFailed(
                f"insufficient {token_out.symbol} liquidity: {reserve} < {amount_out}"
            )
        if not await token_in.transfer_from(self.address, payer, self.address, amount_in):
            raise SwapFailed(f"could not pull {amount_in} {token_in.symbol} from {payer}")
        if not await token_out.transfer(self.address, recipient, amount_out):
            raise SwapFailed(f"could not pay out {amount_out} {token_out.symbol}")
