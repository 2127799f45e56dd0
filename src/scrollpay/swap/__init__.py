"""Swap capability -- router interface and oracle-priced simulation."""

from scrollpay.swap.router import ExactInputSingleParams, ExactOutputSingleParams, SwapRouter
from scrollpay.swap.simulated import SimulatedSwapRouter

__all__ = [
    "ExactInputSingleParams",
    "ExactOutputSingleParams",
    "SimulatedSwapRouter",
    "SwapRouter",
]
