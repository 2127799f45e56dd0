"""Token unit constants and display helpers.

Amounts are always integers in base units. Decimal is only used for display
and for scaling exchange prices into fixed point.
"""

from decimal import ROUND_DOWN, Decimal

NATIVE_DECIMALS = 18
STABLE_DECIMALS = 6
PRICE_DECIMALS = 8

# Scales an 18-decimal native amount to a 6-decimal stable amount
DECIMAL_GAP = 10 ** (NATIVE_DECIMALS - STABLE_DECIMALS)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

ONE_ETHER = 10**NATIVE_DECIMALS
ONE_USDC = 10**STABLE_DECIMALS


def format_units(amount: int, decimals: int) -> Decimal:
    """Return a base-unit integer as a Decimal in whole units."""
    return Decimal(amount).scaleb(-decimals)


def parse_units(value: Decimal | str, decimals: int) -> int:
    """Scale a whole-unit value into base units, truncating extra precision."""
    scaled = Decimal(str(value)).scaleb(decimals)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))
