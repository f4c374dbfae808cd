"""Fixed-point helpers for money, share, and pool amounts.

All amounts are Decimal and persisted as NUMERIC(20, 6). No float anywhere
on the write path.
"""

from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal

AMOUNT_QUANT = Decimal("0.000001")  # storage scale for shares, pools, balances
CENT_QUANT = Decimal("0.01")

MAX_INVESTMENT_PLACES = 2
MAX_SHARE_PLACES = 6


def decimal_places(value: Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


def quantize_down(value: Decimal, quant: Decimal = AMOUNT_QUANT) -> Decimal:
    return value.quantize(quant, rounding=ROUND_FLOOR)


def quantize_up(value: Decimal, quant: Decimal = AMOUNT_QUANT) -> Decimal:
    return value.quantize(quant, rounding=ROUND_CEILING)


def money_to_display(amount: Decimal) -> str:
    """Render dollars for humans: Decimal('1234.5') -> '$1,234.50', negatives keep the sign."""
    cents = amount.quantize(CENT_QUANT, rounding=ROUND_FLOOR if amount >= 0 else ROUND_CEILING)
    if cents < 0:
        return f"-${-cents:,.2f}"
    return f"${cents:,.2f}"


def price_to_cents_display(price: Decimal) -> str:
    """0.5302 -> '53.02¢'."""
    return f"{(price * 100).quantize(CENT_QUANT, rounding=ROUND_FLOOR)}¢"
