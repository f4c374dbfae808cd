"""Fee extraction: fees never pass through the curve."""

from decimal import Decimal


def calc_fee(amount: Decimal, fee_rate: Decimal) -> Decimal:
    """Exact fee: amount x fee_rate, no rounding.

    Investments carry at most 2 places and FEE_RATE at most 4, so the product
    always fits the 6-place storage scale without truncation.
    """
    if amount <= 0 or fee_rate <= 0:
        return Decimal(0)
    return amount * fee_rate


def validate_fee_rate(fee_rate: Decimal) -> None:
    if not (Decimal(0) <= fee_rate < Decimal(1)):
        raise ValueError(f"Fee rate must be in [0, 1), got {fee_rate}")
    if fee_rate != fee_rate.quantize(Decimal("0.0001")):
        raise ValueError(f"Fee rate must have at most 4 decimal places, got {fee_rate}")
