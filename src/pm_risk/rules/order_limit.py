from decimal import Decimal

from src.pm_common.decimal_utils import MAX_INVESTMENT_PLACES, MAX_SHARE_PLACES, decimal_places
from src.pm_common.enums import OrderMode
from src.pm_common.errors import ValidationError


def check_order_amount(mode: OrderMode, amount: Decimal) -> None:
    """Raise ValidationError unless amount is a positive, finite, correctly scaled number.

    BUY amounts are dollars (cents precision); SELL amounts are shares.
    """
    if not amount.is_finite():
        raise ValidationError(f"Amount must be a finite number, got {amount}")
    if amount <= 0:
        raise ValidationError(f"Amount must be positive, got {amount}")
    max_places = MAX_INVESTMENT_PLACES if mode is OrderMode.BUY else MAX_SHARE_PLACES
    if decimal_places(amount) > max_places:
        raise ValidationError(
            f"{mode.value} amount {amount} has more than {max_places} decimal places"
        )


def check_price_bound(bound: Decimal) -> None:
    """Slippage bounds are prices: a finite, non-negative number."""
    if not bound.is_finite() or bound < 0:
        raise ValidationError(f"Slippage bound must be a non-negative price, got {bound}")
