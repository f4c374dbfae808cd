"""Business pre-checks run against rows already locked in the order transaction."""

from decimal import Decimal

from src.pm_account.domain.models import Account, Position
from src.pm_common.errors import InsufficientFundsError, InsufficientSharesError


def check_sufficient_funds(account: Account, investment: Decimal) -> None:
    if investment > account.balance:
        raise InsufficientFundsError(investment, account.balance)


def check_sufficient_shares(position: Position | None, shares: Decimal) -> None:
    held = position.count if position is not None else Decimal(0)
    if shares > held:
        raise InsufficientSharesError(shares, held)
