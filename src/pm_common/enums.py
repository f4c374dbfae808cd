"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class Side(str, Enum):
    YES = "YES"
    NO = "NO"

    @property
    def opposite(self) -> "Side":
        return Side.NO if self is Side.YES else Side.YES


class OrderMode(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TransactionAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    # Written by resolution for every non-empty position; never counted toward quota
    PAYOUT = "PAYOUT"


class MarketOutcome(str, Enum):
    PENDING = "PENDING"
    YES = "YES"
    NO = "NO"


class MarketStatusFilter(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    ALL = "ALL"


QUOTA_ACTIONS: tuple[str, ...] = (TransactionAction.BUY.value, TransactionAction.SELL.value)
