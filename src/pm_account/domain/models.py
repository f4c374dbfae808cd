"""Domain models for pm_account: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Account:
    user_id: str
    balance: Decimal
    is_admin: bool = False
    created_at: datetime | None = None


@dataclass
class Position:
    user_id: str
    market_id: str
    side: str
    count: Decimal = Decimal(0)
    cost_basis: Decimal = Decimal(0)  # running weighted-average cost, total dollars (not per share)

    @property
    def avg_cost(self) -> Decimal:
        if self.count <= 0:
            return Decimal(0)
        return self.cost_basis / self.count


@dataclass(frozen=True)
class TransactionRecord:
    """Append-only audit row. Never mutated once written."""

    user_id: str
    market_id: str
    side: str
    action: str                 # TransactionAction value
    shares_amount: Decimal
    cash_amount: Decimal        # BUY: investment incl. fee; SELL: payout after fee; PAYOUT: settlement cash
    fee_amount: Decimal
    price: Decimal              # average execution price
    id: int | None = None       # BIGSERIAL, assigned on insert
    created_at: datetime | None = None


@dataclass
class Holding:
    """A non-empty position joined with the market fields valuation needs."""

    user_id: str
    market_id: str
    side: str
    count: Decimal
    cost_basis: Decimal
    pool_yes: Decimal
    pool_no: Decimal
    closed: bool
    outcome: str
    question: str = ""
