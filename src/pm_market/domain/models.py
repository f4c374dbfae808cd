"""Domain models for pm_market: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.pm_amm.domain.models import PoolState
from src.pm_common.enums import MarketOutcome, Side


@dataclass
class Market:
    id: str
    question: str
    pool_yes: Decimal
    pool_no: Decimal
    seed_liquidity: Decimal
    description: str | None = None
    group_topic: str | None = None
    closed: bool = False
    outcome: str = MarketOutcome.PENDING.value
    resolved_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def pools(self) -> PoolState:
        return PoolState(pool_yes=self.pool_yes, pool_no=self.pool_no)

    def is_winning_side(self, side: Side) -> bool:
        return self.closed and self.outcome == side.value


@dataclass
class MarketStats:
    market_id: str
    total_trades: int = 0
    total_volume: Decimal = Decimal(0)
    total_fees: Decimal = Decimal(0)
    unique_traders: int = 0


@dataclass
class MarketGroup:
    """Markets sharing a group_topic; topic None collects the standalone markets."""

    topic: str | None
    markets: list[Market] = field(default_factory=list)
