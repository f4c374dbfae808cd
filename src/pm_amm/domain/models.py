"""Quote value objects: immutable, produced by the curve, consumed by the executor."""

from dataclasses import dataclass
from decimal import Decimal

from src.pm_common.enums import OrderMode, Side


@dataclass(frozen=True)
class PoolState:
    pool_yes: Decimal
    pool_no: Decimal

    @property
    def k(self) -> Decimal:
        return self.pool_yes * self.pool_no

    @property
    def total(self) -> Decimal:
        return self.pool_yes + self.pool_no

    def pool_for(self, side: Side) -> Decimal:
        return self.pool_yes if side is Side.YES else self.pool_no

    @classmethod
    def from_sides(cls, side: Side, same: Decimal, opposite: Decimal) -> "PoolState":
        if side is Side.YES:
            return cls(pool_yes=same, pool_no=opposite)
        return cls(pool_yes=opposite, pool_no=same)


@dataclass(frozen=True)
class BuyQuote:
    side: Side
    investment: Decimal
    fee: Decimal
    net_investment: Decimal
    minted_shares: Decimal   # mint leg: one share per net currency unit, outside the curve
    swap_shares: Decimal     # swap leg: curve yield
    total_shares: Decimal
    avg_price: Decimal
    current_price: Decimal
    final_price: Decimal
    price_impact_pct: Decimal
    pools_before: PoolState
    pools_after: PoolState

    mode: OrderMode = OrderMode.BUY


@dataclass(frozen=True)
class SellQuote:
    side: Side
    shares_sold: Decimal
    swap_amount: Decimal
    payout_before_fee: Decimal
    fee: Decimal
    payout: Decimal
    avg_price: Decimal
    current_price: Decimal
    final_price: Decimal
    price_impact_pct: Decimal
    pools_before: PoolState
    pools_after: PoolState

    mode: OrderMode = OrderMode.SELL
