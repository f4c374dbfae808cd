"""Order domain models: pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import dataclass
from decimal import Decimal

from src.pm_common.enums import OrderMode, Side


@dataclass(frozen=True)
class OrderCommand:
    market_id: str
    user_id: str
    side: Side
    mode: OrderMode
    amount: Decimal  # BUY: dollars invested (fee included); SELL: shares sold
    slippage_bound: Decimal  # BUY: max final price; SELL: min final price


@dataclass(frozen=True)
class OrderReceipt:
    market_id: str
    user_id: str
    side: str
    mode: str
    shares: Decimal  # received on BUY, sold on SELL
    cash: Decimal  # spent on BUY (fee included), received on SELL (after fee)
    fee: Decimal
    avg_price: Decimal
    final_price: Decimal
    price_impact_pct: Decimal
    remaining_quota: int
    balance: Decimal
    position_count: Decimal
    transaction_id: int | None = None
