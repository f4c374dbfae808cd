"""Pydantic schemas for pm_account API: balance, quota, positions, portfolio, leaderboard."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.pm_account.domain.valuation import LeaderboardRow
from src.pm_common.decimal_utils import money_to_display
from src.pm_risk.rules.daily_quota import QuotaStatus

# ---------------------------------------------------------------------------
# Account / balance
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    user_id: str
    balance: Decimal
    balance_display: str
    is_admin: bool
    created_at: datetime | None


class BalanceResponse(BaseModel):
    user_id: str
    balance: Decimal
    balance_display: str

    @classmethod
    def from_amount(cls, user_id: str, balance: Decimal) -> "BalanceResponse":
        return cls(user_id=user_id, balance=balance, balance_display=money_to_display(balance))


class QuotaResponse(BaseModel):
    daily_cap: int
    used: int
    remaining: int
    window_start: datetime

    @classmethod
    def from_status(cls, status: QuotaStatus) -> "QuotaResponse":
        return cls(
            daily_cap=status.daily_cap,
            used=status.used,
            remaining=status.remaining,
            window_start=status.window_start,
        )


class NetWorthResponse(BaseModel):
    user_id: str
    cash: Decimal
    shares_value: Decimal
    net_worth: Decimal
    net_worth_display: str


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------


class MarketPositionResponse(BaseModel):
    """Share counts held on both sides of one market."""

    market_id: str
    yes: Decimal
    no: Decimal


class ActivePositionItem(BaseModel):
    market_id: str
    question: str
    side: str
    shares: Decimal
    avg_cost: Decimal
    current_price: Decimal
    current_value: Decimal
    cost_basis: Decimal
    pnl: Decimal
    pnl_percent: Decimal


class SettledPositionItem(BaseModel):
    market_id: str
    question: str
    side: str
    shares: Decimal
    won: bool
    settlement_value: Decimal
    cost_basis: Decimal
    pnl: Decimal
    pnl_percent: Decimal
    settled_at: datetime | None


class PortfolioResponse(BaseModel):
    user_id: str
    cash: Decimal
    active: list[ActivePositionItem]
    settled: list[SettledPositionItem]
    active_value: Decimal
    net_worth: Decimal


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------


class LeaderboardItem(BaseModel):
    rank: int
    user_id: str
    cash: Decimal
    shares_value: Decimal
    net_worth: Decimal
    net_worth_display: str

    @classmethod
    def from_row(cls, rank: int, row: LeaderboardRow) -> "LeaderboardItem":
        return cls(
            rank=rank,
            user_id=row.user_id,
            cash=row.cash,
            shares_value=row.shares_value,
            net_worth=row.net_worth,
            net_worth_display=money_to_display(row.net_worth),
        )


class LeaderboardResponse(BaseModel):
    items: list[LeaderboardItem]
    total: int
