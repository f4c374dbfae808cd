"""Valuation: mark-to-market, net worth, leaderboard ranking, cost basis.

Pure functions; the application service feeds them rows read from storage.

Cost basis is a running weighted average:
    BUY : cost += cash_spent;              shares += shares_bought
    SELL: cost -= cost * sold / shares;    shares -= shares_sold
Positions keep it incrementally; `replay_cost_basis` rebuilds it from the
transaction log for settled positions whose counts were zeroed.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_account.domain.models import Holding, Position, TransactionRecord
from src.pm_amm.domain.curve import price_of
from src.pm_amm.domain.models import PoolState
from src.pm_common.decimal_utils import AMOUNT_QUANT, quantize_down
from src.pm_common.enums import Side, TransactionAction

_ZERO = Decimal(0)
_PCT_QUANT = Decimal("0.01")


@dataclass(frozen=True)
class CostBasis:
    shares: Decimal = _ZERO
    cost: Decimal = _ZERO

    @property
    def avg_cost(self) -> Decimal:
        return self.cost / self.shares if self.shares > 0 else _ZERO

    def buy(self, shares_bought: Decimal, cash_spent: Decimal) -> "CostBasis":
        return CostBasis(shares=self.shares + shares_bought, cost=self.cost + cash_spent)

    def sell(self, shares_sold: Decimal) -> "CostBasis":
        if shares_sold >= self.shares:
            return CostBasis()
        released = quantize_down(self.cost * shares_sold / self.shares)
        return CostBasis(shares=self.shares - shares_sold, cost=self.cost - released)


def apply_buy(position: Position, shares_bought: Decimal, cash_spent: Decimal) -> Position:
    basis = CostBasis(position.count, position.cost_basis).buy(shares_bought, cash_spent)
    return Position(
        user_id=position.user_id,
        market_id=position.market_id,
        side=position.side,
        count=basis.shares,
        cost_basis=basis.cost,
    )


def apply_sell(position: Position, shares_sold: Decimal) -> Position:
    basis = CostBasis(position.count, position.cost_basis).sell(shares_sold)
    return Position(
        user_id=position.user_id,
        market_id=position.market_id,
        side=position.side,
        count=basis.shares,
        cost_basis=basis.cost,
    )


def replay_cost_basis(records: Iterable[TransactionRecord]) -> CostBasis:
    """Replay BUY/SELL records (in id order) for a single user x market x side."""
    basis = CostBasis()
    for record in records:
        basis = _replay_step(basis, record)
    return basis


def _replay_step(basis: CostBasis, record: TransactionRecord) -> CostBasis:
    if record.action == TransactionAction.BUY.value:
        return basis.buy(record.shares_amount, record.cash_amount)
    if record.action == TransactionAction.SELL.value:
        return basis.sell(record.shares_amount)
    return basis


def mark_price(holding: Holding) -> Decimal:
    """$1 for the winning side of a closed market, $0 for the loser, live AMM price otherwise."""
    side = Side(holding.side)
    if holding.closed:
        return Decimal(1) if holding.outcome == side.value else _ZERO
    return price_of(PoolState(holding.pool_yes, holding.pool_no), side)


def mark_value(holding: Holding) -> Decimal:
    return (holding.count * mark_price(holding)).quantize(AMOUNT_QUANT)


def shares_value(holdings: Iterable[Holding]) -> Decimal:
    return sum((mark_value(h) for h in holdings), _ZERO)


def net_worth(cash: Decimal, holdings: Iterable[Holding]) -> Decimal:
    return cash + shares_value(holdings)


def pnl_percent(pnl: Decimal, cost_basis: Decimal) -> Decimal:
    if cost_basis <= 0:
        return _ZERO
    return (pnl / cost_basis * 100).quantize(_PCT_QUANT)


@dataclass(frozen=True)
class LeaderboardRow:
    user_id: str
    cash: Decimal
    shares_value: Decimal
    net_worth: Decimal


def rank_leaderboard(
    balances: dict[str, Decimal], holdings: Iterable[Holding]
) -> list[LeaderboardRow]:
    """Net worth descending; equal net worth falls back to user_id ascending."""
    by_user: dict[str, list[Holding]] = {user_id: [] for user_id in balances}
    for holding in holdings:
        if holding.user_id in by_user:
            by_user[holding.user_id].append(holding)

    rows = []
    for user_id, cash in balances.items():
        value = shares_value(by_user[user_id])
        rows.append(
            LeaderboardRow(
                user_id=user_id,
                cash=cash,
                shares_value=value,
                net_worth=cash + value,
            )
        )
    rows.sort(key=lambda r: (-r.net_worth, r.user_id))
    return rows


@dataclass(frozen=True)
class SettledEntry:
    market_id: str
    side: str
    shares: Decimal
    payout: Decimal
    cost_basis: Decimal
    settled_at: datetime | None

    @property
    def won(self) -> bool:
        return self.payout > 0

    @property
    def pnl(self) -> Decimal:
        return self.payout - self.cost_basis


def settled_entries(records: Iterable[TransactionRecord]) -> list[SettledEntry]:
    """Walk one user's records in id order; each PAYOUT closes the replayed basis of its side."""
    bases: dict[tuple[str, str], CostBasis] = {}
    entries = []
    for record in records:
        key = (record.market_id, record.side)
        if record.action == TransactionAction.PAYOUT.value:
            basis = bases.pop(key, CostBasis())
            entries.append(
                SettledEntry(
                    market_id=record.market_id,
                    side=record.side,
                    shares=record.shares_amount,
                    payout=record.cash_amount,
                    cost_basis=basis.cost,
                    settled_at=record.created_at,
                )
            )
        else:
            bases[key] = _replay_step(bases.get(key, CostBasis()), record)
    return entries
