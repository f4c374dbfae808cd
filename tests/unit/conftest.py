"""Unit-test fixtures: an in-memory store that speaks every repository Protocol.

FakeStore implements the ledger, account, and market repository Protocols on
plain dicts. The `db` fixture is an AsyncMock whose commit/rollback drive the
store's snapshots, so a rolled-back order really leaves no trace.
"""

import copy
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.pm_account.domain.models import Account, Holding, Position, TransactionRecord
from src.pm_common.enums import QUOTA_ACTIONS
from src.pm_common.errors import InsufficientFundsError, InternalError
from src.pm_common.locks import MarketLockRegistry
from src.pm_market.domain.models import Market, MarketStats

FIXED_NOW = datetime(2026, 3, 14, 15, 9, 26, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeStore:
    def __init__(self) -> None:
        self.markets: dict[str, Market] = {}
        self.accounts: dict[str, Account] = {}
        self.positions: dict[tuple[str, str, str], Position] = {}
        self.records: list[TransactionRecord] = []
        self.next_record_id = 1
        self.fail_on: dict[str, Exception] = {}
        self._committed = self._state()

    # --- transaction control ---

    def _state(self) -> tuple:
        return copy.deepcopy(
            (self.markets, self.accounts, self.positions, self.records, self.next_record_id)
        )

    async def commit(self) -> None:
        self._committed = self._state()

    async def rollback(self) -> None:
        (
            self.markets,
            self.accounts,
            self.positions,
            self.records,
            self.next_record_id,
        ) = copy.deepcopy(self._committed)

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail_on:
            raise self.fail_on[name]

    # --- seeding helpers (committed immediately) ---

    def seed_market(
        self,
        market_id: str = "mkt-1",
        pool_yes: Decimal = Decimal("1000"),
        pool_no: Decimal = Decimal("1000"),
        seed: Decimal | None = None,
        **kwargs: object,
    ) -> Market:
        market = Market(
            id=market_id,
            question=kwargs.pop("question", f"Question {market_id}?"),  # type: ignore[arg-type]
            pool_yes=pool_yes,
            pool_no=pool_no,
            seed_liquidity=seed if seed is not None else pool_yes,
            created_at=kwargs.pop("created_at", FIXED_NOW),  # type: ignore[arg-type]
            **kwargs,  # type: ignore[arg-type]
        )
        self.markets[market_id] = market
        self._committed = self._state()
        return market

    def seed_account(
        self, user_id: str = "alice", balance: Decimal = Decimal("1000"), is_admin: bool = False
    ) -> Account:
        account = Account(user_id=user_id, balance=balance, is_admin=is_admin, created_at=FIXED_NOW)
        self.accounts[user_id] = account
        self._committed = self._state()
        return account

    def balance(self, user_id: str) -> Decimal:
        return self.accounts[user_id].balance

    def count(self, user_id: str, market_id: str, side: str) -> Decimal:
        position = self.positions.get((user_id, market_id, side))
        return position.count if position else Decimal(0)

    # --- LedgerRepositoryProtocol ---

    async def get_market(self, db, market_id: str, for_update: bool = False) -> Market | None:
        self._maybe_fail("get_market")
        market = self.markets.get(market_id)
        return copy.copy(market) if market else None

    async def get_account(self, db, user_id: str, for_update: bool = False) -> Account | None:
        account = self.accounts.get(user_id)
        return copy.copy(account) if account else None

    async def get_position(self, db, user_id: str, market_id: str, side: str) -> Position | None:
        position = self.positions.get((user_id, market_id, side))
        return copy.copy(position) if position else None

    async def count_trades_since(self, db, user_id: str, since: datetime) -> int:
        return sum(
            1
            for r in self.records
            if r.user_id == user_id and r.action in QUOTA_ACTIONS and r.created_at >= since
        )

    async def list_market_positions(self, db, market_id: str) -> list[Position]:
        return sorted(
            (copy.copy(p) for p in self.positions.values()
             if p.market_id == market_id and p.count > 0),
            key=lambda p: (p.user_id, p.side),
        )

    async def list_market_transactions(self, db, market_id: str) -> list[TransactionRecord]:
        return [r for r in self.records if r.market_id == market_id]

    async def insert_market(self, db, market: Market) -> Market:
        self._maybe_fail("insert_market")
        stored = copy.copy(market)
        stored.created_at = stored.created_at or FIXED_NOW
        self.markets[market.id] = stored
        return copy.copy(stored)

    async def insert_account(self, db, account: Account) -> Account:
        if account.user_id not in self.accounts:
            stored = copy.copy(account)
            stored.created_at = FIXED_NOW
            self.accounts[account.user_id] = stored
        return copy.copy(self.accounts[account.user_id])

    async def update_pools(self, db, market_id: str, pool_yes: Decimal, pool_no: Decimal) -> None:
        market = self.markets.get(market_id)
        if market is None or market.closed:
            raise InternalError(f"Pool update hit 0 rows for market {market_id}")
        market.pool_yes = pool_yes
        market.pool_no = pool_no

    async def adjust_balance(self, db, user_id: str, delta: Decimal) -> Decimal:
        account = self.accounts[user_id]
        if account.balance + delta < 0:
            raise InsufficientFundsError(-delta, account.balance)
        account.balance += delta
        return account.balance

    async def save_position(self, db, position: Position) -> Position:
        self.positions[(position.user_id, position.market_id, position.side)] = copy.copy(position)
        return position

    async def append_transaction(self, db, record: TransactionRecord) -> TransactionRecord:
        self._maybe_fail("append_transaction")
        stored = TransactionRecord(
            id=self.next_record_id,
            user_id=record.user_id,
            market_id=record.market_id,
            side=record.side,
            action=record.action,
            shares_amount=record.shares_amount,
            cash_amount=record.cash_amount,
            fee_amount=record.fee_amount,
            price=record.price,
            created_at=record.created_at or FIXED_NOW,
        )
        self.next_record_id += 1
        self.records.append(stored)
        return stored

    async def zero_market_positions(self, db, market_id: str) -> None:
        for key, position in self.positions.items():
            if key[1] == market_id:
                position.count = Decimal(0)
                position.cost_basis = Decimal(0)

    async def mark_market_resolved(
        self, db, market_id: str, outcome: str, resolved_at: datetime
    ) -> None:
        market = self.markets.get(market_id)
        if market is None or market.closed:
            raise InternalError(f"Resolve hit 0 rows for market {market_id}")
        market.closed = True
        market.outcome = outcome
        market.resolved_at = resolved_at

    async def delete_market(self, db, market_id: str) -> None:
        self.records = [r for r in self.records if r.market_id != market_id]
        self.positions = {k: p for k, p in self.positions.items() if k[1] != market_id}
        self.markets.pop(market_id, None)

    # --- AccountRepositoryProtocol ---

    def _holding(self, p: Position) -> Holding:
        m = self.markets[p.market_id]
        return Holding(
            user_id=p.user_id, market_id=p.market_id, side=p.side, count=p.count,
            cost_basis=p.cost_basis, pool_yes=m.pool_yes, pool_no=m.pool_no,
            closed=m.closed, outcome=m.outcome, question=m.question,
        )

    async def list_market_positions_for_user(
        self, db, user_id: str, market_id: str
    ) -> list[Position]:
        return [
            copy.copy(p) for (u, m, _), p in sorted(self.positions.items())
            if u == user_id and m == market_id
        ]

    async def list_holdings(self, db, user_id: str) -> list[Holding]:
        return [
            self._holding(p) for (u, _, _), p in sorted(self.positions.items())
            if u == user_id and p.count > 0
        ]

    async def list_all_holdings(self, db) -> list[Holding]:
        return [self._holding(p) for _, p in sorted(self.positions.items()) if p.count > 0]

    async def list_balances(self, db) -> dict[str, Decimal]:
        return {u: a.balance for u, a in sorted(self.accounts.items())}

    async def list_user_transactions(self, db, user_id: str) -> list[TransactionRecord]:
        return [r for r in self.records if r.user_id == user_id]

    async def get_market_questions(self, db, market_ids: list[str]) -> dict[str, str]:
        return {m: self.markets[m].question for m in market_ids if m in self.markets}

    # --- MarketRepositoryProtocol ---

    def _filtered(self, closed: bool | None, group_topic: str | None = None) -> list[Market]:
        return [
            copy.copy(m) for m in self.markets.values()
            if (closed is None or m.closed == closed)
            and (group_topic is None or m.group_topic == group_topic)
        ]

    async def list_markets(
        self, db, closed, group_topic, cursor_ts, cursor_id, limit
    ) -> list[Market]:
        by_resolved = closed is True

        def sort_key(m: Market) -> tuple:
            return (m.resolved_at if by_resolved else m.created_at, m.id)

        markets = sorted(self._filtered(closed, group_topic), key=sort_key, reverse=True)
        if cursor_ts is not None:
            markets = [m for m in markets if sort_key(m) < (cursor_ts, cursor_id)]
        return markets[:limit]

    async def list_all_markets(self, db, closed: bool | None) -> list[Market]:
        return sorted(self._filtered(closed), key=lambda m: (m.created_at, m.id), reverse=True)

    async def get_market_by_id(self, db, market_id: str) -> Market | None:
        return await self.get_market(db, market_id)

    async def get_market_stats(self, db, market_id: str) -> MarketStats:
        trades = [
            r for r in self.records if r.market_id == market_id and r.action in QUOTA_ACTIONS
        ]
        return MarketStats(
            market_id=market_id,
            total_trades=len(trades),
            total_volume=sum((r.cash_amount for r in trades), Decimal(0)),
            total_fees=sum((r.fee_amount for r in trades), Decimal(0)),
            unique_traders=len({r.user_id for r in trades}),
        )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def db(store: FakeStore) -> AsyncMock:
    session = AsyncMock()
    session.commit.side_effect = store.commit
    session.rollback.side_effect = store.rollback
    return session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def locks() -> MarketLockRegistry:
    return MarketLockRegistry()
