"""Unit tests for LedgerRepository using MagicMock AsyncSession."""
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_account.domain.models import Account, Position, TransactionRecord
from src.pm_clearing.infrastructure.ledger import LedgerRepository
from src.pm_common.errors import InsufficientFundsError, InternalError
from src.pm_market.domain.models import Market

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=UTC)


def _make_market_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "mkt-1")
    row.question = kwargs.get("question", "Will it rain?")
    row.description = None
    row.group_topic = kwargs.get("group_topic")
    row.pool_yes = Decimal(kwargs.get("pool_yes", "1000"))
    row.pool_no = Decimal(kwargs.get("pool_no", "1000"))
    row.seed_liquidity = Decimal("1000")
    row.closed = kwargs.get("closed", False)
    row.outcome = kwargs.get("outcome", "PENDING")
    row.resolved_at = None
    row.created_at = NOW
    return row


def _make_account_row(balance: str = "1000"):
    row = MagicMock()
    row.user_id = "alice"
    row.balance = Decimal(balance)
    row.is_admin = False
    row.created_at = NOW
    return row


def _result(fetchone=None, fetchall=None, rowcount=1, scalar=None):
    result = MagicMock()
    result.fetchone.return_value = fetchone
    result.fetchall.return_value = fetchall or []
    result.rowcount = rowcount
    result.scalar_one.return_value = scalar
    return result


def _sql(call) -> str:
    return str(call.args[0])


@pytest.fixture
def db():
    return MagicMock()


class TestMarkets:
    @pytest.mark.asyncio
    async def test_get_market_found(self, db):
        db.execute = AsyncMock(return_value=_result(fetchone=_make_market_row(pool_yes="900")))
        market = await LedgerRepository().get_market(db, "mkt-1")
        assert market is not None
        assert market.pool_yes == Decimal("900")
        assert "FOR UPDATE" not in _sql(db.execute.call_args)

    @pytest.mark.asyncio
    async def test_get_market_for_update_locks_row(self, db):
        db.execute = AsyncMock(return_value=_result(fetchone=_make_market_row()))
        await LedgerRepository().get_market(db, "mkt-1", for_update=True)
        assert "FOR UPDATE" in _sql(db.execute.call_args)

    @pytest.mark.asyncio
    async def test_get_market_missing(self, db):
        db.execute = AsyncMock(return_value=_result(fetchone=None))
        assert await LedgerRepository().get_market(db, "nope") is None

    @pytest.mark.asyncio
    async def test_insert_market_passes_pools(self, db):
        db.execute = AsyncMock(return_value=_result(fetchone=_make_market_row()))
        market = Market(
            id="mkt-1", question="Will it rain?", pool_yes=Decimal("1000"),
            pool_no=Decimal("1000"), seed_liquidity=Decimal("1000"),
        )
        stored = await LedgerRepository().insert_market(db, market)
        params = db.execute.call_args.args[1]
        assert params["pool_yes"] == Decimal("1000")
        assert params["seed_liquidity"] == Decimal("1000")
        assert stored.created_at == NOW

    @pytest.mark.asyncio
    async def test_update_pools_on_closed_market_is_internal_error(self, db):
        db.execute = AsyncMock(return_value=_result(rowcount=0))
        with pytest.raises(InternalError):
            await LedgerRepository().update_pools(db, "mkt-1", Decimal(1), Decimal(1))

    @pytest.mark.asyncio
    async def test_mark_resolved_requires_open_market(self, db):
        db.execute = AsyncMock(return_value=_result(rowcount=0))
        with pytest.raises(InternalError):
            await LedgerRepository().mark_market_resolved(db, "mkt-1", "YES", NOW)

    @pytest.mark.asyncio
    async def test_delete_market_removes_children_first(self, db):
        db.execute = AsyncMock(return_value=_result())
        await LedgerRepository().delete_market(db, "mkt-1")
        statements = [_sql(c) for c in db.execute.call_args_list]
        assert "transaction_records" in statements[0]
        assert "positions" in statements[1]
        assert "FROM markets" in statements[2]


class TestAccounts:
    @pytest.mark.asyncio
    async def test_insert_new_account(self, db):
        db.execute = AsyncMock(return_value=_result(fetchone=_make_account_row()))
        account = await LedgerRepository().insert_account(
            db, Account(user_id="alice", balance=Decimal("1000"))
        )
        assert account.balance == Decimal("1000")
        assert db.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_insert_existing_account_returns_stored_row(self, db):
        db.execute = AsyncMock(
            side_effect=[_result(fetchone=None), _result(fetchone=_make_account_row("42.5"))]
        )
        account = await LedgerRepository().insert_account(
            db, Account(user_id="alice", balance=Decimal("1000"))
        )
        assert account.balance == Decimal("42.5")

    @pytest.mark.asyncio
    async def test_adjust_balance_returns_new_balance(self, db):
        row = MagicMock()
        row.balance = Decimal("900")
        db.execute = AsyncMock(return_value=_result(fetchone=row))
        assert await LedgerRepository().adjust_balance(db, "alice", Decimal("-100")) == Decimal(
            "900"
        )

    @pytest.mark.asyncio
    async def test_adjust_balance_below_zero_refused(self, db):
        db.execute = AsyncMock(
            side_effect=[_result(fetchone=None), _result(fetchone=_make_account_row("5"))]
        )
        with pytest.raises(InsufficientFundsError):
            await LedgerRepository().adjust_balance(db, "alice", Decimal("-10"))


class TestPositionsAndRecords:
    @pytest.mark.asyncio
    async def test_save_position_upserts(self, db):
        row = MagicMock()
        row.user_id, row.market_id, row.side = "alice", "mkt-1", "YES"
        row.count, row.cost_basis = Decimal("5"), Decimal("2.5")
        db.execute = AsyncMock(return_value=_result(fetchone=row))

        saved = await LedgerRepository().save_position(
            db, Position(user_id="alice", market_id="mkt-1", side="YES",
                         count=Decimal("5"), cost_basis=Decimal("2.5")),
        )
        assert "ON CONFLICT" in _sql(db.execute.call_args)
        assert saved.count == Decimal("5")

    @pytest.mark.asyncio
    async def test_append_transaction_assigns_id(self, db):
        row = MagicMock()
        row.id = 77
        row.created_at = NOW
        db.execute = AsyncMock(return_value=_result(fetchone=row))

        stored = await LedgerRepository().append_transaction(
            db,
            TransactionRecord(
                user_id="alice", market_id="mkt-1", side="YES", action="BUY",
                shares_amount=Decimal("10"), cash_amount=Decimal("5"),
                fee_amount=Decimal("0.1"), price=Decimal("0.5"), created_at=NOW,
            ),
        )
        assert stored.id == 77
        assert stored.cash_amount == Decimal("5")

    @pytest.mark.asyncio
    async def test_count_trades_only_buy_and_sell(self, db):
        db.execute = AsyncMock(return_value=_result(scalar=3))
        count = await LedgerRepository().count_trades_since(db, "alice", NOW)
        assert count == 3
        assert db.execute.call_args.args[1]["actions"] == ["BUY", "SELL"]
