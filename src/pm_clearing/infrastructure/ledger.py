"""LedgerRepository: PostgreSQL implementation of LedgerRepositoryProtocol.

Raw text() SQL throughout. Row locks (FOR UPDATE) are taken market first,
then accounts, so concurrent orders and resolutions never deadlock on each
other.

Transaction ownership: the CALLER (OrderExecutor / ResolutionEngine /
application service) commits or rolls back.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Account, Position, TransactionRecord
from src.pm_common.enums import QUOTA_ACTIONS
from src.pm_common.errors import InsufficientFundsError, InternalError
from src.pm_market.domain.models import Market

# ---------------------------------------------------------------------------
# SQL: markets
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, question, description, group_topic,
    pool_yes, pool_no, seed_liquidity,
    closed, outcome, resolved_at, created_at
"""

_GET_MARKET_SQL = text(f"SELECT {_MARKET_COLUMNS} FROM markets WHERE id = :market_id")

_LOCK_MARKET_SQL = text(
    f"SELECT {_MARKET_COLUMNS} FROM markets WHERE id = :market_id FOR UPDATE"
)

_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets
        (id, question, description, group_topic,
         pool_yes, pool_no, seed_liquidity, closed, outcome)
    VALUES
        (:id, :question, :description, :group_topic,
         :pool_yes, :pool_no, :seed_liquidity, FALSE, 'PENDING')
    RETURNING {_MARKET_COLUMNS}
""")

_UPDATE_POOLS_SQL = text("""
    UPDATE markets
    SET pool_yes = :pool_yes,
        pool_no = :pool_no,
        updated_at = NOW()
    WHERE id = :market_id AND closed = FALSE
""")

_RESOLVE_MARKET_SQL = text("""
    UPDATE markets
    SET closed = TRUE,
        outcome = :outcome,
        resolved_at = :resolved_at,
        updated_at = NOW()
    WHERE id = :market_id AND closed = FALSE
""")

_DELETE_MARKET_RECORDS_SQL = text(
    "DELETE FROM transaction_records WHERE market_id = :market_id"
)
_DELETE_MARKET_POSITIONS_SQL = text("DELETE FROM positions WHERE market_id = :market_id")
_DELETE_MARKET_SQL = text("DELETE FROM markets WHERE id = :market_id")

# ---------------------------------------------------------------------------
# SQL: accounts
# ---------------------------------------------------------------------------

_GET_ACCOUNT_SQL = text("""
    SELECT user_id, balance, is_admin, created_at
    FROM accounts
    WHERE user_id = :user_id
""")

_LOCK_ACCOUNT_SQL = text("""
    SELECT user_id, balance, is_admin, created_at
    FROM accounts
    WHERE user_id = :user_id
    FOR UPDATE
""")

_INSERT_ACCOUNT_SQL = text("""
    INSERT INTO accounts (user_id, balance, is_admin)
    VALUES (:user_id, :balance, :is_admin)
    ON CONFLICT (user_id) DO NOTHING
    RETURNING user_id, balance, is_admin, created_at
""")

_ADJUST_BALANCE_SQL = text("""
    UPDATE accounts
    SET balance = balance + :delta,
        updated_at = NOW()
    WHERE user_id = :user_id AND balance + :delta >= 0
    RETURNING balance
""")

# ---------------------------------------------------------------------------
# SQL: positions
# ---------------------------------------------------------------------------

_GET_POSITION_SQL = text("""
    SELECT user_id, market_id, side, count, cost_basis
    FROM positions
    WHERE user_id = :user_id AND market_id = :market_id AND side = :side
""")

_SAVE_POSITION_SQL = text("""
    INSERT INTO positions (user_id, market_id, side, count, cost_basis)
    VALUES (:user_id, :market_id, :side, :count, :cost_basis)
    ON CONFLICT (user_id, market_id, side) DO UPDATE
        SET count = EXCLUDED.count,
            cost_basis = EXCLUDED.cost_basis,
            updated_at = NOW()
    RETURNING user_id, market_id, side, count, cost_basis
""")

_LIST_MARKET_POSITIONS_SQL = text("""
    SELECT user_id, market_id, side, count, cost_basis
    FROM positions
    WHERE market_id = :market_id AND count > 0
    ORDER BY user_id, side
    FOR UPDATE
""")

_ZERO_MARKET_POSITIONS_SQL = text("""
    UPDATE positions
    SET count = 0, cost_basis = 0, updated_at = NOW()
    WHERE market_id = :market_id
""")

# ---------------------------------------------------------------------------
# SQL: transaction records (append-only)
# ---------------------------------------------------------------------------

_INSERT_RECORD_SQL = text("""
    INSERT INTO transaction_records
        (user_id, market_id, side, action,
         shares_amount, cash_amount, fee_amount, price, created_at)
    VALUES
        (:user_id, :market_id, :side, :action,
         :shares_amount, :cash_amount, :fee_amount, :price, :created_at)
    RETURNING id, created_at
""")

_COUNT_TRADES_SQL = text("""
    SELECT COUNT(*)
    FROM transaction_records
    WHERE user_id = :user_id
      AND action = ANY(:actions)
      AND created_at >= :since
""")

_LIST_MARKET_RECORDS_SQL = text("""
    SELECT id, user_id, market_id, side, action,
           shares_amount, cash_amount, fee_amount, price, created_at
    FROM transaction_records
    WHERE market_id = :market_id
    ORDER BY id
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------

def row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        question=row.question,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        group_topic=row.group_topic,  # type: ignore[attr-defined]
        pool_yes=row.pool_yes,  # type: ignore[attr-defined]
        pool_no=row.pool_no,  # type: ignore[attr-defined]
        seed_liquidity=row.seed_liquidity,  # type: ignore[attr-defined]
        closed=row.closed,  # type: ignore[attr-defined]
        outcome=row.outcome,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def row_to_account(row: object) -> Account:
    return Account(
        user_id=row.user_id,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        is_admin=row.is_admin,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def row_to_position(row: object) -> Position:
    return Position(
        user_id=row.user_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        count=row.count,  # type: ignore[attr-defined]
        cost_basis=row.cost_basis,  # type: ignore[attr-defined]
    )


def row_to_record(row: object) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        action=row.action,  # type: ignore[attr-defined]
        shares_amount=row.shares_amount,  # type: ignore[attr-defined]
        cash_amount=row.cash_amount,  # type: ignore[attr-defined]
        fee_amount=row.fee_amount,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class LedgerRepository:
    """Concrete ledger: every mutation is a single SQL statement in the caller's transaction."""

    async def get_market(
        self, db: AsyncSession, market_id: str, for_update: bool = False
    ) -> Market | None:
        sql = _LOCK_MARKET_SQL if for_update else _GET_MARKET_SQL
        row = (await db.execute(sql, {"market_id": market_id})).fetchone()
        return row_to_market(row) if row else None

    async def get_account(
        self, db: AsyncSession, user_id: str, for_update: bool = False
    ) -> Account | None:
        sql = _LOCK_ACCOUNT_SQL if for_update else _GET_ACCOUNT_SQL
        row = (await db.execute(sql, {"user_id": user_id})).fetchone()
        return row_to_account(row) if row else None

    async def get_position(
        self, db: AsyncSession, user_id: str, market_id: str, side: str
    ) -> Position | None:
        row = (
            await db.execute(
                _GET_POSITION_SQL,
                {"user_id": user_id, "market_id": market_id, "side": side},
            )
        ).fetchone()
        return row_to_position(row) if row else None

    async def count_trades_since(
        self, db: AsyncSession, user_id: str, since: datetime
    ) -> int:
        result = await db.execute(
            _COUNT_TRADES_SQL,
            {"user_id": user_id, "actions": list(QUOTA_ACTIONS), "since": since},
        )
        return int(result.scalar_one())

    async def list_market_positions(
        self, db: AsyncSession, market_id: str
    ) -> list[Position]:
        rows = (await db.execute(_LIST_MARKET_POSITIONS_SQL, {"market_id": market_id})).fetchall()
        return [row_to_position(r) for r in rows]

    async def list_market_transactions(
        self, db: AsyncSession, market_id: str
    ) -> list[TransactionRecord]:
        rows = (await db.execute(_LIST_MARKET_RECORDS_SQL, {"market_id": market_id})).fetchall()
        return [row_to_record(r) for r in rows]

    async def insert_market(self, db: AsyncSession, market: Market) -> Market:
        row = (
            await db.execute(
                _INSERT_MARKET_SQL,
                {
                    "id": market.id,
                    "question": market.question,
                    "description": market.description,
                    "group_topic": market.group_topic,
                    "pool_yes": market.pool_yes,
                    "pool_no": market.pool_no,
                    "seed_liquidity": market.seed_liquidity,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Market insert returned no rows: this should never happen")
        return row_to_market(row)

    async def insert_account(self, db: AsyncSession, account: Account) -> Account:
        """Idempotent: an existing account is returned untouched."""
        row = (
            await db.execute(
                _INSERT_ACCOUNT_SQL,
                {
                    "user_id": account.user_id,
                    "balance": account.balance,
                    "is_admin": account.is_admin,
                },
            )
        ).fetchone()
        if row is not None:
            return row_to_account(row)
        existing = await self.get_account(db, account.user_id)
        if existing is None:
            raise InternalError(f"Account {account.user_id} vanished during insert")
        return existing

    async def update_pools(
        self, db: AsyncSession, market_id: str, pool_yes: Decimal, pool_no: Decimal
    ) -> None:
        result = await db.execute(
            _UPDATE_POOLS_SQL,
            {"market_id": market_id, "pool_yes": pool_yes, "pool_no": pool_no},
        )
        if result.rowcount != 1:
            raise InternalError(f"Pool update hit {result.rowcount} rows for market {market_id}")

    async def adjust_balance(
        self, db: AsyncSession, user_id: str, delta: Decimal
    ) -> Decimal:
        """Atomic balance += delta. Refuses to go below zero."""
        row = (
            await db.execute(_ADJUST_BALANCE_SQL, {"user_id": user_id, "delta": delta})
        ).fetchone()
        if row is None:
            account = await self.get_account(db, user_id)
            available = account.balance if account else Decimal(0)
            raise InsufficientFundsError(-delta, available)
        return row.balance  # type: ignore[no-any-return]

    async def save_position(self, db: AsyncSession, position: Position) -> Position:
        row = (
            await db.execute(
                _SAVE_POSITION_SQL,
                {
                    "user_id": position.user_id,
                    "market_id": position.market_id,
                    "side": position.side,
                    "count": position.count,
                    "cost_basis": position.cost_basis,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Position upsert returned no rows: this should never happen")
        return row_to_position(row)

    async def append_transaction(
        self, db: AsyncSession, record: TransactionRecord
    ) -> TransactionRecord:
        row = (
            await db.execute(
                _INSERT_RECORD_SQL,
                {
                    "user_id": record.user_id,
                    "market_id": record.market_id,
                    "side": record.side,
                    "action": record.action,
                    "shares_amount": record.shares_amount,
                    "cash_amount": record.cash_amount,
                    "fee_amount": record.fee_amount,
                    "price": record.price,
                    "created_at": record.created_at,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Record insert returned no rows: this should never happen")
        return TransactionRecord(
            id=row.id,
            user_id=record.user_id,
            market_id=record.market_id,
            side=record.side,
            action=record.action,
            shares_amount=record.shares_amount,
            cash_amount=record.cash_amount,
            fee_amount=record.fee_amount,
            price=record.price,
            created_at=row.created_at,
        )

    async def zero_market_positions(self, db: AsyncSession, market_id: str) -> None:
        await db.execute(_ZERO_MARKET_POSITIONS_SQL, {"market_id": market_id})

    async def mark_market_resolved(
        self, db: AsyncSession, market_id: str, outcome: str, resolved_at: datetime
    ) -> None:
        result = await db.execute(
            _RESOLVE_MARKET_SQL,
            {"market_id": market_id, "outcome": outcome, "resolved_at": resolved_at},
        )
        if result.rowcount != 1:
            raise InternalError(f"Resolve hit {result.rowcount} rows for market {market_id}")

    async def delete_market(self, db: AsyncSession, market_id: str) -> None:
        await db.execute(_DELETE_MARKET_RECORDS_SQL, {"market_id": market_id})
        await db.execute(_DELETE_MARKET_POSITIONS_SQL, {"market_id": market_id})
        await db.execute(_DELETE_MARKET_SQL, {"market_id": market_id})
