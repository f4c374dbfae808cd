"""AccountRepository: concrete implementation of AccountRepositoryProtocol.

Read-only raw text() SQL. Holdings join each non-empty position with the
market fields valuation needs, so one query prices a whole portfolio.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Holding, Position, TransactionRecord
from src.pm_clearing.infrastructure.ledger import row_to_position, row_to_record

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_LIST_USER_MARKET_POSITIONS_SQL = text("""
    SELECT user_id, market_id, side, count, cost_basis
    FROM positions
    WHERE user_id = :user_id AND market_id = :market_id
    ORDER BY side
""")

_HOLDING_COLUMNS = """
    p.user_id, p.market_id, p.side, p.count, p.cost_basis,
    m.pool_yes, m.pool_no, m.closed, m.outcome, m.question
"""

_LIST_USER_HOLDINGS_SQL = text(f"""
    SELECT {_HOLDING_COLUMNS}
    FROM positions p
    JOIN markets m ON m.id = p.market_id
    WHERE p.user_id = :user_id AND p.count > 0
    ORDER BY m.created_at DESC, p.market_id, p.side
""")

_LIST_ALL_HOLDINGS_SQL = text(f"""
    SELECT {_HOLDING_COLUMNS}
    FROM positions p
    JOIN markets m ON m.id = p.market_id
    WHERE p.count > 0
""")

_LIST_BALANCES_SQL = text("SELECT user_id, balance FROM accounts ORDER BY user_id")

_LIST_USER_RECORDS_SQL = text("""
    SELECT id, user_id, market_id, side, action,
           shares_amount, cash_amount, fee_amount, price, created_at
    FROM transaction_records
    WHERE user_id = :user_id
    ORDER BY id
""")

_MARKET_QUESTIONS_SQL = text("""
    SELECT id, question FROM markets WHERE id = ANY(:market_ids)
""")


def _row_to_holding(row: object) -> Holding:
    return Holding(
        user_id=row.user_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        count=row.count,  # type: ignore[attr-defined]
        cost_basis=row.cost_basis,  # type: ignore[attr-defined]
        pool_yes=row.pool_yes,  # type: ignore[attr-defined]
        pool_no=row.pool_no,  # type: ignore[attr-defined]
        closed=row.closed,  # type: ignore[attr-defined]
        outcome=row.outcome,  # type: ignore[attr-defined]
        question=row.question,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class AccountRepository:
    async def list_market_positions_for_user(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> list[Position]:
        rows = (
            await db.execute(
                _LIST_USER_MARKET_POSITIONS_SQL, {"user_id": user_id, "market_id": market_id}
            )
        ).fetchall()
        return [row_to_position(r) for r in rows]

    async def list_holdings(self, db: AsyncSession, user_id: str) -> list[Holding]:
        rows = (await db.execute(_LIST_USER_HOLDINGS_SQL, {"user_id": user_id})).fetchall()
        return [_row_to_holding(r) for r in rows]

    async def list_all_holdings(self, db: AsyncSession) -> list[Holding]:
        rows = (await db.execute(_LIST_ALL_HOLDINGS_SQL)).fetchall()
        return [_row_to_holding(r) for r in rows]

    async def list_balances(self, db: AsyncSession) -> dict[str, Decimal]:
        rows = (await db.execute(_LIST_BALANCES_SQL)).fetchall()
        return {r.user_id: r.balance for r in rows}

    async def list_user_transactions(
        self, db: AsyncSession, user_id: str
    ) -> list[TransactionRecord]:
        rows = (await db.execute(_LIST_USER_RECORDS_SQL, {"user_id": user_id})).fetchall()
        return [row_to_record(r) for r in rows]

    async def get_market_questions(
        self, db: AsyncSession, market_ids: list[str]
    ) -> dict[str, str]:
        if not market_ids:
            return {}
        rows = (await db.execute(_MARKET_QUESTIONS_SQL, {"market_ids": market_ids})).fetchall()
        return {r.id: r.question for r in rows}
