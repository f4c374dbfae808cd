"""MarketRepository: concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Ordering: closed markets list by resolved_at (most recently resolved first),
everything else by created_at (newest first). The pagination cursor carries
whichever timestamp the list is ordered by.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_clearing.infrastructure.ledger import row_to_market
from src.pm_common.enums import QUOTA_ACTIONS
from src.pm_market.domain.models import Market, MarketStats

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, question, description, group_topic,
    pool_yes, pool_no, seed_liquidity,
    closed, outcome, resolved_at, created_at
"""

_GET_MARKET_SQL = text(f"SELECT {_MARKET_COLUMNS} FROM markets WHERE id = :market_id")

_FILTERS = """
    (CAST(:closed AS BOOLEAN) IS NULL OR closed = CAST(:closed AS BOOLEAN))
    AND (CAST(:group_topic AS TEXT) IS NULL OR group_topic = CAST(:group_topic AS TEXT))
"""

_LIST_BY_CREATED_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE {_FILTERS}
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_BY_RESOLVED_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE {_FILTERS}
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR resolved_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                resolved_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY resolved_at DESC, id DESC
    LIMIT :limit
""")

_LIST_ALL_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE CAST(:closed AS BOOLEAN) IS NULL OR closed = CAST(:closed AS BOOLEAN)
    ORDER BY created_at DESC, id DESC
""")

_MARKET_STATS_SQL = text("""
    SELECT COUNT(*)                              AS total_trades,
           COALESCE(SUM(cash_amount), 0)         AS total_volume,
           COALESCE(SUM(fee_amount), 0)          AS total_fees,
           COUNT(DISTINCT user_id)               AS unique_traders
    FROM transaction_records
    WHERE market_id = :market_id AND action = ANY(:actions)
""")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class MarketRepository:
    """Concrete repository: all operations are read-only SQL queries."""

    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return row_to_market(row) if row else None

    async def list_markets(
        self,
        db: AsyncSession,
        closed: bool | None,
        group_topic: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        sql = _LIST_BY_RESOLVED_SQL if closed is True else _LIST_BY_CREATED_SQL
        result = await db.execute(
            sql,
            {
                "closed": closed,
                "group_topic": group_topic,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [row_to_market(row) for row in result.fetchall()]

    async def list_all_markets(
        self, db: AsyncSession, closed: bool | None
    ) -> list[Market]:
        result = await db.execute(_LIST_ALL_SQL, {"closed": closed})
        return [row_to_market(row) for row in result.fetchall()]

    async def get_market_stats(
        self, db: AsyncSession, market_id: str
    ) -> MarketStats:
        row = (
            await db.execute(
                _MARKET_STATS_SQL, {"market_id": market_id, "actions": list(QUOTA_ACTIONS)}
            )
        ).fetchone()
        if row is None:
            return MarketStats(market_id=market_id)
        return MarketStats(
            market_id=market_id,
            total_trades=int(row.total_trades),
            total_volume=row.total_volume,
            total_fees=row.total_fees,
            unique_traders=int(row.unique_traders),
        )
