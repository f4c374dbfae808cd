"""MarketApplicationService: thin composition layer.

Reads delegate to MarketRepository and need no commit/rollback. Creation
writes through the ledger and commits its own transaction.
"""

import logging
import uuid
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_clearing.domain.repository import LedgerRepositoryProtocol
from src.pm_clearing.infrastructure.ledger import LedgerRepository
from src.pm_common.database import translate_db_error
from src.pm_common.enums import MarketStatusFilter
from src.pm_common.errors import MarketNotFoundError, ValidationError
from src.pm_market.application.schemas import (
    MarketDetail,
    MarketGroupOut,
    MarketGroupsResponse,
    MarketListItem,
    MarketListResponse,
    MarketStatsResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_market.domain.models import Market, MarketGroup
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


def _closed_filter(status: MarketStatusFilter) -> bool | None:
    if status is MarketStatusFilter.ALL:
        return None
    return status is MarketStatusFilter.CLOSED


def group_markets(markets: list[Market]) -> tuple[list[MarketGroup], list[Market]]:
    """Bucket markets by group_topic (topics sorted by name); topic-less markets come back apart."""
    groups: dict[str, MarketGroup] = {}
    ungrouped: list[Market] = []
    for m in markets:
        if m.group_topic is None:
            ungrouped.append(m)
            continue
        groups.setdefault(m.group_topic, MarketGroup(topic=m.group_topic)).markets.append(m)
    return [groups[t] for t in sorted(groups)], ungrouped


class MarketApplicationService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        seed_liquidity: Decimal | None = None,
    ) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._seed_liquidity = (
            seed_liquidity if seed_liquidity is not None else settings.SEED_LIQUIDITY
        )

    async def create_market(
        self,
        db: AsyncSession,
        question: str,
        description: str | None = None,
        group_topic: str | None = None,
    ) -> MarketDetail:
        """Open a market with both pools seeded at the configured liquidity."""
        if not question.strip():
            raise ValidationError("Market question must not be blank")
        if self._seed_liquidity <= 0:
            raise ValidationError(f"Seed liquidity must be positive, got {self._seed_liquidity}")

        market = Market(
            id=f"mkt_{uuid.uuid4().hex[:16]}",
            question=question.strip(),
            description=description,
            group_topic=group_topic,
            pool_yes=self._seed_liquidity,
            pool_no=self._seed_liquidity,
            seed_liquidity=self._seed_liquidity,
        )
        try:
            created = await self._ledger.insert_market(db, market)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_db_error(e) from e
        logger.info(
            "Market created: id=%s seed=%s topic=%s", created.id, created.seed_liquidity,
            created.group_topic,
        )
        return MarketDetail.from_domain(created)

    async def list_markets(
        self,
        db: AsyncSession,
        status: MarketStatusFilter,
        group_topic: str | None,
        cursor: str | None,
        limit: int,
    ) -> MarketListResponse:
        closed = _closed_filter(status)
        cursor_ts, cursor_id = cursor_decode(cursor)

        # Fetch limit+1 to detect has_more without COUNT(*)
        markets = await self._repo.list_markets(
            db, closed, group_topic, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(markets) > limit
        page = markets[:limit]

        items = [MarketListItem.from_domain(m) for m in page]
        next_cursor = (
            cursor_encode(page[-1], by_resolved=closed is True) if has_more and page else None
        )
        return MarketListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def list_market_groups(
        self, db: AsyncSession, status: MarketStatusFilter
    ) -> MarketGroupsResponse:
        markets = await self._repo.list_all_markets(db, _closed_filter(status))
        groups, ungrouped = group_markets(markets)
        return MarketGroupsResponse(
            groups=[MarketGroupOut.from_domain(g) for g in groups],
            ungrouped=[MarketListItem.from_domain(m) for m in ungrouped],
        )

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketDetail.from_domain(market)

    async def get_market_stats(
        self, db: AsyncSession, market_id: str
    ) -> MarketStatsResponse:
        if await self._repo.get_market_by_id(db, market_id) is None:
            raise MarketNotFoundError(market_id)
        stats = await self._repo.get_market_stats(db, market_id)
        return MarketStatsResponse.from_domain(stats)
