# src/pm_market/domain/repository.py
"""Repository Protocol: dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.

Read-only: market creation and every pool/outcome mutation go through the
ledger (src.pm_clearing.domain.repository).
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market, MarketStats


class MarketRepositoryProtocol(Protocol):
    async def list_markets(
        self,
        db: AsyncSession,
        closed: bool | None,
        group_topic: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]: ...

    async def list_all_markets(
        self,
        db: AsyncSession,
        closed: bool | None,
    ) -> list[Market]: ...

    async def get_market_by_id(
        self,
        db: AsyncSession,
        market_id: str,
    ) -> Market | None: ...

    async def get_market_stats(
        self,
        db: AsyncSession,
        market_id: str,
    ) -> MarketStats: ...
