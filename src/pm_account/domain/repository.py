"""Repository Protocol: dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.

Read-only views for balances, positions, and valuation. Every write goes
through the ledger (src.pm_clearing.domain.repository).
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Holding, Position, TransactionRecord


class AccountRepositoryProtocol(Protocol):
    async def list_market_positions_for_user(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> list[Position]: ...

    async def list_holdings(
        self, db: AsyncSession, user_id: str
    ) -> list[Holding]: ...

    async def list_all_holdings(self, db: AsyncSession) -> list[Holding]: ...

    async def list_balances(self, db: AsyncSession) -> dict[str, Decimal]: ...

    async def list_user_transactions(
        self, db: AsyncSession, user_id: str
    ) -> list[TransactionRecord]: ...

    async def get_market_questions(
        self, db: AsyncSession, market_ids: list[str]
    ) -> dict[str, str]: ...
