"""Ledger Protocol: the only write path into accounts, markets, positions, and records.

Unit tests inject an in-memory implementation; infrastructure provides the
PostgreSQL one. Every method runs inside the caller's transaction; the caller
commits or rolls back.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Account, Position, TransactionRecord
from src.pm_market.domain.models import Market


class LedgerRepositoryProtocol(Protocol):
    # --- reads (for_update takes the row lock for the rest of the transaction) ---

    async def get_market(
        self, db: AsyncSession, market_id: str, for_update: bool = False
    ) -> Market | None: ...

    async def get_account(
        self, db: AsyncSession, user_id: str, for_update: bool = False
    ) -> Account | None: ...

    async def get_position(
        self, db: AsyncSession, user_id: str, market_id: str, side: str
    ) -> Position | None: ...

    async def count_trades_since(
        self, db: AsyncSession, user_id: str, since: datetime
    ) -> int: ...

    async def list_market_positions(
        self, db: AsyncSession, market_id: str
    ) -> list[Position]: ...

    async def list_market_transactions(
        self, db: AsyncSession, market_id: str
    ) -> list[TransactionRecord]: ...

    # --- writes ---

    async def insert_market(self, db: AsyncSession, market: Market) -> Market: ...

    async def insert_account(self, db: AsyncSession, account: Account) -> Account: ...

    async def update_pools(
        self, db: AsyncSession, market_id: str, pool_yes: Decimal, pool_no: Decimal
    ) -> None: ...

    async def adjust_balance(
        self, db: AsyncSession, user_id: str, delta: Decimal
    ) -> Decimal: ...

    async def save_position(self, db: AsyncSession, position: Position) -> Position: ...

    async def append_transaction(
        self, db: AsyncSession, record: TransactionRecord
    ) -> TransactionRecord: ...

    async def zero_market_positions(self, db: AsyncSession, market_id: str) -> None: ...

    async def mark_market_resolved(
        self, db: AsyncSession, market_id: str, outcome: str, resolved_at: datetime
    ) -> None: ...

    async def delete_market(self, db: AsyncSession, market_id: str) -> None: ...
