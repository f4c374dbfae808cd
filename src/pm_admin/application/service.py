# src/pm_admin/application/service.py
"""Admin application service: market lifecycle, stats, and the invariant audit."""
import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_admin.application.schemas import InvariantReport, ResolutionResponse, VoidResponse
from src.pm_clearing.domain.invariants import verify_seed_invariant
from src.pm_clearing.domain.settlement import ResolutionEngine
from src.pm_clearing.infrastructure.ledger import LedgerRepository
from src.pm_common.enums import MarketStatusFilter
from src.pm_common.locks import get_lock_registry
from src.pm_market.application.schemas import MarketDetail, MarketListResponse, MarketStatsResponse
from src.pm_market.application.service import MarketApplicationService
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        markets: MarketApplicationService | None = None,
        engine: ResolutionEngine | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
        account_repo: AccountRepositoryProtocol | None = None,
        audit_tolerance: Decimal | None = None,
    ) -> None:
        self._market_repo: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._markets = markets or MarketApplicationService(repo=self._market_repo)
        self._engine = engine or ResolutionEngine(LedgerRepository(), get_lock_registry())
        self._account_repo: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._audit_tolerance = (
            audit_tolerance if audit_tolerance is not None else settings.K_AUDIT_TOLERANCE
        )

    async def create_market(
        self,
        db: AsyncSession,
        question: str,
        description: str | None,
        group_topic: str | None,
    ) -> MarketDetail:
        return await self._markets.create_market(db, question, description, group_topic)

    async def list_all_markets(
        self, db: AsyncSession, cursor: str | None, limit: int
    ) -> MarketListResponse:
        return await self._markets.list_markets(db, MarketStatusFilter.ALL, None, cursor, limit)

    async def resolve_market(
        self, db: AsyncSession, market_id: str, outcome: str
    ) -> ResolutionResponse:
        receipt = await self._engine.resolve_market(db, market_id, outcome)
        return ResolutionResponse.from_receipt(receipt)

    async def void_market(self, db: AsyncSession, market_id: str) -> VoidResponse:
        receipt = await self._engine.void_market(db, market_id)
        return VoidResponse.from_receipt(receipt)

    async def get_market_stats(
        self, db: AsyncSession, market_id: str
    ) -> MarketStatsResponse:
        return await self._markets.get_market_stats(db, market_id)

    async def verify_all_invariants(self, db: AsyncSession) -> InvariantReport:
        """Every open market still sits on its seed k, and no balance is negative."""
        violations: list[str] = []
        markets = await self._market_repo.list_all_markets(db, closed=False)
        for market in markets:
            violation = verify_seed_invariant(
                market.id, market.seed_liquidity, market.pools, self._audit_tolerance
            )
            if violation is not None:
                violations.append(violation)

        for user_id, balance in (await self._account_repo.list_balances(db)).items():
            if balance < 0:
                violations.append(f"negative balance: account {user_id} holds {balance}")

        for violation in violations:
            logger.error("Invariant audit: %s", violation)
        return InvariantReport(
            ok=not violations, markets_checked=len(markets), violations=violations
        )
