"""AccountApplicationService: thin composition layer.

Combines repository calls with valuation and schema transformations.
open_account commits its own transaction; everything else is read-only and
runs without an explicit transaction.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.application.schemas import (
    AccountResponse,
    ActivePositionItem,
    BalanceResponse,
    LeaderboardItem,
    LeaderboardResponse,
    MarketPositionResponse,
    NetWorthResponse,
    PortfolioResponse,
    QuotaResponse,
    SettledPositionItem,
)
from src.pm_account.domain.models import Account
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.domain.valuation import (
    mark_price,
    mark_value,
    pnl_percent,
    rank_leaderboard,
    settled_entries,
    shares_value,
)
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_amm.domain.curve import PRICE_QUANT
from src.pm_clearing.domain.repository import LedgerRepositoryProtocol
from src.pm_clearing.infrastructure.ledger import LedgerRepository
from src.pm_common.database import translate_db_error
from src.pm_common.datetime_utils import utc_now
from src.pm_common.decimal_utils import money_to_display
from src.pm_common.enums import Side
from src.pm_common.errors import AccountNotFoundError, MarketNotFoundError, ValidationError
from src.pm_risk.rules.daily_quota import DailyQuota

logger = logging.getLogger(__name__)


class AccountApplicationService:
    def __init__(
        self,
        repo: AccountRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        starting_balance: Decimal | None = None,
        daily_cap: int | None = None,
        admin_user_ids: frozenset[str] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._starting_balance = (
            starting_balance if starting_balance is not None else settings.STARTING_BALANCE
        )
        self._quota = DailyQuota(daily_cap if daily_cap is not None else settings.DAILY_ORDER_CAP)
        self._admin_user_ids = (
            admin_user_ids if admin_user_ids is not None else frozenset(settings.ADMIN_USER_IDS)
        )
        self._clock = clock

    async def _require_account(self, db: AsyncSession, user_id: str) -> Account:
        account = await self._ledger.get_account(db, user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        return account

    async def open_account(self, db: AsyncSession, user_id: str) -> AccountResponse:
        """Idempotent: an existing account comes back unchanged."""
        if not user_id.strip():
            raise ValidationError("user_id must not be blank")
        try:
            account = await self._ledger.insert_account(
                db,
                Account(
                    user_id=user_id,
                    balance=self._starting_balance,
                    is_admin=user_id in self._admin_user_ids,
                ),
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_db_error(e) from e
        logger.info("Account ready: user=%s balance=%s", account.user_id, account.balance)
        return AccountResponse(
            user_id=account.user_id,
            balance=account.balance,
            balance_display=money_to_display(account.balance),
            is_admin=account.is_admin,
            created_at=account.created_at,
        )

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        account = await self._require_account(db, user_id)
        return BalanceResponse.from_amount(user_id, account.balance)

    async def get_quota(self, db: AsyncSession, user_id: str) -> QuotaResponse:
        await self._require_account(db, user_id)
        now = self._clock()
        used = await self._ledger.count_trades_since(db, user_id, self._quota.window_start(now))
        return QuotaResponse.from_status(self._quota.status(used, now))

    async def get_position(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> MarketPositionResponse:
        if await self._ledger.get_market(db, market_id) is None:
            raise MarketNotFoundError(market_id)
        counts = {Side.YES.value: Decimal(0), Side.NO.value: Decimal(0)}
        for position in await self._repo.list_market_positions_for_user(db, user_id, market_id):
            counts[position.side] = position.count
        return MarketPositionResponse(
            market_id=market_id, yes=counts[Side.YES.value], no=counts[Side.NO.value]
        )

    async def get_net_worth(self, db: AsyncSession, user_id: str) -> NetWorthResponse:
        account = await self._require_account(db, user_id)
        value = shares_value(await self._repo.list_holdings(db, user_id))
        worth = account.balance + value
        return NetWorthResponse(
            user_id=user_id,
            cash=account.balance,
            shares_value=value,
            net_worth=worth,
            net_worth_display=money_to_display(worth),
        )

    async def get_portfolio(self, db: AsyncSession, user_id: str) -> PortfolioResponse:
        account = await self._require_account(db, user_id)
        holdings = await self._repo.list_holdings(db, user_id)

        active = []
        for h in holdings:
            value = mark_value(h)
            pnl = value - h.cost_basis
            active.append(
                ActivePositionItem(
                    market_id=h.market_id,
                    question=h.question,
                    side=h.side,
                    shares=h.count,
                    avg_cost=(h.cost_basis / h.count).quantize(PRICE_QUANT),
                    current_price=mark_price(h).quantize(PRICE_QUANT),
                    current_value=value,
                    cost_basis=h.cost_basis,
                    pnl=pnl,
                    pnl_percent=pnl_percent(pnl, h.cost_basis),
                )
            )

        entries = settled_entries(await self._repo.list_user_transactions(db, user_id))
        questions = await self._repo.get_market_questions(
            db, sorted({e.market_id for e in entries})
        )
        settled = [
            SettledPositionItem(
                market_id=e.market_id,
                question=questions.get(e.market_id, ""),
                side=e.side,
                shares=e.shares,
                won=e.won,
                settlement_value=e.payout,
                cost_basis=e.cost_basis,
                pnl=e.pnl,
                pnl_percent=pnl_percent(e.pnl, e.cost_basis),
                settled_at=e.settled_at,
            )
            for e in reversed(entries)
        ]

        active_value = sum((item.current_value for item in active), Decimal(0))
        return PortfolioResponse(
            user_id=user_id,
            cash=account.balance,
            active=active,
            settled=settled,
            active_value=active_value,
            net_worth=account.balance + active_value,
        )

    async def get_leaderboard(self, db: AsyncSession, limit: int) -> LeaderboardResponse:
        rows = rank_leaderboard(
            await self._repo.list_balances(db), await self._repo.list_all_holdings(db)
        )
        items = [LeaderboardItem.from_row(i, row) for i, row in enumerate(rows[:limit], start=1)]
        return LeaderboardResponse(items=items, total=len(rows))
