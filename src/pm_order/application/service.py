"""OrderExecutor: one buy or one sell, end to end.

Validating -> Quoting -> SlippageCheck -> Committing -> Done.

Everything after Validating runs under the market's in-process lock and inside
one database transaction: market row locked first, then the account row. The
appended BUY/SELL record doubles as the daily quota increment, so the count
read at the start of the transaction is exact for this user until commit.
"""
import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.models import Position, TransactionRecord
from src.pm_account.domain.valuation import apply_buy, apply_sell
from src.pm_amm.domain.curve import check_slippage, quote_buy, quote_sell
from src.pm_amm.domain.models import BuyQuote, PoolState, SellQuote
from src.pm_clearing.domain.fee import validate_fee_rate
from src.pm_clearing.domain.invariants import verify_constant_product
from src.pm_clearing.domain.repository import LedgerRepositoryProtocol
from src.pm_clearing.infrastructure.ledger import LedgerRepository
from src.pm_common.database import translate_db_error
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import OrderMode, Side, TransactionAction
from src.pm_common.errors import AccountNotFoundError, AppError, InternalError
from src.pm_common.locks import MarketLockRegistry, get_lock_registry
from src.pm_order.domain.models import OrderCommand, OrderReceipt
from src.pm_risk.rules.balance_check import check_sufficient_funds, check_sufficient_shares
from src.pm_risk.rules.daily_quota import DailyQuota
from src.pm_risk.rules.market_status import check_market_open
from src.pm_risk.rules.order_limit import check_order_amount, check_price_bound

logger = logging.getLogger(__name__)


class OrderExecutor:
    def __init__(
        self,
        ledger: LedgerRepositoryProtocol,
        locks: MarketLockRegistry,
        fee_rate: Decimal,
        daily_cap: int,
        k_tolerance: Decimal,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        validate_fee_rate(fee_rate)
        self._ledger = ledger
        self._locks = locks
        self._fee_rate = fee_rate
        self._quota = DailyQuota(daily_cap)
        self._k_tolerance = k_tolerance
        self._clock = clock

    @property
    def fee_rate(self) -> Decimal:
        return self._fee_rate

    def _quote(
        self, pools: PoolState, side: Side, mode: OrderMode, amount: Decimal
    ) -> BuyQuote | SellQuote:
        if mode is OrderMode.BUY:
            return quote_buy(pools, side, amount, self._fee_rate)
        return quote_sell(pools, side, amount, self._fee_rate)

    async def quote(
        self, db: AsyncSession, market_id: str, side: Side, mode: OrderMode, amount: Decimal
    ) -> BuyQuote | SellQuote:
        """Preview an order against the current pools. Read-only, takes no locks."""
        check_order_amount(mode, amount)
        market = check_market_open(await self._ledger.get_market(db, market_id), market_id)
        return self._quote(market.pools, side, mode, amount)

    async def execute_order(self, db: AsyncSession, cmd: OrderCommand) -> OrderReceipt:
        """Run one order atomically. Any failure rolls the transaction back and re-raises."""
        check_order_amount(cmd.mode, cmd.amount)
        check_price_bound(cmd.slippage_bound)

        async with self._locks.hold(cmd.market_id):
            try:
                receipt = await self._execute_inner(db, cmd)
                await db.commit()
            except AppError as e:
                await db.rollback()
                logger.info(
                    "Order rejected: user=%s market=%s %s %s %s -> %s (%d)",
                    cmd.user_id, cmd.market_id, cmd.mode.value, cmd.side.value,
                    cmd.amount, e.message, e.code,
                )
                raise
            except SQLAlchemyError as e:
                await db.rollback()
                fault = translate_db_error(e)
                logger.error(
                    "Order storage fault: user=%s market=%s -> %s",
                    cmd.user_id, cmd.market_id, fault.message, exc_info=True,
                )
                raise fault from e
            except AssertionError as e:
                await db.rollback()
                logger.error("Order aborted on invariant: market=%s %s", cmd.market_id, e)
                raise InternalError(f"Invariant check failed: {e}") from e

        logger.info(
            "Order committed: user=%s market=%s %s %s shares=%s cash=%s fee=%s final=%s",
            receipt.user_id, receipt.market_id, receipt.mode, receipt.side,
            receipt.shares, receipt.cash, receipt.fee, receipt.final_price,
        )
        return receipt

    async def _execute_inner(self, db: AsyncSession, cmd: OrderCommand) -> OrderReceipt:
        now = self._clock()

        # Validating: lock order is market row, then account row
        market = check_market_open(
            await self._ledger.get_market(db, cmd.market_id, for_update=True), cmd.market_id
        )
        account = await self._ledger.get_account(db, cmd.user_id, for_update=True)
        if account is None:
            raise AccountNotFoundError(cmd.user_id)

        position = await self._ledger.get_position(
            db, cmd.user_id, cmd.market_id, cmd.side.value
        )
        if cmd.mode is OrderMode.BUY:
            check_sufficient_funds(account, cmd.amount)
        else:
            check_sufficient_shares(position, cmd.amount)

        used = await self._ledger.count_trades_since(
            db, cmd.user_id, self._quota.window_start(now)
        )
        quota = self._quota.check(used, now)

        # Quoting + SlippageCheck
        quote = self._quote(market.pools, cmd.side, cmd.mode, cmd.amount)
        check_slippage(quote, cmd.slippage_bound)
        verify_constant_product(quote.pools_before, quote.pools_after, self._k_tolerance)

        # Committing
        if position is None:
            position = Position(user_id=cmd.user_id, market_id=cmd.market_id, side=cmd.side.value)

        if isinstance(quote, BuyQuote):
            shares, cash = quote.total_shares, quote.investment
            balance = await self._ledger.adjust_balance(db, cmd.user_id, -cash)
            position = apply_buy(position, shares, cash)
            action = TransactionAction.BUY
        else:
            shares, cash = quote.shares_sold, quote.payout
            balance = await self._ledger.adjust_balance(db, cmd.user_id, cash)
            position = apply_sell(position, shares)
            action = TransactionAction.SELL

        await self._ledger.save_position(db, position)
        await self._ledger.update_pools(
            db, cmd.market_id, quote.pools_after.pool_yes, quote.pools_after.pool_no
        )
        record = await self._ledger.append_transaction(
            db,
            TransactionRecord(
                user_id=cmd.user_id,
                market_id=cmd.market_id,
                side=cmd.side.value,
                action=action.value,
                shares_amount=shares,
                cash_amount=cash,
                fee_amount=quote.fee,
                price=quote.avg_price,
                created_at=now,
            ),
        )

        return OrderReceipt(
            market_id=cmd.market_id,
            user_id=cmd.user_id,
            side=cmd.side.value,
            mode=cmd.mode.value,
            shares=shares,
            cash=cash,
            fee=quote.fee,
            avg_price=quote.avg_price,
            final_price=quote.final_price,
            price_impact_pct=quote.price_impact_pct,
            remaining_quota=quota.remaining - 1,
            balance=balance,
            position_count=position.count,
            transaction_id=record.id,
        )


_executor: OrderExecutor | None = None


def get_order_executor() -> OrderExecutor:
    global _executor  # noqa: PLW0603
    if _executor is None:
        _executor = OrderExecutor(
            ledger=LedgerRepository(),
            locks=get_lock_registry(),
            fee_rate=settings.FEE_RATE,
            daily_cap=settings.DAILY_ORDER_CAP,
            k_tolerance=settings.K_TOLERANCE,
        )
    return _executor
