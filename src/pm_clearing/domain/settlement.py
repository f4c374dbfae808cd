"""Market settlement: resolve (pay $1 per winning share) and void-and-refund.

Both run under the same per-market lock as order execution and inside one
transaction. Row locks: market first, then accounts in user_id order.

Resolve:
    every winning position is credited count * $1
    every non-empty position gets a PAYOUT record (cash 0 for losers)
    all positions on the market are zeroed, the market is closed

Void:
    each participant's net cash flow on the market is reversed
    (sum of BUY cash - sum of SELL cash); a negative net debits the account,
    floored at a zero balance, and the uncollected part is reported
    then records, positions, and the market row are deleted
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import TransactionRecord
from src.pm_clearing.domain.repository import LedgerRepositoryProtocol
from src.pm_common.database import translate_db_error
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketOutcome, Side, TransactionAction
from src.pm_common.errors import AppError, MarketClosedError, MarketNotFoundError, ValidationError
from src.pm_common.locks import MarketLockRegistry
from src.pm_market.domain.models import Market

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)


@dataclass(frozen=True)
class ResolutionReceipt:
    market_id: str
    outcome: str
    total_paid: Decimal
    winners_paid: int
    positions_settled: int
    resolved_at: datetime


@dataclass(frozen=True)
class RefundLine:
    user_id: str
    net_refund: Decimal  # negative when the user withdrew more than they put in
    applied: Decimal  # signed balance change actually made
    shortfall: Decimal  # part of a negative net that could not be collected


@dataclass(frozen=True)
class VoidReceipt:
    market_id: str
    users_refunded: int
    total_refunded: Decimal
    total_shortfall: Decimal
    lines: list[RefundLine] = field(default_factory=list)


def parse_outcome(outcome: str) -> Side:
    """Only YES or NO settle a market; PENDING and anything else are rejected."""
    if outcome not in (MarketOutcome.YES.value, MarketOutcome.NO.value):
        raise ValidationError(f"Outcome must be YES or NO, got {outcome!r}")
    return Side(outcome)


def net_refunds(records: list[TransactionRecord]) -> dict[str, Decimal]:
    """Per-user sum(BUY cash) - sum(SELL cash); PAYOUT records are ignored."""
    nets: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for record in records:
        if record.action == TransactionAction.BUY.value:
            nets[record.user_id] += record.cash_amount
        elif record.action == TransactionAction.SELL.value:
            nets[record.user_id] -= record.cash_amount
    return dict(nets)


class ResolutionEngine:
    def __init__(
        self,
        ledger: LedgerRepositoryProtocol,
        locks: MarketLockRegistry,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._ledger = ledger
        self._locks = locks
        self._clock = clock

    async def _lock_open_market(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._ledger.get_market(db, market_id, for_update=True)
        if market is None:
            raise MarketNotFoundError(market_id)
        if market.closed:
            raise MarketClosedError(market_id)
        return market

    async def resolve_market(
        self, db: AsyncSession, market_id: str, outcome: str
    ) -> ResolutionReceipt:
        winner = parse_outcome(outcome)
        async with self._locks.hold(market_id):
            try:
                receipt = await self._resolve_inner(db, market_id, winner)
                await db.commit()
            except AppError:
                await db.rollback()
                raise
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error("Resolve storage fault: market=%s", market_id, exc_info=True)
                raise translate_db_error(e) from e

        logger.info(
            "Market resolved: market=%s outcome=%s paid=%s winners=%d positions=%d",
            market_id, receipt.outcome, receipt.total_paid,
            receipt.winners_paid, receipt.positions_settled,
        )
        return receipt

    async def _resolve_inner(
        self, db: AsyncSession, market_id: str, winner: Side
    ) -> ResolutionReceipt:
        await self._lock_open_market(db, market_id)
        now = self._clock()

        positions = sorted(
            (p for p in await self._ledger.list_market_positions(db, market_id) if p.count > 0),
            key=lambda p: (p.user_id, p.side),
        )
        total_paid = _ZERO
        winners_paid = 0
        for position in positions:
            won = position.side == winner.value
            payout = position.count if won else _ZERO
            if won:
                await self._ledger.adjust_balance(db, position.user_id, payout)
                total_paid += payout
                winners_paid += 1
            await self._ledger.append_transaction(
                db,
                TransactionRecord(
                    user_id=position.user_id,
                    market_id=market_id,
                    side=position.side,
                    action=TransactionAction.PAYOUT.value,
                    shares_amount=position.count,
                    cash_amount=payout,
                    fee_amount=_ZERO,
                    price=Decimal(1) if won else _ZERO,
                    created_at=now,
                ),
            )

        await self._ledger.zero_market_positions(db, market_id)
        await self._ledger.mark_market_resolved(db, market_id, winner.value, now)
        return ResolutionReceipt(
            market_id=market_id,
            outcome=winner.value,
            total_paid=total_paid,
            winners_paid=winners_paid,
            positions_settled=len(positions),
            resolved_at=now,
        )

    async def void_market(self, db: AsyncSession, market_id: str) -> VoidReceipt:
        async with self._locks.hold(market_id):
            try:
                receipt = await self._void_inner(db, market_id)
                await db.commit()
            except AppError:
                await db.rollback()
                raise
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error("Void storage fault: market=%s", market_id, exc_info=True)
                raise translate_db_error(e) from e

        if receipt.total_shortfall > 0:
            logger.warning(
                "Market voided with shortfall: market=%s shortfall=%s",
                market_id, receipt.total_shortfall,
            )
        logger.info(
            "Market voided: market=%s users=%d refunded=%s",
            market_id, receipt.users_refunded, receipt.total_refunded,
        )
        return receipt

    async def _void_inner(self, db: AsyncSession, market_id: str) -> VoidReceipt:
        await self._lock_open_market(db, market_id)
        nets = net_refunds(await self._ledger.list_market_transactions(db, market_id))

        lines: list[RefundLine] = []
        for user_id in sorted(nets):
            net = nets[user_id]
            shortfall = _ZERO
            applied = net
            if net < 0:
                account = await self._ledger.get_account(db, user_id, for_update=True)
                available = account.balance if account is not None else _ZERO
                applied = -min(-net, available)
                shortfall = -net + applied
            if applied != 0:
                await self._ledger.adjust_balance(db, user_id, applied)
            lines.append(
                RefundLine(user_id=user_id, net_refund=net, applied=applied, shortfall=shortfall)
            )

        await self._ledger.delete_market(db, market_id)
        return VoidReceipt(
            market_id=market_id,
            users_refunded=len(lines),
            total_refunded=sum((line.applied for line in lines), _ZERO),
            total_shortfall=sum((line.shortfall for line in lines), _ZERO),
            lines=lines,
        )
