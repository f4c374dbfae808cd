# src/pm_admin/application/schemas.py
"""Admin request/response schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel

from src.pm_clearing.domain.settlement import ResolutionReceipt, VoidReceipt


class ResolveRequest(BaseModel):
    outcome: Literal["YES", "NO"]


class ResolutionResponse(BaseModel):
    market_id: str
    outcome: str
    total_paid: Decimal
    winners_paid: int
    positions_settled: int
    resolved_at: datetime

    @classmethod
    def from_receipt(cls, r: ResolutionReceipt) -> "ResolutionResponse":
        return cls(
            market_id=r.market_id,
            outcome=r.outcome,
            total_paid=r.total_paid,
            winners_paid=r.winners_paid,
            positions_settled=r.positions_settled,
            resolved_at=r.resolved_at,
        )


class RefundLineOut(BaseModel):
    user_id: str
    net_refund: Decimal
    applied: Decimal
    shortfall: Decimal


class VoidResponse(BaseModel):
    market_id: str
    users_refunded: int
    total_refunded: Decimal
    total_shortfall: Decimal
    refunds: list[RefundLineOut]

    @classmethod
    def from_receipt(cls, r: VoidReceipt) -> "VoidResponse":
        return cls(
            market_id=r.market_id,
            users_refunded=r.users_refunded,
            total_refunded=r.total_refunded,
            total_shortfall=r.total_shortfall,
            refunds=[
                RefundLineOut(
                    user_id=line.user_id,
                    net_refund=line.net_refund,
                    applied=line.applied,
                    shortfall=line.shortfall,
                )
                for line in r.lines
            ],
        )


class InvariantReport(BaseModel):
    ok: bool
    markets_checked: int
    violations: list[str]
