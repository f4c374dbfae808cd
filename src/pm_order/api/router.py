# src/pm_order/api/router.py
"""Order endpoints.

POST /orders                      execute one BUY or SELL against the AMM
GET  /markets/{market_id}/quote   preview the same order without committing
"""
from decimal import Decimal
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.enums import OrderMode, Side
from src.pm_common.response import ApiResponse, success_response, tag_request
from src.pm_gateway.auth.dependencies import get_current_user_id
from src.pm_order.application.schemas import (
    PlaceOrderRequest,
    PlaceOrderResponse,
    QuoteResponse,
)
from src.pm_order.application.service import OrderExecutor, get_order_executor
from src.pm_order.domain.models import OrderCommand

router = APIRouter(prefix="/orders", tags=["orders"])
quote_router = APIRouter(prefix="/markets", tags=["markets"])


@router.post("", status_code=201)
async def place_order(
    req: PlaceOrderRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    executor: Annotated[OrderExecutor, Depends(get_order_executor)],
) -> ApiResponse:
    receipt = await executor.execute_order(
        db,
        OrderCommand(
            market_id=req.market_id,
            user_id=user_id,
            side=Side(req.side),
            mode=OrderMode(req.mode),
            amount=req.amount,
            slippage_bound=req.slippage_bound,
        ),
    )
    resp = success_response(PlaceOrderResponse.from_receipt(receipt), message="Order executed")
    return tag_request(resp, request)


@quote_router.get("/{market_id}/quote")
async def get_quote(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    executor: Annotated[OrderExecutor, Depends(get_order_executor)],
    side: Literal["YES", "NO"] = Query(..., description="Side to trade"),
    mode: Literal["BUY", "SELL"] = Query(..., description="BUY or SELL"),
    amount: Decimal = Query(..., description="BUY: dollars; SELL: shares"),
    tolerance_pct: Decimal | None = Query(
        None, ge=0, le=100, description="Slippage tolerance in percent of the current price"
    ),
) -> ApiResponse:
    quote = await executor.quote(db, market_id, Side(side), OrderMode(mode), amount)
    resp = success_response(QuoteResponse.from_quote(market_id, quote, tolerance_pct))
    return tag_request(resp, request)
