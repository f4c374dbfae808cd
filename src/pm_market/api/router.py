"""pm_market REST endpoints.

GET /markets                 list with cursor pagination, status/topic filters
GET /markets/groups          markets bucketed by group topic
GET /markets/{market_id}     full detail with live prices
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.enums import MarketStatusFilter
from src.pm_common.response import ApiResponse, success_response, tag_request
from src.pm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


def get_market_service() -> MarketApplicationService:
    return _service


@router.get("")
async def list_markets(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[MarketApplicationService, Depends(get_market_service)],
    status: MarketStatusFilter = Query(
        MarketStatusFilter.OPEN, description="OPEN (default), CLOSED, or ALL"
    ),
    group_topic: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await service.list_markets(db, status, group_topic, cursor, limit)
    return tag_request(success_response(result), request)


@router.get("/groups")
async def list_market_groups(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[MarketApplicationService, Depends(get_market_service)],
    status: MarketStatusFilter = Query(MarketStatusFilter.OPEN),
) -> ApiResponse:
    result = await service.list_market_groups(db, status)
    return tag_request(success_response(result), request)


@router.get("/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[MarketApplicationService, Depends(get_market_service)],
) -> ApiResponse:
    result = await service.get_market(db, market_id)
    return tag_request(success_response(result), request)
