"""pm_account REST API.

POST /account                open (idempotent) the caller's account
GET  /account/balance
GET  /account/quota          today's order quota (UTC day)
GET  /account/net-worth
GET  /account/portfolio      active and settled positions
GET  /leaderboard            everyone ranked by net worth
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.service import AccountApplicationService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response, tag_request
from src.pm_gateway.auth.dependencies import get_current_user_id

router = APIRouter(prefix="/account", tags=["account"])
leaderboard_router = APIRouter(prefix="/leaderboard", tags=["account"])

_service = AccountApplicationService()


def get_account_service() -> AccountApplicationService:
    return _service


@router.post("", status_code=201)
async def open_account(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AccountApplicationService, Depends(get_account_service)],
    request: Request,
) -> ApiResponse:
    data = await service.open_account(db, user_id)
    return tag_request(success_response(data), request)


@router.get("/balance")
async def get_balance(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AccountApplicationService, Depends(get_account_service)],
    request: Request,
) -> ApiResponse:
    data = await service.get_balance(db, user_id)
    return tag_request(success_response(data), request)


@router.get("/quota")
async def get_quota(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AccountApplicationService, Depends(get_account_service)],
    request: Request,
) -> ApiResponse:
    data = await service.get_quota(db, user_id)
    return tag_request(success_response(data), request)


@router.get("/net-worth")
async def get_net_worth(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AccountApplicationService, Depends(get_account_service)],
    request: Request,
) -> ApiResponse:
    data = await service.get_net_worth(db, user_id)
    return tag_request(success_response(data), request)


@router.get("/portfolio")
async def get_portfolio(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AccountApplicationService, Depends(get_account_service)],
    request: Request,
) -> ApiResponse:
    data = await service.get_portfolio(db, user_id)
    return tag_request(success_response(data), request)


@leaderboard_router.get("")
async def get_leaderboard(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AccountApplicationService, Depends(get_account_service)],
    request: Request,
    limit: int = Query(50, ge=1, le=500, description="Rows to return"),
) -> ApiResponse:
    data = await service.get_leaderboard(db, limit)
    return tag_request(success_response(data), request)
