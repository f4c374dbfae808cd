# src/pm_account/api/positions_router.py
"""Positions REST API: share counts on both sides of a market."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.api.router import get_account_service
from src.pm_account.application.service import AccountApplicationService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response, tag_request
from src.pm_gateway.auth.dependencies import get_current_user_id

router = APIRouter(prefix="/positions", tags=["positions"])


@router.get("/{market_id}")
async def get_position(
    market_id: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AccountApplicationService, Depends(get_account_service)],
) -> ApiResponse:
    data = await service.get_position(db, user_id, market_id)
    return tag_request(success_response(data), request)
