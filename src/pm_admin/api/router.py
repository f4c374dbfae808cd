# src/pm_admin/api/router.py
"""Admin REST API. Every endpoint requires an account flagged is_admin."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_admin.application.schemas import ResolveRequest
from src.pm_admin.application.service import AdminService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response, tag_request
from src.pm_gateway.auth.dependencies import require_admin
from src.pm_market.application.schemas import CreateMarketRequest

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


def get_admin_service() -> AdminService:
    return _service


@router.post("/markets", status_code=201)
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.create_market(db, body.question, body.description, body.group_topic)
    return tag_request(success_response(result, message="Market created"), request)


@router.get("/markets")
async def list_all_markets(
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
    limit: int = Query(50, ge=1, le=200),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await service.list_all_markets(db, cursor, limit)
    return tag_request(success_response(result), request)


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: str,
    body: ResolveRequest,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.resolve_market(db, market_id, body.outcome)
    return tag_request(success_response(result, message="Market resolved"), request)


@router.post("/markets/{market_id}/void")
async def void_market(
    market_id: str,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.void_market(db, market_id)
    return tag_request(success_response(result, message="Market voided"), request)


@router.get("/markets/{market_id}/stats")
async def get_market_stats(
    market_id: str,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.get_market_stats(db, market_id)
    return tag_request(success_response(result), request)


@router.get("/invariants")
async def verify_invariants(
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.verify_all_invariants(db)
    return tag_request(success_response(result), request)
