"""
Admin rate limit policy endpoints.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from greyn.api.deps import AdminUser, Audit, DbSession
from greyn.api.listing import export_response, list_payload
from greyn.engines.listing import ListQuery
from greyn.engines.security.rate_limits import EXPORT_COLUMNS, RateLimitService, rate_limit_to_dict
from greyn.schemas.common import SuccessResponse, ok
from greyn.schemas.rate_limit import RateLimitCreate, RateLimitUpdate

router = APIRouter()


def _query(search, status_filter, category, method, enabled, include_seed, page=1, limit=20) -> ListQuery:
    return ListQuery(
        search=search,
        filters={
            "status": status_filter,
            "category": category,
            "method": method,
            "enabled": enabled,
            "include_seed": include_seed,
        },
        page=page,
        limit=limit,
    )


@router.get("", response_model=SuccessResponse)
async def list_rate_limits(
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = None,
    method: Optional[str] = None,
    enabled: Optional[str] = None,
    include_seed: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
):
    query = _query(search, status_filter, category, method, enabled, include_seed, page, limit)
    result = await RateLimitService(db, audit).list(query)
    return ok(list_payload(result, rate_limit_to_dict))


@router.get("/export")
async def export_rate_limits(
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
    format: str = "csv",
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = None,
    method: Optional[str] = None,
    enabled: Optional[str] = None,
    include_seed: Optional[str] = None,
):
    query = _query(search, status_filter, category, method, enabled, include_seed)
    items = await RateLimitService(db, audit).all_for_export(query)
    return export_response([rate_limit_to_dict(i) for i in items], EXPORT_COLUMNS, format, "rate-limits")


@router.get("/{rate_limit_id}", response_model=SuccessResponse)
async def get_rate_limit(rate_limit_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit):
    return ok(rate_limit_to_dict(await RateLimitService(db, audit).get(rate_limit_id)))


@router.post("", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def create_rate_limit(data: RateLimitCreate, admin: AdminUser, db: DbSession, audit: Audit):
    try:
        item = await RateLimitService(db, audit).create(admin, data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ok(rate_limit_to_dict(item), "Rate limit created")


@router.put("/{rate_limit_id}", response_model=SuccessResponse)
async def update_rate_limit(
    rate_limit_id: uuid.UUID,
    data: RateLimitUpdate,
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
):
    try:
        item = await RateLimitService(db, audit).update(admin, rate_limit_id, data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ok(rate_limit_to_dict(item), "Rate limit updated")


@router.delete("/{rate_limit_id}", response_model=SuccessResponse)
async def delete_rate_limit(rate_limit_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit):
    await RateLimitService(db, audit).delete(admin, rate_limit_id)
    return ok(message="Rate limit deleted")


@router.post("/{rate_limit_id}/reset", response_model=SuccessResponse)
async def reset_rate_limit(rate_limit_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit):
    item = await RateLimitService(db, audit).reset(admin, rate_limit_id)
    return ok(rate_limit_to_dict(item), "Rate limit counter reset")
