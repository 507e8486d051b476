"""
Admin activity review queue.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from greyn.api.deps import AdminUser, Audit, DbSession
from greyn.api.listing import list_payload
from greyn.config import get_settings
from greyn.engines.activities import ActivityService, activity_to_dict
from greyn.engines.listing import ListQuery
from greyn.schemas.activity import ActivityReview
from greyn.schemas.common import SuccessResponse, ok

router = APIRouter()


@router.get("", response_model=SuccessResponse)
async def list_activities_for_review(
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    type_filter: Optional[str] = Query(None, alias="type"),
    page: int = 1,
    limit: int = 20,
):
    query = ListQuery(
        search=search,
        filters={"status": status_filter, "type": type_filter},
        page=page,
        limit=limit,
    )
    result = await ActivityService(db, audit).list_for_review(query)
    base_url = get_settings().backend_url
    return ok(list_payload(result, lambda a: activity_to_dict(a, base_url)))


@router.patch("/{activity_id}", response_model=SuccessResponse)
async def review_activity(
    activity_id: uuid.UUID,
    data: ActivityReview,
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
):
    try:
        activity = await ActivityService(db, audit).review(admin, activity_id, data.status, data.admin_notes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ok(activity_to_dict(activity, get_settings().backend_url), f"Activity {data.status}")
