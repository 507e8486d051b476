"""
Admin user directory endpoints.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from greyn.api.deps import AdminUser, Audit, DbSession
from greyn.api.listing import list_payload
from greyn.engines.listing import ListQuery
from greyn.engines.users import UserDirectoryService, user_to_dict
from greyn.schemas.common import SuccessResponse, ok
from greyn.schemas.user import UserRoleUpdate, UserStatusUpdate

router = APIRouter()


@router.get("", response_model=SuccessResponse)
async def list_users(
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    role: Optional[str] = None,
    portal: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
):
    query = ListQuery(
        search=search,
        filters={"status": status_filter, "role": role, "portal": portal},
        page=page,
        limit=limit,
    )
    result = await UserDirectoryService(db, audit).list(query)
    return ok(list_payload(result, user_to_dict))


@router.get("/{user_id}", response_model=SuccessResponse)
async def get_user(user_id: uuid.UUID, admin: AdminUser, db: DbSession, audit: Audit):
    return ok(user_to_dict(await UserDirectoryService(db, audit).get(user_id)))


@router.patch("/{user_id}/status", response_model=SuccessResponse)
async def update_user_status(
    user_id: uuid.UUID,
    data: UserStatusUpdate,
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
):
    try:
        user = await UserDirectoryService(db, audit).update_status(admin, user_id, data.status)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ok(user_to_dict(user), "User status updated")


@router.patch("/{user_id}/role", response_model=SuccessResponse)
async def update_user_role(
    user_id: uuid.UUID,
    data: UserRoleUpdate,
    admin: AdminUser,
    db: DbSession,
    audit: Audit,
):
    try:
        user = await UserDirectoryService(db, audit).update_role(admin, user_id, data.role)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ok(user_to_dict(user), "User role updated")
