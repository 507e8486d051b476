"""
Eco activity endpoints for the signed-in user.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status

from greyn.api.deps import CurrentUser, DbSession
from greyn.config import get_settings
from greyn.engines.activities import ActivityService, ProofImage, activity_to_dict, activity_types
from greyn.kernel.errors import NotFoundError
from greyn.schemas.common import SuccessResponse, ok

router = APIRouter()


@router.get("/types", response_model=SuccessResponse)
async def list_activity_types(user: CurrentUser):
    return ok(activity_types())


@router.get("/stats", response_model=SuccessResponse)
async def activity_stats(user: CurrentUser, db: DbSession):
    return ok(await ActivityService(db).stats_for_user(user))


@router.get("", response_model=SuccessResponse)
async def list_activities(
    user: CurrentUser,
    db: DbSession,
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    skip: int = Query(0, ge=0),
    sort: str = Query("newest"),
):
    """The caller's activities, newest first unless sort=oldest."""
    activities = await ActivityService(db).list_for_user(
        user, status=status_filter, limit=limit, skip=skip, sort=sort
    )
    base_url = get_settings().backend_url
    return ok([activity_to_dict(a, base_url) for a in activities])


@router.post("", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    user: CurrentUser,
    db: DbSession,
    type: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    proof_image: Optional[UploadFile] = File(None),
):
    image = None
    if proof_image is not None and proof_image.filename:
        # One byte past the limit is enough for the size check to reject it
        max_bytes = get_settings().max_upload_bytes
        image = ProofImage(
            filename=proof_image.filename,
            content_type=proof_image.content_type,
            data=await proof_image.read(max_bytes + 1),
        )

    try:
        activity = await ActivityService(db).create(
            user, type=type, title=title, description=description, proof_image=image
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ok(
        activity_to_dict(activity, get_settings().backend_url),
        "Activity submitted successfully. Admin will review it soon.",
    )


@router.get("/{activity_id}", response_model=SuccessResponse)
async def get_activity(activity_id: uuid.UUID, user: CurrentUser, db: DbSession):
    try:
        activity = await ActivityService(db).get_for_user(user, activity_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return ok(activity_to_dict(activity, get_settings().backend_url))
