"""
Eco activity submission for simple users, and the admin review queue.
"""

import secrets
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from greyn.config import get_settings
from greyn.engines.listing import ListQuery, ListResult, fetch_page, search_clause
from greyn.kernel.audit.audit_store import AuditStore
from greyn.kernel.errors import NotFoundError
from greyn.kernel.models.activity import (
    ACTIVITY_CREDITS,
    ACTIVITY_LABELS,
    Activity,
    ActivityStatus,
    credits_for,
)
from greyn.kernel.models.audit_log import AuditAction, AuditSeverity
from greyn.kernel.models.base import enum_value, utcnow
from greyn.kernel.models.user import User
from greyn.logging_config import get_logger

logger = get_logger(__name__)

ALLOWED_IMAGE_EXTENSIONS = (".jpeg", ".jpg", ".png", ".gif", ".webp")
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp")
IMAGE_TYPE_ERROR = "Only image files are allowed (jpeg, jpg, png, gif, webp)"

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000
MAX_ADMIN_NOTES_LENGTH = 1000

# Outcomes an admin can record on review
REVIEW_STATUSES = (ActivityStatus.VERIFIED.value, ActivityStatus.UNVERIFIED.value)


@dataclass
class ProofImage:
    """Uploaded proof photo, already read into memory."""

    filename: str
    content_type: Optional[str]
    data: bytes


def activity_types() -> List[Dict[str, Any]]:
    return [
        {
            "value": value,
            "label": ACTIVITY_LABELS[value][0],
            "credits": credits,
            "description": ACTIVITY_LABELS[value][1],
        }
        for value, credits in ACTIVITY_CREDITS.items()
    ]


def validate_proof_image(image: ProofImage, max_bytes: int) -> str:
    """Check type and size. Returns the lowercased file extension."""
    extension = Path(image.filename or "").suffix.lower()
    if extension not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValueError(IMAGE_TYPE_ERROR)
    if (image.content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise ValueError(IMAGE_TYPE_ERROR)
    if len(image.data) > max_bytes:
        raise ValueError(f"Proof image must be {max_bytes // (1024 * 1024)}MB or smaller")
    return extension


def activity_to_dict(activity: Activity, base_url: str = "") -> Dict[str, Any]:
    proof = activity.proof_image
    if proof and not proof.startswith("http"):
        proof = f"{base_url.rstrip('/')}/uploads/activities/{Path(proof).name}"
    return {
        "id": str(activity.id),
        "user_id": str(activity.user_id),
        "type": enum_value(activity.type),
        "title": activity.title,
        "description": activity.description,
        "proof_image": proof,
        "credits": activity.credits,
        "status": enum_value(activity.status),
        "submitted_date": activity.submitted_date,
        "verified_date": activity.verified_date,
        "verified_by": str(activity.verified_by) if activity.verified_by else None,
        "admin_notes": activity.admin_notes,
    }


class ActivityService:
    """
    Activity submission and review.

    Users only ever see their own activities; status changes come from
    admins through review().
    """

    SEARCH_COLUMNS = (Activity.title, Activity.description)

    def __init__(self, session: AsyncSession, audit: Optional[AuditStore] = None):
        self.session = session
        self.audit = audit
        self.settings = get_settings()

    def _store_image(self, image: ProofImage, extension: str) -> str:
        upload_dir = Path(self.settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        filename = f"activity-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{extension}"
        (upload_dir / filename).write_bytes(image.data)
        return filename

    async def create(
        self,
        user: User,
        *,
        type: Optional[str],
        title: Optional[str],
        description: Optional[str],
        proof_image: Optional[ProofImage],
    ) -> Activity:
        """
        Submit an activity for review.

        Raises:
            ValueError: missing fields, unknown type, bad or missing image
        """
        title = (title or "").strip()
        description = (description or "").strip()
        if not type or not title or not description:
            raise ValueError("Type, title, and description are required")
        if proof_image is None or not proof_image.data:
            raise ValueError("Proof image is required")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValueError(f"Title cannot exceed {MAX_TITLE_LENGTH} characters")
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters")

        credits = credits_for(type)
        extension = validate_proof_image(proof_image, self.settings.max_upload_bytes)
        filename = self._store_image(proof_image, extension)

        activity = Activity(
            user_id=user.id,
            type=type,
            title=title,
            description=description,
            proof_image=filename,
            credits=credits,
            status=ActivityStatus.PENDING.value,
            submitted_date=utcnow(),
        )
        self.session.add(activity)
        try:
            await self.session.flush()
        except Exception:
            (Path(self.settings.upload_dir) / filename).unlink(missing_ok=True)
            raise

        logger.info(
            "Activity submitted",
            extra={"activity_id": str(activity.id), "type": type, "credits": credits},
        )
        return activity

    async def list_for_user(
        self,
        user: User,
        *,
        status: Optional[str] = None,
        limit: int = 50,
        skip: int = 0,
        sort: str = "newest",
    ) -> List[Activity]:
        stmt = select(Activity).where(Activity.user_id == user.id)
        if status and status != "all":
            stmt = stmt.where(Activity.status == status)
        order = Activity.submitted_date.asc() if sort in ("oldest", "asc") else Activity.submitted_date.desc()
        stmt = stmt.order_by(order).offset(max(skip, 0)).limit(min(max(limit, 1), 100))
        return list((await self.session.execute(stmt)).scalars().all())

    async def get_for_user(self, user: User, activity_id: uuid.UUID) -> Activity:
        result = await self.session.execute(
            select(Activity).where(Activity.id == activity_id, Activity.user_id == user.id)
        )
        activity = result.scalar_one_or_none()
        if activity is None:
            raise NotFoundError("Activity not found")
        return activity

    async def stats_for_user(self, user: User) -> Dict[str, int]:
        def count_where(value):
            return func.coalesce(func.sum(case((Activity.status == value, 1), else_=0)), 0)

        row = (await self.session.execute(
            select(
                func.count(Activity.id),
                count_where(ActivityStatus.VERIFIED.value),
                count_where(ActivityStatus.PENDING.value),
                count_where(ActivityStatus.UNVERIFIED.value),
                func.coalesce(func.sum(case(
                    (Activity.status == ActivityStatus.VERIFIED.value, Activity.credits), else_=0,
                )), 0),
            ).where(Activity.user_id == user.id)
        )).one()
        keys = ("total", "verified", "pending", "unverified", "total_credits")
        return {key: int(value or 0) for key, value in zip(keys, row)}

    # Admin review

    def _filtered(self, query: ListQuery):
        stmt = select(Activity)
        if query.search:
            stmt = stmt.where(search_clause(self.SEARCH_COLUMNS, query.search))
        if query.filter("status"):
            stmt = stmt.where(Activity.status == query.filter("status"))
        if query.filter("type"):
            stmt = stmt.where(Activity.type == query.filter("type"))
        return stmt

    async def list_for_review(self, query: ListQuery) -> ListResult[Activity]:
        stmt = self._filtered(query)
        items, pagination = await fetch_page(
            self.session, stmt.order_by(Activity.submitted_date.desc()), query
        )
        sub = stmt.subquery()
        row = (await self.session.execute(
            select(
                func.count(),
                *[
                    func.coalesce(func.sum(case((sub.c.status == s.value, 1), else_=0)), 0)
                    for s in (ActivityStatus.PENDING, ActivityStatus.VERIFIED, ActivityStatus.UNVERIFIED)
                ],
            ).select_from(sub)
        )).one()
        stats = dict(zip(("total", "pending", "verified", "unverified"), (int(v or 0) for v in row)))
        return ListResult(items=items, stats=stats, pagination=pagination)

    async def review(
        self,
        admin: User,
        activity_id: uuid.UUID,
        status: str,
        admin_notes: Optional[str] = None,
    ) -> Activity:
        """
        Record an admin verdict on an activity.

        Raises:
            ValueError: status is not verified/unverified, or notes too long
            NotFoundError: no such activity
        """
        if status not in REVIEW_STATUSES:
            raise ValueError("Status must be verified or unverified")
        if admin_notes and len(admin_notes) > MAX_ADMIN_NOTES_LENGTH:
            raise ValueError(f"Admin notes cannot exceed {MAX_ADMIN_NOTES_LENGTH} characters")

        activity = await self.session.get(Activity, activity_id)
        if activity is None:
            raise NotFoundError("Activity not found")

        activity.status = status
        activity.verified_date = utcnow()
        activity.verified_by = admin.id
        if admin_notes is not None:
            activity.admin_notes = admin_notes

        if self.audit is not None:
            await self.audit.log_for_user(
                admin,
                action=AuditAction.UPDATE,
                resource=f"activity:{activity.id}",
                details=f"Activity marked {status} ({activity.credits} credits)",
                severity=AuditSeverity.MEDIUM,
            )
        return activity
