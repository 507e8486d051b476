"""
Rate limit policy console: list, stats, CRUD, reset, export.
"""

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from greyn.engines.listing import ListQuery, ListResult, fetch_page, search_clause
from greyn.kernel.audit.audit_store import AuditStore
from greyn.kernel.errors import ConflictError, NotFoundError
from greyn.kernel.models.audit_log import AuditAction, AuditSeverity
from greyn.kernel.models.base import enum_value
from greyn.kernel.models.rate_limit import (
    HttpMethod,
    RateLimit,
    RateLimitCategory,
    RateLimitStatus,
    RateLimitWindow,
    RecordSource,
)
from greyn.kernel.models.user import User
from greyn.logging_config import get_logger

logger = get_logger(__name__)

# Most urgent first
STATUS_SEVERITY = {
    RateLimitStatus.EXCEEDED.value: 0,
    RateLimitStatus.CRITICAL.value: 1,
    RateLimitStatus.WARNING.value: 2,
    RateLimitStatus.NORMAL.value: 3,
}

EXPORT_COLUMNS = [
    ("endpoint", "Endpoint"),
    ("method", "Method"),
    ("limit", "Limit"),
    ("window", "Window"),
    ("current", "Current"),
    ("percentage", "Usage %"),
    ("status", "Status"),
    ("category", "Category"),
    ("enabled", "Enabled"),
    ("blocked_requests", "Blocked Requests"),
    ("description", "Description"),
    ("last_reset", "Last Reset"),
    ("next_reset", "Next Reset"),
]

UPDATABLE_FIELDS = (
    "endpoint", "method", "limit", "window", "current", "description",
    "category", "enabled", "blocked_requests", "average_response_time",
)


def progress_color(percentage: float, status: str) -> str:
    """Bar colour for a usage meter: red when critical or over, yellow when warning or >= 80%."""
    status = enum_value(status)
    if status in (RateLimitStatus.EXCEEDED.value, RateLimitStatus.CRITICAL.value):
        return "red"
    if status == RateLimitStatus.WARNING.value or percentage >= 80:
        return "yellow"
    return "green"


def _as_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes", "on")


def rate_limit_to_dict(item: RateLimit) -> Dict[str, Any]:
    return {
        "id": str(item.id),
        "endpoint": item.endpoint,
        "method": enum_value(item.method),
        "limit": item.limit,
        "window": enum_value(item.window),
        "current": item.current,
        "percentage": item.percentage,
        "status": enum_value(item.status),
        "category": enum_value(item.category),
        "enabled": item.enabled,
        "source": enum_value(item.source),
        "blocked_requests": item.blocked_requests,
        "description": item.description,
        "last_reset": item.last_reset,
        "next_reset": item.next_reset,
    }


class RateLimitService:
    """Admin operations on rate limit policies. Every mutation is audited."""

    SEARCH_COLUMNS = (RateLimit.endpoint, RateLimit.description)

    def __init__(self, session: AsyncSession, audit: AuditStore):
        self.session = session
        self.audit = audit

    def _filtered(self, query: ListQuery):
        stmt = select(RateLimit)
        if not _as_bool(query.filter("include_seed")):
            stmt = stmt.where(RateLimit.source != RecordSource.SEED.value)
        if query.search:
            stmt = stmt.where(search_clause(self.SEARCH_COLUMNS, query.search))
        if query.filter("status"):
            stmt = stmt.where(RateLimit.status == query.filter("status"))
        if query.filter("category"):
            stmt = stmt.where(RateLimit.category == query.filter("category"))
        if query.filter("method"):
            stmt = stmt.where(RateLimit.method == str(query.filter("method")).upper())
        enabled = _as_bool(query.filter("enabled"))
        if enabled is not None:
            stmt = stmt.where(RateLimit.enabled.is_(enabled))
        return stmt

    async def list(self, query: ListQuery) -> ListResult[RateLimit]:
        stmt = self._filtered(query)
        ordered = stmt.order_by(
            case(STATUS_SEVERITY, value=RateLimit.status, else_=len(STATUS_SEVERITY)),
            RateLimit.current.desc(),
            RateLimit.created_at.desc(),
        )
        items, pagination = await fetch_page(self.session, ordered, query)
        stats = await self._stats(stmt)
        return ListResult(items=items, stats=stats, pagination=pagination)

    async def _stats(self, stmt) -> Dict[str, Any]:
        rows = (await self.session.execute(stmt)).scalars().all()
        stats: Dict[str, Any] = {
            "total": len(rows),
            "normal": 0,
            "warning": 0,
            "critical": 0,
            "exceeded": 0,
            "total_requests": sum(r.current for r in rows),
            "total_blocked": sum(r.blocked_requests for r in rows),
            "enabled": sum(1 for r in rows if r.enabled),
            "disabled": sum(1 for r in rows if not r.enabled),
            "average_usage": 0,
        }
        for row in rows:
            stats[enum_value(row.status)] = stats.get(enum_value(row.status), 0) + 1
        if rows:
            usage = sum((r.current / r.limit) * 100 for r in rows) / len(rows)
            stats["average_usage"] = round(usage, 1)
        return stats

    async def all_for_export(self, query: ListQuery) -> List[RateLimit]:
        stmt = self._filtered(query).order_by(
            case(STATUS_SEVERITY, value=RateLimit.status, else_=len(STATUS_SEVERITY)),
            RateLimit.current.desc(),
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def get(self, rate_limit_id: uuid.UUID) -> RateLimit:
        item = await self.session.get(RateLimit, rate_limit_id)
        if item is None:
            raise NotFoundError("Rate limit not found")
        return item

    async def _find(self, endpoint: str, method: str) -> Optional[RateLimit]:
        result = await self.session.execute(
            select(RateLimit).where(RateLimit.endpoint == endpoint, RateLimit.method == method)
        )
        return result.scalar_one_or_none()

    async def create(self, admin: User, data: Dict[str, Any]) -> RateLimit:
        """
        Create a policy.

        Raises:
            ValueError: missing required fields
            ConflictError: a policy for (method, endpoint) already exists
        """
        missing = [f for f in ("endpoint", "method", "limit", "window") if data.get(f) in (None, "")]
        if missing:
            raise ValueError("Missing required fields: " + ", ".join(missing))

        if int(data["limit"]) < 1:
            raise ValueError("Limit must be at least 1")
        method = HttpMethod(str(data["method"]).upper()).value
        endpoint = data["endpoint"].strip()
        if await self._find(endpoint, method):
            raise ConflictError(f"Rate limit already exists for {method} {endpoint}")

        item = RateLimit(
            endpoint=endpoint,
            method=method,
            limit=int(data["limit"]),
            window=RateLimitWindow(data["window"]).value,
            current=int(data.get("current") or 0),
            description=data.get("description") or "",
            category=RateLimitCategory(data.get("category") or RateLimitCategory.API.value).value,
            enabled=data.get("enabled") is not False,
            source=RecordSource.MANUAL.value,
            created_by=admin.id,
        )
        item.next_reset = item.calculate_next_reset()
        item.refresh_status()
        self.session.add(item)
        await self.session.flush()

        await self.audit.log_for_user(
            admin,
            action=AuditAction.CREATE,
            resource=f"rate_limit:{item.id}",
            details=f"Created rate limit {method} {endpoint} ({item.limit}/{item.window})",
            severity=AuditSeverity.MEDIUM,
        )
        return item

    async def update(self, admin: User, rate_limit_id: uuid.UUID, data: Dict[str, Any]) -> RateLimit:
        item = await self.get(rate_limit_id)
        changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}

        if "method" in changes:
            changes["method"] = HttpMethod(str(changes["method"]).upper()).value
        if "window" in changes:
            changes["window"] = RateLimitWindow(changes["window"]).value
        if "category" in changes:
            changes["category"] = RateLimitCategory(changes["category"]).value

        new_endpoint = changes.get("endpoint", item.endpoint)
        new_method = changes.get("method", enum_value(item.method))
        if (new_endpoint, new_method) != (item.endpoint, enum_value(item.method)):
            clash = await self._find(new_endpoint, new_method)
            if clash and clash.id != item.id:
                raise ConflictError(f"Rate limit already exists for {new_method} {new_endpoint}")

        for key, value in changes.items():
            setattr(item, key, value)
        if "window" in changes:
            item.next_reset = item.calculate_next_reset(item.last_reset)
        item.refresh_status()

        await self.audit.log_for_user(
            admin,
            action=AuditAction.UPDATE,
            resource=f"rate_limit:{item.id}",
            details="Updated fields: " + ", ".join(sorted(changes)) if changes else "No changes",
            metadata={k: str(v) for k, v in changes.items()},
        )
        return item

    async def delete(self, admin: User, rate_limit_id: uuid.UUID) -> None:
        item = await self.get(rate_limit_id)
        await self.audit.log_for_user(
            admin,
            action=AuditAction.DELETE,
            resource=f"rate_limit:{item.id}",
            details=f"Deleted rate limit {enum_value(item.method)} {item.endpoint}",
            severity=AuditSeverity.MEDIUM,
        )
        await self.session.delete(item)

    async def reset(self, admin: User, rate_limit_id: uuid.UUID) -> RateLimit:
        item = await self.get(rate_limit_id)
        previous = item.current
        item.reset_counter()
        await self.audit.log_for_user(
            admin,
            action=AuditAction.UPDATE,
            resource=f"rate_limit:{item.id}",
            details=f"Counter reset from {previous} for {enum_value(item.method)} {item.endpoint}",
        )
        logger.info("Rate limit reset", extra={"rate_limit_id": str(item.id), "previous": previous})
        return item
