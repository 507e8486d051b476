"""
Audit log console: search, filter, stats, export and integrity verification.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from greyn.engines.listing import ListQuery, ListResult, fetch_page, search_clause
from greyn.kernel.audit.audit_store import AuditStore, IntegrityCheck
from greyn.kernel.errors import NotFoundError
from greyn.kernel.models.audit_log import AuditAction, AuditLog, AuditSeverity, AuditStatus
from greyn.kernel.models.base import enum_value, utcnow
from greyn.kernel.models.user import User

# Rolling windows ending now
DATE_RANGES = {
    "today": timedelta(hours=24),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}

EXPORT_COLUMNS = [
    ("timestamp", "Timestamp"),
    ("actor", "Actor"),
    ("actor_role", "Role"),
    ("action", "Action"),
    ("resource", "Resource"),
    ("details", "Details"),
    ("severity", "Severity"),
    ("status", "Status"),
    ("ip_address", "IP Address"),
    ("user_agent", "User Agent"),
    ("session_id", "Session"),
    ("hash", "Hash"),
]


def audit_log_to_dict(entry: AuditLog) -> Dict[str, Any]:
    return {
        "id": str(entry.id),
        "timestamp": entry.timestamp,
        "actor": entry.actor,
        "actor_role": entry.actor_role,
        "action": enum_value(entry.action),
        "resource": entry.resource,
        "details": entry.details,
        "severity": enum_value(entry.severity),
        "status": enum_value(entry.status),
        "ip_address": entry.ip_address,
        "user_agent": entry.user_agent,
        "location": entry.location,
        "session_id": entry.session_id,
        "hash": entry.hash,
        "source": entry.source,
        "metadata": entry.extra,
    }


def date_range_start(date_range: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of a rolling window, or None for unknown / empty ranges."""
    window = DATE_RANGES.get(date_range or "")
    if window is None:
        return None
    return (now or utcnow()) - window


class AuditLogService:
    """Read side of the audit trail. The only write is the export audit entry."""

    SEARCH_COLUMNS = (
        AuditLog.actor,
        AuditLog.resource,
        AuditLog.details,
        AuditLog.ip_address,
        AuditLog.hash,
    )

    def __init__(self, session: AsyncSession, audit: AuditStore):
        self.session = session
        self.audit = audit

    def _filtered(self, query: ListQuery):
        stmt = select(AuditLog)
        if query.search:
            stmt = stmt.where(search_clause(self.SEARCH_COLUMNS, query.search))
        for name, column in (
            ("severity", AuditLog.severity),
            ("action", AuditLog.action),
            ("status", AuditLog.status),
        ):
            value = query.filter(name)
            if value:
                stmt = stmt.where(column == value)
        since = date_range_start(query.filter("date_range"))
        if since is not None:
            stmt = stmt.where(AuditLog.timestamp >= since)
        return stmt

    async def list(self, query: ListQuery) -> ListResult[AuditLog]:
        stmt = self._filtered(query)
        items, pagination = await fetch_page(
            self.session, stmt.order_by(AuditLog.timestamp.desc()), query
        )
        return ListResult(items=items, stats=await self._stats(stmt), pagination=pagination)

    async def _stats(self, stmt) -> Dict[str, int]:
        sub = stmt.subquery()

        def count_where(column, value):
            return func.coalesce(func.sum(case((column == value, 1), else_=0)), 0)

        row = (await self.session.execute(
            select(
                func.count(),
                count_where(sub.c.severity, AuditSeverity.CRITICAL.value),
                count_where(sub.c.severity, AuditSeverity.HIGH.value),
                count_where(sub.c.severity, AuditSeverity.MEDIUM.value),
                count_where(sub.c.severity, AuditSeverity.LOW.value),
                count_where(sub.c.status, AuditStatus.FAILED.value),
                count_where(sub.c.status, AuditStatus.SUCCESS.value),
                count_where(sub.c.status, AuditStatus.WARNING.value),
            ).select_from(sub)
        )).one()
        keys = ("total", "critical", "high", "medium", "low", "failed", "success", "warning")
        return {key: int(value or 0) for key, value in zip(keys, row)}

    async def get(self, log_id: uuid.UUID) -> AuditLog:
        entry = await self.session.get(AuditLog, log_id)
        if entry is None:
            raise NotFoundError("Audit log not found")
        return entry

    async def export(self, admin: User, query: ListQuery, fmt: str) -> List[AuditLog]:
        """Fetch every filtered entry and record the export itself."""
        stmt = self._filtered(query).order_by(AuditLog.timestamp.desc())
        entries = list((await self.session.execute(stmt)).scalars().all())
        await self.audit.log_for_user(
            admin,
            action=AuditAction.DATA_EXPORT,
            resource="audit_logs",
            details=f"Exported {len(entries)} audit logs as {fmt.upper()}",
            severity=AuditSeverity.MEDIUM,
        )
        return entries

    async def verify(self, log_id: uuid.UUID) -> IntegrityCheck:
        return AuditStore.verify(await self.get(log_id))
