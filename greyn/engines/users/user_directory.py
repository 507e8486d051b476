"""
Admin user directory: list, stats, status and role management.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from greyn.engines.listing import ListQuery, ListResult, fetch_page, search_clause
from greyn.kernel.audit.audit_store import AuditStore
from greyn.kernel.errors import NotFoundError
from greyn.kernel.models.audit_log import AuditAction, AuditSeverity
from greyn.kernel.models.base import as_utc, enum_value, utcnow
from greyn.kernel.models.user import User, UserRole, UserStatus, status_allows_sign_in

PORTALS = {
    UserRole.SIMPLE_USER.value: [],
    UserRole.NGO.value: ["NGO Portal"],
    UserRole.CORPORATE.value: ["Corporate ESG"],
    UserRole.CARBON.value: ["Carbon Marketplace"],
    UserRole.ADMIN.value: ["Admin Portal"],
}

# Statuses an admin may set directly
ASSIGNABLE_STATUSES = (
    UserStatus.ACTIVE.value,
    UserStatus.SUSPENDED.value,
    UserStatus.PENDING.value,
)


def portal_access(role: str, status: str) -> List[str]:
    """Portals a user can open. Accounts that cannot sign in get none."""
    if not status_allows_sign_in(role, status):
        return []
    return list(PORTALS.get(enum_value(role), []))


def display_status(status: str) -> str:
    status = enum_value(status)
    return UserStatus.SUSPENDED.value if status == UserStatus.INACTIVE.value else status


def format_last_active(last_login: Optional[datetime], now: Optional[datetime] = None) -> str:
    if last_login is None:
        return "Never"
    now = now or utcnow()
    minutes = int((now - as_utc(last_login)).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    if days < 7:
        return f"{days} day{'s' if days > 1 else ''} ago"
    return as_utc(last_login).date().isoformat()


def user_to_dict(user: User, now: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "name": user.display_name,
        "email": user.email,
        "role": enum_value(user.role),
        "portal_access": portal_access(user.role, user.status),
        "status": display_status(user.status),
        "join_date": as_utc(user.created_at).date().isoformat() if user.created_at else None,
        "last_active": format_last_active(user.last_login, now),
    }


class UserDirectoryService:
    """Admin-side view of every portal account."""

    SEARCH_COLUMNS = (
        User.name,
        User.email,
        User.organization_name,
        User.company_name,
    )

    def __init__(self, session: AsyncSession, audit: AuditStore):
        self.session = session
        self.audit = audit

    def _filtered(self, query: ListQuery):
        stmt = select(User)
        if query.search:
            stmt = stmt.where(search_clause(self.SEARCH_COLUMNS, query.search))

        status = query.filter("status")
        if status == UserStatus.SUSPENDED.value:
            stmt = stmt.where(User.status.in_([UserStatus.SUSPENDED.value, UserStatus.INACTIVE.value]))
        elif status:
            stmt = stmt.where(User.status == status)

        if query.filter("role"):
            stmt = stmt.where(User.role == query.filter("role"))

        portal = query.filter("portal")
        if portal:
            roles = [role for role, portals in PORTALS.items() if portal in portals]
            stmt = stmt.where(User.role.in_(roles), User.status == UserStatus.ACTIVE.value)
        return stmt

    async def list(self, query: ListQuery) -> ListResult[User]:
        stmt = self._filtered(query)
        items, pagination = await fetch_page(self.session, stmt.order_by(User.created_at.desc()), query)
        return ListResult(items=items, stats=await self._stats(stmt), pagination=pagination)

    async def _stats(self, stmt) -> Dict[str, int]:
        sub = stmt.subquery()

        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        row = (await self.session.execute(
            select(
                func.count(),
                count_where(sub.c.status == UserStatus.ACTIVE.value),
                count_where(sub.c.status == UserStatus.PENDING.value),
                count_where(or_(
                    sub.c.status == UserStatus.SUSPENDED.value,
                    sub.c.status == UserStatus.INACTIVE.value,
                )),
            ).select_from(sub)
        )).one()
        return dict(zip(("total", "active", "pending", "suspended"), (int(v or 0) for v in row)))

    async def get(self, user_id: uuid.UUID) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_status(self, admin: User, user_id: uuid.UUID, status: str) -> User:
        """
        Raises:
            ValueError: status is not active, suspended or pending
            NotFoundError: no such user
        """
        if status not in ASSIGNABLE_STATUSES:
            raise ValueError("Status must be one of: " + ", ".join(ASSIGNABLE_STATUSES))
        user = await self.get(user_id)
        previous = enum_value(user.status)
        user.status = status

        suspended = status == UserStatus.SUSPENDED.value
        await self.audit.log_for_user(
            admin,
            action=AuditAction.SUSPENSION if suspended else AuditAction.UPDATE,
            resource=f"user:{user.id}",
            details=f"Status changed from {previous} to {status} for {user.email}",
            severity=AuditSeverity.HIGH if suspended else AuditSeverity.MEDIUM,
        )
        return user

    async def update_role(self, admin: User, user_id: uuid.UUID, role: str) -> User:
        try:
            role = UserRole(role).value
        except ValueError:
            raise ValueError("Role must be one of: " + ", ".join(r.value for r in UserRole))
        user = await self.get(user_id)
        previous = enum_value(user.role)
        user.role = role
        await self.audit.log_for_user(
            admin,
            action=AuditAction.ROLE_CHANGE,
            resource=f"user:{user.id}",
            details=f"Role changed from {previous} to {role} for {user.email}",
            severity=AuditSeverity.HIGH,
        )
        return user
