"""
Audit Store service for the append-only security log.

Mutations that matter to security (logins, role changes, suspensions,
exports, policy edits) are logged here BEFORE commit, in the same
transaction as the change itself.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from greyn.kernel.models.audit_log import (
    AuditAction,
    AuditLog,
    AuditSeverity,
    AuditStatus,
    audit_timestamp,
)
from greyn.kernel.models.base import enum_value
from greyn.kernel.models.user import User
from greyn.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuditContext:
    """Request metadata recorded alongside every audit entry."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None


@dataclass(frozen=True)
class IntegrityCheck:
    valid: bool
    message: str
    stored_hash: Optional[str]
    computed_hash: Optional[str]


class AuditStore:
    """
    Service for writing and verifying audit log entries.

    Usage:
        audit = AuditStore(session, context)
        await audit.log_for_user(
            admin,
            action=AuditAction.ROLE_CHANGE,
            resource=f"user:{target.id}",
            details="Role changed from ngo to corporate",
            severity=AuditSeverity.HIGH,
        )
    """

    def __init__(self, session: AsyncSession, context: Optional[AuditContext] = None):
        self.session = session
        self.context = context or AuditContext()

    async def log(
        self,
        *,
        action: AuditAction,
        resource: str,
        actor: str,
        actor_role: Optional[str] = None,
        details: Optional[str] = None,
        severity: AuditSeverity = AuditSeverity.LOW,
        status: AuditStatus = AuditStatus.SUCCESS,
        metadata: Optional[Dict[str, Any]] = None,
        source: str = "manual",
        timestamp: Optional[datetime] = None,
        location: Optional[str] = None,
    ) -> AuditLog:
        """
        Append an audit entry and stamp its integrity hash.

        The caller owns the transaction; nothing is flushed here.
        """
        entry = AuditLog(
            timestamp=audit_timestamp(timestamp),
            actor=actor,
            actor_role=actor_role,
            action=enum_value(action),
            resource=resource,
            details=details,
            severity=enum_value(severity),
            status=enum_value(status),
            ip_address=self.context.ip_address,
            user_agent=self.context.user_agent,
            session_id=self.context.session_id,
            location=location,
            source=source,
            extra=metadata or {},
        )
        entry.hash = entry.compute_hash()
        self.session.add(entry)

        logger.info(
            "Audit %s on %s by %s",
            entry.action,
            resource,
            actor,
            extra={"audit_status": entry.status, "severity": entry.severity},
        )
        return entry

    async def log_for_user(
        self,
        user: User,
        *,
        action: AuditAction,
        resource: str,
        **kwargs: Any,
    ) -> AuditLog:
        """Log with the user's email and role as the actor."""
        return await self.log(
            action=action,
            resource=resource,
            actor=user.email,
            actor_role=enum_value(user.role),
            **kwargs,
        )

    @staticmethod
    def verify(entry: AuditLog) -> IntegrityCheck:
        """Recompute the hash of a stored entry and compare."""
        if not entry.hash:
            return IntegrityCheck(
                valid=False,
                message="No integrity hash stored for this log",
                stored_hash=None,
                computed_hash=None,
            )
        computed = entry.compute_hash()
        if computed == entry.hash:
            return IntegrityCheck(True, "Integrity verified", entry.hash, computed)
        return IntegrityCheck(
            valid=False,
            message="Hash mismatch - log may have been altered",
            stored_hash=entry.hash,
            computed_hash=computed,
        )
