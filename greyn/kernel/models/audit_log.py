"""
Security audit log.

Rows are append-only. Each row carries an integrity hash over its
identifying fields so tampering can be detected by recomputing it.
"""

import hashlib
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, JSON, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from greyn.kernel.models.base import Base, as_utc, enum_value, generate_uuid, utcnow


class AuditAction(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ACCESS = "access"
    PERMISSION_CHANGE = "permission_change"
    SECURITY_EVENT = "security_event"
    DATA_EXPORT = "data_export"
    PASSWORD_CHANGE = "password_change"
    ROLE_CHANGE = "role_change"
    SUSPENSION = "suspension"


class AuditSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    WARNING = "warning"


def audit_timestamp(value: Optional[datetime] = None) -> datetime:
    """UTC timestamp truncated to milliseconds, the precision the hash covers."""
    value = as_utc(value) if value else utcnow()
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def format_hash_timestamp(value: datetime) -> str:
    """ISO-8601 with milliseconds and a Z suffix, e.g. 2026-01-02T03:04:05.678Z."""
    value = as_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def compute_integrity_hash(
    *,
    timestamp: datetime,
    actor: Optional[str],
    action: Optional[str],
    resource: Optional[str],
    details: Optional[str],
    severity: Optional[str],
    status: Optional[str],
    ip_address: Optional[str],
    user_agent: Optional[str],
    session_id: Optional[str],
) -> str:
    """'0x' + sha256 over the pipe-joined identifying fields (missing values join as '')."""
    parts = [
        format_hash_timestamp(timestamp),
        actor or "",
        enum_value(action) or "",
        resource or "",
        details or "",
        enum_value(severity) or "",
        enum_value(status) or "",
        ip_address or "",
        user_agent or "",
        session_id or "",
    ]
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
    return f"0x{digest}"


class AuditLog(Base):
    """
    Immutable audit record.

    No updates or deletes; all security-relevant actions are appended here
    before the surrounding transaction commits.
    """

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: audit_timestamp(),
        nullable=False,
        index=True,
    )
    actor: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    actor_role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    action: Mapped[AuditAction] = mapped_column(String(50), nullable=False, index=True)
    resource: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    severity: Mapped[AuditSeverity] = mapped_column(
        String(20),
        default=AuditSeverity.LOW,
        nullable=False,
        index=True,
    )
    status: Mapped[AuditStatus] = mapped_column(
        String(20),
        default=AuditStatus.SUCCESS,
        nullable=False,
    )
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)  # IPv6 max length
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    hash: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    source: Mapped[str] = mapped_column(String(10), default="manual", nullable=False)
    extra: Mapped[dict] = mapped_column("metadata", JSON, default=dict, nullable=False)

    __table_args__ = (
        Index("ix_audit_logs_action_time", "action", "timestamp"),
        Index("ix_audit_logs_severity_time", "severity", "timestamp"),
    )

    def compute_hash(self) -> str:
        return compute_integrity_hash(
            timestamp=self.timestamp,
            actor=self.actor,
            action=self.action,
            resource=self.resource,
            details=self.details,
            severity=self.severity,
            status=self.status,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            session_id=self.session_id,
        )

    def __repr__(self) -> str:
        return f"<AuditLog {enum_value(self.action)} {self.actor} -> {self.resource}>"
