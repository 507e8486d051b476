"""
Access control policies for the admin security console.

Three record kinds live here: named access policies, IP allow/deny rules
and the per-role permission matrix.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, Integer, JSON, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from greyn.kernel.models.base import Base, TimestampMixin, generate_uuid, utcnow
from greyn.kernel.models.rate_limit import RecordSource


class AccessRuleType(str, Enum):
    IP_WHITELIST = "ip_whitelist"
    IP_BLACKLIST = "ip_blacklist"
    ROLE_BASED = "role_based"
    TIME_BASED = "time_based"
    GEOGRAPHIC = "geographic"
    DEVICE_FINGERPRINT = "device_fingerprint"


class RuleStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"


class IPRuleType(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class Permission(str, Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    ADMIN = "admin"
    EXPORT = "export"
    APPROVE = "approve"


class AccessRule(Base, TimestampMixin):
    """A named access policy. Lower priority numbers are evaluated first."""

    __tablename__ = "access_rules"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    type: Mapped[AccessRuleType] = mapped_column(String(30), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[RuleStatus] = mapped_column(String(20), default=RuleStatus.ACTIVE, nullable=False, index=True)
    priority: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    conditions: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    affected_users: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    affected_ips: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    source: Mapped[RecordSource] = mapped_column(String(10), default=RecordSource.MANUAL, nullable=False)

    def __repr__(self) -> str:
        return f"<AccessRule {self.name} ({self.type})>"


class IPAccessRule(Base, TimestampMixin):
    """Allow or deny rule for a single IPv4 address or network."""

    __tablename__ = "ip_access_rules"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=generate_uuid)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    cidr: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    type: Mapped[IPRuleType] = mapped_column(String(10), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[RuleStatus] = mapped_column(String(20), default=RuleStatus.ACTIVE, nullable=False, index=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    source: Mapped[RecordSource] = mapped_column(String(10), default=RecordSource.MANUAL, nullable=False)

    def __repr__(self) -> str:
        return f"<IPAccessRule {self.type} {self.ip_address}{self.cidr or ''}>"


class RoleAccessConfig(Base, TimestampMixin):
    """Permissions, resources and restrictions granted to a role label."""

    __tablename__ = "role_access_config"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=generate_uuid)
    role: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    permissions: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    resources: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    restrictions: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    source: Mapped[RecordSource] = mapped_column(String(10), default=RecordSource.MANUAL, nullable=False)

    def __repr__(self) -> str:
        return f"<RoleAccessConfig {self.role}>"
