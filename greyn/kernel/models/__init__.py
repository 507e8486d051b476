"""
Kernel Data Models

Core SQLAlchemy models shared by every portal.
"""

from greyn.kernel.models.base import Base, TimestampMixin, as_utc, enum_value, generate_uuid, utcnow
from greyn.kernel.models.user import User, UserRole, UserStatus, RefreshToken
from greyn.kernel.models.activity import (
    Activity,
    ActivityType,
    ActivityStatus,
    ACTIVITY_CREDITS,
    ACTIVITY_LABELS,
    credits_for,
)
from greyn.kernel.models.rate_limit import (
    RateLimit,
    HttpMethod,
    RateLimitWindow,
    RateLimitStatus,
    RateLimitCategory,
    RecordSource,
    compute_status,
)
from greyn.kernel.models.audit_log import (
    AuditLog,
    AuditAction,
    AuditSeverity,
    AuditStatus,
    compute_integrity_hash,
)
from greyn.kernel.models.transaction import (
    FinanceTransaction,
    TransactionType,
    TransactionStatus,
    PaymentMethod,
)
from greyn.kernel.models.payment import Payment, PaymentStatus
from greyn.kernel.models.access_rule import (
    AccessRule,
    AccessRuleType,
    IPAccessRule,
    IPRuleType,
    Permission,
    RoleAccessConfig,
    RuleStatus,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "as_utc",
    "enum_value",
    "generate_uuid",
    "utcnow",
    # User
    "User",
    "UserRole",
    "UserStatus",
    "RefreshToken",
    # Activities
    "Activity",
    "ActivityType",
    "ActivityStatus",
    "ACTIVITY_CREDITS",
    "ACTIVITY_LABELS",
    "credits_for",
    # Rate limits
    "RateLimit",
    "HttpMethod",
    "RateLimitWindow",
    "RateLimitStatus",
    "RateLimitCategory",
    "RecordSource",
    "compute_status",
    # Audit
    "AuditLog",
    "AuditAction",
    "AuditSeverity",
    "AuditStatus",
    "compute_integrity_hash",
    # Finance
    "FinanceTransaction",
    "TransactionType",
    "TransactionStatus",
    "PaymentMethod",
    "Payment",
    "PaymentStatus",
    # Access control
    "AccessRule",
    "AccessRuleType",
    "IPAccessRule",
    "IPRuleType",
    "Permission",
    "RoleAccessConfig",
    "RuleStatus",
]
