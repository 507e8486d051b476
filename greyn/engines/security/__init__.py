"""
Security consoles: rate limit policies, access control and the audit trail.
"""

from greyn.engines.security.rate_limits import RateLimitService, progress_color, rate_limit_to_dict
from greyn.engines.security.access_rules import (
    AccessControlService,
    access_rule_to_dict,
    ip_rule_to_dict,
    role_access_to_dict,
)
from greyn.engines.security.audit_logs import AuditLogService, audit_log_to_dict

__all__ = [
    "RateLimitService",
    "progress_color",
    "rate_limit_to_dict",
    "AccessControlService",
    "access_rule_to_dict",
    "ip_rule_to_dict",
    "role_access_to_dict",
    "AuditLogService",
    "audit_log_to_dict",
]
