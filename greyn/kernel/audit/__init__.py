"""
Append-only security audit trail.
"""

from greyn.kernel.audit.audit_store import AuditContext, AuditStore, IntegrityCheck

__all__ = ["AuditContext", "AuditStore", "IntegrityCheck"]
