"""
Access control console: access policies, IP allow/deny rules and the
role permission matrix.

Seed rows are hidden unless include_seed is set, both from lists and from
single-record lookups.
"""

import ipaddress
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from greyn.engines.listing import ListQuery, ListResult, fetch_page, search_clause
from greyn.kernel.audit.audit_store import AuditStore
from greyn.kernel.errors import NotFoundError
from greyn.kernel.models.access_rule import (
    AccessRule,
    AccessRuleType,
    IPAccessRule,
    IPRuleType,
    Permission,
    RoleAccessConfig,
    RuleStatus,
)
from greyn.kernel.models.audit_log import AuditAction, AuditSeverity
from greyn.kernel.models.base import as_utc, enum_value, utcnow
from greyn.kernel.models.rate_limit import RecordSource
from greyn.kernel.models.user import User
from greyn.logging_config import get_logger

logger = get_logger(__name__)

RULE_TYPES = [t.value for t in AccessRuleType]
RULE_STATUSES = [s.value for s in RuleStatus]
IP_RULE_TYPES = [t.value for t in IPRuleType]
PERMISSIONS = [p.value for p in Permission]

RECENT_ACTIVITY_LIMIT = 3


def _day(value: Optional[datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.date().isoformat() if value else None


def _include_seed(query: Optional[ListQuery]) -> bool:
    if query is None:
        return False
    return str(query.filter("include_seed") or "").lower() in ("1", "true")


def _priority(value: Any) -> int:
    try:
        return max(1, int(value or 1))
    except (TypeError, ValueError):
        return 1


def is_valid_ip_or_cidr(value: Optional[str]) -> bool:
    """IPv4 address, optionally with a /1../32 suffix, e.g. 10.0.0.0/24."""
    if not value:
        return False
    address, _, prefix = value.strip().partition("/")
    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        return False
    if prefix:
        return prefix.isdigit() and 1 <= int(prefix) <= 32
    return "/" not in value


def normalize_cidr(value: Optional[str]) -> Optional[str]:
    """Validate a standalone suffix like "/24". Blank means none."""
    if value is None or not str(value).strip():
        return None
    cidr = str(value).strip()
    if not cidr.startswith("/") or not cidr[1:].isdigit() or len(cidr) > 3:
        raise ValueError("cidr must be like /8, /16, /24, /32")
    if not 1 <= int(cidr[1:]) <= 32:
        raise ValueError("cidr must be /1 to /32")
    return cidr


def access_rule_to_dict(rule: AccessRule) -> Dict[str, Any]:
    return {
        "id": str(rule.id),
        "name": rule.name,
        "type": enum_value(rule.type),
        "description": rule.description,
        "status": enum_value(rule.status),
        "priority": rule.priority,
        "conditions": list(rule.conditions or []),
        "affected_users": rule.affected_users,
        "affected_ips": rule.affected_ips,
        "created_by": rule.created_by,
        "created_at": _day(rule.created_on),
        "last_modified": _day(rule.last_modified),
    }


def ip_rule_to_dict(rule: IPAccessRule) -> Dict[str, Any]:
    return {
        "id": str(rule.id),
        "ip_address": rule.ip_address,
        "cidr": rule.cidr,
        "type": enum_value(rule.type),
        "reason": rule.reason,
        "status": enum_value(rule.status),
        "location": rule.location,
        "created_by": rule.created_by,
        "created_at": _day(rule.created_on),
        "expires_at": _day(rule.expires_at),
    }


def role_access_to_dict(config: RoleAccessConfig) -> Dict[str, Any]:
    return {
        "role": config.role,
        "permissions": list(config.permissions or []),
        "resources": list(config.resources or []),
        "restrictions": list(config.restrictions or []),
    }


class AccessControlService:
    """Admin operations behind /admin/security/access-control. Every mutation is audited."""

    RULE_SEARCH_COLUMNS = (AccessRule.name, AccessRule.description, AccessRule.type)
    IP_SEARCH_COLUMNS = (IPAccessRule.ip_address, IPAccessRule.reason, IPAccessRule.location)

    def __init__(self, session: AsyncSession, audit: AuditStore):
        self.session = session
        self.audit = audit

    # Overview

    async def overview(self, query: ListQuery) -> Dict[str, Any]:
        include_seed = _include_seed(query)
        rules = list((await self.session.execute(self._rules(include_seed))).scalars().all())
        ip_rules = list((await self.session.execute(self._ip_rules(include_seed))).scalars().all())
        roles = (await self.session.execute(select(func.count()).select_from(RoleAccessConfig))).scalar() or 0

        recent = sorted(rules, key=lambda r: as_utc(r.last_modified), reverse=True)[:RECENT_ACTIVITY_LIMIT]
        return {
            "stats": {
                "total_rules": len(rules),
                "active_rules": sum(1 for r in rules if enum_value(r.status) == RuleStatus.ACTIVE.value),
                "ip_rules": len(ip_rules),
                "blocked_ips": sum(1 for r in ip_rules if enum_value(r.type) == IPRuleType.DENY.value),
                "allowed_ips": sum(1 for r in ip_rules if enum_value(r.type) == IPRuleType.ALLOW.value),
                "roles": int(roles),
            },
            "recent_activity": [
                {"name": r.name, "last_modified": _day(r.last_modified), "status": enum_value(r.status)}
                for r in recent
            ],
        }

    # Access policies

    def _rules(self, include_seed: bool):
        stmt = select(AccessRule)
        if not include_seed:
            stmt = stmt.where(AccessRule.source != RecordSource.SEED.value)
        return stmt

    async def list_access_rules(self, query: ListQuery) -> ListResult[AccessRule]:
        stmt = self._rules(_include_seed(query))
        if query.search:
            stmt = stmt.where(search_clause(self.RULE_SEARCH_COLUMNS, query.search))
        if query.filter("status"):
            stmt = stmt.where(AccessRule.status == query.filter("status"))
        if query.filter("type"):
            stmt = stmt.where(AccessRule.type == query.filter("type"))

        items, pagination = await fetch_page(
            self.session,
            stmt.order_by(AccessRule.priority.asc(), AccessRule.last_modified.desc()),
            query,
        )
        rows = (await self.session.execute(stmt)).scalars().all()
        stats = {"total": len(rows)}
        for status in RULE_STATUSES:
            stats[status] = sum(1 for r in rows if enum_value(r.status) == status)
        return ListResult(items=items, stats=stats, pagination=pagination)

    async def get_access_rule(self, rule_id: uuid.UUID, query: Optional[ListQuery] = None) -> AccessRule:
        stmt = self._rules(_include_seed(query)).where(AccessRule.id == rule_id)
        rule = (await self.session.execute(stmt)).scalar_one_or_none()
        if rule is None:
            raise NotFoundError("Access rule not found")
        return rule

    async def create_access_rule(self, admin: User, data: Dict[str, Any]) -> AccessRule:
        """
        Raises:
            ValueError: missing name/type/description or unknown type
        """
        name = (data.get("name") or "").strip()
        description = (data.get("description") or "").strip()
        rule_type = data.get("type")
        if not name or not rule_type or not description:
            raise ValueError("name, type, and description are required")
        if rule_type not in RULE_TYPES:
            raise ValueError("type must be one of: " + ", ".join(RULE_TYPES))

        status = data.get("status") if data.get("status") in RULE_STATUSES else RuleStatus.ACTIVE.value
        now = utcnow()
        rule = AccessRule(
            name=name,
            type=rule_type,
            description=description,
            status=status,
            priority=_priority(data.get("priority")),
            conditions=list(data.get("conditions") or []),
            affected_users=data.get("affected_users"),
            affected_ips=data.get("affected_ips"),
            created_by=admin.email,
            created_on=now,
            last_modified=now,
            source=RecordSource.MANUAL.value,
        )
        self.session.add(rule)
        await self.session.flush()

        await self.audit.log_for_user(
            admin,
            action=AuditAction.CREATE,
            resource=f"access_rule:{rule.id}",
            details=f"Created {rule_type} access rule {name}",
            severity=AuditSeverity.MEDIUM,
        )
        return rule

    async def update_access_rule(
        self,
        admin: User,
        rule_id: uuid.UUID,
        data: Dict[str, Any],
        query: Optional[ListQuery] = None,
    ) -> AccessRule:
        rule = await self.get_access_rule(rule_id, query)
        changes: Dict[str, Any] = {}

        if data.get("name") is not None:
            changes["name"] = data["name"].strip()
        if data.get("type") is not None:
            if data["type"] not in RULE_TYPES:
                raise ValueError("type must be one of: " + ", ".join(RULE_TYPES))
            changes["type"] = data["type"]
        if data.get("description") is not None:
            changes["description"] = data["description"].strip()
        if data.get("status") is not None:
            if data["status"] not in RULE_STATUSES:
                raise ValueError("status must be one of: " + ", ".join(RULE_STATUSES))
            changes["status"] = data["status"]
        if data.get("priority") is not None:
            changes["priority"] = _priority(data["priority"])
        if data.get("conditions") is not None:
            changes["conditions"] = list(data["conditions"])
        # Explicit nulls clear these two
        if "affected_users" in data:
            changes["affected_users"] = data["affected_users"]
        if "affected_ips" in data:
            changes["affected_ips"] = data["affected_ips"]

        for key, value in changes.items():
            setattr(rule, key, value)
        rule.last_modified = utcnow()
        rule.updated_by = admin.email

        await self.audit.log_for_user(
            admin,
            action=AuditAction.UPDATE,
            resource=f"access_rule:{rule.id}",
            details="Updated fields: " + ", ".join(sorted(changes)) if changes else "No changes",
            metadata={k: str(v) for k, v in changes.items()},
        )
        return rule

    async def delete_access_rule(self, admin: User, rule_id: uuid.UUID, query: Optional[ListQuery] = None) -> None:
        rule = await self.get_access_rule(rule_id, query)
        await self.audit.log_for_user(
            admin,
            action=AuditAction.DELETE,
            resource=f"access_rule:{rule.id}",
            details=f"Deleted access rule {rule.name}",
            severity=AuditSeverity.MEDIUM,
        )
        await self.session.delete(rule)

    # IP rules

    def _ip_rules(self, include_seed: bool):
        stmt = select(IPAccessRule)
        if not include_seed:
            stmt = stmt.where(IPAccessRule.source != RecordSource.SEED.value)
        return stmt

    async def list_ip_rules(self, query: ListQuery) -> ListResult[IPAccessRule]:
        stmt = self._ip_rules(_include_seed(query))
        if query.search:
            stmt = stmt.where(search_clause(self.IP_SEARCH_COLUMNS, query.search))
        if query.filter("status"):
            stmt = stmt.where(IPAccessRule.status == query.filter("status"))
        if query.filter("type"):
            stmt = stmt.where(IPAccessRule.type == query.filter("type"))

        items, pagination = await fetch_page(self.session, stmt.order_by(IPAccessRule.created_on.desc()), query)
        rows = (await self.session.execute(stmt)).scalars().all()
        stats = {
            "total": len(rows),
            "allowed": sum(1 for r in rows if enum_value(r.type) == IPRuleType.ALLOW.value),
            "blocked": sum(1 for r in rows if enum_value(r.type) == IPRuleType.DENY.value),
            "active": sum(1 for r in rows if enum_value(r.status) == RuleStatus.ACTIVE.value),
        }
        return ListResult(items=items, stats=stats, pagination=pagination)

    async def get_ip_rule(self, rule_id: uuid.UUID, query: Optional[ListQuery] = None) -> IPAccessRule:
        stmt = self._ip_rules(_include_seed(query)).where(IPAccessRule.id == rule_id)
        rule = (await self.session.execute(stmt)).scalar_one_or_none()
        if rule is None:
            raise NotFoundError("IP rule not found")
        return rule

    async def create_ip_rule(self, admin: User, data: Dict[str, Any]) -> IPAccessRule:
        """
        Raises:
            ValueError: missing fields, malformed address or suffix, unknown type
        """
        ip = (data.get("ip_address") or "").strip()
        reason = (data.get("reason") or "").strip()
        rule_type = data.get("type")
        if not ip or not rule_type or not reason:
            raise ValueError("ip_address, type, and reason are required")
        if not is_valid_ip_or_cidr(ip):
            raise ValueError("ip_address must be a valid IPv4 or CIDR (e.g. 192.168.1.1 or 10.0.0.0/24)")
        cidr = normalize_cidr(data.get("cidr"))
        if rule_type not in IP_RULE_TYPES:
            raise ValueError("type must be allow or deny")

        status = data.get("status") if data.get("status") in RULE_STATUSES else RuleStatus.ACTIVE.value
        rule = IPAccessRule(
            ip_address=ip,
            cidr=cidr,
            type=rule_type,
            reason=reason,
            status=status,
            expires_at=data.get("expires_at"),
            location=(data.get("location") or "").strip() or None,
            created_by=admin.email,
            created_on=utcnow(),
            source=RecordSource.MANUAL.value,
        )
        self.session.add(rule)
        await self.session.flush()

        await self.audit.log_for_user(
            admin,
            action=AuditAction.CREATE,
            resource=f"ip_rule:{rule.id}",
            details=f"Created {rule_type} rule for {ip}{cidr or ''}",
            severity=AuditSeverity.HIGH if rule_type == IPRuleType.DENY.value else AuditSeverity.MEDIUM,
        )
        return rule

    async def update_ip_rule(
        self,
        admin: User,
        rule_id: uuid.UUID,
        data: Dict[str, Any],
        query: Optional[ListQuery] = None,
    ) -> IPAccessRule:
        rule = await self.get_ip_rule(rule_id, query)
        changes: Dict[str, Any] = {}

        if data.get("ip_address") is not None:
            ip = data["ip_address"].strip()
            if not is_valid_ip_or_cidr(ip):
                raise ValueError("ip_address must be a valid IPv4 or CIDR")
            changes["ip_address"] = ip
        if "cidr" in data:
            changes["cidr"] = normalize_cidr(data["cidr"])
        if data.get("type") is not None:
            if data["type"] not in IP_RULE_TYPES:
                raise ValueError("type must be allow or deny")
            changes["type"] = data["type"]
        if data.get("reason") is not None:
            changes["reason"] = data["reason"].strip()
        if data.get("status") is not None:
            if data["status"] not in RULE_STATUSES:
                raise ValueError("status must be active, inactive, or expired")
            changes["status"] = data["status"]
        if "expires_at" in data:
            changes["expires_at"] = data["expires_at"]
        if "location" in data:
            changes["location"] = (data["location"] or "").strip() or None

        for key, value in changes.items():
            setattr(rule, key, value)

        await self.audit.log_for_user(
            admin,
            action=AuditAction.UPDATE,
            resource=f"ip_rule:{rule.id}",
            details="Updated fields: " + ", ".join(sorted(changes)) if changes else "No changes",
            metadata={k: str(v) for k, v in changes.items()},
        )
        return rule

    async def delete_ip_rule(self, admin: User, rule_id: uuid.UUID, query: Optional[ListQuery] = None) -> None:
        rule = await self.get_ip_rule(rule_id, query)
        await self.audit.log_for_user(
            admin,
            action=AuditAction.DELETE,
            resource=f"ip_rule:{rule.id}",
            details=f"Deleted {enum_value(rule.type)} rule for {rule.ip_address}{rule.cidr or ''}",
            severity=AuditSeverity.MEDIUM,
        )
        await self.session.delete(rule)

    # Role permissions

    async def list_role_access(self) -> List[RoleAccessConfig]:
        result = await self.session.execute(select(RoleAccessConfig).order_by(RoleAccessConfig.role))
        return list(result.scalars().all())

    async def _role_config(self, role: str) -> Optional[RoleAccessConfig]:
        result = await self.session.execute(select(RoleAccessConfig).where(RoleAccessConfig.role == role))
        return result.scalar_one_or_none()

    async def get_role_access(self, role: str) -> RoleAccessConfig:
        config = await self._role_config(role)
        if config is None:
            raise NotFoundError("Role access not found")
        return config

    async def update_role_access(self, admin: User, role: str, data: Dict[str, Any]) -> RoleAccessConfig:
        """
        Upsert the permission set for a role label.

        Raises:
            ValueError: blank role or unknown permissions
        """
        role = (role or "").strip()
        if not role:
            raise ValueError("role is required")

        permissions = data.get("permissions")
        if permissions is not None:
            invalid = [p for p in permissions if p not in PERMISSIONS]
            if invalid:
                raise ValueError(
                    f"Invalid permissions: {', '.join(invalid)}. Valid: {', '.join(PERMISSIONS)}"
                )

        config = await self._role_config(role)
        created = config is None
        if created:
            config = RoleAccessConfig(role=role, permissions=[], resources=[], restrictions=[])
            self.session.add(config)

        for key in ("permissions", "resources", "restrictions"):
            if data.get(key) is not None:
                setattr(config, key, list(data[key]))
        await self.session.flush()

        await self.audit.log_for_user(
            admin,
            action=AuditAction.PERMISSION_CHANGE,
            resource=f"role_access:{role}",
            details=(
                f"{'Created' if created else 'Updated'} access for {role}: "
                + (", ".join(config.permissions) or "no permissions")
            ),
            severity=AuditSeverity.HIGH,
        )
        logger.info("Role access updated", extra={"role": role, "created": created})
        return config
