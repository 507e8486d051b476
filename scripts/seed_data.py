"""Seed the admin consoles with demo rate limits, audit logs, finance transactions
and access control rules.

Seeded rows carry source="seed" and are hidden from list views unless
include_seed=1 is passed. Re-running updates rows in place.

Run: python scripts/seed_data.py [--reset]
"""
import argparse
import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from greyn.database import close_db, drop_db, init_db, session_scope
from greyn.kernel.audit import AuditContext, AuditStore
from greyn.kernel.models import (
    AccessRule,
    AuditAction,
    AuditLog,
    AuditSeverity,
    AuditStatus,
    FinanceTransaction,
    IPAccessRule,
    RateLimit,
    RecordSource,
    RoleAccessConfig,
)
from greyn.logging_config import configure_logging, get_logger

logger = get_logger(__name__)

SEED_ADMIN = "admin@greyn-eco.com"

RATE_LIMITS = [
    # endpoint, method, limit, window, current, category, blocked, avg ms, minutes since reset, description
    ("/api/auth/login", "POST", 100, "15 minutes", 23, "authentication", 0, 145, 5,
     "Login endpoint rate limit to prevent brute force attacks"),
    ("/api/users", "GET", 1000, "1 hour", 856, "api", 12, 89, 20,
     "User data retrieval endpoint"),
    ("/api/transactions", "POST", 500, "1 hour", 487, "payment", 5, 234, 45,
     "Transaction creation endpoint"),
    ("/api/admin/*", "ALL", 200, "1 hour", 45, "admin", 0, 167, 30,
     "All admin endpoints rate limit"),
    ("/api/auth/signup", "POST", 50, "1 hour", 48, "authentication", 3, 210, 50,
     "Signup endpoint rate limit to slow down account farming"),
    ("/api/data/export", "GET", 20, "24 hours", 20, "data", 7, 1250, 600,
     "Bulk data export endpoint"),
]

ACCESS_RULES = [
    # name, type, description, priority, created by, conditions, affected users, affected ips
    ("Corporate Office Access", "ip_whitelist", "Allow access from corporate office IP range", 1, SEED_ADMIN,
     ["IP Range: 192.168.1.0/24", "Requires 2FA", "Business hours only"], None, ["192.168.1.0/24"]),
    ("Admin Portal Restriction", "role_based", "Restrict admin portal access to admin role only", 2, SEED_ADMIN,
     ["Role: Admin", "Requires MFA", "Audit logging enabled"], 5, None),
    ("Suspicious IP Block", "ip_blacklist", "Block known malicious IP addresses", 1, "security@greyn-eco.com",
     ["IP: 203.0.113.45", "Auto-blocked", "Permanent"], None, ["203.0.113.45", "198.51.100.23"]),
    ("Business Hours Access", "time_based", "Restrict access to business hours (9 AM - 6 PM EST)", 3, SEED_ADMIN,
     ["Time: 09:00-18:00 EST", "Monday-Friday", "Exceptions: Admins"], 45, None),
    ("Geographic Restriction", "geographic", "Block access from restricted countries", 2, SEED_ADMIN,
     ["Blocked: CN, RU, KP", "Requires VPN verification", "Admin override available"], 12, None),
    ("Device Fingerprint Validation", "device_fingerprint",
     "Require device fingerprint verification for sensitive operations", 4, SEED_ADMIN,
     ["Device registration required", "Biometric verification", "Trusted devices only"], 8, None),
]

IP_RULES = [
    # ip, cidr, type, reason, created by, location
    ("192.168.1.100", None, "allow", "Corporate office IP", SEED_ADMIN, "New York, USA"),
    ("203.0.113.45", None, "deny", "Suspicious activity detected", "security@greyn-eco.com", "Unknown"),
    ("198.51.100.23", None, "deny", "Brute force attempt", "Auto-Block", "San Francisco, USA"),
    ("10.0.0.0", "/24", "allow", "VPN gateway range", SEED_ADMIN, "Corporate VPN"),
    ("172.16.0.50", None, "allow", "Development server", SEED_ADMIN, "London, UK"),
]

ROLE_ACCESS = [
    ("Admin", ["read", "write", "delete", "admin", "export", "approve"], ["All Resources"], ["None"]),
    ("Corporate Admin", ["read", "write", "approve"], ["Corporate Portal", "Projects", "Transactions"],
     ["No user management", "No system settings"]),
    ("NGO Admin", ["read", "write"], ["NGO Portal", "Projects", "Verification"],
     ["No financial access", "No user management"]),
    ("Verifier", ["read", "approve"], ["Verification Portal", "Project Details"],
     ["Read-only except verification", "No financial data"]),
    ("Investor", ["read", "export"], ["Carbon Marketplace", "Projects", "Certificates"],
     ["No write access", "No admin functions"]),
]

TRANSACTIONS = [
    # transaction_id, timestamp, type, amount, entity, description, status, reference, method, fees, net, invoice
    ("TXN-2024-001", "2024-03-25T14:30:00", "purchase", 12500, "TechCorp Industries",
     "Carbon credit purchase - 500 credits @ $25/tonne", "completed", "REF-789456", "credit_card",
     375, 12125, "INV-2024-001"),
    ("TXN-2024-002", "2024-03-25T13:15:00", "commission", 625, "Platform Commission",
     "Commission from TechCorp purchase (5%)", "completed", "REF-789455", "wallet", 0, None, None),
    ("TXN-2024-003", "2024-03-25T11:45:00", "purchase", 8500, "GreenEnergy Solutions",
     "Carbon credit purchase - 340 credits @ $25/tonne", "completed", "REF-789444", "bank_transfer",
     255, 8245, "INV-2024-002"),
    ("TXN-2024-004", "2024-03-25T10:20:00", "sale", 25000, "EcoFinance Group",
     "Corporate ESG subscription - Annual plan", "completed", "REF-789433", "bank_transfer",
     0, 25000, "INV-2024-003"),
    ("TXN-2024-005", "2024-03-25T09:10:00", "purchase", 3200, "Sarah Johnson",
     "Individual carbon credit purchase - 128 credits", "pending", "REF-789422", "credit_card",
     96, 3104, None),
    ("TXN-2024-006", "2024-03-24T16:30:00", "fee", 150, "Transaction Fee",
     "Platform transaction processing fee", "completed", "REF-789411", "wallet", 0, None, None),
    ("TXN-2024-007", "2024-03-24T14:00:00", "refund", -1200, "Refund Processing",
     "Refund for failed transaction TXN-2024-008", "completed", "REF-789400", "credit_card", 0, None, None),
    ("TXN-2024-008", "2024-03-24T12:30:00", "purchase", 1200, "John Doe",
     "Carbon credit purchase - 48 credits", "failed", "REF-789399", "credit_card", 0, None, None),
    ("TXN-2024-009", "2024-03-24T10:15:00", "withdrawal", -5000, "NGO Green Earth",
     "Fund withdrawal to bank account", "processing", "REF-789388", "bank_transfer", 25, -4975, None),
    ("TXN-2024-010", "2024-03-23T18:00:00", "deposit", 15000, "Corporate Buyer Inc",
     "Account deposit for future purchases", "completed", "REF-789377", "bank_transfer", 0, 15000, None),
]

AUDIT_EVENTS = [
    # minutes ago, actor, role, action, resource, details, severity, status, ip
    (5, SEED_ADMIN, "admin", AuditAction.LOGIN, "auth:admin",
     "Admin signed in to the admin portal", AuditSeverity.LOW, AuditStatus.SUCCESS, "192.168.1.10"),
    (18, "unknown@attacker.io", None, AuditAction.LOGIN, "auth:admin",
     "Failed admin login attempt", AuditSeverity.HIGH, AuditStatus.FAILED, "203.0.113.45"),
    (42, SEED_ADMIN, "admin", AuditAction.ROLE_CHANGE, "user:ngo-green-earth",
     "Role changed from simple-user to ngo", AuditSeverity.HIGH, AuditStatus.SUCCESS, "192.168.1.10"),
    (95, SEED_ADMIN, "admin", AuditAction.UPDATE, "rate_limit:/api/auth/login",
     "Limit raised from 50 to 100 requests per 15 minutes", AuditSeverity.MEDIUM, AuditStatus.SUCCESS,
     "192.168.1.10"),
    (180, SEED_ADMIN, "admin", AuditAction.DATA_EXPORT, "audit_logs",
     "Exported 250 audit log entries as csv", AuditSeverity.MEDIUM, AuditStatus.SUCCESS, "192.168.1.10"),
    (360, "system", None, AuditAction.SECURITY_EVENT, "rate_limit:/api/data/export",
     "Rate limit exceeded; 7 requests blocked", AuditSeverity.CRITICAL, AuditStatus.WARNING, "10.0.0.1"),
    (720, SEED_ADMIN, "admin", AuditAction.SUSPENSION, "user:john-doe",
     "User suspended after repeated failed payments", AuditSeverity.HIGH, AuditStatus.SUCCESS,
     "192.168.1.10"),
]


async def seed_access_control(session) -> int:
    now = datetime.now(timezone.utc)
    count = 0
    for name, rule_type, description, priority, created_by, conditions, users, ips in ACCESS_RULES:
        item = (await session.execute(
            select(AccessRule).where(AccessRule.name == name, AccessRule.source == RecordSource.SEED.value)
        )).scalar_one_or_none()
        if item is None:
            item = AccessRule(name=name, created_on=now)
            session.add(item)
        item.type = rule_type
        item.description = description
        item.status = "active"
        item.priority = priority
        item.created_by = created_by
        item.conditions = conditions
        item.affected_users = users
        item.affected_ips = ips
        item.last_modified = now
        item.source = RecordSource.SEED.value
        count += 1

    for ip, cidr, rule_type, reason, created_by, location in IP_RULES:
        item = (await session.execute(
            select(IPAccessRule).where(
                IPAccessRule.ip_address == ip, IPAccessRule.source == RecordSource.SEED.value
            )
        )).scalar_one_or_none()
        if item is None:
            item = IPAccessRule(ip_address=ip, created_on=now)
            session.add(item)
        item.cidr = cidr
        item.type = rule_type
        item.reason = reason
        item.status = "active"
        item.created_by = created_by
        item.location = location
        item.source = RecordSource.SEED.value
        count += 1

    for role, permissions, resources, restrictions in ROLE_ACCESS:
        item = (await session.execute(
            select(RoleAccessConfig).where(RoleAccessConfig.role == role)
        )).scalar_one_or_none()
        if item is None:
            item = RoleAccessConfig(role=role)
            session.add(item)
        item.permissions = permissions
        item.resources = resources
        item.restrictions = restrictions
        item.source = RecordSource.SEED.value
        count += 1
    return count


async def seed_rate_limits(session) -> int:
    now = datetime.now(timezone.utc)
    count = 0
    for endpoint, method, limit, window, current, category, blocked, avg_ms, ago, description in RATE_LIMITS:
        item = (await session.execute(
            select(RateLimit).where(RateLimit.endpoint == endpoint, RateLimit.method == method)
        )).scalar_one_or_none()
        if item is None:
            item = RateLimit(endpoint=endpoint, method=method)
            session.add(item)
        item.limit = limit
        item.window = window
        item.current = current
        item.category = category
        item.blocked_requests = blocked
        item.average_response_time = float(avg_ms)
        item.description = description
        item.source = RecordSource.SEED.value
        item.last_reset = now - timedelta(minutes=ago)
        item.next_reset = item.calculate_next_reset(item.last_reset)
        item.refresh_status()
        count += 1
    return count


async def seed_transactions(session) -> int:
    count = 0
    for row in TRANSACTIONS:
        txn_id, stamp, txn_type, amount, entity, description, status, ref, method, fees, net, invoice = row
        item = (await session.execute(
            select(FinanceTransaction).where(FinanceTransaction.transaction_id == txn_id)
        )).scalar_one_or_none()
        if item is None:
            item = FinanceTransaction(transaction_id=txn_id)
            session.add(item)
        item.timestamp = datetime.fromisoformat(stamp).replace(tzinfo=timezone.utc)
        item.type = txn_type
        item.amount = float(amount)
        item.currency = "USD"
        item.entity = entity
        item.description = description
        item.status = status
        item.reference = ref
        item.payment_method = method
        item.fees = float(fees)
        item.net_amount = float(net) if net is not None else None
        item.invoice_id = invoice
        item.source = RecordSource.SEED.value
        count += 1
    return count


async def seed_audit_logs(session) -> int:
    existing = (await session.execute(
        select(AuditLog.id).where(AuditLog.source == RecordSource.SEED.value).limit(1)
    )).first()
    if existing:
        # Audit rows are append-only; never rewrite them
        return 0

    now = datetime.now(timezone.utc)
    count = 0
    for ago, actor, role, action, resource, details, severity, status, ip in AUDIT_EVENTS:
        store = AuditStore(session, AuditContext(ip_address=ip, user_agent="Mozilla/5.0 (seed)"))
        await store.log(
            action=action,
            resource=resource,
            actor=actor,
            actor_role=role,
            details=details,
            severity=severity,
            status=status,
            source=RecordSource.SEED.value,
            timestamp=now - timedelta(minutes=ago),
        )
        count += 1
    return count


async def main(reset: bool) -> None:
    configure_logging()
    if reset:
        await drop_db()
    await init_db()

    async with session_scope() as session:
        limits = await seed_rate_limits(session)
        transactions = await seed_transactions(session)
        logs = await seed_audit_logs(session)
        access = await seed_access_control(session)

    logger.info(
        "Seed complete: %d rate limits, %d transactions, %d audit logs, %d access control rows",
        limits,
        transactions,
        logs,
        access,
    )
    await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args()
    asyncio.run(main(args.reset))
