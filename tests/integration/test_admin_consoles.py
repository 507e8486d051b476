"""
Integration tests for the admin consoles: users, rate limits, audit logs
and finance transactions.
"""

import csv
import io
import json
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from greyn.kernel.models.audit_log import AuditLog
from greyn.kernel.models.rate_limit import RateLimit
from greyn.kernel.models.transaction import FinanceTransaction

pytestmark = pytest.mark.integration

USERS = "/api/v1/admin/users"
RATE_LIMITS = "/api/v1/admin/rate-limits"
AUDIT_LOGS = "/api/v1/admin/audit-logs"
TRANSACTIONS = "/api/v1/admin/transactions"


def rate_limit_payload(**overrides):
    payload = {
        "endpoint": "/api/auth/login",
        "method": "POST",
        "limit": 50,
        "window": "15 minutes",
        "current": 12,
        "description": "Login attempts",
        "category": "authentication",
    }
    payload.update(overrides)
    return payload


class TestAdminAccess:
    @pytest.mark.parametrize("path", [USERS, RATE_LIMITS, AUDIT_LOGS, TRANSACTIONS, "/api/v1/admin/activities"])
    async def test_non_admin_is_forbidden(self, client, investor, path):
        response = await client.get(path, headers=investor["headers"])
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"

    async def test_anonymous_is_unauthorized(self, client):
        response = await client.get(USERS)
        assert response.status_code == 401


class TestUserDirectory:
    async def test_list_with_stats(self, client, admin, signup):
        await signup("ngo")
        await signup("corporate")

        response = await client.get(USERS, headers=admin["headers"])
        assert response.status_code == 200
        data = response.json()["data"]

        assert data["stats"] == {"total": 3, "active": 3, "pending": 0, "suspended": 0}
        assert data["pagination"]["total"] == 3
        roles = sorted(u["role"] for u in data["items"])
        assert roles == ["admin", "corporate", "ngo"]

        ngo = next(u for u in data["items"] if u["role"] == "ngo")
        assert ngo["portal_access"] == ["NGO Portal"]
        assert ngo["status"] == "active"
        assert ngo["name"].startswith("Green Earth")
        assert ngo["last_active"] == "Just now"

    async def test_search_and_role_filter(self, client, admin, signup):
        await signup("ngo", organization_name="Ocean Guardians")
        await signup("carbon")

        response = await client.get(USERS, params={"search": "ocean"}, headers=admin["headers"])
        items = response.json()["data"]["items"]
        assert [u["name"] for u in items] == ["Ocean Guardians"]

        response = await client.get(USERS, params={"role": "carbon"}, headers=admin["headers"])
        assert [u["role"] for u in response.json()["data"]["items"]] == ["carbon"]

    async def test_suspend_user(self, client, admin, signup):
        target = await signup("corporate")
        user_id = target["user"]["id"]

        response = await client.patch(
            f"{USERS}/{user_id}/status", json={"status": "suspended"}, headers=admin["headers"]
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "User status updated"
        assert body["data"]["status"] == "suspended"
        assert body["data"]["portal_access"] == []

        # Suspension shows up in the portal filter and the audit trail
        response = await client.get(USERS, params={"status": "suspended"}, headers=admin["headers"])
        assert [u["id"] for u in response.json()["data"]["items"]] == [user_id]

        response = await client.get(AUDIT_LOGS, params={"action": "suspension"}, headers=admin["headers"])
        entries = response.json()["data"]["items"]
        assert len(entries) == 1
        assert entries[0]["severity"] == "high"
        assert entries[0]["actor"] == "admin@greyn-eco.org"
        assert entries[0]["resource"] == f"user:{user_id}"

        # Suspended accounts cannot sign in
        response = await client.post(
            "/api/v1/auth/login/corporate",
            json={"email": target["user"]["email"], "password": "Secret123"},
        )
        assert response.status_code == 403

    async def test_pending_status_by_role(self, client, admin, signup):
        ngo = await signup("ngo")
        investor = await signup("simple-user")
        for account in (ngo, investor):
            response = await client.patch(
                f"{USERS}/{account['user']['id']}/status", json={"status": "pending"}, headers=admin["headers"]
            )
            assert response.status_code == 200

        # Organizations under review keep their portal
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {ngo['access_token']}"})
        assert response.status_code == 200
        response = await client.post(
            "/api/v1/auth/login/ngo", json={"email": ngo["user"]["email"], "password": "Secret123"}
        )
        assert response.status_code == 200

        # Other roles need an active account
        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {investor['access_token']}"}
        )
        assert response.status_code == 403
        response = await client.post(
            "/api/v1/auth/login/simple-user", json={"email": investor["user"]["email"], "password": "Secret123"}
        )
        assert response.status_code == 403
        assert response.json()["message"] == "User account is disabled"

    async def test_invalid_status(self, client, admin, investor):
        response = await client.patch(
            f"{USERS}/{investor['user']['id']}/status", json={"status": "banned"}, headers=admin["headers"]
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Status must be one of: active, suspended, pending"

    async def test_change_role(self, client, admin, investor):
        response = await client.patch(
            f"{USERS}/{investor['user']['id']}/role", json={"role": "carbon"}, headers=admin["headers"]
        )
        assert response.status_code == 200
        assert response.json()["message"] == "User role updated"
        assert response.json()["data"]["role"] == "carbon"
        assert response.json()["data"]["portal_access"] == ["Carbon Marketplace"]

    async def test_unknown_user(self, client, admin):
        response = await client.get(f"{USERS}/00000000-0000-0000-0000-000000000000", headers=admin["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"


class TestRateLimitConsole:
    async def test_create_and_list(self, client, admin):
        response = await client.post(RATE_LIMITS, json=rate_limit_payload(), headers=admin["headers"])
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Rate limit created"
        created = body["data"]
        assert created["status"] == "normal"
        assert created["percentage"] == 24
        assert created["source"] == "manual"
        assert created["next_reset"] is not None

        response = await client.get(RATE_LIMITS, headers=admin["headers"])
        data = response.json()["data"]
        assert [item["id"] for item in data["items"]] == [created["id"]]
        assert data["stats"]["total"] == 1
        assert data["stats"]["normal"] == 1
        assert data["stats"]["total_requests"] == 12
        assert data["stats"]["average_usage"] == 24.0

    async def test_duplicate_is_conflict(self, client, admin):
        await client.post(RATE_LIMITS, json=rate_limit_payload(), headers=admin["headers"])
        response = await client.post(
            RATE_LIMITS, json=rate_limit_payload(method="post"), headers=admin["headers"]
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Rate limit already exists for POST /api/auth/login"

    async def test_zero_limit_rejected(self, client, admin):
        response = await client.post(RATE_LIMITS, json=rate_limit_payload(limit=0), headers=admin["headers"])
        assert response.status_code == 422

    async def test_most_urgent_first(self, client, admin):
        headers = admin["headers"]
        await client.post(RATE_LIMITS, json=rate_limit_payload(endpoint="/a", current=10, limit=100), headers=headers)
        await client.post(RATE_LIMITS, json=rate_limit_payload(endpoint="/b", current=100, limit=100), headers=headers)
        await client.post(RATE_LIMITS, json=rate_limit_payload(endpoint="/c", current=75, limit=100), headers=headers)
        await client.post(RATE_LIMITS, json=rate_limit_payload(endpoint="/d", current=95, limit=100), headers=headers)

        response = await client.get(RATE_LIMITS, headers=headers)
        data = response.json()["data"]
        assert [i["status"] for i in data["items"]] == ["exceeded", "critical", "warning", "normal"]
        assert data["stats"]["exceeded"] == 1
        assert data["stats"]["critical"] == 1
        assert data["stats"]["warning"] == 1

        response = await client.get(RATE_LIMITS, params={"status": "critical"}, headers=headers)
        assert [i["endpoint"] for i in response.json()["data"]["items"]] == ["/d"]

    async def test_update_recomputes_status(self, client, admin):
        created = (await client.post(RATE_LIMITS, json=rate_limit_payload(), headers=admin["headers"])).json()["data"]

        response = await client.put(
            f"{RATE_LIMITS}/{created['id']}", json={"current": 48}, headers=admin["headers"]
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Rate limit updated"
        assert response.json()["data"]["status"] == "critical"
        assert response.json()["data"]["percentage"] == 96

    async def test_reset_counter(self, client, admin):
        created = (
            await client.post(RATE_LIMITS, json=rate_limit_payload(current=50), headers=admin["headers"])
        ).json()["data"]
        assert created["status"] == "exceeded"

        response = await client.post(f"{RATE_LIMITS}/{created['id']}/reset", headers=admin["headers"])
        assert response.status_code == 200
        assert response.json()["message"] == "Rate limit counter reset"
        assert response.json()["data"]["current"] == 0
        assert response.json()["data"]["status"] == "normal"

    async def test_delete(self, client, admin):
        created = (await client.post(RATE_LIMITS, json=rate_limit_payload(), headers=admin["headers"])).json()["data"]

        response = await client.delete(f"{RATE_LIMITS}/{created['id']}", headers=admin["headers"])
        assert response.status_code == 200
        assert response.json()["message"] == "Rate limit deleted"

        response = await client.get(f"{RATE_LIMITS}/{created['id']}", headers=admin["headers"])
        assert response.status_code == 404

    async def test_seed_rows_hidden_by_default(self, client, admin, db_session):
        db_session.add(RateLimit(
            endpoint="/api/seeded", method="GET", limit=100, window="1 hour", current=5, source="seed",
        ))
        await db_session.commit()

        response = await client.get(RATE_LIMITS, headers=admin["headers"])
        assert response.json()["data"]["items"] == []

        response = await client.get(RATE_LIMITS, params={"include_seed": "1"}, headers=admin["headers"])
        assert [i["endpoint"] for i in response.json()["data"]["items"]] == ["/api/seeded"]

    async def test_export_csv(self, client, admin):
        await client.post(RATE_LIMITS, json=rate_limit_payload(), headers=admin["headers"])

        response = await client.get(f"{RATE_LIMITS}/export", params={"format": "csv"}, headers=admin["headers"])
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        expected = f'attachment; filename="rate-limits-{date.today().isoformat()}.csv"'
        assert response.headers["content-disposition"] == expected

        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0][:3] == ["Endpoint", "Method", "Limit"]
        assert rows[1][:3] == ["/api/auth/login", "POST", "50"]

    async def test_export_rejects_unknown_format(self, client, admin):
        response = await client.get(f"{RATE_LIMITS}/export", params={"format": "xml"}, headers=admin["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Unsupported export format: xml"


class TestAuditLogConsole:
    async def test_mutations_are_logged(self, client, admin):
        await client.post(RATE_LIMITS, json=rate_limit_payload(), headers=admin["headers"])

        response = await client.get(AUDIT_LOGS, headers=admin["headers"])
        data = response.json()["data"]
        actions = [entry["action"] for entry in data["items"]]
        assert "create" in actions
        assert "login" in actions
        assert data["stats"]["total"] == len(data["items"])
        assert data["pagination"]["limit"] == 15

        created = next(e for e in data["items"] if e["action"] == "create")
        assert created["actor_role"] == "admin"
        assert created["hash"].startswith("0x")
        assert len(created["hash"]) == 66

    async def test_verify_integrity(self, client, admin):
        response = await client.get(AUDIT_LOGS, headers=admin["headers"])
        entry = response.json()["data"]["items"][0]

        response = await client.get(f"{AUDIT_LOGS}/{entry['id']}/verify", headers=admin["headers"])
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Integrity verified"
        assert body["data"]["valid"] is True
        assert body["data"]["stored_hash"] == body["data"]["computed_hash"] == entry["hash"]

    async def test_verify_detects_tampering(self, client, admin, db_session):
        response = await client.get(AUDIT_LOGS, headers=admin["headers"])
        entry_id = response.json()["data"]["items"][0]["id"]

        row = await db_session.get(AuditLog, uuid.UUID(entry_id))
        row.details = "rewritten"
        await db_session.commit()

        response = await client.get(f"{AUDIT_LOGS}/{entry_id}/verify", headers=admin["headers"])
        data = response.json()["data"]
        assert data["valid"] is False
        assert data["stored_hash"] != data["computed_hash"]

    async def test_export_is_itself_audited(self, client, admin):
        response = await client.get(f"{AUDIT_LOGS}/export", params={"format": "json"}, headers=admin["headers"])
        assert response.status_code == 200
        exported = json.loads(response.text)
        assert exported and all("hash" in row for row in exported)

        response = await client.get(AUDIT_LOGS, params={"action": "data_export"}, headers=admin["headers"])
        entries = response.json()["data"]["items"]
        assert len(entries) == 1
        assert entries[0]["resource"] == "audit_logs"
        assert entries[0]["details"] == f"Exported {len(exported)} audit logs as JSON"

    async def test_single_entry_download(self, client, admin):
        entry = (await client.get(AUDIT_LOGS, headers=admin["headers"])).json()["data"]["items"][0]

        response = await client.get(f"{AUDIT_LOGS}/{entry['id']}/export", headers=admin["headers"])
        assert response.status_code == 200
        assert response.headers["content-disposition"] == f'attachment; filename="audit-log-{entry["id"]}.json"'
        assert response.json()["hash"] == entry["hash"]

    async def test_severity_filter_and_search(self, client, admin, signup):
        user = await signup("ngo")
        await client.patch(
            f"{USERS}/{user['user']['id']}/role", json={"role": "corporate"}, headers=admin["headers"]
        )

        response = await client.get(AUDIT_LOGS, params={"severity": "high"}, headers=admin["headers"])
        entries = response.json()["data"]["items"]
        assert [e["action"] for e in entries] == ["role_change"]

        response = await client.get(AUDIT_LOGS, params={"search": user["user"]["email"]}, headers=admin["headers"])
        assert any(e["action"] == "role_change" for e in response.json()["data"]["items"])


async def add_transactions(session):
    now = datetime.now(timezone.utc)
    rows = [
        FinanceTransaction(
            transaction_id="TXN-TEST-001",
            timestamp=now - timedelta(hours=1),
            type="purchase",
            amount=5000.0,
            fees=25.0,
            net_amount=4975.0,
            status="completed",
            entity="Green Earth Foundation",
            description="Carbon credits purchase",
            reference="pi_test_1",
            payment_method="credit_card",
            invoice_id="INV-2026-001",
        ),
        FinanceTransaction(
            transaction_id="TXN-TEST-002",
            timestamp=now - timedelta(days=2),
            type="withdrawal",
            amount=-1200.0,
            fees=0.0,
            status="completed",
            entity="TechCorp",
            description="Payout",
            payment_method="bank_transfer",
        ),
        FinanceTransaction(
            transaction_id="TXN-TEST-003",
            timestamp=now - timedelta(days=3),
            type="purchase",
            amount=800.0,
            status="pending",
            entity="Sam Rivera",
        ),
        FinanceTransaction(
            transaction_id="TXN-SEED-001",
            timestamp=now - timedelta(days=1),
            type="sale",
            amount=999.0,
            status="completed",
            entity="Seeded",
            source="seed",
        ),
    ]
    session.add_all(rows)
    await session.commit()


class TestTransactionConsole:
    async def test_list_with_money_stats(self, client, admin, db_session):
        await add_transactions(db_session)

        response = await client.get(TRANSACTIONS, headers=admin["headers"])
        assert response.status_code == 200
        data = response.json()["data"]
        assert [t["transaction_id"] for t in data["items"]] == ["TXN-TEST-001", "TXN-TEST-002", "TXN-TEST-003"]
        assert data["pagination"]["limit"] == 10

        stats = data["stats"]
        assert stats["total"] == 3
        assert stats["completed"] == 2
        assert stats["pending"] == 1
        assert stats["total_revenue"] == 4975.0
        assert stats["total_expenses"] == 1200.0
        assert stats["net_amount"] == 3775.0
        assert stats["total_fees"] == 25.0
        assert stats["pending_amount"] == 800.0

    async def test_filters(self, client, admin, db_session):
        await add_transactions(db_session)

        response = await client.get(TRANSACTIONS, params={"type": "withdrawal"}, headers=admin["headers"])
        assert [t["transaction_id"] for t in response.json()["data"]["items"]] == ["TXN-TEST-002"]

        response = await client.get(TRANSACTIONS, params={"search": "green earth"}, headers=admin["headers"])
        assert [t["transaction_id"] for t in response.json()["data"]["items"]] == ["TXN-TEST-001"]

        response = await client.get(TRANSACTIONS, params={"include_seed": "true"}, headers=admin["headers"])
        assert response.json()["data"]["stats"]["total"] == 4

    async def test_analytics(self, client, admin, db_session):
        await add_transactions(db_session)

        response = await client.get(
            f"{TRANSACTIONS}/analytics", params={"group_by": "month"}, headers=admin["headers"]
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["summary"]["count"] == 3
        assert data["summary"]["total_revenue"] == 4975.0
        assert data["summary"]["total_expenses"] == 1200.0
        assert data["by_type"] == {"purchase": 2, "withdrawal": 1}
        assert data["by_status"] == {"completed": 2, "pending": 1}
        assert sum(bucket["count"] for bucket in data["time_series"]) == 3

    async def test_analytics_rejects_unknown_grouping(self, client, admin):
        response = await client.get(
            f"{TRANSACTIONS}/analytics", params={"group_by": "year"}, headers=admin["headers"]
        )
        assert response.status_code == 400
        assert response.json()["message"] == "group_by must be day, week, or month"

    async def test_receipt_and_invoice(self, client, admin, db_session):
        await add_transactions(db_session)

        response = await client.get(f"{TRANSACTIONS}/TXN-TEST-001/receipt", headers=admin["headers"])
        receipt = response.json()["data"]
        assert receipt["transaction_id"] == "TXN-TEST-001"
        assert receipt["net_amount"] == 4975.0
        assert receipt["payment_method"] == "credit_card"

        response = await client.get(f"{TRANSACTIONS}/TXN-TEST-001/invoice", headers=admin["headers"])
        assert response.json()["data"]["invoice_id"] == "INV-2026-001"

        response = await client.get(f"{TRANSACTIONS}/TXN-TEST-002/invoice", headers=admin["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "No invoice for this transaction"

    async def test_unknown_transaction(self, client, admin):
        response = await client.get(f"{TRANSACTIONS}/TXN-NOPE", headers=admin["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "Transaction not found"

    async def test_export_json(self, client, admin, db_session):
        await add_transactions(db_session)

        response = await client.get(f"{TRANSACTIONS}/export", params={"format": "json"}, headers=admin["headers"])
        assert response.status_code == 200
        rows = json.loads(response.text)
        assert {r["transaction_id"] for r in rows} == {"TXN-TEST-001", "TXN-TEST-002", "TXN-TEST-003"}
