"""
Integration tests for the admin access control console.
"""

import uuid

import pytest
from sqlalchemy import select

from greyn.kernel.models.access_rule import AccessRule, IPAccessRule
from greyn.kernel.models.audit_log import AuditLog

pytestmark = pytest.mark.integration

BASE = "/api/v1/admin/security/access-control"
RULES = f"{BASE}/access-rules"
IP_RULES = f"{BASE}/ip-rules"
ROLE_ACCESS = f"{BASE}/role-access"


def rule_payload(**overrides):
    payload = {
        "name": "Office hours only",
        "type": "time_based",
        "description": "Finance console restricted to business hours",
        "priority": 2,
        "conditions": ["weekday", "09:00-18:00"],
    }
    payload.update(overrides)
    return payload


def ip_payload(**overrides):
    payload = {"ip_address": "203.0.113.7", "type": "deny", "reason": "Credential stuffing"}
    payload.update(overrides)
    return payload


async def audit_entries(db_session, prefix):
    result = await db_session.execute(select(AuditLog).where(AuditLog.resource.startswith(prefix)))
    return list(result.scalars().all())


class TestConsoleAccess:
    @pytest.mark.parametrize("path", [f"{BASE}/overview", RULES, IP_RULES, ROLE_ACCESS])
    async def test_non_admin_is_forbidden(self, client, investor, path):
        response = await client.get(path, headers=investor["headers"])
        assert response.status_code == 403

    async def test_anonymous_is_unauthorized(self, client):
        response = await client.get(RULES)
        assert response.status_code == 401


class TestAccessRules:
    async def test_create_and_get(self, client, admin):
        response = await client.post(RULES, json=rule_payload(), headers=admin["headers"])
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Access rule created"
        rule = body["data"]
        assert rule["status"] == "active"
        assert rule["priority"] == 2
        assert rule["conditions"] == ["weekday", "09:00-18:00"]
        assert rule["created_by"] == admin["user"]["email"]
        assert len(rule["created_at"]) == 10

        response = await client.get(f"{RULES}/{rule['id']}", headers=admin["headers"])
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Office hours only"

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"name": ""}, "name, type, and description are required"),
            ({"description": "  "}, "name, type, and description are required"),
            ({"type": None}, "name, type, and description are required"),
            ({"type": "astrology"}, "type must be one of:"),
        ],
    )
    async def test_create_validation(self, client, admin, overrides, message):
        response = await client.post(RULES, json=rule_payload(**overrides), headers=admin["headers"])
        assert response.status_code == 400
        assert response.json()["message"].startswith(message)

    async def test_list_orders_by_priority_with_stats(self, client, admin):
        await client.post(RULES, json=rule_payload(name="Low", priority=5), headers=admin["headers"])
        await client.post(RULES, json=rule_payload(name="High", priority=1), headers=admin["headers"])
        await client.post(
            RULES, json=rule_payload(name="Off", priority=3, status="inactive"), headers=admin["headers"]
        )

        response = await client.get(RULES, headers=admin["headers"])
        data = response.json()["data"]
        assert [r["name"] for r in data["items"]] == ["High", "Off", "Low"]
        assert data["stats"] == {"total": 3, "active": 2, "inactive": 1, "expired": 0}

        response = await client.get(RULES, params={"status": "inactive"}, headers=admin["headers"])
        assert [r["name"] for r in response.json()["data"]["items"]] == ["Off"]

        response = await client.get(RULES, params={"search": "low"}, headers=admin["headers"])
        assert [r["name"] for r in response.json()["data"]["items"]] == ["Low"]

    async def test_update(self, client, admin, db_session):
        created = (await client.post(RULES, json=rule_payload(), headers=admin["headers"])).json()["data"]

        response = await client.put(
            f"{RULES}/{created['id']}",
            json={"status": "expired", "priority": 0, "affected_users": 12},
            headers=admin["headers"],
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Access rule updated"
        updated = response.json()["data"]
        assert updated["status"] == "expired"
        assert updated["priority"] == 1
        assert updated["affected_users"] == 12

        row = await db_session.get(AccessRule, uuid.UUID(created["id"]))
        assert row.updated_by == admin["user"]["email"]

    async def test_update_rejects_unknown_status(self, client, admin):
        created = (await client.post(RULES, json=rule_payload(), headers=admin["headers"])).json()["data"]
        response = await client.put(f"{RULES}/{created['id']}", json={"status": "paused"}, headers=admin["headers"])
        assert response.status_code == 400
        assert response.json()["message"].startswith("status must be one of:")

    async def test_delete_then_not_found(self, client, admin):
        created = (await client.post(RULES, json=rule_payload(), headers=admin["headers"])).json()["data"]

        response = await client.delete(f"{RULES}/{created['id']}", headers=admin["headers"])
        assert response.status_code == 200
        assert response.json()["message"] == "Access rule deleted"

        response = await client.get(f"{RULES}/{created['id']}", headers=admin["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "Access rule not found"

    async def test_mutations_are_audited(self, client, admin, db_session):
        created = (await client.post(RULES, json=rule_payload(), headers=admin["headers"])).json()["data"]
        await client.put(f"{RULES}/{created['id']}", json={"name": "Renamed"}, headers=admin["headers"])
        await client.delete(f"{RULES}/{created['id']}", headers=admin["headers"])

        entries = await audit_entries(db_session, "access_rule:")
        assert sorted(e.action for e in entries) == ["create", "delete", "update"]
        assert all(e.resource == f"access_rule:{created['id']}" for e in entries)

    async def test_seed_rows_hidden_by_default(self, client, admin, db_session):
        rule = AccessRule(
            name="Seeded", type="geographic", description="Seed policy", conditions=[], source="seed"
        )
        db_session.add(rule)
        await db_session.commit()

        response = await client.get(RULES, headers=admin["headers"])
        assert response.json()["data"]["items"] == []
        response = await client.get(f"{RULES}/{rule.id}", headers=admin["headers"])
        assert response.status_code == 404

        response = await client.get(RULES, params={"include_seed": "1"}, headers=admin["headers"])
        assert [r["name"] for r in response.json()["data"]["items"]] == ["Seeded"]
        response = await client.get(f"{RULES}/{rule.id}", params={"include_seed": "true"}, headers=admin["headers"])
        assert response.status_code == 200


class TestIPRules:
    async def test_create_with_cidr(self, client, admin):
        response = await client.post(
            IP_RULES,
            json=ip_payload(ip_address="10.0.0.0", cidr="/24", type="allow", reason="Office network"),
            headers=admin["headers"],
        )
        assert response.status_code == 201
        rule = response.json()["data"]
        assert rule["cidr"] == "/24"
        assert rule["type"] == "allow"
        assert rule["status"] == "active"
        assert rule["expires_at"] is None

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"reason": ""}, "ip_address, type, and reason are required"),
            ({"ip_address": "999.1.1.1"}, "ip_address must be a valid IPv4 or CIDR"),
            ({"ip_address": "10.0.0.0/33"}, "ip_address must be a valid IPv4 or CIDR"),
            ({"ip_address": "example.com"}, "ip_address must be a valid IPv4 or CIDR"),
            ({"cidr": "24"}, "cidr must be like /8, /16, /24, /32"),
            ({"cidr": "/0"}, "cidr must be /1 to /32"),
            ({"type": "maybe"}, "type must be allow or deny"),
        ],
    )
    async def test_create_validation(self, client, admin, overrides, message):
        response = await client.post(IP_RULES, json=ip_payload(**overrides), headers=admin["headers"])
        assert response.status_code == 400
        assert response.json()["message"].startswith(message)

    async def test_list_stats_and_type_filter(self, client, admin):
        await client.post(IP_RULES, json=ip_payload(), headers=admin["headers"])
        await client.post(IP_RULES, json=ip_payload(ip_address="198.51.100.0/24"), headers=admin["headers"])
        await client.post(
            IP_RULES,
            json=ip_payload(ip_address="192.0.2.10", type="allow", reason="VPN", status="inactive"),
            headers=admin["headers"],
        )

        response = await client.get(IP_RULES, headers=admin["headers"])
        assert response.json()["data"]["stats"] == {"total": 3, "allowed": 1, "blocked": 2, "active": 2}

        response = await client.get(IP_RULES, params={"type": "allow"}, headers=admin["headers"])
        assert [r["ip_address"] for r in response.json()["data"]["items"]] == ["192.0.2.10"]

    async def test_update_and_clear_cidr(self, client, admin):
        created = (
            await client.post(IP_RULES, json=ip_payload(ip_address="10.1.0.0", cidr="/16"), headers=admin["headers"])
        ).json()["data"]

        response = await client.put(
            f"{IP_RULES}/{created['id']}",
            json={"cidr": None, "status": "expired", "location": "Lagos"},
            headers=admin["headers"],
        )
        assert response.status_code == 200
        updated = response.json()["data"]
        assert updated["cidr"] is None
        assert updated["status"] == "expired"
        assert updated["location"] == "Lagos"

        response = await client.put(
            f"{IP_RULES}/{created['id']}", json={"ip_address": "not-an-ip"}, headers=admin["headers"]
        )
        assert response.status_code == 400

    async def test_delete_and_missing(self, client, admin, db_session):
        created = (await client.post(IP_RULES, json=ip_payload(), headers=admin["headers"])).json()["data"]

        response = await client.delete(f"{IP_RULES}/{created['id']}", headers=admin["headers"])
        assert response.json()["message"] == "IP rule deleted"
        assert await db_session.get(IPAccessRule, uuid.UUID(created["id"])) is None

        response = await client.delete(f"{IP_RULES}/{uuid.uuid4()}", headers=admin["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "IP rule not found"

    async def test_deny_rules_are_audited_high(self, client, admin, db_session):
        await client.post(IP_RULES, json=ip_payload(), headers=admin["headers"])
        await client.post(IP_RULES, json=ip_payload(type="allow", ip_address="192.0.2.1"), headers=admin["headers"])

        entries = await audit_entries(db_session, "ip_rule:")
        severities = {e.details: e.severity for e in entries}
        assert severities["Created deny rule for 203.0.113.7"] == "high"
        assert severities["Created allow rule for 192.0.2.1"] == "medium"


class TestRoleAccess:
    async def test_upsert_and_read(self, client, admin, db_session):
        response = await client.put(
            f"{ROLE_ACCESS}/auditor",
            json={"permissions": ["read", "export"], "resources": ["transactions"]},
            headers=admin["headers"],
        )
        assert response.status_code == 200
        assert response.json()["data"] == {
            "role": "auditor",
            "permissions": ["read", "export"],
            "resources": ["transactions"],
            "restrictions": [],
        }

        response = await client.put(
            f"{ROLE_ACCESS}/auditor", json={"restrictions": ["no_pii"]}, headers=admin["headers"]
        )
        assert response.json()["data"]["permissions"] == ["read", "export"]
        assert response.json()["data"]["restrictions"] == ["no_pii"]

        response = await client.get(ROLE_ACCESS, headers=admin["headers"])
        assert [c["role"] for c in response.json()["data"]["role_access"]] == ["auditor"]

        entries = await audit_entries(db_session, "role_access:")
        assert [e.action for e in entries] == ["permission_change", "permission_change"]
        assert all(e.severity == "high" for e in entries)

    async def test_invalid_permissions(self, client, admin):
        response = await client.put(
            f"{ROLE_ACCESS}/auditor", json={"permissions": ["read", "superuser"]}, headers=admin["headers"]
        )
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid permissions: superuser. Valid: read")

    async def test_unknown_role(self, client, admin):
        response = await client.get(f"{ROLE_ACCESS}/ghost", headers=admin["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "Role access not found"


class TestOverview:
    async def test_counts_and_recent_activity(self, client, admin):
        for name in ("One", "Two", "Three", "Four"):
            await client.post(RULES, json=rule_payload(name=name), headers=admin["headers"])
        await client.post(IP_RULES, json=ip_payload(), headers=admin["headers"])
        await client.post(IP_RULES, json=ip_payload(ip_address="192.0.2.1", type="allow"), headers=admin["headers"])
        await client.put(f"{ROLE_ACCESS}/auditor", json={"permissions": ["read"]}, headers=admin["headers"])

        response = await client.get(f"{BASE}/overview", headers=admin["headers"])
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["stats"] == {
            "total_rules": 4,
            "active_rules": 4,
            "ip_rules": 2,
            "blocked_ips": 1,
            "allowed_ips": 1,
            "roles": 1,
        }
        assert len(data["recent_activity"]) == 3
        assert set(data["recent_activity"][0]) == {"name", "last_modified", "status"}
