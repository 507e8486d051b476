"""Unit tests for the API client, the auth session and form helpers."""

import json

import httpx
import pytest

from greyn.client import ActivityDraft, ApiClient, AuthSession, ProofImageFile
from greyn.client.api_client import (
    NETWORK_ERROR_MESSAGE,
    SERVER_ERROR_MESSAGE,
    TIMEOUT_MESSAGE,
    UNAUTHORIZED_MESSAGE,
)
from greyn.kernel.routing import GuardOutcome


def make_client(handler, **kwargs) -> ApiClient:
    return ApiClient("http://api.test/api/v1", transport=httpx.MockTransport(handler), **kwargs)


def envelope(data=None, message=None, status_code=200, success=True):
    return httpx.Response(status_code, json={"success": success, "data": data, "message": message})


class TestResponseMapping:
    async def test_success_envelope(self):
        client = make_client(lambda request: envelope({"id": 1}, "ok"))
        response = await client.get("/thing")

        assert response.success is True
        assert response.data == {"id": 1}
        assert response.message == "ok"

    async def test_non_envelope_body_is_passed_through(self):
        client = make_client(lambda request: httpx.Response(200, json=[1, 2, 3]))
        response = await client.get("/raw")
        assert response.success is True
        assert response.data == [1, 2, 3]

    async def test_401_clears_token_and_notifies(self):
        calls = []
        client = make_client(
            lambda request: envelope(message="Invalid or expired token", status_code=401, success=False),
            token="stale",
            on_unauthorized=lambda: calls.append("logout"),
        )
        response = await client.get("/auth/me")

        assert response.success is False
        assert response.message == UNAUTHORIZED_MESSAGE
        assert client.token is None
        assert calls == ["logout"]

    @pytest.mark.parametrize(
        "status_code,body,expected",
        [
            (404, {"success": False, "message": "Rate limit not found"}, "Rate limit not found"),
            (404, {}, "Resource not found"),
            (500, {}, SERVER_ERROR_MESSAGE),
            (502, {"success": False, "message": "Your card was declined."}, "Your card was declined."),
            (409, {"success": False, "message": "Rate limit already exists"}, "Rate limit already exists"),
            (418, {}, "HTTP Error: 418"),
        ],
    )
    async def test_error_messages(self, status_code, body, expected):
        client = make_client(lambda request: httpx.Response(status_code, json=body))
        response = await client.get("/x")

        assert response.success is False
        assert response.status_code == status_code
        assert response.message == expected

    async def test_validation_errors_are_kept(self):
        body = {"success": False, "message": "Validation error", "errors": [{"field": "body.email"}]}
        client = make_client(lambda request: httpx.Response(422, json=body))
        response = await client.post("/auth/login/ngo", json={})
        assert response.errors == [{"field": "body.email"}]

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        response = await make_client(handler).get("/slow")
        assert response.success is False
        assert response.message == TIMEOUT_MESSAGE

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        response = await make_client(handler).get("/down")
        assert response.message == NETWORK_ERROR_MESSAGE


class TestRequests:
    async def test_bearer_token_and_blank_params_dropped(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["auth"] = request.headers.get("Authorization")
            seen["params"] = dict(request.url.params)
            seen["path"] = request.url.path
            return envelope({"items": []})

        client = make_client(handler, token="abc")
        await client.admin.rate_limits.list(search="", status="critical", page=2, category=None)

        assert seen["auth"] == "Bearer abc"
        assert seen["path"] == "/api/v1/admin/rate-limits"
        assert seen["params"] == {"status": "critical", "page": "2"}

    async def test_login_does_not_send_token(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return envelope({})

        await make_client(handler, token="abc").auth.login("ngo", "n@greyn-eco.org", "Secret123")

        assert seen["auth"] is None
        assert seen["body"] == {"email": "n@greyn-eco.org", "password": "Secret123"}

    async def test_access_control_paths(self):
        seen = []

        def handler(request: httpx.Request):
            seen.append((request.method, request.url.path))
            return envelope({})

        client = make_client(handler, token="abc")
        await client.admin.access_control.create_ip_rule({"ip_address": "10.0.0.1", "type": "deny"})
        await client.admin.access_control.role_access()
        await client.admin.access_control.update_role_access("auditor", {"permissions": ["read"]})

        base = "/api/v1/admin/security/access-control"
        assert seen == [
            ("POST", f"{base}/ip-rules"),
            ("GET", f"{base}/role-access"),
            ("PUT", f"{base}/role-access/auditor"),
        ]


def _auth_server(role="ngo"):
    user = {"id": "u1", "email": "n@greyn-eco.org", "role": role}

    def handler(request: httpx.Request):
        if request.url.path.endswith(f"/auth/login/{role}"):
            return envelope({"access_token": "access", "refresh_token": "refresh", "user": user})
        if request.url.path.endswith("/auth/me"):
            if request.headers.get("Authorization") == "Bearer access":
                return envelope(user)
            return envelope(message="Invalid or expired token", status_code=401, success=False)
        if request.url.path.endswith("/auth/logout"):
            return envelope(message="Logged out successfully")
        return httpx.Response(404, json={})

    return handler


class TestAuthSession:
    async def test_initial_state_is_loading(self):
        session = AuthSession(make_client(_auth_server()))
        assert session.is_loading is True
        assert session.is_authenticated is False
        assert session.guard("/ngo/dashboard").outcome == GuardOutcome.LOADING

    async def test_login_sets_user_and_role_flags(self):
        session = AuthSession(make_client(_auth_server("ngo")))
        response = await session.login("ngo", "n@greyn-eco.org", "Secret123")

        assert response.success
        assert session.token == "access"
        assert session.refresh_token == "refresh"
        assert session.is_authenticated
        assert session.is_ngo and not session.is_admin
        assert session.guard("/ngo/dashboard").outcome == GuardOutcome.RENDER
        assert session.guard("/admin/users").redirect_to == "/ngo/dashboard"

    async def test_check_auth_without_token(self):
        session = AuthSession(make_client(_auth_server()))
        assert await session.check_auth() is False
        assert session.is_loading is False
        assert session.guard("/ngo/dashboard").redirect_to == "/auth"

    async def test_check_auth_with_rejected_token_clears_session(self):
        client = make_client(_auth_server(), token="expired")
        session = AuthSession(client)

        assert await session.check_auth() is False
        assert session.user is None
        assert client.token is None

    async def test_logout(self):
        session = AuthSession(make_client(_auth_server()))
        await session.login("ngo", "n@greyn-eco.org", "Secret123")

        await session.logout()

        assert session.user is None
        assert session.token is None


class TestActivityDraft:
    async def test_submit_blocked_without_image(self):
        def handler(request):
            raise AssertionError("no request expected")

        draft = ActivityDraft(type="plant-tree", title="Oak", description="Planted an oak")
        response = await draft.submit(make_client(handler))

        assert draft.can_submit is False
        assert response.success is False
        assert response.message == "Proof image is required"

    async def test_submit_blocked_while_in_flight(self):
        draft = ActivityDraft(proof_image=ProofImageFile("a.png", b"x", "image/png"), is_submitting=True)
        response = await draft.submit(make_client(lambda r: envelope({})))
        assert response.message == "Submission in progress"

    async def test_successful_submit_sends_multipart_and_resets(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["content_type"] = request.headers["Content-Type"]
            seen["body"] = request.content
            return envelope({"id": "a1", "status": "pending"}, status_code=201)

        draft = ActivityDraft(
            type="plant-tree",
            title="Oak",
            description="Planted an oak",
            proof_image=ProofImageFile("oak.png", b"\x89PNG", "image/png"),
        )
        response = await draft.submit(make_client(handler))

        assert response.success
        assert seen["content_type"].startswith("multipart/form-data")
        assert b'name="proof_image"; filename="oak.png"' in seen["body"]
        assert draft.proof_image is None
        assert draft.title == ""
        assert draft.is_submitting is False

    async def test_failed_submit_keeps_the_draft(self):
        draft = ActivityDraft(
            type="plant-tree",
            title="Oak",
            description="Planted an oak",
            proof_image=ProofImageFile("oak.png", b"\x89PNG", "image/png"),
        )
        response = await draft.submit(
            make_client(lambda r: envelope(message="Proof image is required", status_code=400, success=False))
        )

        assert response.success is False
        assert draft.title == "Oak"
        assert draft.proof_image is not None
        assert draft.is_submitting is False
