"""
Async HTTP client for the Greyn API.

Every call resolves to an ApiResponse; transport and HTTP failures are
folded into `success=False` with a user-facing message, so callers only
ever branch on `success`.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx

from greyn.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0

UNAUTHORIZED_MESSAGE = "Authentication required. Please login again."
NOT_FOUND_MESSAGE = "Resource not found"
SERVER_ERROR_MESSAGE = "Server error. Please try again later."
TIMEOUT_MESSAGE = "Request timeout. The server took too long to respond."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."


@dataclass
class ApiResponse:
    success: bool
    data: Any = None
    message: Optional[str] = None
    errors: Optional[List[Dict[str, Any]]] = None
    status_code: Optional[int] = None

    @classmethod
    def failure(cls, message: str, status_code: Optional[int] = None, errors=None) -> "ApiResponse":
        return cls(success=False, message=message, errors=errors, status_code=status_code)


def _parse_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def to_api_response(response: httpx.Response) -> ApiResponse:
    """Map an HTTP response onto the envelope."""
    body = _parse_body(response)
    envelope = body if isinstance(body, dict) else {}
    status_code = response.status_code

    if response.is_success:
        if "success" in envelope:
            return ApiResponse(
                success=bool(envelope["success"]),
                data=envelope.get("data"),
                message=envelope.get("message"),
                errors=envelope.get("errors"),
                status_code=status_code,
            )
        # Non-envelope bodies (exports, health) are passed through as data
        return ApiResponse(success=True, data=body, status_code=status_code)

    server_message = envelope.get("message")
    errors = envelope.get("errors")
    if status_code == 401:
        return ApiResponse.failure(UNAUTHORIZED_MESSAGE, status_code, errors)
    if status_code == 404:
        return ApiResponse.failure(server_message or NOT_FOUND_MESSAGE, status_code, errors)
    if status_code >= 500:
        return ApiResponse.failure(server_message or SERVER_ERROR_MESSAGE, status_code, errors)
    return ApiResponse.failure(server_message or f"HTTP Error: {status_code}", status_code, errors)


class ApiClient:
    """
    Thin wrapper over httpx.AsyncClient.

    Usage:
        client = ApiClient("http://localhost:8000/api/v1")
        resp = await client.admin.rate_limits.list(search="auth", page=2)
        if resp.success:
            ...
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.on_unauthorized = on_unauthorized
        self._http = httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=timeout)

        self.auth = AuthResource(self)
        self.routing = RoutingResource(self)
        self.activities = ActivitiesResource(self)
        self.payments = PaymentsResource(self)
        self.admin = AdminResources(self)

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _headers(self, auth: bool) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        auth: bool = True,
    ) -> ApiResponse:
        if params:
            params = {k: v for k, v in params.items() if v not in (None, "")}
        try:
            response = await self._http.request(
                method,
                path,
                params=params,
                json=json,
                data=data,
                files=files,
                headers=self._headers(auth),
            )
        except httpx.TimeoutException:
            logger.warning("API request timed out", extra={"method": method, "path": path})
            return ApiResponse.failure(TIMEOUT_MESSAGE)
        except httpx.HTTPError as e:
            logger.warning("API request failed", extra={"method": method, "path": path, "error": str(e)})
            return ApiResponse.failure(NETWORK_ERROR_MESSAGE)

        result = to_api_response(response)
        if response.status_code == 401:
            self.token = None
            if self.on_unauthorized is not None:
                self.on_unauthorized()
        return result

    async def get(self, path: str, **kwargs) -> ApiResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> ApiResponse:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> ApiResponse:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> ApiResponse:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> ApiResponse:
        return await self.request("DELETE", path, **kwargs)


class _Resource:
    def __init__(self, client: ApiClient):
        self._client = client


class AuthResource(_Resource):
    async def signup(self, role: str, payload: Dict[str, Any]) -> ApiResponse:
        return await self._client.post(f"/auth/signup/{role}", json=payload, auth=False)

    async def login(self, role: str, email: str, password: str) -> ApiResponse:
        return await self._client.post(
            f"/auth/login/{role}", json={"email": email, "password": password}, auth=False
        )

    async def refresh(self, refresh_token: str) -> ApiResponse:
        return await self._client.post("/auth/refresh", json={"refresh_token": refresh_token}, auth=False)

    async def logout(self, refresh_token: Optional[str] = None) -> ApiResponse:
        return await self._client.post("/auth/logout", json={"refresh_token": refresh_token})

    async def me(self) -> ApiResponse:
        return await self._client.get("/auth/me")

    async def update_profile(self, **changes) -> ApiResponse:
        return await self._client.patch("/auth/me", json=changes)

    async def change_password(self, current_password: str, new_password: str) -> ApiResponse:
        return await self._client.post(
            "/auth/change-password",
            json={"current_password": current_password, "new_password": new_password},
        )


class RoutingResource(_Resource):
    async def check(self, path: str) -> ApiResponse:
        return await self._client.get("/routing/check", params={"path": path})

    async def nav(self) -> ApiResponse:
        return await self._client.get("/routing/nav")


class ActivitiesResource(_Resource):
    async def types(self) -> ApiResponse:
        return await self._client.get("/activities/types")

    async def stats(self) -> ApiResponse:
        return await self._client.get("/activities/stats")

    async def list(self, status: Optional[str] = None, limit: int = 50, skip: int = 0, sort: str = "newest") -> ApiResponse:
        return await self._client.get(
            "/activities", params={"status": status, "limit": limit, "skip": skip, "sort": sort}
        )

    async def get(self, activity_id: str) -> ApiResponse:
        return await self._client.get(f"/activities/{activity_id}")

    async def create(
        self,
        *,
        type: str,
        title: str,
        description: str,
        filename: str,
        content: bytes,
        content_type: str,
    ) -> ApiResponse:
        return await self._client.post(
            "/activities",
            data={"type": type, "title": title, "description": description},
            files={"proof_image": (filename, content, content_type)},
        )


class PaymentsResource(_Resource):
    async def create_intent(
        self,
        amount: float,
        project_id: Optional[str] = None,
        project_title: Optional[str] = None,
    ) -> ApiResponse:
        return await self._client.post(
            "/payments/create-intent",
            json={"amount": amount, "project_id": project_id, "project_title": project_title},
        )

    async def status(self, intent_id: str) -> ApiResponse:
        return await self._client.get(f"/payments/{intent_id}/status")

    async def history(self, page: int = 1, limit: int = 10, status: Optional[str] = None) -> ApiResponse:
        return await self._client.get("/payments/history", params={"page": page, "limit": limit, "status": status})


class _ListResource(_Resource):
    """Admin console resource with the shared list/export shape."""

    path = ""

    async def list(self, **params) -> ApiResponse:
        return await self._client.get(self.path, params=params)

    async def get(self, item_id: str) -> ApiResponse:
        return await self._client.get(f"{self.path}/{item_id}")

    async def export(self, format: str = "csv", **params) -> ApiResponse:
        return await self._client.get(f"{self.path}/export", params={"format": format, **params})


class AdminUsersResource(_ListResource):
    path = "/admin/users"

    async def update_status(self, user_id: str, status: str) -> ApiResponse:
        return await self._client.patch(f"{self.path}/{user_id}/status", json={"status": status})

    async def update_role(self, user_id: str, role: str) -> ApiResponse:
        return await self._client.patch(f"{self.path}/{user_id}/role", json={"role": role})


class AdminRateLimitsResource(_ListResource):
    path = "/admin/rate-limits"

    async def create(self, payload: Dict[str, Any]) -> ApiResponse:
        return await self._client.post(self.path, json=payload)

    async def update(self, rate_limit_id: str, payload: Dict[str, Any]) -> ApiResponse:
        return await self._client.put(f"{self.path}/{rate_limit_id}", json=payload)

    async def delete(self, rate_limit_id: str) -> ApiResponse:
        return await self._client.delete(f"{self.path}/{rate_limit_id}")

    async def reset(self, rate_limit_id: str) -> ApiResponse:
        return await self._client.post(f"{self.path}/{rate_limit_id}/reset")


class AdminAccessControlResource(_Resource):
    path = "/admin/security/access-control"

    async def overview(self, **params) -> ApiResponse:
        return await self._client.get(f"{self.path}/overview", params=params)

    async def list_rules(self, **params) -> ApiResponse:
        return await self._client.get(f"{self.path}/access-rules", params=params)

    async def create_rule(self, payload: Dict[str, Any]) -> ApiResponse:
        return await self._client.post(f"{self.path}/access-rules", json=payload)

    async def update_rule(self, rule_id: str, payload: Dict[str, Any]) -> ApiResponse:
        return await self._client.put(f"{self.path}/access-rules/{rule_id}", json=payload)

    async def delete_rule(self, rule_id: str) -> ApiResponse:
        return await self._client.delete(f"{self.path}/access-rules/{rule_id}")

    async def list_ip_rules(self, **params) -> ApiResponse:
        return await self._client.get(f"{self.path}/ip-rules", params=params)

    async def create_ip_rule(self, payload: Dict[str, Any]) -> ApiResponse:
        return await self._client.post(f"{self.path}/ip-rules", json=payload)

    async def update_ip_rule(self, rule_id: str, payload: Dict[str, Any]) -> ApiResponse:
        return await self._client.put(f"{self.path}/ip-rules/{rule_id}", json=payload)

    async def delete_ip_rule(self, rule_id: str) -> ApiResponse:
        return await self._client.delete(f"{self.path}/ip-rules/{rule_id}")

    async def role_access(self, role: Optional[str] = None) -> ApiResponse:
        if role is None:
            return await self._client.get(f"{self.path}/role-access")
        return await self._client.get(f"{self.path}/role-access/{role}")

    async def update_role_access(self, role: str, payload: Dict[str, Any]) -> ApiResponse:
        return await self._client.put(f"{self.path}/role-access/{role}", json=payload)


class AdminAuditLogsResource(_ListResource):
    path = "/admin/audit-logs"

    async def verify(self, log_id: str) -> ApiResponse:
        return await self._client.get(f"{self.path}/{log_id}/verify")


class AdminTransactionsResource(_ListResource):
    path = "/admin/transactions"

    async def analytics(self, group_by: str = "day", **params) -> ApiResponse:
        return await self._client.get(f"{self.path}/analytics", params={"group_by": group_by, **params})

    async def receipt(self, transaction_id: str) -> ApiResponse:
        return await self._client.get(f"{self.path}/{transaction_id}/receipt")

    async def invoice(self, transaction_id: str) -> ApiResponse:
        return await self._client.get(f"{self.path}/{transaction_id}/invoice")


class AdminActivitiesResource(_ListResource):
    path = "/admin/activities"

    async def review(self, activity_id: str, status: str, admin_notes: Optional[str] = None) -> ApiResponse:
        return await self._client.patch(
            f"{self.path}/{activity_id}", json={"status": status, "admin_notes": admin_notes}
        )


class AdminResources:
    def __init__(self, client: ApiClient):
        self.users = AdminUsersResource(client)
        self.rate_limits = AdminRateLimitsResource(client)
        self.access_control = AdminAccessControlResource(client)
        self.audit_logs = AdminAuditLogsResource(client)
        self.transactions = AdminTransactionsResource(client)
        self.activities = AdminActivitiesResource(client)
