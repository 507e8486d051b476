"""
Client-side auth session.

Holds the signed-in user and tokens for one ApiClient. The role always
comes from the server's user record; nothing here lets a caller pick it.
"""

from typing import Any, Dict, Iterable, Optional

from greyn.client.api_client import ApiClient, ApiResponse
from greyn.kernel.models.user import UserRole
from greyn.kernel.routing import GuardDecision, GuardState, evaluate_guard


class AuthSession:
    def __init__(self, client: ApiClient):
        self.client = client
        self.client.on_unauthorized = self.clear
        self.user: Optional[Dict[str, Any]] = None
        self.refresh_token: Optional[str] = None
        # Unknown until the first check_auth()
        self.is_loading = True

    @property
    def token(self) -> Optional[str]:
        return self.client.token

    @property
    def role(self) -> Optional[str]:
        return self.user.get("role") if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and not self.is_loading

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_ngo(self) -> bool:
        return self.role == UserRole.NGO.value

    @property
    def is_corporate(self) -> bool:
        return self.role == UserRole.CORPORATE.value

    @property
    def is_carbon(self) -> bool:
        return self.role == UserRole.CARBON.value

    @property
    def is_simple_user(self) -> bool:
        return self.role == UserRole.SIMPLE_USER.value

    def clear(self) -> None:
        self.user = None
        self.refresh_token = None
        self.client.token = None

    def _accept_tokens(self, response: ApiResponse) -> None:
        data = response.data or {}
        self.client.token = data.get("access_token")
        self.refresh_token = data.get("refresh_token")
        self.user = data.get("user")

    async def _run(self, call) -> ApiResponse:
        self.is_loading = True
        try:
            response = await call
            if response.success:
                self._accept_tokens(response)
            return response
        finally:
            self.is_loading = False

    async def login(self, role: str, email: str, password: str) -> ApiResponse:
        return await self._run(self.client.auth.login(role, email, password))

    async def signup(self, role: str, payload: Dict[str, Any]) -> ApiResponse:
        return await self._run(self.client.auth.signup(role, payload))

    async def logout(self) -> ApiResponse:
        if self.client.token:
            response = await self.client.auth.logout(self.refresh_token)
        else:
            response = ApiResponse(success=True, message="Logged out")
        self.clear()
        return response

    async def check_auth(self) -> bool:
        """Re-validate the stored token against /auth/me. Clears the session on failure."""
        self.is_loading = True
        try:
            if not self.client.token:
                self.clear()
                return False
            response = await self.client.auth.me()
            if response.success and response.data:
                self.user = response.data
                return True
            self.clear()
            return False
        finally:
            self.is_loading = False

    def guard(
        self,
        pathname: str,
        required_role: Optional[str] = None,
        allowed_roles: Optional[Iterable[str]] = None,
    ) -> GuardDecision:
        state = GuardState(
            is_loading=self.is_loading,
            is_authenticated=self.is_authenticated,
            role=self.role,
        )
        return evaluate_guard(state, pathname, required_role=required_role, allowed_roles=allowed_roles)
