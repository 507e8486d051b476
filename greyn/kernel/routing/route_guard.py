"""
Protected-route guard.

Given the session state and the path being opened, decide whether to show
a loading indicator, redirect, or render. Redirects replace the current
history entry; there is no other error channel.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from greyn.kernel.routing.role_routing import can_access_route, get_role_route

AUTH_PATH = "/auth"


class GuardOutcome(str, Enum):
    LOADING = "loading"
    REDIRECT = "redirect"
    RENDER = "render"


@dataclass(frozen=True)
class GuardState:
    """The slice of session state the guard reads."""

    is_loading: bool
    is_authenticated: bool
    role: Optional[str] = None


@dataclass(frozen=True)
class GuardDecision:
    outcome: GuardOutcome
    redirect_to: Optional[str] = None
    replace: bool = False
    reason: Optional[str] = None

    @classmethod
    def loading(cls) -> "GuardDecision":
        return cls(GuardOutcome.LOADING)

    @classmethod
    def render(cls) -> "GuardDecision":
        return cls(GuardOutcome.RENDER)

    @classmethod
    def redirect(cls, path: str, reason: str) -> "GuardDecision":
        return cls(GuardOutcome.REDIRECT, redirect_to=path, replace=True, reason=reason)


def _role_value(role) -> Optional[str]:
    if role is None:
        return None
    return role.value if hasattr(role, "value") else str(role)


def evaluate_guard(
    state: GuardState,
    pathname: str,
    required_role=None,
    allowed_roles: Optional[Iterable] = None,
) -> GuardDecision:
    """
    Evaluate the guard for one render.

    Order matters: loading wins over everything, then authentication, then
    the role route table, then the explicit role constraints.
    """
    if state.is_loading:
        return GuardDecision.loading()

    if not state.is_authenticated:
        return GuardDecision.redirect(AUTH_PATH, "unauthenticated")

    role = _role_value(state.role)
    dashboard = get_role_route("dashboard", role)

    if not can_access_route(pathname, role):
        return GuardDecision.redirect(dashboard, "route_not_allowed")

    if required_role is not None and role != _role_value(required_role):
        return GuardDecision.redirect(dashboard, "role_mismatch")

    if allowed_roles is not None:
        allowed = {_role_value(r) for r in allowed_roles}
        if role not in allowed:
            return GuardDecision.redirect(dashboard, "role_not_allowed")

    return GuardDecision.render()
