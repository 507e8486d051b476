"""
Role routing endpoints: the same guard the client runs, evaluated server-side.
"""

from typing import List, Optional

from fastapi import APIRouter, Query

from greyn.api.deps import OptionalUser
from greyn.kernel.models.base import enum_value
from greyn.kernel.routing import GuardState, evaluate_guard, get_nav_links, get_role_routes
from greyn.schemas.common import SuccessResponse, ok
from greyn.schemas.routing import GuardResult, NavLink, NavResponse

router = APIRouter()


@router.get("/check", response_model=SuccessResponse)
async def check_route(
    user: OptionalUser,
    path: str = Query(..., min_length=1),
    required_role: Optional[str] = None,
    allowed_roles: Optional[List[str]] = Query(None),
):
    """Would the caller be allowed to open `path`? Anonymous callers count as signed out."""
    state = GuardState(
        is_loading=False,
        is_authenticated=user is not None,
        role=enum_value(user.role) if user else None,
    )
    decision = evaluate_guard(state, path, required_role=required_role, allowed_roles=allowed_roles)
    return ok(GuardResult(
        path=path,
        outcome=decision.outcome.value,
        redirect_to=decision.redirect_to,
        replace=decision.replace,
        reason=decision.reason,
    ))


@router.get("/nav", response_model=SuccessResponse)
async def navigation(user: OptionalUser):
    role = enum_value(user.role) if user else None
    return ok(NavResponse(
        role=role,
        routes=get_role_routes(role),
        links=[NavLink(**link) for link in get_nav_links(role)],
    ))
