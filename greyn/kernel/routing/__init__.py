"""
Role-based route table and protected-route guard.
"""

from greyn.kernel.routing.role_routing import (
    ROLE_NAMESPACES,
    ROUTE_MAP,
    can_access_route,
    get_nav_links,
    get_role_route,
    get_role_routes,
)
from greyn.kernel.routing.route_guard import (
    GuardDecision,
    GuardOutcome,
    GuardState,
    evaluate_guard,
)

__all__ = [
    "ROLE_NAMESPACES",
    "ROUTE_MAP",
    "can_access_route",
    "get_nav_links",
    "get_role_route",
    "get_role_routes",
    "GuardDecision",
    "GuardOutcome",
    "GuardState",
    "evaluate_guard",
]
