"""
Role -> portal route table.

Each role owns a URL namespace; the table answers "where is home for this
role" and "may this role open this path".
"""

from typing import Dict, List, Optional, Tuple

from greyn.kernel.models.user import UserRole

ROUTE_NAMES: Tuple[str, ...] = ("home", "projects", "products", "dashboard")

ROLE_NAMESPACES: Dict[str, str] = {
    UserRole.ADMIN.value: "/admin",
    UserRole.NGO.value: "/ngo",
    UserRole.CORPORATE.value: "/corporate",
    UserRole.CARBON.value: "/carbon",
    UserRole.SIMPLE_USER.value: "/investor",
}

ROUTE_MAP: Dict[str, Dict[str, str]] = {
    "home": {
        UserRole.ADMIN.value: "/admin/overview",
        UserRole.NGO.value: "/ngo/dashboard",
        UserRole.CORPORATE.value: "/corporate/dashboard",
        UserRole.CARBON.value: "/carbon/marketplace",
        UserRole.SIMPLE_USER.value: "/home",
    },
    "projects": {
        UserRole.ADMIN.value: "/admin/projects",
        UserRole.NGO.value: "/ngo/launch",
        UserRole.CORPORATE.value: "/projects",
        UserRole.CARBON.value: "/carbon/projects",
        UserRole.SIMPLE_USER.value: "/projects",
    },
    "products": {
        UserRole.ADMIN.value: "/admin/overview",
        UserRole.NGO.value: "/products",
        UserRole.CORPORATE.value: "/products",
        UserRole.CARBON.value: "/carbon/marketplace",
        UserRole.SIMPLE_USER.value: "/products",
    },
    "dashboard": {
        UserRole.ADMIN.value: "/admin/overview",
        UserRole.NGO.value: "/ngo/dashboard",
        UserRole.CORPORATE.value: "/corporate/dashboard",
        UserRole.CARBON.value: "/carbon/marketplace",
        UserRole.SIMPLE_USER.value: "/dashboard",
    },
}

PUBLIC_ROUTES: Dict[str, str] = {
    "home": "/home",
    "projects": "/projects",
    "products": "/products",
    "dashboard": "/auth",
}

# Anonymous visitors are bounced from these
PROTECTED_PREFIXES: Tuple[str, ...] = (
    "/dashboard",
    "/activities",
    "/wallet",
    "/profile",
    "/admin",
    "/ngo",
    "/corporate",
    "/carbon",
)

PUBLIC_PATHS: Tuple[str, ...] = (
    "/home",
    "/auth",
    "/projects",
    "/products",
    "/about",
    "/how-it-works",
    "/contact",
    "/",
)

# Reachable by every signed-in role; "/" is excluded so it does not match everything
SHARED_PATHS: Tuple[str, ...] = tuple(p for p in PUBLIC_PATHS if p != "/")

NAV_LABELS: Dict[str, str] = {
    "home": "Home",
    "projects": "Projects",
    "products": "Products",
    "dashboard": "Dashboard",
}


def _normalize_role(role) -> Optional[str]:
    if role is None:
        return None
    value = role.value if hasattr(role, "value") else str(role)
    return value if value in ROLE_NAMESPACES else None


def path_within(path: str, prefix: str) -> bool:
    """Segment-aware prefix test: /admin matches /admin and /admin/x but not /adminx."""
    if prefix == "/":
        return path == "/"
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def get_role_route(route_name: str, role=None) -> str:
    """Path for a named route; anonymous users get public routes, unknown names get '/'."""
    role_value = _normalize_role(role)
    if role_value is None:
        return PUBLIC_ROUTES.get(route_name, "/")
    routes = ROUTE_MAP.get(route_name)
    if routes is None:
        return "/"
    return routes[role_value]


def get_role_routes(role=None) -> Dict[str, str]:
    return {name: get_role_route(name, role) for name in ROUTE_NAMES}


def get_nav_links(role=None) -> List[Dict[str, str]]:
    return [
        {"name": name, "label": NAV_LABELS[name], "href": get_role_route(name, role)}
        for name in ROUTE_NAMES
    ]


def can_access_route(path: str, role=None) -> bool:
    """
    Decide whether a role (or an anonymous visitor) may open a path.

    Anonymous: protected prefixes are denied and only the public pages are
    allowed.
    Signed in: own namespace and shared pages are allowed; another role's
    namespace is denied; anything else is allowed.
    """
    path = path or "/"
    role_value = _normalize_role(role)

    if role_value is None:
        if any(path_within(path, prefix) for prefix in PROTECTED_PREFIXES):
            return False
        return any(path_within(path, public) for public in PUBLIC_PATHS)

    if path_within(path, ROLE_NAMESPACES[role_value]):
        return True
    if any(path_within(path, shared) for shared in SHARED_PATHS):
        return True
    for other_role, namespace in ROLE_NAMESPACES.items():
        if other_role != role_value and path_within(path, namespace):
            return False
    return True
