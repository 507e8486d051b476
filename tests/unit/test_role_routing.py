"""Unit tests for the role route table and the protected-route guard."""

import pytest

from greyn.kernel.models.user import UserRole
from greyn.kernel.routing import (
    GuardOutcome,
    GuardState,
    can_access_route,
    evaluate_guard,
    get_nav_links,
    get_role_route,
    get_role_routes,
)
from greyn.kernel.routing.role_routing import path_within


class TestRoleRoutes:
    @pytest.mark.parametrize(
        "role,expected",
        [
            ("admin", "/admin/overview"),
            ("ngo", "/ngo/dashboard"),
            ("corporate", "/corporate/dashboard"),
            ("carbon", "/carbon/marketplace"),
            ("simple-user", "/dashboard"),
            (None, "/auth"),
        ],
    )
    def test_dashboard_per_role(self, role, expected):
        assert get_role_route("dashboard", role) == expected

    def test_enum_roles_are_accepted(self):
        assert get_role_route("projects", UserRole.NGO) == "/ngo/launch"

    def test_unknown_route_name_falls_back_to_root(self):
        assert get_role_route("nowhere", "admin") == "/"
        assert get_role_route("nowhere") == "/"

    def test_unknown_role_is_treated_as_anonymous(self):
        assert get_role_route("home", "superuser") == "/home"

    def test_route_set_and_nav_links(self):
        routes = get_role_routes("carbon")
        links = get_nav_links("carbon")

        assert routes == {
            "home": "/carbon/marketplace",
            "projects": "/carbon/projects",
            "products": "/carbon/marketplace",
            "dashboard": "/carbon/marketplace",
        }
        assert [link["label"] for link in links] == ["Home", "Projects", "Products", "Dashboard"]
        assert all(link["href"] == routes[link["name"]] for link in links)


class TestCanAccessRoute:
    def test_path_matching_is_segment_aware(self):
        assert path_within("/admin", "/admin")
        assert path_within("/admin/users", "/admin")
        assert not path_within("/adminx", "/admin")
        assert path_within("/", "/")
        assert not path_within("/home", "/")

    @pytest.mark.parametrize("path", ["/dashboard", "/activities", "/admin/users", "/ngo/launch", "/wallet"])
    def test_anonymous_blocked_from_protected_pages(self, path):
        assert can_access_route(path) is False

    @pytest.mark.parametrize("path", ["/", "/home", "/projects", "/about", "/auth", "/products/42", "/contact/form"])
    def test_anonymous_allowed_on_public_pages(self, path):
        assert can_access_route(path) is True

    @pytest.mark.parametrize("path", ["/random", "/homepage", "/settings/billing", "/authx"])
    def test_anonymous_denied_on_unlisted_pages(self, path):
        assert can_access_route(path) is False

    def test_own_namespace_is_allowed(self):
        assert can_access_route("/ngo/dashboard", "ngo") is True
        assert can_access_route("/admin/security/audit-logs", "admin") is True

    def test_other_namespaces_are_denied(self):
        assert can_access_route("/admin/users", "simple-user") is False
        assert can_access_route("/corporate/dashboard", "ngo") is False
        assert can_access_route("/carbon/marketplace", "admin") is False

    def test_shared_pages_are_allowed_for_every_role(self):
        for role in ("admin", "ngo", "corporate", "carbon", "simple-user"):
            assert can_access_route("/projects", role) is True
            assert can_access_route("/products/42", role) is True

    def test_unlisted_paths_are_allowed_when_signed_in(self):
        assert can_access_route("/adminx", "simple-user") is True
        assert can_access_route("/wallet", "ngo") is True


class TestRouteGuard:
    def test_loading_wins(self):
        decision = evaluate_guard(GuardState(is_loading=True, is_authenticated=False), "/admin/users")
        assert decision.outcome == GuardOutcome.LOADING
        assert decision.redirect_to is None

    def test_unauthenticated_redirects_to_auth(self):
        decision = evaluate_guard(GuardState(is_loading=False, is_authenticated=False), "/dashboard")

        assert decision.outcome == GuardOutcome.REDIRECT
        assert decision.redirect_to == "/auth"
        assert decision.replace is True

    def test_simple_user_on_admin_page_goes_to_own_dashboard(self):
        state = GuardState(is_loading=False, is_authenticated=True, role="simple-user")
        decision = evaluate_guard(state, "/admin/users")

        assert decision.outcome == GuardOutcome.REDIRECT
        assert decision.redirect_to == "/dashboard"
        assert decision.reason == "route_not_allowed"

    def test_required_role_mismatch(self):
        state = GuardState(is_loading=False, is_authenticated=True, role="ngo")
        decision = evaluate_guard(state, "/projects", required_role="admin")

        assert decision.redirect_to == "/ngo/dashboard"
        assert decision.reason == "role_mismatch"

    def test_allowed_roles(self):
        state = GuardState(is_loading=False, is_authenticated=True, role="corporate")

        denied = evaluate_guard(state, "/products", allowed_roles=["ngo", "carbon"])
        allowed = evaluate_guard(state, "/products", allowed_roles=[UserRole.CORPORATE, "ngo"])

        assert denied.redirect_to == "/corporate/dashboard"
        assert denied.reason == "role_not_allowed"
        assert allowed.outcome == GuardOutcome.RENDER

    def test_admin_renders_admin_pages(self):
        state = GuardState(is_loading=False, is_authenticated=True, role="admin")
        decision = evaluate_guard(state, "/admin/users", required_role=UserRole.ADMIN)
        assert decision.outcome == GuardOutcome.RENDER
