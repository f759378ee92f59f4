"""Tests for 401/403 synthesis from declared authorization filters."""

import unittest

from catalog.openapi.auth_responses import (
    FORBIDDEN_RESPONSE,
    UNAUTHORIZED_RESPONSE,
    enrich_routes,
    policy_requirements,
    with_auth_responses,
)
from models import AuthFilter, RequirementKind, ResponseDescriptor, RouteDescriptor

_OK = ResponseDescriptor(status_code=200, description="Success")


def _make_route(*filters: AuthFilter, responses: tuple[ResponseDescriptor, ...] = (_OK,)) -> RouteDescriptor:
    return RouteDescriptor(
        name="GetThing",
        method="GET",
        path="/api/things",
        responses=responses,
        filters=filters,
    )


def _status_codes(route: RouteDescriptor) -> list[int]:
    return sorted(route.declared_status_codes())


class TestPolicyRequirements(unittest.TestCase):
    def test_collects_most_specific_filter_first(self) -> None:
        filters = [
            AuthFilter.authorize(RequirementKind.DENY_ANONYMOUS),
            AuthFilter.authorize(RequirementKind.ROLES),
        ]
        self.assertEqual(
            policy_requirements(filters),
            [RequirementKind.ROLES, RequirementKind.DENY_ANONYMOUS],
        )

    def test_stops_at_allow_anonymous(self) -> None:
        filters = [
            AuthFilter.authorize(RequirementKind.CLAIMS),
            AuthFilter.allow_anonymous(),
            AuthFilter.authorize(RequirementKind.DENY_ANONYMOUS),
        ]
        self.assertEqual(policy_requirements(filters), [RequirementKind.DENY_ANONYMOUS])

    def test_empty_chain_has_no_requirements(self) -> None:
        self.assertEqual(policy_requirements([]), [])

    def test_allow_anonymous_marker_cannot_carry_requirements(self) -> None:
        with self.assertRaises(ValueError):
            AuthFilter(kind="allow_anonymous", requirements=(RequirementKind.ROLES,))


class TestAuthResponses(unittest.TestCase):
    def test_deny_anonymous_adds_401_only(self) -> None:
        route = with_auth_responses(
            _make_route(AuthFilter.authorize(RequirementKind.DENY_ANONYMOUS))
        )
        self.assertEqual(_status_codes(route), [200, 401])

    def test_role_requirement_adds_403(self) -> None:
        route = with_auth_responses(_make_route(AuthFilter.authorize(RequirementKind.ROLES)))
        self.assertEqual(_status_codes(route), [200, 403])

    def test_each_permission_kind_adds_403(self) -> None:
        for kind in (
            RequirementKind.CLAIMS,
            RequirementKind.ROLES,
            RequirementKind.NAME,
            RequirementKind.OPERATION,
            RequirementKind.ASSERTION,
        ):
            with self.subTest(kind=kind):
                route = with_auth_responses(_make_route(AuthFilter.authorize(kind)))
                self.assertIn(403, route.declared_status_codes())
                self.assertNotIn(401, route.declared_status_codes())

    def test_combined_policy_adds_401_and_403(self) -> None:
        route = with_auth_responses(
            _make_route(
                AuthFilter.authorize(RequirementKind.DENY_ANONYMOUS, RequirementKind.CLAIMS)
            )
        )
        self.assertEqual(_status_codes(route), [200, 401, 403])

    def test_allow_anonymous_below_authorize_suppresses_both(self) -> None:
        route = with_auth_responses(
            _make_route(
                AuthFilter.authorize(RequirementKind.DENY_ANONYMOUS, RequirementKind.ROLES),
                AuthFilter.allow_anonymous(),
            )
        )
        self.assertEqual(_status_codes(route), [200])

    def test_action_authorize_still_counts_when_controller_allows_anonymous(self) -> None:
        route = with_auth_responses(
            _make_route(
                AuthFilter.allow_anonymous(),
                AuthFilter.authorize(RequirementKind.DENY_ANONYMOUS),
            )
        )
        self.assertEqual(_status_codes(route), [200, 401])

    def test_declared_401_is_not_replaced(self) -> None:
        declared = ResponseDescriptor(status_code=401, description="Sign in first")
        route = with_auth_responses(
            _make_route(
                AuthFilter.authorize(RequirementKind.DENY_ANONYMOUS),
                responses=(_OK, declared),
            )
        )
        unauthorized = [r for r in route.responses if r.status_code == 401]
        self.assertEqual(unauthorized, [declared])

    def test_synthesized_descriptions(self) -> None:
        route = with_auth_responses(
            _make_route(
                AuthFilter.authorize(RequirementKind.DENY_ANONYMOUS, RequirementKind.NAME)
            )
        )
        self.assertIn(UNAUTHORIZED_RESPONSE, route.responses)
        self.assertIn(FORBIDDEN_RESPONSE, route.responses)

    def test_route_without_filters_is_returned_unchanged(self) -> None:
        route = _make_route()
        self.assertIs(with_auth_responses(route), route)

    def test_enrich_routes_preserves_order(self) -> None:
        routes = [
            _make_route(),
            _make_route(AuthFilter.authorize(RequirementKind.DENY_ANONYMOUS)),
        ]
        enriched = enrich_routes(routes)
        self.assertEqual(len(enriched), 2)
        self.assertEqual(_status_codes(enriched[0]), [200])
        self.assertEqual(_status_codes(enriched[1]), [200, 401])


if __name__ == "__main__":
    unittest.main()
