"""
Synthesized 401/403 responses for routes that declare authorization.

Nothing here enforces authorization. Routes only describe the filters that
guard them, and the generated documents list the responses those filters can
produce.
"""
from __future__ import annotations

from collections.abc import Sequence

from models import AuthFilter, RequirementKind, ResponseDescriptor, RouteDescriptor

UNAUTHORIZED_RESPONSE = ResponseDescriptor(
    status_code=401,
    description="Unauthorized - The user has not supplied the necessary credentials to access the resource.",
)
FORBIDDEN_RESPONSE = ResponseDescriptor(
    status_code=403,
    description="Forbidden - The user does not have the necessary permissions to access the resource.",
)

_FORBIDDEN_KINDS = frozenset(
    {
        RequirementKind.CLAIMS,
        RequirementKind.NAME,
        RequirementKind.OPERATION,
        RequirementKind.ROLES,
        RequirementKind.ASSERTION,
    }
)


def policy_requirements(filters: Sequence[AuthFilter]) -> list[RequirementKind]:
    """
    Collect requirements from the filter chain, most-specific filter first.

    The walk stops at the first allow-anonymous marker, so anything declared
    above it (controller or global filters) is ignored.
    """
    requirements: list[RequirementKind] = []
    for auth_filter in reversed(filters):
        if auth_filter.kind == "allow_anonymous":
            break
        requirements.extend(auth_filter.requirements)
    return requirements


def with_auth_responses(route: RouteDescriptor) -> RouteDescriptor:
    """Return `route` with 401/403 entries added where its requirements call for them."""
    requirements = policy_requirements(route.filters)
    if not requirements:
        return route

    declared = route.declared_status_codes()
    responses = list(route.responses)
    if 401 not in declared and RequirementKind.DENY_ANONYMOUS in requirements:
        responses.append(UNAUTHORIZED_RESPONSE)
    if 403 not in declared and any(r in _FORBIDDEN_KINDS for r in requirements):
        responses.append(FORBIDDEN_RESPONSE)

    if len(responses) == len(route.responses):
        return route
    return route.with_responses(responses)


def enrich_routes(routes: Sequence[RouteDescriptor]) -> list[RouteDescriptor]:
    return [with_auth_responses(route) for route in routes]
