"""
Route registration that records documentation metadata.

RouteTable wraps an APIRouter. Each `get` registration adds the FastAPI route
and a matching RouteDescriptor, so the documentation generator works from an
explicit list instead of reflecting over the application.
"""
from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import Any

from fastapi import APIRouter
from fastapi.params import Depends

from catalog.versioning import API_VERSION_QUERY_PARAM, ApiVersionRegistry
from models import AuthFilter, ParameterDescriptor, ResponseDescriptor, RouteDescriptor

_CONVERTOR = re.compile(r"\{([^}:]+):[^}]+\}")

API_VERSION_PARAMETER = ParameterDescriptor(
    name=API_VERSION_QUERY_PARAM,
    location="query",
    description="The requested API version",
    schema_type="string",
)


def _merge_responses(
    defaults: Sequence[ResponseDescriptor], declared: Sequence[ResponseDescriptor]
) -> tuple[ResponseDescriptor, ...]:
    """Route-level declarations replace table-level ones with the same status code."""
    by_status = {r.status_code: r for r in defaults}
    by_status.update({r.status_code: r for r in declared})
    return tuple(by_status[code] for code in sorted(by_status))


class RouteTable:
    def __init__(
        self,
        *,
        prefix: str,
        tag: str,
        registry: ApiVersionRegistry,
        api_versions: Sequence[str] = (),
        default_responses: Sequence[ResponseDescriptor] = (),
        filters: Sequence[AuthFilter] = (),
    ) -> None:
        self.router = APIRouter(prefix=prefix, tags=[tag], include_in_schema=False)
        self.tag = tag
        self.registry = registry
        self.api_versions = tuple(api_versions)
        self.default_responses = tuple(default_responses)
        self.filters = tuple(filters)
        self._descriptors: list[RouteDescriptor] = []
        registry.declare(self.api_versions)

    @property
    def descriptors(self) -> list[RouteDescriptor]:
        return list(self._descriptors)

    def get(
        self,
        path: str,
        *,
        name: str,
        summary: str = "",
        description: str = "",
        parameters: Sequence[ParameterDescriptor] = (),
        responses: Sequence[ResponseDescriptor] = (),
        filters: Sequence[AuthFilter] = (),
        dependencies: Sequence[Depends] = (),
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        def decorator(endpoint: Callable[..., Any]) -> Callable[..., Any]:
            self.router.add_api_route(
                path,
                endpoint,
                methods=["GET"],
                name=name,
                dependencies=list(dependencies),
            )
            all_parameters = tuple(parameters)
            if self.api_versions:
                all_parameters += (API_VERSION_PARAMETER,)
            self._descriptors.append(
                RouteDescriptor(
                    name=name,
                    method="GET",
                    path=_CONVERTOR.sub(r"{\1}", self.router.prefix + path),
                    summary=summary,
                    description=description,
                    tags=(self.tag,),
                    api_versions=self.api_versions,
                    parameters=all_parameters,
                    responses=_merge_responses(self.default_responses, responses),
                    filters=self.filters + tuple(filters),
                )
            )
            return endpoint

        return decorator
