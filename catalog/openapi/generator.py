"""
OpenAPI document generation.

Documents are built from RouteDescriptor metadata captured when routes were
registered, not by reflecting over the running application:

  1. Enrich every route with synthesized 401/403 responses.
  2. Keep the routes that serve a version group (version-neutral routes
     appear in every group).
  3. Emit one OpenAPI document per group.

Output is deterministic: paths are sorted, responses are ordered by status
code and schemas by name. Rendered documents are cached per group.
"""
from __future__ import annotations

import json
import re
from collections.abc import Sequence
from http import HTTPStatus
from typing import Any

from pydantic import BaseModel
from pydantic.json_schema import models_json_schema

from catalog.openapi.auth_responses import enrich_routes
from catalog.versioning import ApiVersion, ApiVersionDescriptor, ApiVersionRegistry
from models import ParameterDescriptor, ResponseDescriptor, RouteDescriptor

OPENAPI_VERSION = "3.1.0"
DEPRECATED_SUFFIX = "This API version has been deprecated."

_REF_TEMPLATE = "#/components/schemas/{model}"
_METHOD_ORDER = ["GET", "PUT", "POST", "DELETE", "OPTIONS", "HEAD", "PATCH"]
_SNAKE_SEGMENT = re.compile(r"_([a-z0-9])")
_PATH_PARAM = re.compile(r"\{([^}:]+)(?::[^}]+)?\}")


def camel_case(name: str) -> str:
    """product_id -> productId. Names without underscores pass through."""
    return _SNAKE_SEGMENT.sub(lambda m: m.group(1).upper(), name)


def _document_path(path: str) -> str:
    return _PATH_PARAM.sub(lambda m: "{" + camel_case(m.group(1)) + "}", path)


def _routes_for_group(
    routes: Sequence[RouteDescriptor], descriptor: ApiVersionDescriptor
) -> list[RouteDescriptor]:
    version = descriptor.version
    selected = []
    for route in routes:
        if not route.api_versions:
            selected.append(route)
            continue
        if any(ApiVersion.parse(v) == version for v in route.api_versions):
            selected.append(route)
    return selected


class DocumentGenerator:
    """Builds and caches one OpenAPI document per API version group."""

    def __init__(
        self,
        routes: Sequence[RouteDescriptor],
        registry: ApiVersionRegistry,
        *,
        title: str,
        description: str,
        schemas: Sequence[type[BaseModel]] = (),
        media_types: Sequence[str] = ("application/json",),
    ) -> None:
        self._routes = enrich_routes(routes)
        self._registry = registry
        self._title = title
        self._description = description
        self._schemas = list(schemas)
        self._media_types = list(media_types)
        self._rendered: dict[str, bytes] = {}

    @property
    def routes(self) -> list[RouteDescriptor]:
        return list(self._routes)

    def group_names(self) -> list[str]:
        return [d.group_name for d in self._registry.descriptors]

    def build(self, group_name: str) -> dict[str, Any] | None:
        """Return the document for `group_name`, or None if no such group exists."""
        descriptor = self._registry.descriptor_for_group(group_name)
        if descriptor is None:
            return None

        description = self._description
        if descriptor.deprecated:
            description = f"{description} {DEPRECATED_SUFFIX}".strip()

        document: dict[str, Any] = {
            "openapi": OPENAPI_VERSION,
            "info": {
                "title": self._title,
                "description": description,
                "version": str(descriptor.version),
            },
            "paths": self._build_paths(_routes_for_group(self._routes, descriptor)),
        }
        schemas = self._build_schemas()
        if schemas:
            document["components"] = {"schemas": schemas}
        return document

    def render(self, group_name: str) -> bytes | None:
        """Serialized document bytes; identical input always yields identical bytes."""
        cached = self._rendered.get(group_name)
        if cached is not None:
            return cached
        document = self.build(group_name)
        if document is None:
            return None
        rendered = json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
        self._rendered[group_name] = rendered
        return rendered

    def _build_paths(self, routes: list[RouteDescriptor]) -> dict[str, Any]:
        by_path: dict[str, list[RouteDescriptor]] = {}
        for route in routes:
            by_path.setdefault(_document_path(route.path), []).append(route)

        paths: dict[str, Any] = {}
        for path in sorted(by_path):
            operations = sorted(by_path[path], key=lambda r: _METHOD_ORDER.index(r.method))
            paths[path] = {
                route.method.lower(): self._build_operation(route) for route in operations
            }
        return paths

    def _build_operation(self, route: RouteDescriptor) -> dict[str, Any]:
        operation: dict[str, Any] = {}
        if route.tags:
            operation["tags"] = list(route.tags)
        if route.summary:
            operation["summary"] = route.summary
        if route.description:
            operation["description"] = route.description
        operation["operationId"] = route.name
        if route.parameters:
            operation["parameters"] = [self._build_parameter(p) for p in route.parameters]
        operation["responses"] = {
            str(response.status_code): self._build_response(response)
            for response in sorted(route.responses, key=lambda r: r.status_code)
        }
        return operation

    def _build_parameter(self, parameter: ParameterDescriptor) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": parameter.schema_type}
        if parameter.schema_format:
            schema["format"] = parameter.schema_format
        built: dict[str, Any] = {
            "name": camel_case(parameter.name),
            "in": parameter.location,
        }
        if parameter.description:
            built["description"] = parameter.description
        # Path parameters are always required in OpenAPI.
        built["required"] = parameter.required or parameter.location == "path"
        built["schema"] = schema
        return built

    def _build_response(self, response: ResponseDescriptor) -> dict[str, Any]:
        description = response.description or HTTPStatus(response.status_code).phrase
        built: dict[str, Any] = {"description": description}
        if response.schema_ref:
            schema: dict[str, Any] = {"$ref": _REF_TEMPLATE.format(model=response.schema_ref)}
            if response.is_array:
                schema = {"type": "array", "items": schema}
            built["content"] = {media_type: {"schema": schema} for media_type in self._media_types}
        return built

    def _build_schemas(self) -> dict[str, Any]:
        if not self._schemas:
            return {}
        _, top_level = models_json_schema(
            [(model, "serialization") for model in self._schemas],
            ref_template=_REF_TEMPLATE,
        )
        definitions = top_level.get("$defs", {})
        return {name: definitions[name] for name in sorted(definitions)}
