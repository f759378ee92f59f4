"""Swagger UI page listing every version document, newest first."""
from __future__ import annotations

from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse

from catalog.versioning import ApiVersionRegistry


def document_url(group_name: str) -> str:
    return f"/swagger/{group_name}/swagger.json"


def swagger_endpoints(registry: ApiVersionRegistry) -> list[dict[str, str]]:
    return [
        {"url": document_url(d.group_name), "name": f"Version {d.version}"}
        for d in registry.descriptors
    ]


def render_swagger_ui(title: str, registry: ApiVersionRegistry) -> HTMLResponse:
    endpoints = swagger_endpoints(registry)
    if not endpoints:
        raise ValueError("No API versions declared; nothing to document")
    return get_swagger_ui_html(
        openapi_url=endpoints[0]["url"],
        title=title,
        swagger_ui_parameters={
            "urls": endpoints,
            "urls.primaryName": endpoints[0]["name"],
            "displayOperationId": True,
            "displayRequestDuration": True,
        },
    )
