from catalog.openapi.auth_responses import enrich_routes, policy_requirements, with_auth_responses
from catalog.openapi.generator import DocumentGenerator
from catalog.openapi.swagger_ui import document_url, render_swagger_ui, swagger_endpoints

__all__ = [
    "DocumentGenerator",
    "document_url",
    "enrich_routes",
    "policy_requirements",
    "render_swagger_ui",
    "swagger_endpoints",
    "with_auth_responses",
]
