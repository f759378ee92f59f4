"""
Read-only catalog API.

create_app is the composition root. It builds the store, version registry,
documentation generator and health checks explicitly and wires the request
pipeline. Middleware runs outermost first in this order:

  HSTS -> problem details -> forwarded headers -> response cache
       -> compression -> CORS -> request logging -> routes
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

import catalog
from catalog.api.catalog import create_catalog_routes
from catalog.health import HealthChecks, create_health_router
from catalog.openapi import DocumentGenerator, render_swagger_ui
from catalog.pipeline import (
    CompressionMiddleware,
    ProblemDetailsMiddleware,
    RequestLoggingMiddleware,
    ResponseCacheMiddleware,
    StrictTransportSecurityMiddleware,
    install_problem_handlers,
)
from catalog.pipeline.negotiation import OUTPUT_MEDIA_TYPES
from catalog.pipeline.problem_details import build_problem, problem_response
from catalog.settings import AppSettings, load_settings
from catalog.store import CatalogStore
from catalog.versioning import ApiVersion, ApiVersionRegistry
from models import ProblemDetails, Product

logger = logging.getLogger(__name__)


def _add_docs_routes(app: FastAPI, generator: DocumentGenerator, registry: ApiVersionRegistry, title: str) -> None:
    @app.get("/", include_in_schema=False)
    def swagger_ui() -> HTMLResponse:
        return render_swagger_ui(title, registry)

    @app.get("/swagger/{group_name}/swagger.json", include_in_schema=False)
    def swagger_document(group_name: str) -> Response:
        rendered = generator.render(group_name)
        if rendered is None:
            problem = build_problem(
                404,
                detail=f"No API documentation group named '{group_name}'.",
                instance=f"/swagger/{group_name}/swagger.json",
            )
            return problem_response(problem)
        return Response(content=rendered, media_type="application/json")


def create_app(
    settings: AppSettings | None = None,
    *,
    store: CatalogStore | None = None,
    health_checks: HealthChecks | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    store = store if store is not None else CatalogStore()
    health_checks = health_checks if health_checks is not None else HealthChecks()
    development = settings.is_development

    registry = ApiVersionRegistry(default_version=ApiVersion.parse(settings.default_api_version))

    app = FastAPI(
        title=settings.application_name,
        description=catalog.__description__,
        version=catalog.__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    catalog_routes = create_catalog_routes(
        store,
        registry,
        pretty=development,
        logger=logging.getLogger("catalog.api.catalog"),
    )
    app.include_router(catalog_routes.router)
    app.include_router(create_health_router(health_checks))

    generator = DocumentGenerator(
        catalog_routes.descriptors,
        registry,
        title=settings.application_name,
        description=catalog.__description__,
        schemas=[Product, ProblemDetails],
        media_types=OUTPUT_MEDIA_TYPES,
    )
    _add_docs_routes(app, generator, registry, settings.application_name)
    install_problem_handlers(app, pretty=development)

    # add_middleware wraps the current stack, so the last one added runs first.
    app.add_middleware(RequestLoggingMiddleware, logger=logging.getLogger("catalog.requests"))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        CompressionMiddleware,
        mime_types=settings.compression.mime_types,
        enable_for_https=settings.compression.enable_for_https,
        level=settings.compression.level,
    )
    app.add_middleware(ResponseCacheMiddleware)
    app.add_middleware(
        ProxyHeadersMiddleware,
        trusted_hosts=list(settings.forwarded_headers.known_proxies),
    )
    app.add_middleware(
        ProblemDetailsMiddleware,
        include_exception_details=development,
        pretty=development,
    )
    if not development:
        app.add_middleware(StrictTransportSecurityMiddleware, max_age=settings.hsts_max_age)

    app.state.settings = settings
    app.state.store = store
    app.state.registry = registry
    app.state.documents = generator
    app.state.health_checks = health_checks

    logger.info(
        "Configured %s for %s with API versions %s",
        settings.application_name,
        settings.environment,
        ", ".join(str(d.version) for d in registry.descriptors),
    )
    return app
