"""
Liveness and readiness probes.

/api/health/live runs no checks: answering at all proves the process is up.
/api/health/ready runs every registered check. None are registered because
the service has no downstream dependencies.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from models import HealthReport

logger = logging.getLogger(__name__)

HealthCheckFn = Callable[[], bool]


@dataclass(frozen=True)
class HealthCheck:
    name: str
    check: HealthCheckFn
    tags: frozenset[str] = field(default_factory=frozenset)


class HealthChecks:
    def __init__(self) -> None:
        self._checks: list[HealthCheck] = []

    def add(self, name: str, check: HealthCheckFn, tags: Iterable[str] = ()) -> None:
        self._checks.append(HealthCheck(name=name, check=check, tags=frozenset(tags)))

    def run(self, predicate: Callable[[HealthCheck], bool]) -> HealthReport:
        entries: dict[str, str] = {}
        for health_check in self._checks:
            if not predicate(health_check):
                continue
            try:
                healthy = health_check.check()
            except Exception:
                logger.exception("Health check %s raised", health_check.name)
                healthy = False
            entries[health_check.name] = "Healthy" if healthy else "Unhealthy"
        status = "Unhealthy" if "Unhealthy" in entries.values() else "Healthy"
        return HealthReport(status=status, entries=entries)


def _report_response(report: HealthReport) -> PlainTextResponse:
    status_code = 200 if report.status != "Unhealthy" else 503
    return PlainTextResponse(
        report.status,
        status_code=status_code,
        headers={"Cache-Control": "no-store, no-cache"},
    )


def create_health_router(checks: HealthChecks) -> APIRouter:
    router = APIRouter(prefix="/api/health", include_in_schema=False)

    @router.get("/live")
    def live() -> PlainTextResponse:
        return _report_response(checks.run(lambda _: False))

    @router.get("/ready")
    def ready() -> PlainTextResponse:
        # TODO: restrict to checks tagged "ready" once dependency checks are registered.
        return _report_response(checks.run(lambda _: True))

    return router
