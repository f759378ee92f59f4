"""
Problem details (RFC 7807) error responses.

ProblemDetailsMiddleware is the single place where unhandled exceptions become
HTTP responses. EXCEPTION_STATUS_MAP is checked in order, so more specific
types must come before their bases; `Exception` is the catch-all and stays
last. Types in RETHROWN are re-raised to the server untouched.

Client errors (unsupported version, media type or Accept) and framework HTTP
errors (unmatched routes, 405s, request validation) are rendered inside the
middleware stack by the handlers in install_problem_handlers, so the request
log and CORS still see those responses. The middleware is the catch-all for
everything else.
"""
from __future__ import annotations

import logging
import traceback
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from catalog.errors import (
    NotAcceptableError,
    UnsupportedApiVersionError,
    UnsupportedMediaTypeError,
    UnsupportedOperationError,
    UpstreamUnavailableError,
)
from catalog.pipeline.negotiation import PROBLEM_JSON, render_json
from models import ExceptionDetail, ProblemDetails

logger = logging.getLogger(__name__)

EXCEPTION_STATUS_MAP: list[tuple[type[BaseException], int]] = [
    (UnsupportedApiVersionError, 400),
    (NotAcceptableError, 406),
    (UnsupportedMediaTypeError, 415),
    (NotImplementedError, 501),
    (UpstreamUnavailableError, 503),
    (ConnectionError, 503),
    (Exception, 500),
]

RETHROWN: tuple[type[BaseException], ...] = (UnsupportedOperationError,)

# Exceptions whose message is written for clients and safe to expose outside development.
_CLIENT_FACING = (UnsupportedApiVersionError, NotAcceptableError, UnsupportedMediaTypeError)


def status_for_exception(exc: BaseException) -> int | None:
    for exc_type, status in EXCEPTION_STATUS_MAP:
        if isinstance(exc, exc_type):
            return status
    return None


def problem_type(status: int) -> str:
    return f"https://httpstatuses.io/{status}"


def build_problem(
    status: int,
    *,
    detail: str | None = None,
    instance: str | None = None,
    title: str | None = None,
) -> ProblemDetails:
    return ProblemDetails(
        type=problem_type(status),
        title=title or HTTPStatus(status).phrase,
        status=status,
        detail=detail,
        instance=instance,
    )


def exception_details(exc: BaseException) -> list[ExceptionDetail]:
    """The exception and its causes, outermost first."""
    details = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        details.append(
            ExceptionDetail(
                type=type(current).__qualname__,
                message=str(current),
                stack_trace=[
                    line.rstrip("\n")
                    for line in traceback.format_tb(current.__traceback__)
                ],
            )
        )
        current = current.__cause__ or current.__context__
    return details


def problem_response(
    problem: ProblemDetails,
    *,
    pretty: bool = False,
    headers: dict[str, str] | None = None,
) -> Response:
    return Response(
        content=render_json(
            problem.model_dump(mode="json", by_alias=True, exclude_none=True),
            pretty=pretty,
        ),
        status_code=problem.status,
        media_type=PROBLEM_JSON,
        headers=headers,
    )


class ProblemDetailsMiddleware:
    """Turns exceptions escaping the application into problem responses."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        include_exception_details: bool = False,
        pretty: bool = False,
        logger: logging.Logger = logger,
    ) -> None:
        self.app = app
        self.include_exception_details = include_exception_details
        self.pretty = pretty
        self.logger = logger

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except RETHROWN:
            raise
        except Exception as exc:
            if response_started:
                self.logger.error(
                    "Unhandled exception after the response started; cannot write problem details",
                    exc_info=exc,
                )
                raise
            response = self.translate(exc, instance=scope.get("path"))
            await response(scope, receive, send)

    def translate(self, exc: Exception, *, instance: str | None = None) -> Response:
        status = status_for_exception(exc) or 500
        if status >= 500:
            self.logger.error("Unhandled %s mapped to %d", type(exc).__name__, status, exc_info=exc)
        else:
            self.logger.warning("%s mapped to %d: %s", type(exc).__name__, status, exc)

        detail = None
        if isinstance(exc, _CLIENT_FACING) or self.include_exception_details:
            detail = str(exc) or None
        problem = build_problem(status, detail=detail, instance=instance)
        if self.include_exception_details:
            problem = problem.model_copy(update={"exception_details": exception_details(exc)})
        return problem_response(problem, pretty=self.pretty)


def install_problem_handlers(app: FastAPI, *, pretty: bool = False) -> None:
    """Render framework HTTP and validation errors as problem details."""

    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
        problem = build_problem(
            exc.status_code,
            detail=_http_detail(exc),
            instance=request.url.path,
        )
        return problem_response(problem, pretty=pretty, headers=getattr(exc, "headers", None))

    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> Response:
        messages = [
            f"{'.'.join(str(p) for p in error.get('loc', ()))}: {error.get('msg', '')}"
            for error in exc.errors()
        ]
        problem = build_problem(400, detail="; ".join(messages), instance=request.url.path)
        return problem_response(problem, pretty=pretty)

    async def client_error_handler(request: Request, exc: Exception) -> Response:
        status = status_for_exception(exc) or 400
        logger.warning("%s mapped to %d: %s", type(exc).__name__, status, exc)
        problem = build_problem(status, detail=str(exc) or None, instance=request.url.path)
        return problem_response(problem, pretty=pretty)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    for exc_type in _CLIENT_FACING:
        app.add_exception_handler(exc_type, client_error_handler)


def _http_detail(exc: StarletteHTTPException) -> str | None:
    if not isinstance(exc.detail, str) or exc.detail == HTTPStatus(exc.status_code).phrase:
        return None
    return exc.detail
