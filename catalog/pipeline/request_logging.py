"""
One log line per request: method, path, status and elapsed time.

When an exception escapes before a response starts, the logged status is the
one the problem-details middleware will answer with.
"""
from __future__ import annotations

import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from catalog.pipeline.problem_details import status_for_exception

logger = logging.getLogger("catalog.requests")


class RequestLoggingMiddleware:
    def __init__(self, app: ASGIApp, *, logger: logging.Logger = logger) -> None:
        self.app = app
        self.logger = logger

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status_code: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if status_code is None:
                status_code = status_for_exception(exc)
            raise
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            if status_code is None:
                status_code = 500
            self.logger.info(
                "HTTP %s %s responded %d in %.4f ms",
                scope["method"],
                scope["path"],
                status_code,
                elapsed_ms,
                extra={
                    "request_method": scope["method"],
                    "request_path": scope["path"],
                    "status_code": status_code,
                    "elapsed_ms": elapsed_ms,
                },
            )
