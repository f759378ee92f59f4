"""Strict-Transport-Security on every response outside development."""
from __future__ import annotations

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send


def hsts_header_value(max_age: int, include_subdomains: bool = True, preload: bool = True) -> str:
    parts = [f"max-age={max_age}"]
    if include_subdomains:
        parts.append("includeSubDomains")
    if preload:
        parts.append("preload")
    return "; ".join(parts)


class StrictTransportSecurityMiddleware:
    def __init__(self, app: ASGIApp, *, max_age: int = 31536000) -> None:
        self.app = app
        self.header_value = hsts_header_value(max_age)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers["Strict-Transport-Security"] = self.header_value
            await send(message)

        await self.app(scope, receive, send_wrapper)
