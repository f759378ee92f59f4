"""
Response caching for safe reads.

Only GET responses the application marks `Cache-Control: public, max-age=N`
are stored, keyed by path, query string, Accept and Accept-Encoding. The
cache sits outside compression, so the stored body is already encoded for the
Accept-Encoding it was produced for. Requests sending
`Cache-Control: no-cache` or `no-store` skip the cache. Hits are replayed with
an `Age` header.
"""
from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

_UNCACHEABLE_DIRECTIVES = {"no-store", "no-cache", "private"}

# (path, query string, Accept, Accept-Encoding)
CacheKey = tuple[str, str, str, str]


def parse_cache_control(value: str | None) -> dict[str, str | None]:
    directives: dict[str, str | None] = {}
    if not value:
        return directives
    for part in value.split(","):
        name, sep, arg = part.strip().partition("=")
        if name:
            directives[name.lower()] = arg.strip('"') if sep else None
    return directives


def freshness_lifetime(directives: dict[str, str | None]) -> int | None:
    """Seconds a response may be served from cache, or None if it must not be stored."""
    if "public" not in directives or _UNCACHEABLE_DIRECTIVES & directives.keys():
        return None
    raw = directives.get("s-maxage") or directives.get("max-age")
    try:
        lifetime = int(raw) if raw is not None else 0
    except ValueError:
        return None
    return lifetime if lifetime > 0 else None


@dataclass(frozen=True)
class CachedResponse:
    status: int
    headers: list[tuple[bytes, bytes]]
    body: bytes
    stored_at: float
    lifetime: int


class ResponseCacheMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        *,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.app = app
        self.max_entries = max_entries
        self.clock = clock
        self._entries: OrderedDict[CacheKey, CachedResponse] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in ("GET", "HEAD"):
            await self.app(scope, receive, send)
            return

        request_headers = Headers(scope=scope)
        request_directives = parse_cache_control(request_headers.get("cache-control"))
        key = (
            scope["path"],
            scope.get("query_string", b"").decode("latin-1"),
            request_headers.get("accept", ""),
            request_headers.get("accept-encoding", ""),
        )

        if not ({"no-cache", "no-store"} & request_directives.keys()):
            cached = self._lookup(key)
            if cached is not None:
                await self._replay(cached, scope["method"] == "HEAD", send)
                return

        if scope["method"] == "HEAD" or "no-store" in request_directives:
            await self.app(scope, receive, send)
            return

        start_message: Message | None = None
        chunks: list[bytes] = []
        lifetime: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal start_message, lifetime
            if message["type"] == "http.response.start":
                start_message = message
                lifetime = self._storable_lifetime(message)
            elif message["type"] == "http.response.body" and lifetime is not None:
                chunks.append(message.get("body", b""))
                if not message.get("more_body", False) and start_message is not None:
                    self._store(key, start_message, b"".join(chunks), lifetime)
            await send(message)

        await self.app(scope, receive, send_wrapper)

    def _storable_lifetime(self, start: Message) -> int | None:
        if start["status"] != 200:
            return None
        headers = Headers(raw=start.get("headers", []))
        if "set-cookie" in headers or headers.get("vary", "").strip() == "*":
            return None
        return freshness_lifetime(parse_cache_control(headers.get("cache-control")))

    def _lookup(self, key: CacheKey) -> CachedResponse | None:
        cached = self._entries.get(key)
        if cached is None:
            return None
        if self.clock() - cached.stored_at >= cached.lifetime:
            del self._entries[key]
            return None
        return cached

    def _store(self, key: CacheKey, start: Message, body: bytes, lifetime: int) -> None:
        self._entries[key] = CachedResponse(
            status=start["status"],
            headers=list(start.get("headers", [])),
            body=body,
            stored_at=self.clock(),
            lifetime=lifetime,
        )
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        logger.debug("Cached %s for %ds", key[0], lifetime)

    async def _replay(self, cached: CachedResponse, head_only: bool, send: Send) -> None:
        headers = MutableHeaders(raw=list(cached.headers))
        headers["Age"] = str(int(self.clock() - cached.stored_at))
        await send({"type": "http.response.start", "status": cached.status, "headers": headers.raw})
        await send({"type": "http.response.body", "body": b"" if head_only else cached.body})
