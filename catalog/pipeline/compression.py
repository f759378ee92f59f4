"""
Response compression.

Negotiates Brotli, gzip or deflate against Accept-Encoding and compresses
responses whose content type is on the MIME allow-list. Responses are buffered before
compressing; every body this service produces is small.

Over https nothing is compressed unless enable_for_https is set, because
compressed secrets in encrypted responses leak through their length (BREACH).
"""
from __future__ import annotations

import gzip
import zlib
from collections.abc import Iterable

import brotli
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

# Tried in this order when the client rates several encodings equally.
PROVIDERS = ("br", "gzip", "deflate")

DEFAULT_MIME_TYPES = (
    "text/plain",
    "text/css",
    "application/javascript",
    "text/html",
    "application/xml",
    "text/xml",
    "application/json",
    "text/json",
    "application/wasm",
)


def select_encoding(accept_encoding: str | None) -> str | None:
    """Return the best supported encoding for the header, or None for identity."""
    if not accept_encoding:
        return None
    qualities: dict[str, float] = {}
    for part in accept_encoding.split(","):
        coding, *params = [p.strip() for p in part.split(";")]
        if not coding:
            continue
        quality = 1.0
        for param in params:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        qualities[coding.lower()] = quality

    best: str | None = None
    best_quality = 0.0
    for provider in PROVIDERS:
        quality = qualities.get(provider, qualities.get("*", 0.0))
        if quality > best_quality:
            best, best_quality = provider, quality
    return best


def compress(body: bytes, encoding: str, level: int) -> bytes:
    if encoding == "br":
        return brotli.compress(body, quality=level)
    if encoding == "gzip":
        return gzip.compress(body, compresslevel=level, mtime=0)
    if encoding == "deflate":
        return zlib.compress(body, level)
    raise ValueError(f"Unsupported encoding: {encoding}")


class CompressionMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        *,
        mime_types: Iterable[str] = (),
        enable_for_https: bool = False,
        level: int = 6,
    ) -> None:
        self.app = app
        self.mime_types = frozenset(
            m.lower() for m in (*mime_types, *DEFAULT_MIME_TYPES)
        )
        self.enable_for_https = enable_for_https
        self.level = level

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        if scope.get("scheme") == "https" and not self.enable_for_https:
            await self.app(scope, receive, send)
            return

        encoding = select_encoding(Headers(scope=scope).get("accept-encoding"))
        start_message: Message | None = None
        chunks: list[bytes] = []

        async def send_wrapper(message: Message) -> None:
            nonlocal start_message
            if message["type"] == "http.response.start":
                start_message = message
                return
            if message["type"] != "http.response.body" or start_message is None:
                await send(message)
                return
            chunks.append(message.get("body", b""))
            if message.get("more_body", False):
                return
            await self._send_buffered(start_message, b"".join(chunks), encoding, send)

        await self.app(scope, receive, send_wrapper)

    def _compressible(self, headers: MutableHeaders) -> bool:
        if "content-encoding" in headers:
            return False
        content_type = headers.get("content-type", "").split(";", 1)[0].strip().lower()
        return content_type in self.mime_types

    async def _send_buffered(
        self, start: Message, body: bytes, encoding: str | None, send: Send
    ) -> None:
        headers = MutableHeaders(raw=list(start["headers"]))
        if self._compressible(headers):
            headers.add_vary_header("Accept-Encoding")
            if encoding is not None and body:
                body = compress(body, encoding, self.level)
                headers["Content-Encoding"] = encoding
                headers["Content-Length"] = str(len(body))
        await send({**start, "headers": headers.raw})
        await send({"type": "http.response.body", "body": body, "more_body": False})
