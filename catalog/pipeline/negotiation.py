"""
Content negotiation and JSON rendering.

Responses are JSON only. `text/json` and plain text are not offered, so an
Accept header naming only those (or anything else unsupported) is answered
with 406.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import simplejson
from fastapi import Request
from fastapi.responses import Response

from catalog.errors import NotAcceptableError, UnsupportedMediaTypeError

JSON = "application/json"
PROBLEM_JSON = "application/problem+json"
RESTFUL_JSON = "application/vnd.restful+json"
JSON_PATCH = "application/json-patch+json"

# Preference order when the client accepts several of them equally.
OUTPUT_MEDIA_TYPES = [RESTFUL_JSON, PROBLEM_JSON, JSON]
INPUT_MEDIA_TYPES = [JSON_PATCH, RESTFUL_JSON, JSON]


def _media_type(value: str) -> str:
    return value.split(";", 1)[0].strip().lower()


def parse_accept(header: str) -> list[tuple[str, float]]:
    """
    Split an Accept header into (media range, quality) pairs, highest quality
    first. Ties keep header order. Malformed q values count as 1.0.
    """
    ranges: list[tuple[str, float]] = []
    for part in header.split(","):
        if not part.strip():
            continue
        media_range, *params = [p.strip() for p in part.split(";")]
        quality = 1.0
        for param in params:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 1.0
        ranges.append((media_range.lower(), quality))
    return sorted(ranges, key=lambda item: item[1], reverse=True)


def negotiate(
    accept: str | None,
    supported: list[str] = OUTPUT_MEDIA_TYPES,
    default: str = JSON,
) -> str:
    """Pick the response media type for `accept` or raise NotAcceptableError."""
    if accept is None or not accept.strip():
        return default
    for media_range, quality in parse_accept(accept):
        if quality <= 0:
            continue
        if media_range in ("*/*", "application/*"):
            return default
        if media_range in supported:
            return media_range
    raise NotAcceptableError(accept, supported)


def check_request_media_type(
    content_type: str | None, has_body: bool, supported: list[str] = INPUT_MEDIA_TYPES
) -> None:
    if not has_body:
        return
    media_type = _media_type(content_type or "")
    if media_type not in supported:
        raise UnsupportedMediaTypeError(content_type or "", supported)


def _has_body(request: Request) -> bool:
    if "transfer-encoding" in request.headers:
        return True
    length = request.headers.get("content-length")
    if not length:
        return False
    try:
        return int(length) > 0
    except ValueError:
        # Unparseable length; assume a body was sent.
        return True


def negotiated_media_type(request: Request) -> str:
    """FastAPI dependency: validates the request body type and negotiates the response type."""
    has_body = _has_body(request)
    check_request_media_type(request.headers.get("content-type"), has_body)
    return negotiate(request.headers.get("accept"))


def render_json(content: Any, *, pretty: bool = False) -> bytes:
    """Decimals are written as JSON numbers with their exact digits."""
    return simplejson.dumps(
        content,
        use_decimal=True,
        ensure_ascii=False,
        allow_nan=False,
        indent=2 if pretty else None,
        separators=None if pretty else (",", ":"),
    ).encode("utf-8")


def json_response(
    content: Any,
    *,
    media_type: str = JSON,
    status_code: int = 200,
    pretty: bool = False,
    headers: Mapping[str, str] | None = None,
) -> Response:
    return Response(
        content=render_json(content, pretty=pretty),
        status_code=status_code,
        media_type=media_type,
        headers=dict(headers) if headers else None,
    )
