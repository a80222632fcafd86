"""The incoming request as handlers and stages see it.

Everything known from the ASGI scope is fixed at construction; the body is
pulled from ``receive`` on first use and kept for later calls.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from perch._internal.asgi import Receive, Scope
from perch.errors import BadRequest, PayloadTooLarge
from perch.http.headers import Headers
from perch.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """Request metadata plus lazy, size-limited access to the body.

    Available to every stage as ``props["request"]``.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    http_version: str
    client: tuple[str, int] | None

    _receive: Receive
    # 0 means no limit
    _max_body: int = 0
    # Holds the body once read; the dict itself is mutable
    _cache: dict[str, bytes] = field(default_factory=dict, repr=False, compare=False)

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Path with the raw query string, if any."""
        query = self.query.raw.decode("latin-1")
        return f"{self.path}?{query}" if query else self.path

    async def chunks(self) -> AsyncIterator[bytes]:
        """Yield non-empty body chunks until the client says there are no more."""
        more = True
        while more:
            message = await self._receive()
            if chunk := message.get("body", b""):
                yield chunk
            more = message.get("more_body", False)

    async def body(self) -> bytes:
        """Return the whole body, reading it only once.

        Raises ``PayloadTooLarge`` as soon as the running total passes the
        configured limit.
        """
        cached = self._cache.get("body")
        if cached is not None:
            return cached

        buffer = bytearray()
        async for chunk in self.chunks():
            buffer += chunk
            if self._max_body and len(buffer) > self._max_body:
                raise PayloadTooLarge(f"Request body exceeds {self._max_body} bytes")

        self._cache["body"] = data = bytes(buffer)
        return data

    async def json(self) -> Any:
        """Decode the body as JSON. Malformed JSON raises ``BadRequest``."""
        try:
            return json_module.loads(await self.body())
        except ValueError as exc:
            raise BadRequest(f"Malformed JSON body: {exc}") from exc

    async def text(self) -> str:
        return (await self.body()).decode("utf-8")

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive, *, max_body: int = 0) -> Request:
        """Build a Request from an HTTP scope; the method is upper-cased."""
        peer = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            query=QueryParams(scope.get("query_string", b"")),
            http_version=scope.get("http_version", "1.1"),
            client=(peer[0], peer[1]) if peer else None,
            _receive=receive,
            _max_body=max_body,
        )
