"""In-process client for exercising a perch app from async tests.

Requests go straight into the app's ASGI callable; replies come back as
the same ``Response`` type the dispatcher serializes.
"""

from __future__ import annotations

import inspect
import json as json_module
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

from perch.app import App
from perch.http.response import Response


def _http_scope(
    method: str,
    path: str,
    query_string: str,
    headers: Mapping[str, str],
) -> dict[str, Any]:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query_string.encode("latin-1"),
        "root_path": "",
        "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers.items()],
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 0),
    }


class _Exchange:
    """One request/response round trip over the ASGI message protocol."""

    __slots__ = ("body", "chunks", "delivered", "headers", "status")

    def __init__(self, body: bytes) -> None:
        self.body = body
        self.delivered = False
        self.status = 500
        self.headers: list[tuple[bytes, bytes]] = []
        self.chunks: list[bytes] = []

    async def receive(self) -> dict[str, Any]:
        if self.delivered:
            return {"type": "http.disconnect"}
        self.delivered = True
        return {"type": "http.request", "body": self.body, "more_body": False}

    async def send(self, message: dict[str, Any]) -> None:
        match message["type"]:
            case "http.response.start":
                self.status = message["status"]
                self.headers = list(message.get("headers", ()))
            case "http.response.body":
                self.chunks.append(message.get("body", b""))

    def response(self) -> Response:
        content_type = ""
        extra: list[tuple[str, str]] = []
        for raw_name, raw_value in self.headers:
            name, value = raw_name.decode("latin-1"), raw_value.decode("latin-1")
            if name == "content-type":
                content_type = value
            elif name != "content-length":
                extra.append((name, value))
        return Response(
            body=b"".join(self.chunks),
            status=self.status,
            content_type=content_type,
            headers=tuple(extra),
        )


class TestClient:
    """Drive a perch app in-process, with lifespan hooks around the block.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/api/laptops", query={"brand": "lenovo"})
            assert response.json()[0]["id"] == 123
    """

    __test__ = False  # not a pytest test class

    __slots__ = ("app",)

    def __init__(self, app: App) -> None:
        self.app = app

    async def __aenter__(self) -> TestClient:
        self.app._ensure_frozen()
        await self.app.startup()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.app.shutdown()

    async def get(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query: Mapping[str, str] | None = None,
    ) -> Response:
        return await self.request("GET", path, headers=headers, query=query)

    async def post(self, path: str, **kwargs: Any) -> Response:
        """POST with ``body=`` (bytes or text) or ``json=`` (any JSON value)."""
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, *, headers: Mapping[str, str] | None = None) -> Response:
        return await self.request("DELETE", path, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query: Mapping[str, str] | None = None,
        body: bytes | str | None = None,
        json: Any = None,
    ) -> Response:
        """Send one request and collect the full response.

        *query* is appended to any query string already in *path*. A
        ``json`` payload is encoded and labelled ``application/json``;
        explicit *headers* win over that label.
        """
        path, _, query_string = path.partition("?")
        if query:
            query_string = "&".join(filter(None, (query_string, urlencode(dict(query)))))

        sent_headers: dict[str, str] = {}
        if json is not None:
            body = json_module.dumps(json)
            sent_headers["content-type"] = "application/json"
        sent_headers.update(headers or {})
        payload = body.encode("utf-8") if isinstance(body, str) else body or b""

        exchange = _Exchange(payload)
        await self.app(
            _http_scope(method, path, query_string, sent_headers),
            exchange.receive,
            exchange.send,
        )
        return exchange.response()


async def call_lifespan(app: App, *events: str) -> list[dict[str, Any]]:
    """Feed ``lifespan.<event>`` messages to *app*; return what it sent back."""
    pending = [{"type": f"lifespan.{event}"} for event in events]
    replies: list[dict[str, Any]] = []

    async def receive() -> dict[str, Any]:
        return pending.pop(0)

    async def send(message: dict[str, Any]) -> None:
        replies.append(message)

    result = app({"type": "lifespan", "asgi": {"version": "3.0"}}, receive, send)
    if inspect.isawaitable(result):
        await result
    return replies
