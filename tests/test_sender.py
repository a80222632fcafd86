"""Tests for perch.server.sender — Response to ASGI messages."""

from typing import Any

from perch.http.response import Response
from perch.server.sender import send_response


async def _send(response: Response) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []

    async def send(message: dict[str, Any]) -> None:
        messages.append(message)

    await send_response(response, send)
    return messages


class TestSendResponse:
    async def test_start_and_body(self) -> None:
        start, body = await _send(Response("hi", content_type="text/plain"))
        assert start["type"] == "http.response.start"
        assert start["status"] == 200
        assert (b"content-type", b"text/plain") in start["headers"]
        assert (b"content-length", b"2") in start["headers"]
        assert body == {"type": "http.response.body", "body": b"hi"}

    async def test_extra_headers_lowercased(self) -> None:
        start, _ = await _send(Response("x").with_header("X-Trace", "abc"))
        assert (b"x-trace", b"abc") in start["headers"]

    async def test_no_body_status(self) -> None:
        start, body = await _send(Response("ignored", status=204))
        assert body["body"] == b""
        assert (b"content-length", b"0") in start["headers"]

    async def test_utf8_length(self) -> None:
        start, _ = await _send(Response("é"))
        assert (b"content-length", b"2") in start["headers"]
