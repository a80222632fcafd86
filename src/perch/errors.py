"""Perch exception hierarchy.

Shared across Router, App, dispatcher, pipeline, and jsondb so every module
raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app configuration is invalid.

    Typically raised during route registration or ``App._freeze()`` at startup.
    """


class InvalidPattern(ConfigurationError):  # noqa: N818 (mirrors the routing vocabulary)
    """A route pattern is malformed (e.g. optional parameter before a required one)."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid route pattern {pattern!r}: {reason}")


class DocumentError(PerchError):
    """The jsondb document could not be read or is not a JSON object."""


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers, pipeline stages, or the jsondb engine. The ASGI
    handler catches these and dispatches to the matching ``@app.error()``
    handler, or renders ``detail`` as plain text.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """400 — the request is structurally invalid for the addressed resource."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class NotFound(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """404 — no route matched, or a lookup resolved to nothing."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """413 — the request body exceeds ``AppConfig.max_content_length``."""

    def __init__(self, detail: str = "Payload Too Large") -> None:
        super().__init__(status=413, detail=detail)


class UnprocessableEntity(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """422 — the request is well-formed but cannot be applied (e.g. POST to an item)."""

    def __init__(self, detail: str = "Unprocessable Entity") -> None:
        super().__init__(status=422, detail=detail)
