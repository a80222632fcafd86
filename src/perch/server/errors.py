"""Turning exceptions into replies.

``HTTPError`` subclasses carry their own status; anything else is a 500.
Either way a handler registered with ``@app.error(...)`` gets the first
chance to build the reply.
"""

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from perch._internal.invoke import invoke
from perch.errors import HTTPError
from perch.http.reply import Reply
from perch.http.request import Request

logger = logging.getLogger("perch.server")

type ErrorHandlers = Mapping[int | type, Callable[..., Any]]


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
    status: int,
) -> Reply:
    """Run a user error handler, passing as many of (request, exc) as it takes.

    The handler may be sync or async and may return a ``Reply`` or a bare
    body. A reply without a status gets *status*.
    """
    arity = len(inspect.signature(handler).parameters)
    result = await invoke(handler, *(request, exc)[:arity])
    reply = result if isinstance(result, Reply) else Reply(result)
    if reply.status is None:
        reply = Reply(reply.resp, status=status, type=reply.type)
    return reply


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: ErrorHandlers,
) -> tuple[Reply, tuple[tuple[str, str], ...]]:
    """Reply for an ``HTTPError``, plus the headers the error asks for.

    Handlers are looked up by exception class first, then by status code.
    Without one, ``detail`` is sent as plain text.
    """
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is None:
        return Reply(exc.detail or f"Error {exc.status}", status=exc.status), exc.headers
    return await call_error_handler(handler, request, exc, exc.status), exc.headers


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: ErrorHandlers,
    debug: bool,
) -> Reply:
    """Log *exc* with its traceback and build the 500 reply.

    The exception text is only exposed when *debug* is on.
    """
    logger.exception("500 %s %s", request.method, request.path)

    handler = error_handlers.get(type(exc)) or error_handlers.get(500)
    if handler is not None:
        return await call_error_handler(handler, request, exc, 500)
    if debug:
        return Reply(f"Internal Server Error: {type(exc).__name__}: {exc}", status=500)
    return Reply("Internal Server Error", status=500)
