"""ASGI handler — the dispatcher.

The only component that touches raw ASGI directly. Converts the scope to a
typed Request, resolves the route, builds the initial props bag, runs the
handler, and sends the normalized Response back through ASGI send().
"""

import json as json_module
import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.errors import HTTPError
from perch.http.reply import Reply, resolve_reply, to_response
from perch.http.request import Request
from perch.middleware.protocol import Props, Terminal, make_props
from perch.routing.route import RouteMatch
from perch.routing.router import Router
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.sender import send_response

logger = logging.getLogger("perch.server")

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool = False,
    max_content_length: int = 0,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive, max_body=max_content_length)
    extra_headers: tuple[tuple[str, str], ...] = ()

    try:
        match = router.match(request.method, request.path)
        props = await build_props(request, match)
        reply = await run_handler(match.route.handler, props)
        response = to_response(reply, default_status=404 if match.not_found else 200)
    except HTTPError as exc:
        reply, extra_headers = await handle_http_error(exc, request, error_handlers)
        response = to_response(await resolve_reply(reply, {}), default_status=exc.status)
    except Exception as exc:
        reply = await handle_internal_error(exc, request, error_handlers, debug)
        response = to_response(await resolve_reply(reply, {}), default_status=500)

    for name, value in extra_headers:
        response = response.with_header(name, value)

    logger.debug("%d %s %s", response.status, request.method, request.path)
    await send_response(response, send)


async def run_handler(handler: Callable[..., Any], props: Props) -> Reply:
    """Invoke *handler* (sync or async) and resolve its reply exactly once.

    Composed pipelines already return resolved replies; plain handlers may
    return a ``Reply``, a ``Terminal``, a ``{"resp": ...}`` mapping, or a
    bare value used as the body.
    """
    result = await invoke(handler, props)
    match result:
        case Reply():
            reply = result
        case Terminal(reply=terminal):
            reply = terminal
        case Mapping() if "resp" in result:
            reply = Reply.from_mapping(result)
        case _:
            reply = Reply(result)
    return await resolve_reply(reply, props)


async def build_props(request: Request, match: RouteMatch) -> Props:
    """Build the initial props bag for *match*.

    Keys: ``request``, ``method``, ``path``, ``body``, ``has_body``,
    ``params``, ``query``, ``matched_path``, ``path_pattern``, plus the
    route's custom extras (reserved keys excluded). Extras never override
    the built-in keys. ``params`` and ``query`` are read-only mappings.
    """
    body, has_body = None, False
    if request.method in BODY_METHODS:
        has_body = bool(await request.body())
        body = await read_body(request)
    return make_props(
        {
            **match.route.public_extras(),
            "request": request,
            "method": request.method,
            "path": request.path,
            "body": body,
            "has_body": has_body,
            "params": MappingProxyType(dict(match.params)),
            "query": MappingProxyType(request.query.to_dict()),
            "matched_path": match.matched_path,
            "path_pattern": match.route.path,
        }
    )


async def read_body(request: Request) -> Any:
    """Parse the request body: JSON when possible, UTF-8 text otherwise.

    An empty body is ``None``. A body declared as JSON that does not parse
    raises ``BadRequest``.
    """
    raw = await request.body()
    if not raw:
        return None
    if "json" in (request.content_type or ""):
        return await request.json()
    try:
        return json_module.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")
