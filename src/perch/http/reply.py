"""Handler replies and their normalization into a wire ``Response``.

A ``Reply`` is what a handler (or a terminating pipeline stage) produces::

    Reply({"id": 1})                      # 200, application/json
    Reply("created", status=201)          # 201, text/plain
    Reply(lambda props: props["params"])  # deferred, resolved with props

The body is a closed variant: ``Value`` holds data, ``Deferred`` holds a
callable that is invoked once with the props bag. Plain values and
callables are wrapped automatically.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from perch._internal.invoke import invoke
from perch.http.response import Response

JSON_TYPE = "application/json"
TEXT_TYPE = "text/plain; charset=utf-8"
BINARY_TYPE = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class Value:
    """A ready body value."""

    data: Any


@dataclass(frozen=True, slots=True)
class Deferred:
    """A body computed from the props bag (sync or async)."""

    func: Callable[[Mapping[str, Any]], Any]


type Body = Value | Deferred


def as_body(resp: Any) -> Body:
    """Wrap a raw ``resp`` into the closed ``Value | Deferred`` variant."""
    if isinstance(resp, Value | Deferred):
        return resp
    if callable(resp):
        return Deferred(resp)
    return Value(resp)


@dataclass(frozen=True, slots=True)
class Reply:
    """A terminal response: body, optional status, optional content type."""

    resp: Any = None
    status: int | None = None
    type: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "resp", as_body(self.resp))

    @property
    def body(self) -> Body:
        return self.resp

    @property
    def resolved(self) -> bool:
        return isinstance(self.resp, Value)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Reply:
        """Build a Reply from a ``{"resp", "status"?, "type"?}`` mapping."""
        return cls(data.get("resp"), status=data.get("status"), type=data.get("type"))


async def resolve_reply(reply: Reply, props: Mapping[str, Any]) -> Reply:
    """Resolve a ``Deferred`` body exactly once.

    The callable's result becomes a ``Value`` even if it is itself callable.
    A ``Reply`` returned by the callable contributes its status and type
    where the outer reply left them unset.
    """
    match reply.body:
        case Value():
            return reply
        case Deferred(func=func):
            data = await invoke(func, props)
            if isinstance(data, Reply):
                inner = data.body.data if isinstance(data.body, Value) else data.body.func
                return Reply(
                    Value(inner),
                    status=reply.status if reply.status is not None else data.status,
                    type=reply.type or data.type,
                )
            return replace(reply, resp=Value(data))


def to_response(reply: Reply, *, default_status: int = 200) -> Response:
    """Serialize a resolved ``Reply`` into a ``Response``.

    Dispatch order:

    1. ``dict`` / ``list`` -> ``application/json``
    2. ``bytes``           -> ``application/octet-stream``
    3. ``None``            -> empty body (204 unless a status is given)
    4. anything else      -> ``str(value)`` as ``text/plain``

    An explicit ``type`` on the reply overrides the inferred content type.
    """
    if not isinstance(reply.body, Value):
        msg = "Reply body must be resolved before serialization; call resolve_reply() first."
        raise TypeError(msg)

    data = reply.body.data
    status = reply.status
    match data:
        case dict() | list():
            body: str | bytes = json_module.dumps(data, ensure_ascii=False)
            content_type = JSON_TYPE
        case bytes():
            body, content_type = data, BINARY_TYPE
        case None:
            body, content_type = "", TEXT_TYPE
            if status is None and default_status == 200:
                status = 204
        case str():
            body, content_type = data, TEXT_TYPE
        case bool():
            body, content_type = ("true" if data else "false"), TEXT_TYPE
        case _:
            body, content_type = str(data), TEXT_TYPE

    return Response(
        body=body,
        status=status if status is not None else default_status,
        content_type=reply.type or content_type,
    )
