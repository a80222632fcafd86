"""Stage protocol, props bag, and the Continue / Terminal tags.

A stage is any callable matching::

    def stage(props: Props) -> Mapping | Continue | Terminal: ...
    async def stage(props: Props) -> Mapping | Continue | Terminal: ...

No base class required. A plain mapping is an implicit ``Continue``;
``Terminal`` ends the chain with an immediate reply::

    def require_token(props):
        if props["query"].get("token") != "s3cret":
            return Terminal(Reply("Forbidden", status=403))
        return {"user": "admin"}
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol

from perch.http.reply import Reply

# The read-only props bag handed to every stage
type Props = Mapping[str, Any]


def make_props(initial: Mapping[str, Any] | None = None) -> Props:
    """Freeze *initial* into a read-only props bag."""
    return MappingProxyType(dict(initial or {}))


def merge_props(props: Props, partial: Mapping[str, Any]) -> Props:
    """Non-destructive merge: *partial* wins on conflicts, *props* is untouched."""
    return MappingProxyType({**props, **partial})


@dataclass(frozen=True, slots=True)
class Continue:
    """Keep going, merging *props* into the bag."""

    props: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Terminal:
    """Stop the chain and answer with *reply*."""

    reply: Reply

    @classmethod
    def of(cls, resp: Any, *, status: int | None = None, type: str | None = None) -> "Terminal":  # noqa: A002
        return cls(Reply(resp, status=status, type=type))


class Stage(Protocol):
    """Protocol for perch pipeline stages.

    Accepts both functions and callable objects::

        # Function stage
        def with_user(props: Props) -> Mapping[str, Any]:
            return {"user": load_user(props["params"]["id"])}

        # Class stage
        class RequireHeader:
            def __init__(self, name: str) -> None:
                self.name = name

            def __call__(self, props: Props) -> Continue | Terminal:
                ...
    """

    def __call__(self, props: Props) -> Any: ...
