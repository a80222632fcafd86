"""Route, MatchedPath, and RouteMatch frozen dataclasses."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

type MountKind = Literal["pattern", "prefix"]

# Route keys that never leak into the props bag
RESERVED_KEYS: frozenset[str] = frozenset({"path", "resp", "use", "root"})


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Literal:   ``/users``   (is_param=False)
    Required:  ``/:id``     (is_param=True, param_name="id")
    Optional:  ``/:page?``  (is_param=True, param_name="page", optional=True)
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    optional: bool = False


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition.

    ``mount="pattern"`` routes are matched segment by segment for a single
    method. ``mount="prefix"`` routes (responders) claim every path that
    starts with ``path``, whatever the method.
    """

    method: str
    path: str
    handler: Callable[..., Any]
    mount: MountKind = "pattern"
    extras: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.extras, MappingProxyType):
            object.__setattr__(self, "extras", MappingProxyType(dict(self.extras)))

    @property
    def is_responder(self) -> bool:
        return self.mount == "prefix"

    def public_extras(self) -> dict[str, Any]:
        """Custom keys forwarded verbatim into the props bag."""
        return {k: v for k, v in self.extras.items() if k not in RESERVED_KEYS}


@dataclass(frozen=True, slots=True)
class MatchedPath:
    """The portion of the request path a route claimed, and where it starts."""

    path: str
    index: int = 0


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of resolving a request against the route table."""

    route: Route
    params: dict[str, str]
    matched_path: MatchedPath
    not_found: bool = False
