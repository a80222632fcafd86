"""Path pattern parsing and positional matching.

Patterns are ``/``-separated. A segment starting with ``:`` is a parameter;
a trailing ``?`` makes it optional::

    "/users"               -> [PathSegment("users")]
    "/users/:id"           -> [PathSegment("users"), PathSegment(":id", is_param=True, ...)]
    "/posts/:slug/:page?"  -> [..., PathSegment(":page?", is_param=True, optional=True)]

Optional parameters may only form a trailing run. Matching is positional
and exact for literal segments; there is no backtracking.
"""

from dataclasses import dataclass

from perch.errors import InvalidPattern
from perch.routing.route import MatchedPath, PathSegment


def split_path(path: str) -> list[str]:
    """Split a concrete path into its non-empty segments."""
    return [part for part in path.split("/") if part]


def parse_pattern(pattern: str) -> list[PathSegment]:
    """Parse a route pattern string into segments.

    Raises ``InvalidPattern`` for empty parameter names, duplicate names,
    or an optional parameter followed by anything non-optional.
    """
    segments: list[PathSegment] = []
    seen: set[str] = set()
    for part in split_path(pattern):
        if not part.startswith(":"):
            if segments and segments[-1].optional:
                raise InvalidPattern(pattern, f"literal {part!r} follows an optional parameter")
            segments.append(PathSegment(value=part))
            continue

        optional = part.endswith("?")
        name = part[1:-1] if optional else part[1:]
        if not name:
            raise InvalidPattern(pattern, f"parameter {part!r} has no name")
        if name in seen:
            raise InvalidPattern(pattern, f"parameter {name!r} appears more than once")
        if not optional and segments and segments[-1].optional:
            raise InvalidPattern(
                pattern, f"required parameter {name!r} follows an optional parameter"
            )
        seen.add(name)
        segments.append(PathSegment(value=part, is_param=True, param_name=name, optional=optional))
    return segments


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A parsed pattern ready for matching.

    Usage::

        compiled = compile_pattern("/users/:id/:tab?")
        compiled.match("/users/42")        # ({"id": "42"}, MatchedPath("/users/42", 0))
        compiled.match("/users/42/posts")  # ({"id": "42", "tab": "posts"}, ...)
        compiled.match("/users")           # None
    """

    pattern: str
    segments: tuple[PathSegment, ...]
    required: int

    def match(self, path: str) -> tuple[dict[str, str], MatchedPath] | None:
        """Match *path*; return ``(params, matched_path)`` or ``None``."""
        parts = split_path(path)
        if not self.required <= len(parts) <= len(self.segments):
            return None

        params: dict[str, str] = {}
        for segment, part in zip(self.segments, parts, strict=False):
            if segment.is_param:
                params[segment.param_name or ""] = part
            elif segment.value != part:
                return None
        return params, MatchedPath(path=path, index=0)


def compile_pattern(pattern: str) -> CompiledPattern:
    """Compile *pattern*, failing fast with ``InvalidPattern``."""
    segments = tuple(parse_pattern(pattern))
    required = sum(1 for seg in segments if not seg.optional)
    return CompiledPattern(pattern=pattern, segments=segments, required=required)
