"""Ordered route table with pattern routes and prefix responders.

Routes are registered during setup and frozen when the app compiles.
Resolution order is fixed:

1. pattern routes registered for the request method, first match wins;
2. prefix responders (any method), first registered prefix wins;
3. the not-found route.
"""

from perch.routing.pattern import CompiledPattern, compile_pattern
from perch.routing.route import MatchedPath, Route, RouteMatch


def _not_found_handler(props: object) -> None:
    return None


DEFAULT_NOT_FOUND = Route(method="*", path="", handler=_not_found_handler, name="not_found")


class Router:
    """Route table with first-match-wins resolution.

    Usage::

        router = Router()
        router.add(Route("GET", "/users/:id", handler))
        router.add(Route("*", "/api", responder, mount="prefix"))
        router.compile()
        match = router.match("GET", "/users/42")
    """

    __slots__ = ("_compiled", "_not_found", "_patterns", "_responders")

    def __init__(self, not_found: Route | None = None) -> None:
        self._patterns: dict[str, list[tuple[CompiledPattern, Route]]] = {}
        self._responders: list[Route] = []
        self._not_found = not_found or DEFAULT_NOT_FOUND
        self._compiled = False

    def add(self, route: Route) -> None:
        """Append a route. Must be called before compile().

        Pattern routes are compiled here so a malformed pattern raises
        ``InvalidPattern`` at registration time.
        """
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        if route.is_responder:
            self._responders.append(route)
            return

        compiled = compile_pattern(route.path)
        self._patterns.setdefault(route.method.upper(), []).append((compiled, route))

    def set_not_found(self, route: Route) -> None:
        """Replace the route used when nothing else matches."""
        if self._compiled:
            msg = "Cannot change the not-found route after compilation."
            raise RuntimeError(msg)
        self._not_found = route

    @property
    def not_found(self) -> Route:
        return self._not_found

    @property
    def routes(self) -> list[Route]:
        """Return all registered routes in resolution order."""
        result = [route for entries in self._patterns.values() for _, route in entries]
        result.extend(self._responders)
        return result

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Resolve a request to a ``RouteMatch``.

        Never raises for unmatched paths: the not-found route is returned
        with ``not_found=True`` instead.
        """
        for compiled, route in self._patterns.get(method.upper(), ()):
            result = compiled.match(path)
            if result is not None:
                params, matched_path = result
                return RouteMatch(route=route, params=params, matched_path=matched_path)

        for route in self._responders:
            if path.startswith(route.path):
                return RouteMatch(
                    route=route,
                    params={},
                    matched_path=MatchedPath(path=route.path, index=0),
                )

        return RouteMatch(
            route=self._not_found,
            params={},
            matched_path=MatchedPath(path=path, index=0),
            not_found=True,
        )
