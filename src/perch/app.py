"""Perch application class.

Mutable during setup (routes, mounts, stages, error handlers).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch._internal.types import ErrorHandler, Handler, Stage
from perch.config import AppConfig
from perch.http.reply import Reply
from perch.middleware.pipeline import compose
from perch.routing.pattern import compile_pattern
from perch.routing.route import MountKind, Route
from perch.routing.router import Router
from perch.server.handler import handle_request


@dataclass(slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    method: str
    path: str
    final: Handler
    use: tuple[Stage, ...] = ()
    mount: MountKind = "pattern"
    extras: dict[str, Any] = field(default_factory=dict)
    name: str | None = None


def _respond(resp: Any, status: int | None, type: str | None) -> Handler:  # noqa: A002
    """Final stage answering with a fixed ``resp`` (value or props callable)."""

    def respond(props: Any) -> Reply:
        return Reply(resp, status=status, type=type)

    respond.__qualname__ = getattr(resp, "__qualname__", "respond")
    return respond


class App:
    """The perch application.

    Mutable during setup (route registration, stages, mounts).
    Frozen at runtime when ``app.run()`` or ``__call__()`` is first invoked.

    Usage::

        app = App()

        @app.route("/hello/:name?")
        def hello(props):
            return f"Hello, {props['params'].get('name', 'world')}!"

        app.mount("/api", jsondb("db.json"))

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the app.
    """

    __slots__ = (
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_not_found",
        "_pending_routes",
        # Compiled state (populated by _freeze)
        "_router",
        "_shutdown_hooks",
        "_stages",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_routes: list[_PendingRoute] = []
        self._stages: list[Stage] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._not_found: Reply = Reply(self.config.not_found_body, status=404)
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._router: Router | None = None

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: Sequence[str] | None = None,
        use: Sequence[Stage] = (),
        status: int | None = None,
        type: str | None = None,  # noqa: A002
        name: str | None = None,
        **extras: Any,
    ) -> Callable[[Handler], Handler]:
        """Register a handler via decorator.

        The decorated function receives the final props bag and returns the
        body (or a ``Reply``). Pattern errors raise ``InvalidPattern`` here,
        at registration time.

        Args:
            path: URL pattern. ``:name`` binds a segment, ``:name?`` an
                optional trailing one.
            methods: HTTP methods. Defaults to ``["GET"]``.
            use: Stages run before the handler, in order.
            status: Status for the reply when the handler does not set one.
            type: Content type overriding the inferred one.
            name: Optional route name (introspection only).
            **extras: Custom keys copied into the props bag.
        """

        def decorator(func: Handler) -> Handler:
            self.add(
                path,
                func,
                methods=methods,
                use=use,
                status=status,
                type=type,
                name=name or func.__name__,
                **extras,
            )
            return func

        return decorator

    def add(
        self,
        path: str,
        resp: Any,
        *,
        methods: Sequence[str] | None = None,
        use: Sequence[Stage] = (),
        status: int | None = None,
        type: str | None = None,  # noqa: A002
        name: str | None = None,
        **extras: Any,
    ) -> None:
        """Register a route answering with *resp*.

        *resp* may be any value (strings become ``text/plain``, dicts and
        lists ``application/json``) or a callable receiving the props bag.
        """
        self._check_not_frozen()
        compile_pattern(path)
        final = _respond(resp, status, type)
        for method in methods or ("GET",):
            self._pending_routes.append(
                _PendingRoute(
                    method=method.upper(),
                    path=path,
                    final=final,
                    use=tuple(use),
                    extras=dict(extras),
                    name=name,
                )
            )

    def mount(
        self,
        prefix: str,
        responder: Handler,
        *,
        use: Sequence[Stage] = (),
        name: str | None = None,
        **extras: Any,
    ) -> None:
        """Mount a responder that receives every request under *prefix*.

        Matching is a plain string prefix test and ignores the method.
        Pattern routes are always tried before responders.
        """
        self._check_not_frozen()
        self._pending_routes.append(
            _PendingRoute(
                method="*",
                path=prefix,
                final=responder,
                use=tuple(use),
                mount="prefix",
                extras=dict(extras),
                name=name,
            )
        )

    # -- Stages --

    def use(self, stage: Stage) -> Stage:
        """Add a stage that runs first on every matched route.

        Also usable as a decorator.
        """
        self._check_not_frozen()
        self._stages.append(stage)
        return stage

    # -- Error handlers --

    def not_found(self, resp: Any, *, type: str | None = None) -> None:  # noqa: A002
        """Set the reply for requests that match no route (status 404)."""
        self._check_not_frozen()
        self._not_found = Reply(resp, status=404, type=type)

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Introspection --

    @property
    def routes(self) -> list[Route]:
        """Compiled routes in resolution order (freezes the app)."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router.routes

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Compile the app and serve it with the pounce development server."""
        self._ensure_frozen()

        from perch.server.dev import run_dev_server

        run_dev_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=self.config.debug,
            reload_dirs=self.config.reload_dirs,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        assert self._router is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
            max_content_length=self.config.max_content_length,
        )

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Answer lifespan messages until shutdown.

        Compiling happens before startup hooks run, so a bad route table
        fails the server start instead of the first request.
        """
        self._ensure_frozen()

        while True:
            match (await receive())["type"]:
                case "lifespan.startup":
                    try:
                        await self.startup()
                    except Exception as exc:
                        await send({"type": "lifespan.startup.failed", "message": str(exc)})
                        return
                    await send({"type": "lifespan.startup.complete"})
                case "lifespan.shutdown":
                    await self.shutdown()
                    await send({"type": "lifespan.shutdown.complete"})
                    return

    async def startup(self) -> None:
        """Run startup hooks in registration order."""
        await _run_hooks(self._startup_hooks)

    async def shutdown(self) -> None:
        """Run shutdown hooks in registration order."""
        await _run_hooks(self._shutdown_hooks)

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        stages = tuple(self._stages)
        not_found = self._not_found

        router = Router(
            not_found=Route(
                method="*",
                path="",
                handler=compose(*stages, lambda props: not_found),
                name="not_found",
            )
        )
        for pending in self._pending_routes:
            router.add(
                Route(
                    method=pending.method,
                    path=pending.path,
                    handler=compose(*stages, *pending.use, pending.final),
                    mount=pending.mount,
                    extras=pending.extras,
                    name=pending.name,
                )
            )
        router.compile()
        self._router = router
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, mounts, and stages before calling app.run()."
            )
            raise RuntimeError(msg)


async def _run_hooks(hooks: Sequence[Callable[..., Any]]) -> None:
    for hook in hooks:
        await invoke(hook)
