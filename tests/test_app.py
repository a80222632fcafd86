"""Tests for perch.app — registration, freezing, dispatch, and lifespan."""

import pytest

from perch.app import App
from perch.config import AppConfig
from perch.errors import HTTPError, InvalidPattern, NotFound
from perch.http.reply import Reply
from perch.http.request import Request
from perch.middleware import Terminal
from perch.testing import TestClient, call_lifespan


class TestAppRegistration:
    def test_route_decorator(self) -> None:
        app = App()

        @app.route("/")
        def index(props):
            return "hello"

        assert len(app._pending_routes) == 1
        assert app._pending_routes[0].path == "/"
        assert app._pending_routes[0].method == "GET"
        assert app._pending_routes[0].name == "index"

    def test_route_returns_function(self) -> None:
        app = App()

        def index(props):
            return "hello"

        assert app.route("/")(index) is index

    def test_one_route_per_method(self) -> None:
        app = App()
        app.add("/users", "users", methods=["get", "POST"])
        assert [p.method for p in app._pending_routes] == ["GET", "POST"]

    def test_invalid_pattern_at_registration(self) -> None:
        app = App()
        with pytest.raises(InvalidPattern):

            @app.route("/a/:x?/:y")
            def broken(props):
                return None

    def test_mount(self) -> None:
        app = App()
        app.mount("/api", lambda props: Reply("api"))
        assert app._pending_routes[0].mount == "prefix"
        assert app._pending_routes[0].method == "*"

    def test_error_decorator(self) -> None:
        app = App()

        @app.error(404)
        def not_found():
            return "nope"

        assert 404 in app._error_handlers

    def test_routes_lists_compiled_table(self) -> None:
        app = App()
        app.mount("/api", lambda props: Reply("api"), name="api")
        app.add("/", "home", name="home")
        assert [route.name for route in app.routes] == ["home", "api"]


class TestAppFreeze:
    def test_cannot_add_after_freeze(self) -> None:
        app = App()
        app._ensure_frozen()
        with pytest.raises(RuntimeError, match="Cannot modify"):
            app.add("/late", "late")

    def test_cannot_use_after_freeze(self) -> None:
        app = App()
        app._ensure_frozen()
        with pytest.raises(RuntimeError):
            app.use(lambda props: None)

    def test_freeze_is_idempotent(self) -> None:
        app = App()
        app._ensure_frozen()
        router = app._router
        app._ensure_frozen()
        assert app._router is router


class TestDispatch:
    async def test_string_resp(self) -> None:
        app = App()
        app.add("/", "Hello")
        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 200
        assert response.text == "Hello"
        assert response.content_type.startswith("text/plain")

    async def test_object_resp(self) -> None:
        app = App()
        app.add("/info", {"name": "perch"})
        async with TestClient(app) as client:
            response = await client.get("/info")
        assert response.json() == {"name": "perch"}
        assert response.content_type == "application/json"

    async def test_handler_receives_props(self) -> None:
        app = App()

        @app.route("/hello/:name?")
        def hello(props):
            return f"Hello, {props['params'].get('name', 'world')}!"

        async with TestClient(app) as client:
            named = await client.get("/hello/ada")
            anonymous = await client.get("/hello")
        assert named.text == "Hello, ada!"
        assert anonymous.text == "Hello, world!"

    async def test_async_handler_with_status_and_type(self) -> None:
        app = App()

        @app.route("/page", status=201, type="text/html")
        async def page(props):
            return "<p>made</p>"

        async with TestClient(app) as client:
            response = await client.get("/page")
        assert response.status == 201
        assert response.content_type == "text/html"

    async def test_handler_returning_reply(self) -> None:
        app = App()

        @app.route("/teapot")
        def teapot(props):
            return Reply("short and stout", status=418)

        async with TestClient(app) as client:
            response = await client.get("/teapot")
        assert response.status == 418

    async def test_none_resp_is_no_content(self) -> None:
        app = App()
        app.add("/empty", None)
        async with TestClient(app) as client:
            response = await client.get("/empty")
        assert response.status == 204
        assert response.body == b""

    async def test_props_keys(self) -> None:
        seen = {}
        app = App()

        @app.route("/items/:id", methods=["POST"], limit=10, root="hidden")
        def capture(props):
            seen.update(props)
            return "ok"

        async with TestClient(app) as client:
            await client.post("/items/7?x=1&x=2", json={"a": 1})

        assert seen["method"] == "POST"
        assert seen["path"] == "/items/7"
        assert seen["params"] == {"id": "7"}
        assert seen["query"] == {"x": "1"}
        assert seen["body"] == {"a": 1}
        assert seen["has_body"] is True
        assert seen["path_pattern"] == "/items/:id"
        assert seen["matched_path"].path == "/items/7"
        assert isinstance(seen["request"], Request)
        assert seen["limit"] == 10
        assert "root" not in seen

    async def test_get_has_no_body(self) -> None:
        seen = {}
        app = App()

        @app.route("/")
        def capture(props):
            seen.update(props)
            return "ok"

        async with TestClient(app) as client:
            await client.get("/")
        assert seen["body"] is None
        assert seen["has_body"] is False

    async def test_first_match_wins(self) -> None:
        app = App()
        app.add("/users/:id", "by id")
        app.add("/users/me", "me")
        async with TestClient(app) as client:
            response = await client.get("/users/me")
        assert response.text == "by id"

    async def test_method_mismatch_is_not_found(self) -> None:
        app = App()
        app.add("/users", "users")
        async with TestClient(app) as client:
            response = await client.post("/users")
        assert response.status == 404


class TestStages:
    async def test_route_stages_build_props(self) -> None:
        app = App()

        def load_user(props):
            return {"user": props["params"]["id"].upper()}

        @app.route("/users/:id", use=[load_user])
        def show(props):
            return props["user"]

        async with TestClient(app) as client:
            response = await client.get("/users/ada")
        assert response.text == "ADA"

    async def test_terminal_short_circuits(self) -> None:
        calls = []
        app = App()

        def guard(props):
            if props["query"].get("token") != "s3cret":
                return Terminal.of("Forbidden", status=403)
            return {"user": "admin"}

        @app.route("/admin", use=[guard])
        def admin(props):
            calls.append(props["user"])
            return "welcome"

        async with TestClient(app) as client:
            denied = await client.get("/admin")
            allowed = await client.get("/admin?token=s3cret")
        assert denied.status == 403
        assert denied.text == "Forbidden"
        assert allowed.text == "welcome"
        assert calls == ["admin"]

    async def test_global_stage_runs_first(self) -> None:
        order = []
        app = App()

        @app.use
        def tag(props):
            order.append("global")
            return {"tag": "g"}

        def local(props):
            order.append("local")
            return {"tag": props["tag"] + "l"}

        @app.route("/", use=[local])
        def index(props):
            return props["tag"]

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.text == "gl"
        assert order == ["global", "local"]

    async def test_stage_error_is_500(self) -> None:
        app = App()

        def broken(props):
            raise RuntimeError("boom")

        app.add("/", "unreached", use=[broken])
        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 500
        assert "boom" not in response.text

    async def test_debug_shows_error(self) -> None:
        app = App(AppConfig(debug=True))

        @app.route("/")
        def broken(props):
            raise RuntimeError("boom")

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 500
        assert "boom" in response.text

    async def test_stage_cannot_mutate_params(self) -> None:
        seen = []
        app = App()

        def rename(props):
            try:
                props["params"]["id"] = "hijacked"
            except TypeError:
                seen.append("blocked")

        def crash(props):
            props["params"]["id"] = "hijacked"

        @app.route("/items/:id", use=[rename])
        def show(props):
            return props["params"]["id"]

        @app.route("/broken/:id", use=[crash])
        def broken(props):
            return "unreachable"

        async with TestClient(app) as client:
            shown = await client.get("/items/7")
            failed = await client.get("/broken/7")
        assert shown.text == "7"
        assert seen == ["blocked"]
        assert failed.status == 500


class TestNotFound:
    async def test_default(self) -> None:
        async with TestClient(App()) as client:
            response = await client.get("/missing")
        assert response.status == 404
        assert response.text == "Not Found"

    async def test_configured_body(self) -> None:
        app = App(AppConfig(not_found_body="Nothing here"))
        async with TestClient(app) as client:
            response = await client.get("/missing")
        assert response.text == "Nothing here"

    async def test_custom_not_found(self) -> None:
        app = App()
        app.not_found({"error": "missing"})
        async with TestClient(app) as client:
            response = await client.get("/missing")
        assert response.status == 404
        assert response.json() == {"error": "missing"}

    async def test_not_found_resp_sees_props(self) -> None:
        app = App()
        app.not_found(lambda props: f"No route for {props['path']}")
        async with TestClient(app) as client:
            response = await client.get("/x/y")
        assert response.text == "No route for /x/y"


class TestErrorHandlers:
    async def test_http_error_default(self) -> None:
        app = App()

        @app.route("/")
        def index(props):
            raise NotFound("gone fishing")

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 404
        assert response.text == "gone fishing"

    async def test_handler_by_status(self) -> None:
        app = App()

        @app.route("/")
        def index(props):
            raise NotFound()

        @app.error(404)
        def missing(request, exc):
            return {"path": request.path, "detail": exc.detail}

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 404
        assert response.json() == {"path": "/", "detail": "Not Found"}

    async def test_handler_by_exception_type(self) -> None:
        app = App()

        @app.route("/")
        def index(props):
            raise KeyError("x")

        @app.error(KeyError)
        async def key_error():
            return Reply("missing key", status=409)

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 409

    async def test_payload_too_large(self) -> None:
        app = App(AppConfig(max_content_length=4))
        app.add("/", "ok", methods=["POST"])
        async with TestClient(app) as client:
            response = await client.post("/", body=b"0123456789")
        assert response.status == 413


class TestLifespan:
    async def test_hooks_run(self) -> None:
        events = []
        app = App()

        @app.on_startup
        async def start():
            events.append("start")

        @app.on_shutdown
        def stop():
            events.append("stop")

        sent = await call_lifespan(app, "startup", "shutdown")
        assert events == ["start", "stop"]
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    async def test_startup_failure(self) -> None:
        app = App()

        @app.on_startup
        def start():
            raise RuntimeError("no database")

        sent = await call_lifespan(app, "startup")
        assert sent == [{"type": "lifespan.startup.failed", "message": "no database"}]

    async def test_test_client_runs_hooks(self) -> None:
        events = []
        app = App()
        app.on_startup(lambda: events.append("start"))
        app.on_shutdown(lambda: events.append("stop"))
        async with TestClient(app):
            assert events == ["start"]
        assert events == ["start", "stop"]


class TestErrorHeaders:
    async def test_http_error_headers_sent(self) -> None:
        app = App()

        @app.route("/limited")
        def limited(props):
            raise HTTPError(status=429, detail="slow down", headers=(("Retry-After", "30"),))

        async with TestClient(app) as client:
            response = await client.get("/limited")
        assert response.status == 429
        assert response.text == "slow down"
        assert response.header("retry-after") == "30"
