"""Perch — a tiny ASGI framework that serves JSON documents as REST APIs.

Routes are matched by pattern (``/users/:id``) or by prefix mount, run
through a pipeline of stages that build up a read-only props bag, and
answer with a ``Reply``.

Basic usage::

    from perch import App, jsondb

    app = App()

    @app.route("/")
    def index(props):
        return "Hello, World!"

    app.mount("/api", jsondb("db.json"))

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BadRequest",
    "ConfigurationError",
    "Continue",
    "HTTPError",
    "InvalidPattern",
    "NotFound",
    "PerchError",
    "Reply",
    "Request",
    "Response",
    "Terminal",
    "UnprocessableEntity",
    "compose",
    "jsondb",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "Response":
        from perch.http.response import Response

        return Response

    if name == "Reply":
        from perch.http.reply import Reply

        return Reply

    if name in ("Continue", "Terminal", "compose"):
        from perch import middleware as _mw

        return getattr(_mw, name)

    if name == "jsondb":
        from perch.jsondb import jsondb

        return jsondb

    if name in (
        "BadRequest",
        "ConfigurationError",
        "HTTPError",
        "InvalidPattern",
        "NotFound",
        "PerchError",
        "UnprocessableEntity",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
