"""Serve an app with pounce for local development.

pounce is an optional dependency (``pip install perch[server]``) and is
only imported when a server is actually started.
"""


def run_dev_server(
    app: object,
    host: str,
    port: int,
    *,
    reload: bool = False,
    reload_dirs: tuple[str, ...] = (),
    app_path: str | None = None,
) -> None:
    """Run *app* in a single pounce worker until interrupted.

    The live ASGI callable is handed to ``pounce.server.Server``. Pass
    *app_path* (``"module:attribute"``) when reloading so pounce can import
    a fresh app after each change; *reload_dirs* are watched in addition
    to the working directory.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    settings = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
        reload_dirs=reload_dirs,
    )
    Server(settings, app, app_path=app_path).run()
