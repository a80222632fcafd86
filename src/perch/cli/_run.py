"""``perch run`` — start the development server for an app import string."""

import argparse
import sys

from perch.cli._resolve import resolve_app


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and hand it to the pounce dev server.

    ``--host``/``--port`` override the app's config.
    """
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    from perch.server.dev import run_dev_server

    run_dev_server(
        app,
        args.host or app.config.host,
        args.port or app.config.port,
        reload=app.config.debug,
        reload_dirs=app.config.reload_dirs,
        app_path=args.app,
    )
