"""``perch serve`` — mount one JSON document under a prefix and serve it."""

import argparse
import logging
from pathlib import Path

from perch.app import App
from perch.config import AppConfig
from perch.jsondb import jsondb

logger = logging.getLogger("perch.server")


def build_app(
    document: str | Path,
    *,
    prefix: str = "/api",
    dry_run: bool = False,
    config: AppConfig | None = None,
) -> App:
    """Build an App exposing *document* under *prefix*."""
    app = App(config)
    app.mount(prefix, jsondb(document, dry_run=dry_run), name="jsondb")
    return app


def serve_document(args: argparse.Namespace) -> None:
    """Serve the document without reloading.

    The document is re-read on every request, so edits to it show up
    without a restart.
    """
    overrides: dict[str, object] = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    config = AppConfig(**overrides)
    app = build_app(args.document, prefix=args.prefix, dry_run=args.dry_run, config=config)

    logger.info(
        "Serving %s at http://%s:%d%s%s",
        args.document,
        config.host,
        config.port,
        args.prefix,
        " (dry run)" if args.dry_run else "",
    )

    from perch.server.dev import run_dev_server

    run_dev_server(app, config.host, config.port)
