"""``perch routes`` — print the route table of an app."""

import argparse
import sys

from perch.cli._resolve import resolve_app

HEADER = ("METHOD", "PATH", "KIND", "HANDLER")


def run_routes(args: argparse.Namespace) -> None:
    """Print METHOD, PATH, KIND and handler name for each route, in match order."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = app.routes
    if not routes:
        print("No routes registered.")
        return

    rows = [(route.method, route.path, route.mount, route.name or "-") for route in routes]

    # Column widths (last column is unpadded)
    widths = [max(len(row[i]) for row in (HEADER, *rows)) for i in range(3)]
    fmt = "  ".join(f"{{:<{width}}}" for width in widths) + "  {}"
    print(fmt.format(*HEADER))
    sep_len = sum(widths) + 6 + max(len(row[3]) for row in rows)
    print("-" * min(sep_len, 80))
    for row in rows:
        print(fmt.format(*row))
