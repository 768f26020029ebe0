"""Kima CLI — route table inspection.

Entry point registered as ``kima`` in ``pyproject.toml``::

    [project.scripts]
    kima = "kima.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``kima`` command."""
    parser = argparse.ArgumentParser(
        prog="kima",
        description="Kima — an MVC front controller for ASGI.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- kima routes ------------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List the route table")
    routes_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    routes_parser.add_argument("--module", default="", help="Show a module's table")

    # -- kima match -------------------------------------------------------
    match_parser = subparsers.add_parser("match", help="Show which controller serves a path")
    match_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    match_parser.add_argument("path", help="Request path (e.g. /es/users/42)")
    match_parser.add_argument("--module", default="", help="Dispatch inside this module")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from kima.cli._routes import run_routes

        run_routes(args)
    elif args.command == "match":
        from kima.cli._match import run_match

        run_match(args)
