"""App import resolution — resolves ``"module:attribute"`` strings to App instances."""

import argparse
import importlib
import sys

from kima.app import App
from kima.errors import ConfigurationError
from kima.routing.table import RouteTable


def resolve_app(import_string: str) -> App:
    """Resolve an import string to a kima App instance.

    Accepts ``"module:attribute"``; the attribute defaults to ``app``.
    A callable that is not an App is treated as a factory and called.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a kima ``App`` or factory.
    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "app"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if callable(obj) and not isinstance(obj, App):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, App):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a kima.App instance"
        raise TypeError(msg)

    return obj


def resolve_table(args: argparse.Namespace) -> tuple[App, RouteTable]:
    """Resolve ``args.app`` and the table for ``args.module``, or exit 1."""
    try:
        app = resolve_app(args.app)
        table = app.route_table.for_module(args.module) if args.module else app.route_table
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    return app, table
