"""``kima routes`` — print a route table in match order."""

import argparse

from kima.cli._resolve import resolve_table


def run_routes(args: argparse.Namespace) -> None:
    """Print PATTERN / CONTROLLER rows, then the module names."""
    _, table = resolve_table(args)

    if not len(table):
        print("No routes registered.")
    else:
        width = max(7, *(len(route.pattern) for route in table))
        fmt = f"{{:<{width}}}  {{}}"
        print(fmt.format("PATTERN", "CONTROLLER"))
        print("-" * min(width + 12, 80))
        for route in table:
            print(fmt.format(route.pattern, route.controller))

    if table.modules:
        print()
        print("Modules: " + ", ".join(table.modules))
