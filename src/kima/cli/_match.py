"""``kima match`` — dry-run routing for one path.

Applies language resolution and the route table exactly as a request
would, without running hooks or controllers.
"""

import argparse

from kima.cli._resolve import resolve_table
from kima.routing.params import resolve_language, split_path


def run_match(args: argparse.Namespace) -> None:
    app, table = resolve_table(args)
    language, parameters = resolve_language(
        split_path(args.path), app.config.languages, app.config.default_language
    )
    controller = table.match(parameters)

    print(f"language:   {language or '-'}")
    print(f"parameters: {'/'.join(parameters) or '-'}")
    if controller is None:
        print("controller: no match (404)")
        raise SystemExit(1)
    print(f"controller: {controller}")
