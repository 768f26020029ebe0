"""Routing — ordered regex route tables and URL parameter handling.

Route tables are supplied by the application and compiled once when the
app freezes.
"""

from kima.routing.params import resolve_language, split_path
from kima.routing.table import RoutePattern, RouteTable, compile_pattern

__all__ = [
    "RoutePattern",
    "RouteTable",
    "compile_pattern",
    "resolve_language",
    "split_path",
]
