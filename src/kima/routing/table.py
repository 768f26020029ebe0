"""Compiled route table with ordered, first-match-wins lookup.

A route table maps URL patterns to controller identifiers::

    {
        "/": "Index",
        "/users/\\d+": "User",
        "/blog/[a-z0-9-]+": "Post",
    }

Each ``/``-separated segment of a pattern is an anchored regular
expression matched against the corresponding request segment. Tables may be
nested one level by module name (``{"shop": {"/": "Cart"}}``); values that
are neither strings nor sub-tables are ignored.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from kima.errors import ConfigurationError, ModuleRoutesError


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """A compiled route: one anchored regex per path segment."""

    pattern: str
    controller: str
    segments: tuple[re.Pattern[str], ...]

    def matches(self, parameters: Sequence[str]) -> bool:
        """True when segment counts agree and every segment fully matches."""
        if len(parameters) != len(self.segments):
            return False
        return all(
            segment.fullmatch(value) is not None
            for segment, value in zip(self.segments, parameters, strict=True)
        )


def compile_pattern(pattern: str, controller: str) -> RoutePattern:
    """Compile a route pattern string into a ``RoutePattern``.

    Raises ``ConfigurationError`` if a segment is not a valid regex.
    """
    compiled: list[re.Pattern[str]] = []
    for segment in filter(None, pattern.split("/")):
        try:
            compiled.append(re.compile(segment))
        except re.error as exc:
            msg = f"Invalid route segment {segment!r} in pattern {pattern!r}: {exc}"
            raise ConfigurationError(msg) from exc
    return RoutePattern(pattern=pattern, controller=controller, segments=tuple(compiled))


class RouteTable:
    """Ordered, immutable route table.

    Usage::

        table = RouteTable.from_mapping({"/": "Index", "/users/\\d+": "User"})
        table.match(["users", "42"])  # -> "User"
        table.match(["users", "x"])   # -> None
    """

    __slots__ = ("_modules", "_routes")

    def __init__(
        self,
        routes: tuple[RoutePattern, ...] = (),
        modules: Mapping[str, RouteTable] | None = None,
    ) -> None:
        self._routes = routes
        self._modules: dict[str, RouteTable] = dict(modules or {})

    @classmethod
    def from_mapping(cls, table: Mapping[str, Any]) -> RouteTable:
        """Compile a ``{pattern: controller}`` mapping, keeping declaration order.

        Mapping values are compiled as module sub-tables (one level only).
        """
        routes: list[RoutePattern] = []
        modules: dict[str, RouteTable] = {}
        for key, value in table.items():
            if not isinstance(key, str):
                continue
            if isinstance(value, str):
                routes.append(compile_pattern(key, value))
            elif isinstance(value, Mapping):
                modules[key] = cls(
                    tuple(
                        compile_pattern(pattern, controller)
                        for pattern, controller in value.items()
                        if isinstance(pattern, str) and isinstance(controller, str)
                    )
                )
        return cls(tuple(routes), modules)

    @property
    def routes(self) -> tuple[RoutePattern, ...]:
        return self._routes

    @property
    def modules(self) -> tuple[str, ...]:
        return tuple(self._modules)

    def __iter__(self) -> Iterator[RoutePattern]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def for_module(self, module: str) -> RouteTable:
        """Return the sub-table for *module*.

        Raises ``ModuleRoutesError`` if the table declares no such module.
        """
        try:
            return self._modules[module]
        except KeyError:
            raise ModuleRoutesError(module) from None

    def match(self, parameters: Sequence[str]) -> str | None:
        """Return the controller of the first matching route, or ``None``."""
        for route in self._routes:
            if route.matches(parameters):
                return route.controller
        return None
