"""Request-scoped dispatch state.

``RequestContext`` carries everything derived from one request: module,
method, https flag, language, the resolved controller and the URL
parameters. ``App.setup()`` creates it, ``Action`` fills it in, and it is
discarded once the response is built.

It is passed explicitly through the dispatch pipeline and also published
through a ``ContextVar`` so controllers can reach it without plumbing::

    from kima.context import get_context

    language = get_context().language

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    free-threading. No locks needed.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from kima.http.request import Request


@dataclass(slots=True)
class RequestContext:
    """Mutable per-request dispatch state."""

    request: Request
    module: str = ""
    method: str = "get"
    is_https: bool = False
    language: str = ""
    controller: str = ""
    url_parameters: list[str] = field(default_factory=list)

    # Active tracing span (opaque; ``None`` when tracing is disabled)
    span: Any = field(default=None, repr=False)

    # The dispatching App
    app: Any = field(default=None, repr=False)


context_var: ContextVar[RequestContext] = ContextVar("kima_context")
"""The current request context. Set by ``App.run`` for the dispatch."""


def get_context() -> RequestContext:
    """Return the current request context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get().request
