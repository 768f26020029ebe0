"""Controller base class.

A controller is a class whose methods are named after lowercase HTTP
verbs. Each handler receives the request's URL parameters as its only
argument and returns anything the response negotiator understands
(``str``, ``bytes``, ``dict``/``list``, ``Response``, ``Redirect``)::

    class User(Controller):
        def get(self, params: list[str]) -> str:
            return f"user {params[-1]}"

        async def post(self, params: list[str]) -> Redirect:
            ...

The set of verbs a controller answers is fixed when the class is defined
and exposed as ``Controller.handlers``. Helper methods with other names are
never dispatched to.
"""

from __future__ import annotations

from typing import Any, ClassVar

from kima.context import RequestContext, get_context
from kima.http.request import Request

HTTP_METHODS = frozenset({"get", "post", "put", "patch", "delete", "head", "options"})


class Controller:
    """Base class for request handlers."""

    handlers: ClassVar[frozenset[str]] = frozenset()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        found: set[str] = set()
        for klass in cls.__mro__:
            if klass is Controller:
                break
            found.update(
                name for name in HTTP_METHODS if callable(klass.__dict__.get(name))
            )
        cls.handlers = frozenset(found)

    @property
    def context(self) -> RequestContext:
        """The current request's dispatch state."""
        return get_context()

    @property
    def request(self) -> Request:
        return get_context().request

    @property
    def language(self) -> str:
        return get_context().language

    def render(self, template: str, /, **context: Any) -> str:
        """Render a view template from the application's view folder.

        Rendered with kida.
        """
        from kima.views import render_view

        return render_view(template, context)
