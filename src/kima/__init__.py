"""Kima — an MVC front controller for ASGI.

Maps request paths to controllers through an ordered table of regular
expressions, with per-module route tables, language prefixes, bootstrap and
predispatch hooks and an HTTPS policy.

Basic usage::

    from kima import App, Controller

    app = App({"/": "Index", "/users/\\d+": "User"})

    @app.controller()
    class Index(Controller):
        def get(self, params):
            return "Hello, World!"

Serve ``app`` with any ASGI server.

Data access::

    from kima.data import Database
    db = Database("sqlite:///app.db")
    users = await db.fetch(User, "SELECT * FROM users")
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Controller",
    "HTTPError",
    "KimaError",
    "MethodNotAllowed",
    "NotFound",
    "Redirect",
    "Request",
    "Response",
    "RouteTable",
    "get_context",
    "get_request",
    "load_config",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import kima`` fast while providing a clean top-level API.
    """
    if name == "App":
        from kima.app import App

        return App

    if name in ("AppConfig", "load_config"):
        from kima import config as _config

        return getattr(_config, name)

    if name == "Controller":
        from kima.controller import Controller

        return Controller

    if name == "Request":
        from kima.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from kima.http import response as _resp

        return getattr(_resp, name)

    if name == "RouteTable":
        from kima.routing.table import RouteTable

        return RouteTable

    if name in ("get_context", "get_request"):
        from kima import context as _ctx

        return getattr(_ctx, name)

    if name in ("KimaError", "ConfigurationError", "HTTPError", "MethodNotAllowed", "NotFound"):
        from kima import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
