"""Kima application class.

Mutable during setup (route table, controllers, hooks, HTTPS policy).
Frozen at runtime when the first request or lifespan event arrives.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Mapping
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kima._internal.asgi import Receive, Scope, Send
from kima._internal.invoke import invoke
from kima.action import Action
from kima.config import AppConfig, Folders, check_module_name, load_config
from kima.context import RequestContext, context_var
from kima.controller import Controller
from kima.errors import HTTPError
from kima.hooks import HookSource, resolve_predispatcher
from kima.http.request import Request, detect_https
from kima.http.response import Response
from kima.registry import ControllerFactory, ControllerRegistry
from kima.routing.table import RouteTable
from kima.server.errors import default_error_response, handle_internal_error, with_error_headers
from kima.server.handler import handle_request
from kima.server.negotiation import negotiate
from kima.tracing import Tracer

if TYPE_CHECKING:
    from kima.data.database import Database
    from kima.views import ViewRenderer

logger = logging.getLogger("kima.server")

ERROR_CONTROLLER = "Error"


class App:
    """The kima application: a front controller over a regex route table.

    Usage::

        app = App({"/": "Index", "/users/\\d+": "User"}, AppConfig(root="site"))

        @app.controller("Index")
        class Index(Controller):
            def get(self, params):
                return "home"

    ``app`` is an ASGI application; serve it with any ASGI server.

    Thread safety:
        The setup phase is single-threaded (module import time). The freeze
        transition uses a Lock + double-check so exactly one thread compiles
        the route table, even when several workers receive their first
        request at once.
    """

    __slots__ = (
        "_bootstrap",
        "_db",
        "_freeze_lock",
        "_frozen",
        "_https_controllers",
        "_https_enforced",
        "_predispatcher",
        "_predispatcher_source",
        "_registry",
        "_route_mapping",
        "_route_table",
        "_tracer",
        "_views",
        "config",
    )

    def __init__(
        self,
        routes: Mapping[str, Any] | None = None,
        config: AppConfig | str | Path | None = None,
        *,
        db: Database | str | None = None,
    ) -> None:
        if isinstance(config, (str, Path)):
            config = load_config(config)
        self.config: AppConfig = config or AppConfig()

        self._route_mapping: dict[str, Any] = dict(routes or {})
        self._https_enforced: bool = self.config.enforce_https
        self._https_controllers: frozenset[str] = frozenset(self.config.https_controllers)
        self._predispatcher_source: HookSource = self.config.predispatcher
        self._bootstrap: type | None = None
        self._registry = ControllerRegistry(self.config.folders)
        self._tracer = Tracer(self.config)
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Database instance or connection URL string
        db = db if db is not None else self.config.database_url
        if isinstance(db, str):
            from kima.data.database import Database as _Database

            self._db: Database | None = _Database(
                db, echo=self.config.database_echo, tracer=self._tracer
            )
        else:
            self._db = db

        # Compiled state, set during _freeze()
        self._route_table: RouteTable | None = None
        self._predispatcher: type | None = None
        self._views: ViewRenderer | None = None

    # -- Setup --

    def routes(self, table: Mapping[str, Any]) -> None:
        """Replace the route table (``{pattern: controller}``, optionally by module)."""
        self._check_not_frozen()
        self._route_mapping = dict(table)

    def controller(
        self, name: str | None = None, *, module: str = ""
    ) -> Callable[[type[Controller]], type[Controller]]:
        """Register a controller class via decorator.

        The identifier defaults to the class name::

            @app.controller()
            class Index(Controller): ...

            @app.controller("Cart", module="shop")
            class ShopCart(Controller): ...
        """

        def decorator(cls: type[Controller]) -> type[Controller]:
            self.register_controller(name or cls.__name__, cls, module=module)
            return cls

        return decorator

    def register_controller(
        self, name: str, factory: ControllerFactory, *, module: str = ""
    ) -> None:
        """Register a zero-argument controller factory under *name*."""
        self._check_not_frozen()
        self._registry.register(name, factory, module=module)

    def enforce_https(self) -> App:
        """Send every plain-http request to https."""
        self._check_not_frozen()
        self._https_enforced = True
        return self

    def set_https_controllers(self, controllers: list[str] | tuple[str, ...]) -> App:
        """Controllers that must always be served over https."""
        self._check_not_frozen()
        self._https_controllers = frozenset(controllers)
        return self

    def set_predispatcher(self, predispatcher: HookSource) -> App:
        """Hook class (or ``"module:Class"``) run after routing, before the controller."""
        self._check_not_frozen()
        self._predispatcher_source = predispatcher
        return self

    def set_bootstrap(self, bootstrap: type | None) -> App:
        """Hook class run before routing, instead of the bootstrap file."""
        self._check_not_frozen()
        self._bootstrap = bootstrap
        return self

    # -- Accessors --

    @property
    def folders(self) -> Folders:
        return self.config.folders

    @property
    def registry(self) -> ControllerRegistry:
        return self._registry

    @property
    def tracer(self) -> Tracer:
        return self._tracer

    @property
    def route_table(self) -> RouteTable:
        self._ensure_frozen()
        assert self._route_table is not None
        return self._route_table

    @property
    def predispatcher(self) -> type | None:
        self._ensure_frozen()
        return self._predispatcher

    @property
    def bootstrap(self) -> type | None:
        return self._bootstrap

    @property
    def is_https_enforced(self) -> bool:
        return self._https_enforced

    @property
    def https_controllers(self) -> frozenset[str]:
        return self._https_controllers

    @property
    def views(self) -> ViewRenderer:
        """Kida view renderer, created on first use."""
        if self._views is None:
            from kima.views import ViewRenderer as _ViewRenderer

            self._views = _ViewRenderer(self.config)
        return self._views

    @property
    def time_zone(self) -> str:
        """Configured time zone, or the host's local zone name."""
        return self.config.time_zone or str(datetime.now().astimezone().tzname())

    @property
    def db(self) -> Database:
        """The database instance, if configured.

        Raises ``RuntimeError`` if no database was configured on this app.
        """
        if self._db is None:
            msg = (
                "No database configured. Pass db= to App(), set [database] url "
                "in the config file, or use kima.data.Database directly."
            )
            raise RuntimeError(msg)
        return self._db

    # -- Dispatch --

    def setup(self, request: Request) -> RequestContext:
        """Derive the per-request dispatch state and start the request span.

        The module comes from the environment, else from ``module_header``
        when one is configured. Raises ``ModuleNameError`` for a name that
        is not a plain identifier.
        """
        module = os.environ.get(self.config.module_env) or ""
        if not module and self.config.module_header:
            module = request.headers.get(self.config.module_header) or ""
        if module:
            check_module_name(module)
        return RequestContext(
            request=request,
            module=module,
            method=request.method.lower(),
            is_https=detect_https(request.https_flag, request.port),
            language=self.config.default_language or "",
            span=self._tracer.start_request_span(),
            app=self,
        )

    async def run(self, request: Request) -> Response:
        """Dispatch *request* and return the final response.

        Expected outcomes go through ``http_error``; anything else that
        escapes the dispatch is fatal and becomes a 500. The request span is
        finished with the final status either way. A failed freeze or an
        invalid module name is fatal too, so servers without lifespan still
        get a response.
        """
        try:
            self._ensure_frozen()
            context = self.setup(request)
        except Exception as exc:
            return handle_internal_error(exc, request, debug=self.config.debug)
        token = context_var.set(context)
        try:
            response = await self._dispatch(context)
        finally:
            context_var.reset(token)
        self._tracer.finish(context.span, status=response.status)
        return response

    async def _dispatch(self, context: RequestContext) -> Response:
        try:
            try:
                result = await Action(self, context).run()
            except HTTPError as exc:
                logger.debug(
                    "%d %s %s: %s",
                    exc.status,
                    context.request.method,
                    context.request.path,
                    exc.detail,
                )
                return await self.http_error(context, exc)
            return negotiate(result)
        except Exception as exc:
            return handle_internal_error(exc, context.request, debug=self.config.debug)

    async def http_error(self, context: RequestContext, error: HTTPError | int) -> Response:
        """Render an HTTP error through the module-aware ``Error`` controller.

        The controller's ``get`` handler receives the URL parameters; its
        response keeps the error status unless it set a different one. The
        dispatch ends here: the returned response is final.
        """
        exc = error if isinstance(error, HTTPError) else HTTPError(status=error)
        self._tracer.set_status(context.span, exc.status)
        context.controller = ERROR_CONTROLLER
        context.method = "get"

        if self._registry.find(ERROR_CONTROLLER, context.module) is None:
            return default_error_response(exc, debug=self.config.debug)

        instance = self._registry.create(ERROR_CONTROLLER, context.module)
        if "get" not in type(instance).handlers:
            logger.warning("Error controller has no get handler; using the default page")
            return default_error_response(exc, debug=self.config.debug)

        response = negotiate(await invoke(instance.get, list(context.url_parameters)))
        if response.status == 200:
            response = response.with_status(exc.status)
        return with_error_headers(response, exc)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        await handle_request(scope, receive, send, app=self)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup and connects the database, if any.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    if self._db is not None:
                        await self._db.connect()
                        from kima.data.database import _db_var

                        _db_var.set(self._db)
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return

            elif msg_type == "lifespan.shutdown":
                if self._db is not None:
                    await self._db.disconnect()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its runtime state.

        MUST only be called while holding _freeze_lock. Invalid route
        patterns and unresolvable predispatchers fail here, before any
        request is dispatched.
        """
        self._route_table = RouteTable.from_mapping(self._route_mapping)
        self._predispatcher = resolve_predispatcher(self._predispatcher_source)
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, controllers and hooks before the first request."
            )
            raise RuntimeError(msg)
