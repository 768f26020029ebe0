"""Action — the front controller.

Resolves one request to exactly one controller handler call. ``run()``
executes the dispatch steps in order and stops at the first one that ends
the request:

1. run the bootstrap hook (app-level or module-level)
2. split the path into URL parameters
3. resolve the language from the first parameter
4. narrow the route table to the active module
5. match the parameters against the routes (first match wins)
6. no match → ``NotFound``
7. record the controller on the context
8. run the predispatcher hook
9. apply the HTTPS policy (may return a ``Redirect``)
10. resolve and instantiate the controller
11. handler missing for the HTTP method → ``MethodNotAllowed``
12. call the handler with the URL parameters

Expected outcomes (404, 405) raise ``HTTPError`` subclasses; configuration
and controller problems raise the fatal ``KimaError`` subclasses. Both
propagate to ``App.run``, which decides the response.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from kima._internal.invoke import invoke
from kima.context import RequestContext
from kima.errors import MethodNotAllowed, NotFound
from kima.hooks import load_bootstrap, run_hook
from kima.routing.params import resolve_language, split_path
from kima.routing.table import RouteTable
from kima.security.https import check_https, redirect_for

if TYPE_CHECKING:
    from kima.app import App

logger = logging.getLogger("kima.action")


class Action:
    """Dispatches one request against an app's route table."""

    __slots__ = ("app", "context")

    def __init__(self, app: App, context: RequestContext) -> None:
        self.app = app
        self.context = context

    async def run(self) -> Any:
        """Dispatch the request and return the handler's result.

        Returns a ``Redirect`` instead when the HTTPS policy says so.
        """
        ctx = self.context

        await self._run_bootstrap()

        ctx.language, ctx.url_parameters = resolve_language(
            split_path(ctx.request.path),
            self.app.config.languages,
            self.app.config.default_language,
        )

        controller = self._routes().match(ctx.url_parameters)
        if controller is None:
            raise NotFound(f"No route matches {ctx.request.method} {ctx.request.path!r}")

        ctx.controller = controller
        logger.debug("%s %s -> %s", ctx.request.method, ctx.request.path, controller)

        predispatcher = self.app.predispatcher
        if predispatcher is not None:
            await run_hook(predispatcher)

        redirect = redirect_for(
            check_https(
                controller,
                is_https=ctx.is_https,
                enforced=self.app.is_https_enforced,
                https_controllers=self.app.https_controllers,
            ),
            ctx.request,
            status=self.app.config.https_redirect_status,
        )
        if redirect is not None:
            logger.debug("redirecting %s to %s", controller, redirect.url)
            return redirect

        return await self._run_controller(controller)

    def _routes(self) -> RouteTable:
        table = self.app.route_table
        if self.context.module:
            return table.for_module(self.context.module)
        return table

    async def _run_bootstrap(self) -> None:
        bootstrap = self.app.bootstrap
        if bootstrap is None:
            bootstrap = load_bootstrap(self.app.folders, self.context.module)
        if bootstrap is not None:
            await run_hook(bootstrap)

    async def _run_controller(self, controller: str) -> Any:
        ctx = self.context
        instance = self.app.registry.create(controller, ctx.module)

        handlers = type(instance).handlers
        if ctx.method not in handlers:
            raise MethodNotAllowed(handlers)

        return await invoke(getattr(instance, ctx.method), list(ctx.url_parameters))
