"""ASGI handler — translates ASGI scope/messages to kima types.

The only component that touches raw ASGI for HTTP requests. Converts the
scope to a ``Request``, hands it to ``App.run`` and sends the resulting
``Response`` back through ASGI ``send()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kima._internal.asgi import Receive, Scope, Send
from kima.http.request import Request
from kima.server.sender import send_response

if TYPE_CHECKING:
    from kima.app import App


async def handle_request(scope: Scope, receive: Receive, send: Send, *, app: App) -> None:
    """Process a single HTTP request through the dispatch pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    response = await app.run(request)
    await send_response(response, send, head=request.method == "HEAD")
