"""Error responses for the dispatch pipeline.

Expected outcomes (``HTTPError``) are rendered by the application's
``Error`` controller when it has one; fatal failures are logged and turned
into a 500.
"""

import html
import logging
from http import HTTPStatus

from kima.errors import HTTPError, KimaError
from kima.http.request import Request
from kima.http.response import Response

logger = logging.getLogger("kima.server")


def default_error_response(exc: HTTPError, *, debug: bool) -> Response:
    """Plain response used when no ``Error`` controller is available.

    The body is the status reason phrase; debug mode shows the detail.
    """
    try:
        body = HTTPStatus(exc.status).phrase
    except ValueError:
        body = f"Error {exc.status}"
    if debug and exc.detail:
        body = f"{exc.status}: {exc.detail}"
    return with_error_headers(Response(body=html.escape(body)).with_status(exc.status), exc)


def with_error_headers(response: Response, exc: HTTPError) -> Response:
    """Carry the error's own headers (e.g. ``Allow``) onto *response*."""
    for name, value in exc.headers:
        if response.header(name) is None:
            response = response.with_header(name, value)
    return response


def handle_internal_error(exc: Exception, request: Request, *, debug: bool) -> Response:
    """Log a fatal dispatch failure and answer 500.

    The diagnostic is shown to the client only in debug mode.
    """
    if isinstance(exc, KimaError):
        logger.exception("500 %s %s: %s", request.method, request.path, exc)
    else:
        logger.exception("500 %s %s", request.method, request.path)

    body = "Internal Server Error"
    if debug:
        body = html.escape(f"{type(exc).__name__}: {exc}")
    return Response(body=body, status=500)
