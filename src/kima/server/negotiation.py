"""Content negotiation — maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable.
"""

import json as json_module
from typing import Any

from kima.errors import ConfigurationError
from kima.http.response import Redirect, Response


def negotiate(value: Any) -> Response:
    """Convert a controller handler's return value to a Response.

    Dispatch order:

    1. ``Response``          -> pass through
    2. ``Redirect``          -> status + Location header
    3. ``None``              -> empty 200
    4. ``str``               -> 200, text/html
    5. ``bytes``             -> 200, application/octet-stream
    6. ``dict`` / ``list``   -> 200, application/json
    7. ``(value, int)``      -> negotiate value, override status
    """
    match value:
        case Response():
            return value
        case Redirect():
            return value.to_response()
        case None:
            return Response()
        case str():
            return Response(body=value)
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case dict() | list():
            return Response(
                body=json_module.dumps(value, default=str),
                content_type="application/json",
            )
        case (inner, int() as status):
            return negotiate(inner).with_status(status)
        case _:
            msg = (
                f"Controller returned {type(value).__name__!r}, which kima cannot "
                "turn into a response. Return str, bytes, dict, list, Response or Redirect."
            )
            raise ConfigurationError(msg)
