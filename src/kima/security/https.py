"""HTTP/HTTPS redirection policy.

Decides, per resolved controller, whether a request may proceed on its
current scheme:

- with HTTPS enforced globally, every plain request is sent to https;
- otherwise controllers in the https set must be on https,
- and every other controller must be on plain http.
"""

from __future__ import annotations

from collections.abc import Collection
from enum import Enum

from kima.http.request import Request
from kima.http.response import Redirect


class HttpsDecision(Enum):
    CONTINUE = "continue"
    REDIRECT_HTTPS = "https"
    REDIRECT_HTTP = "http"


def check_https(
    controller: str,
    *,
    is_https: bool,
    enforced: bool,
    https_controllers: Collection[str],
) -> HttpsDecision:
    """Apply the policy to one request."""
    if enforced or controller in https_controllers:
        return HttpsDecision.CONTINUE if is_https else HttpsDecision.REDIRECT_HTTPS
    if is_https:
        return HttpsDecision.REDIRECT_HTTP
    return HttpsDecision.CONTINUE


def redirect_for(decision: HttpsDecision, request: Request, *, status: int = 302) -> Redirect | None:
    """Build the redirect a decision calls for, or ``None`` to continue."""
    if decision is HttpsDecision.CONTINUE:
        return None
    return Redirect(request.absolute_url(decision.value), status=status)
