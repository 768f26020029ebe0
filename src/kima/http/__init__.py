"""HTTP primitives — request, response and header types."""

from kima.http.headers import Headers
from kima.http.request import Request, detect_https
from kima.http.response import Redirect, Response

__all__ = ["Headers", "Redirect", "Request", "Response", "detect_https"]
