"""Immutable HTTP request.

Frozen metadata with async body access, built from the ASGI scope.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs

from kima._internal.asgi import Receive, Scope
from kima.http.headers import Headers


def detect_https(flag: str | None, port: int | None) -> bool:
    """Whether a request arrived over TLS.

    True when the transport flag is set to anything but ``"off"``, or when
    the server port is 443.
    """
    return (bool(flag) and flag != "off") or port == 443


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is accessed asynchronously via ``.body()``, ``.text()``, ``.json()``.
    """

    method: str
    path: str
    headers: Headers
    query_string: bytes = b""
    scheme: str = "http"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = field(default=None, repr=False, compare=False)

    # Private: mutable cache for the body
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def https_flag(self) -> str:
        """Transport TLS indicator, ``"on"`` or ``"off"``."""
        return "on" if self.scheme in ("https", "wss") else "off"

    @property
    def port(self) -> int | None:
        return self.server[1] if self.server else None

    @property
    def host(self) -> str:
        """The ``Host`` header, falling back to the server address."""
        host = self.headers.get("host")
        if host:
            return host
        if self.server is None:
            return "localhost"
        name, port = self.server
        return name if port in (80, 443) else f"{name}:{port}"

    @property
    def url(self) -> str:
        """Path plus query string, as sent by the client."""
        if self.query_string:
            return f"{self.path}?{self.query_string.decode('latin-1')}"
        return self.path

    @property
    def query(self) -> dict[str, list[str]]:
        """Parsed query string; every key maps to all of its values."""
        return parse_qs(self.query_string.decode("latin-1"), keep_blank_values=True)

    def absolute_url(self, scheme: str) -> str:
        """This request's URL rebuilt with a different *scheme*."""
        return f"{scheme}://{self.host}{self.url}"

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        Cached: the ASGI receive is consumed once.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        if self._receive is None:
            return
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        raw = await self.body()
        return raw.decode("utf-8")

    async def json(self) -> Any:
        import json as json_module

        raw = await self.body()
        return json_module.loads(raw)

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive | None = None) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            query_string=scope.get("query_string", b""),
            scheme=scope.get("scheme", "http"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
        )
