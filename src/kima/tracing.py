"""Config-driven request and query tracing.

Backed by OpenTelemetry (``pip install kima[tracing]``) when
``AppConfig.tracing_enabled`` is set; every operation is a no-op otherwise.
Spans are opaque to the rest of kima: they are created here, stored on the
``RequestContext``, and finished here.

Exporters and the ``TracerProvider`` are the deployment's business — set
them up with the OpenTelemetry SDK before the app starts.
"""

from __future__ import annotations

import re
from typing import Any

from kima.config import AppConfig
from kima.errors import ConfigurationError

# Drivers that take :name / :1 placeholders produce one resource per
# parameter set unless these are folded into "?".
_PLACEHOLDER_RE = re.compile(r":(\d+|\w+)")

HTTP_STATUS_CODE = "http.status_code"


def normalize_sql(sql: str) -> str:
    """Fold named and numbered placeholders into ``?`` for span resources."""
    return _PLACEHOLDER_RE.sub("?", sql)


class Tracer:
    """Starts and finishes spans for one application.

    Usage::

        tracer = Tracer(config)
        span = tracer.start_request_span()
        ...
        tracer.finish(span, status=200)
    """

    __slots__ = ("_config", "_db_tracer", "_otel_trace", "_web_tracer")

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._otel_trace: Any = None
        self._web_tracer: Any = None
        self._db_tracer: Any = None
        if not config.tracing_enabled:
            return

        try:
            from opentelemetry import trace
        except ImportError:
            msg = (
                "Tracing is enabled but 'opentelemetry-api' is not installed. "
                "Install it with: pip install kima[tracing]"
            )
            raise ConfigurationError(msg) from None

        self._otel_trace = trace
        self._web_tracer = trace.get_tracer(config.web_service)
        self._db_tracer = trace.get_tracer(config.db_service)

    @property
    def enabled(self) -> bool:
        return self._web_tracer is not None

    def start_request_span(self) -> Any:
        """Start the span covering one web request, or return ``None``."""
        if self._web_tracer is None:
            return None
        return self._web_tracer.start_span(
            self._config.web_operation,
            attributes={"span.type": "web", "service.name": self._config.web_service},
        )

    def start_query_span(self, sql: str, parent: Any = None) -> Any:
        """Start a span for one SQL statement, as a child of *parent* if given."""
        if self._db_tracer is None:
            return None
        context = self._otel_trace.set_span_in_context(parent) if parent is not None else None
        return self._db_tracer.start_span(
            self._config.db_operation,
            context=context,
            attributes={
                "span.type": "sql",
                "service.name": self._config.db_service,
                "resource.name": normalize_sql(sql),
            },
        )

    @staticmethod
    def set_status(span: Any, status: int) -> None:
        if span is not None:
            span.set_attribute(HTTP_STATUS_CODE, status)

    @staticmethod
    def finish(span: Any, *, status: int | None = None) -> None:
        """End *span*, tagging the HTTP status first when given."""
        if span is None:
            return
        if status is not None:
            span.set_attribute(HTTP_STATUS_CODE, status)
        span.end()
