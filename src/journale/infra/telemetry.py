"""OpenTelemetry tracer and span vocabulary.

The SDK only depends on the OTEL *API*: spans are no-ops until the
embedding application installs a ``TracerProvider``.

Usage::

    from journale.infra.telemetry import SPAN_SESSION_CREATE, tracer

    with tracer.start_as_current_span(SPAN_SESSION_CREATE) as span:
        ...
"""

from __future__ import annotations

from opentelemetry import trace

tracer = trace.get_tracer("journale")

# ---------------------------------------------------------------------------
# Span names
# ---------------------------------------------------------------------------

SPAN_SESSION_CREATE = "session.create"
SPAN_CHAT_REQUEST = "chat.request"
SPAN_CHAT_ATTEMPT = "chat.attempt"

# ---------------------------------------------------------------------------
# Span attribute keys
# ---------------------------------------------------------------------------

ATTR_SESSION_PLATFORM = "session.platform"
ATTR_SESSION_STATUS = "session.http_status"

ATTR_CHAT_ATTEMPT = "chat.attempt"
ATTR_CHAT_STATUS = "chat.http_status"
ATTR_CHAT_RETRIES = "chat.retries"
