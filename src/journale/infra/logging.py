"""Logging bootstrap for applications embedding the client.

Library modules only ever call ``logging.getLogger(__name__)``.  Nothing
is configured on import: the host application keeps control of the root
logger.  ``setup_logging`` is an opt-in convenience (used by the bundled
CLI) that attaches one handler to the ``journale`` logger tree, emitting
JSON lines via python-json-logger or plain text lines.

Records carry the active OpenTelemetry ``trace_id`` / ``span_id`` (empty
strings outside a span), so a failed ``chat.request`` span can be matched
to its log lines.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from typing import TextIO

from opentelemetry import trace

from journale.configs.system import LoggingConfig

SDK_LOGGERS = ("journale",)
QUIET_LOGGERS = ("httpx", "httpcore", "opentelemetry")

_TEXT_FORMAT = "%(levelname)-8s %(asctime)s %(name)s  %(message)s"
_TEXT_DATEFMT = "%H:%M:%S"
_JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(span_id)s"


class _TraceContextFilter(logging.Filter):
    """Stamps OTEL trace/span IDs onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = trace.get_current_span().get_span_context()
        valid = ctx is not None and ctx.is_valid
        record.trace_id = format(ctx.trace_id, "032x") if valid else ""  # type: ignore[attr-defined]
        record.span_id = format(ctx.span_id, "016x") if valid else ""  # type: ignore[attr-defined]
        return True


def _build_formatter(json_output: bool) -> logging.Formatter:
    if not json_output:
        return logging.Formatter(fmt=_TEXT_FORMAT, datefmt=_TEXT_DATEFMT)

    from pythonjsonlogger.json import JsonFormatter

    return JsonFormatter(
        fmt=_JSON_FORMAT,
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        defaults={"trace_id": "", "span_id": ""},
    )


def setup_logging(
    config: LoggingConfig | None = None,
    *,
    stream: TextIO | None = None,
    logger_names: Iterable[str] = SDK_LOGGERS,
) -> logging.Handler:
    """Route the client's loggers to *stream* (stderr by default).

    Replaces any handler a previous call installed, so calling it twice
    does not duplicate output.  Returns the installed handler.
    """
    config = config or LoggingConfig()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(_TraceContextFilter())
    handler.setFormatter(_build_formatter(config.json_output))

    for name in logger_names:
        logger = logging.getLogger(name)
        logger.setLevel(config.level.upper())
        logger.handlers = [handler]
        logger.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler
