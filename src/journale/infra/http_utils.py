"""HTTP response helpers for error reporting.

Pure infra, no domain imports.
"""

from __future__ import annotations

import httpx

from .processor_utils import HtmlErrorPageSummary, TruncateProcessor, looks_like_html

ERROR_BODY_MAX_LENGTH = 200
UNKNOWN_ERROR = "Unknown error"

_html_summary = HtmlErrorPageSummary()
_truncate = TruncateProcessor(ERROR_BODY_MAX_LENGTH)


def compact(text: str | None) -> str:
    """Flatten *text* onto one line for logging."""
    return (text or "").replace("\n", " ").replace("\r", " ")


def summarize_error_body(body: str, fallback: str = "") -> str:
    """Turn an error response body into a short readable message.

    HTML pages (e.g. a CDN's 502 page) collapse to their ``<title>``;
    other text is truncated; an empty body yields *fallback*.
    """
    if body and looks_like_html(body):
        return _html_summary.process(body)
    if body:
        return _truncate.process(body)
    return fallback or UNKNOWN_ERROR


def readable_error(response: httpx.Response) -> str:
    """Readable diagnostic for a non-2xx *response*."""
    return summarize_error_body(response.text, fallback=response.reason_phrase)
