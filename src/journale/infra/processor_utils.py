"""Text processors used to turn error bodies into short diagnostics.

Lives in infra so that both the HTTP helpers and the clients can import
without circular dependencies.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol

from bs4 import BeautifulSoup

HTML_PREFIXES = ("<!doctype", "<html")


class TextProcessor(Protocol):
    """Structural protocol: anything with ``.process(str) -> str``."""

    @property
    def processor_name(self) -> str:
        return ""

    @abstractmethod
    def process(self, content: str) -> str: ...


def looks_like_html(content: str) -> bool:
    """True for bodies that start like an HTML document (proxy error pages)."""
    return content.lstrip().lower().startswith(HTML_PREFIXES)


class HtmlErrorPageSummary(TextProcessor):
    """Reduce an HTML error page to ``Server error: <title>``."""

    processor_name = "html_error_page_summary"

    def process(self, html_content: str) -> str:
        soup = BeautifulSoup(html_content, "html.parser")
        title_tag = soup.find("title")
        title = title_tag.get_text().strip() if title_tag else ""
        if title:
            return f"Server error: {title}"
        return "Server error (HTML error page received)"


class TruncateProcessor(TextProcessor):
    """Truncate content to a maximum character length."""

    processor_name = "truncate"

    def __init__(self, max_length: int = 200) -> None:
        self._max_length = max_length

    def process(self, content: str) -> str:
        if len(content) > self._max_length:
            return content[: self._max_length] + "..."
        return content
