"""Exceptions raised while crawling and extracting approval bulletins.

Hierarchy::

    NppaError
    ├── FetchError
    │   └── GatewayExhaustedError
    └── ExtractionError
        ├── LayoutError
        ├── FieldCountError
        └── CatalogNotFoundError

The 404 page that ends pagination is not an exception; ``walk_page`` returns
``None`` for it.
"""

from typing import Optional


class NppaError(Exception):
    """Base class carrying where in the crawl the failure happened."""

    def __init__(
        self,
        message: str,
        channel_id: Optional[str] = None,
        content_id: Optional[str] = None,
        page: Optional[int] = None,
    ):
        super().__init__(message)
        self.channel_id = channel_id
        self.content_id = content_id
        self.page = page

    def context(self):
        parts = []
        if self.channel_id:
            parts.append(f"channel={self.channel_id}")
        if self.content_id:
            parts.append(f"content={self.content_id}")
        if self.page is not None:
            parts.append(f"page={self.page}")
        return ", ".join(parts)

    def __str__(self):
        msg = super().__str__()
        ctx = self.context()
        return f"{msg} ({ctx})" if ctx else msg


class FetchError(NppaError):
    """Transport failure or non-2xx status for a listing or detail page."""

    def __init__(self, message: str, url: str = "", status: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.url = url
        self.status = status


class GatewayExhaustedError(FetchError):
    """Every attempt answered 502 Bad Gateway."""

    def __init__(self, url: str, attempts: int, **kwargs):
        super().__init__(f"bad gateway after {attempts} attempts: {url}", url=url, status=502, **kwargs)
        self.attempts = attempts


class ExtractionError(NppaError):
    """The page does not have the structure its channel layout expects."""


class LayoutError(ExtractionError):
    """An expected element (detail table, listing link or date) is missing."""


class FieldCountError(ExtractionError):
    def __init__(self, expected, actual: int, row: int, **kwargs):
        super().__init__(f"item field len error: expected {expected} cells, got {actual} in row {row}", **kwargs)
        self.expected = expected
        self.actual = actual
        self.row = row


class CatalogNotFoundError(ExtractionError):
    """The row's inline script has no ``var _sblb = '...';`` assignment."""
