"""
Error taxonomy for citation lookup.

Nothing here is fatal to the host: extraction problems are retried or
recorded, a missing quote degrades to navigation without a highlight.
"""
from __future__ import annotations


class CitationError(Exception):
    """Base class; ``code`` is a stable machine-readable identifier."""

    code = "citation_error"

    def __init__(self, message: str = "", *, page: int | None = None):
        super().__init__(message or self.code)
        self.page = page

    def to_dict(self) -> dict:
        return {"code": self.code, "message": str(self), "page": self.page}


class ExtractionPending(CitationError):
    """The page rendered but its text layer is not populated yet."""

    code = "extraction_pending"


class ExtractionEmpty(CitationError):
    """Retries are exhausted and the page still has no text."""

    code = "extraction_empty"


class PageNotRendered(CitationError):
    """The rendering collaborator has no handle for the requested page."""

    code = "page_not_rendered"


class QuoteNotFound(CitationError):
    """No strategy matched the quote on any page."""

    code = "quote_not_found"

    def __init__(self, quote: str, *, pages_scanned: int = 0):
        super().__init__(f"quote not found after scanning {pages_scanned} page(s)")
        self.quote = quote
        self.pages_scanned = pages_scanned


class OperationCancelled(CitationError):
    """A newer jump superseded the operation that owned this token."""

    code = "operation_cancelled"
