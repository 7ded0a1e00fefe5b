"""
FastAPI service layer for the citeforge citation viewer.

Wraps the viewer core without modifying its logic.
Exposes document loading, citation jumps, page texts, highlights and metrics.

Run with:
    uvicorn citeforge.api_server:app --host 127.0.0.1 --port 8000
or the `citeforge-api` script, which reads API_HOST / API_PORT.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .config import API_HOST, API_PORT
from .metrics import metrics_collector
from .models import JumpResult
from .observability import get_logger
from .pdf_surface import PdfRenderSurface
from .viewer import CitationViewer

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Pydantic request / response models
# ---------------------------------------------------------------------------

class DocumentRequest(BaseModel):
    path: str = Field(..., min_length=1, description="Local path of the PDF to display")


class DocumentResponse(BaseModel):
    title: str
    pages: int
    extracted_pages: int


class JumpRequest(BaseModel):
    page: int | None = Field(default=None, description="Page hint from the citation (advisory only)")
    quote: str | None = Field(default=None, description="Quoted text to locate and highlight")
    search_pages: list[int] | None = Field(default=None, description="Candidate pages from the backend")


class HighlightBox(BaseModel):
    page: int
    index: int
    bbox: list[float]
    text: str


class JumpResponse(BaseModel):
    outcome: str
    page: int | None
    strategy: str | None
    matched_text: str | None
    pages_scanned: int
    error: dict[str, Any] | None
    highlights: list[HighlightBox]


class PageTextItem(BaseModel):
    page: int
    text: str


class RefreshResponse(BaseModel):
    refreshed: list[int]
    pages: list[PageTextItem]


class HighlightResponse(BaseModel):
    active: bool
    page: int | None = None
    strategy: str | None = None
    matched_text: str | None = None
    boxes: list[HighlightBox] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Application state populated at startup
# ---------------------------------------------------------------------------

_state: dict[str, Any] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the viewer once at startup; release the open PDF on shutdown."""
    _state["viewer"] = CitationViewer(metrics=metrics_collector)
    _state["document"] = None

    yield  # Application is running.

    _state["viewer"].close()
    document = _state.get("document")
    if document is not None:
        document.close()
    _state.clear()


app = FastAPI(
    title="citeforge API",
    description="Locate and highlight cited passages inside a rendered PDF",
    version="1.0.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _viewer() -> CitationViewer:
    return _state["viewer"]


def _require_document() -> PdfRenderSurface:
    document = _state.get("document")
    if document is None:
        raise HTTPException(status_code=503, detail="No document is loaded. POST /documents first.")
    return document


def _boxes(document: PdfRenderSurface | None) -> list[HighlightBox]:
    if document is None:
        return []
    return [HighlightBox(**box) for box in document.highlight_boxes()]


def _jump_response(result: JumpResult, document: PdfRenderSurface) -> JumpResponse:
    match = result.match
    return JumpResponse(
        outcome=result.outcome.value,
        page=result.page,
        strategy=match.strategy.value if match is not None else None,
        matched_text=match.matched_text if match is not None else None,
        pages_scanned=result.pages_scanned,
        error=result.error.to_dict() if result.error is not None else None,
        highlights=_boxes(document),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.post("/documents", response_model=DocumentResponse)
async def load_document_endpoint(request: DocumentRequest):
    """Open a PDF, render its text layers and reset the page text cache."""
    path = Path(request.path).expanduser()
    if not path.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: '{request.path}'")
    try:
        document = PdfRenderSurface(path)
    except (RuntimeError, ValueError, OSError) as exc:
        raise HTTPException(status_code=400, detail=f"Could not open PDF: {exc}") from exc

    viewer = _viewer()
    viewer.load_document(document)
    previous = _state.get("document")
    _state["document"] = document
    if previous is not None:
        previous.close()

    document.render_all()
    await viewer.wait_for_extraction()
    extracted = sum(1 for item in viewer.get_page_texts() if item["text"])
    logger.info("api_document_loaded", path=str(path), pages=document.page_count, extracted=extracted)
    return DocumentResponse(title=document.title, pages=document.page_count, extracted_pages=extracted)


@app.post("/jump", response_model=JumpResponse)
async def jump_endpoint(request: JumpRequest):
    """Locate the quote, highlight it and report where it was found."""
    document = _require_document()
    result = await _viewer().locate(page=request.page, quote=request.quote, search_pages=request.search_pages)
    return _jump_response(result, document)


@app.get("/page-texts", response_model=list[PageTextItem])
async def page_texts_endpoint():
    _require_document()
    return [PageTextItem(**item) for item in _viewer().get_page_texts()]


@app.post("/page-texts/refresh", response_model=RefreshResponse)
async def refresh_page_texts_endpoint():
    """Force re-extraction of every rendered page."""
    _require_document()
    viewer = _viewer()
    refreshed = viewer.force_text_extraction()
    return RefreshResponse(
        refreshed=refreshed,
        pages=[PageTextItem(**item) for item in viewer.get_page_texts()],
    )


@app.get("/highlight", response_model=HighlightResponse)
async def highlight_endpoint():
    state = _viewer().highlight
    if state is None:
        return HighlightResponse(active=False)
    return HighlightResponse(
        active=True,
        page=state.page,
        strategy=state.strategy.value,
        matched_text=state.matched_text,
        boxes=_boxes(_state.get("document")),
    )


@app.delete("/highlight", response_model=HighlightResponse)
async def clear_highlight_endpoint():
    """Chat reset: drop the active highlight."""
    _viewer().reset_chat()
    return HighlightResponse(active=False)


@app.get("/metrics")
async def metrics_endpoint():
    """Return aggregated citation lookup metrics."""
    return metrics_collector.get_summary()


@app.get("/health")
async def health_endpoint():
    document = _state.get("document")
    return {
        "status": "ok",
        "document_loaded": document is not None,
        "pages": document.page_count if document is not None else 0,
    }


def serve():
    uvicorn.run(app, host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    serve()
