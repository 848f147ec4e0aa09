"""Service layer — turns scrape results into HTTP responses."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from urllib.parse import quote

from fastapi.responses import JSONResponse, Response

from pagemd import __version__
from pagemd.api.schemas import ErrorResponse, HealthResponse, ReadyResponse
from pagemd.scrape import BrowserSupervisor, ErrorKind, ScrapeError, ScrapeResult

logger = logging.getLogger(__name__)

MARKDOWN_MEDIA_TYPE = "text/markdown; charset=utf-8"

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.UPSTREAM: 502,
    ErrorKind.EXTRACTION: 422,
    ErrorKind.INTERNAL: 500,
}

_ERROR_TITLES: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: "Invalid or unsafe URL",
    ErrorKind.SERVICE_UNAVAILABLE: "Browser not ready",
}

# Same set encodeURIComponent leaves alone
_HEADER_SAFE = "-_.!~*'()"


def markdown_response(result: ScrapeResult) -> Response:
    """Markdown body with title and timing headers, or a JSON error body."""
    document = result.document
    if result.error is not None or document is None:
        error = result.error or ScrapeError(ErrorKind.INTERNAL, "Scrape produced no document")
        kind = error.kind
        body = ErrorResponse(
            error=_ERROR_TITLES.get(kind, "Scraping failed"),
            details=error.message,
            url=result.url,
            request_id=result.request_id,
            reason=error.reason,
        )
        return JSONResponse(
            status_code=STATUS_BY_KIND[kind],
            content=body.model_dump(exclude_none=True),
            headers={"X-Processing-Time": str(result.duration_ms)},
        )

    return Response(
        content=document.markdown,
        media_type=MARKDOWN_MEDIA_TYPE,
        headers={
            "X-Page-Title": quote(document.display_title, safe=_HEADER_SAFE),
            "X-Processing-Time": str(result.duration_ms),
        },
    )


def health_status(supervisor: BrowserSupervisor | None) -> tuple[int, HealthResponse]:
    live = supervisor is not None and supervisor.is_live()
    body = HealthResponse(
        status="healthy" if live else "unhealthy",
        browser="connected" if live else "disconnected",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
    )
    return (200 if live else 503), body


def readiness(supervisor: BrowserSupervisor | None) -> tuple[int, ReadyResponse]:
    if supervisor is None or not supervisor.is_live():
        logger.debug("readiness probe failed")
        return 503, ReadyResponse(ready=False, reason="Browser not connected")
    return 200, ReadyResponse(ready=True)
