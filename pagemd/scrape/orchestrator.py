"""Scrape orchestrator — validate, render, extract and convert one URL."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum

from playwright.async_api import Error as PlaywrightError

from pagemd.config import Settings

from .errors import ErrorKind, ExtractionError, NavigationError, ScrapeError, UrlRejected
from .extractor import extract
from .models import ExtractedDocument, ScrapeResult
from .supervisor import BrowserSupervisor
from .urls import validate_url

logger = logging.getLogger(__name__)


class ScrapePhase(str, Enum):
    VALIDATING = "validating"
    SESSION_ACQUIRED = "session_acquired"
    NAVIGATING = "navigating"
    EXTRACTING = "extracting"
    DONE = "done"


@dataclass
class _Progress:
    phase: ScrapePhase = ScrapePhase.VALIDATING


def _generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


class Scraper:
    """Runs the per-request pipeline against a shared :class:`BrowserSupervisor`.

    Nothing is retried here; a slow or failing target is reported once. Every
    failure is returned inside the :class:`ScrapeResult` rather than raised.
    """

    def __init__(self, supervisor: BrowserSupervisor, settings: Settings) -> None:
        self._supervisor = supervisor
        self._settings = settings

    async def scrape(
        self,
        url: str,
        request_id: str | None = None,
        timeout: float | None = None,
    ) -> ScrapeResult:
        """Scrape *url* within *timeout* seconds (default ``REQUEST_TIMEOUT``)."""
        request_id = request_id or _generate_request_id()
        if timeout is None:
            timeout = self._settings.request_timeout_seconds

        started = time.monotonic()
        progress = _Progress()
        document: ExtractedDocument | None = None
        error: ScrapeError | None = None

        logger.info("scrape_start", extra={"action": "scrape_start", "url": url, "request_id": request_id})

        try:
            document = await asyncio.wait_for(
                self._run(url, request_id, started + timeout, progress),
                timeout=timeout,
            )
        except ScrapeError as exc:
            error = exc
        except asyncio.TimeoutError:
            error = ScrapeError(ErrorKind.TIMEOUT, f"Request exceeded the {timeout:g}s deadline")
        except Exception as exc:
            logger.exception(
                "unexpected scrape failure",
                extra={"url": url, "request_id": request_id, "phase": progress.phase.value},
            )
            error = ScrapeError(ErrorKind.INTERNAL, str(exc) or type(exc).__name__)

        duration_ms = int((time.monotonic() - started) * 1000)

        if document is not None:
            logger.info(
                "scrape_success",
                extra={
                    "action": "scrape_success",
                    "url": url,
                    "request_id": request_id,
                    "duration": duration_ms,
                    "title_length": len(document.title),
                    "content_length": len(document.markdown),
                },
            )
        else:
            log = logger.warning if error.kind is ErrorKind.VALIDATION else logger.error
            log(
                "scrape_error",
                extra={
                    "action": "scrape_error",
                    "url": url,
                    "request_id": request_id,
                    "duration": duration_ms,
                    "kind": error.kind.value,
                    "reason": error.reason,
                    "phase": progress.phase.value,
                    "error": error.message,
                },
            )

        return ScrapeResult(
            url=url,
            request_id=request_id,
            duration_ms=duration_ms,
            document=document,
            error=error,
        )

    async def _run(
        self,
        url: str,
        request_id: str,
        deadline: float,
        progress: _Progress,
    ) -> ExtractedDocument:
        url = url.strip()
        try:
            validate_url(url)
        except UrlRejected as exc:
            raise ScrapeError(
                ErrorKind.VALIDATION,
                "URL must use HTTP/HTTPS protocol and cannot target private networks",
                reason=exc.reason,
            ) from exc

        if not self._supervisor.is_live():
            raise ScrapeError(ErrorKind.SERVICE_UNAVAILABLE, "The browser service is currently unavailable")

        try:
            session = await self._supervisor.open_session(request_id=request_id, deadline=deadline)
        except PlaywrightError as exc:
            raise ScrapeError(ErrorKind.SERVICE_UNAVAILABLE, f"Could not open a browser context: {exc.message}") from exc
        progress.phase = ScrapePhase.SESSION_ACQUIRED

        try:
            progress.phase = ScrapePhase.NAVIGATING
            try:
                html = await session.navigate(url)
            except NavigationError as exc:
                kind = ErrorKind.TIMEOUT if exc.kind == "timeout" else ErrorKind.UPSTREAM
                raise ScrapeError(kind, str(exc), reason=exc.kind) from exc

            progress.phase = ScrapePhase.EXTRACTING
            try:
                # lxml parsing is CPU bound; keep the event loop free for other requests
                document = await asyncio.to_thread(extract, html, url)
            except ExtractionError as exc:
                raise ScrapeError(ErrorKind.EXTRACTION, "Readability failed to parse the page.", reason=exc.reason) from exc

            progress.phase = ScrapePhase.DONE
            return document
        finally:
            await session.close()
