"""Lifecycle of the single shared Chromium process."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator

from playwright.async_api import Browser, Playwright, async_playwright

from pagemd.config import Settings

from .errors import BrowserLaunchError, ErrorKind, ScrapeError
from .session import RenderSession

logger = logging.getLogger(__name__)

# No OS sandbox and no GPU so Chromium runs unprivileged inside containers.
# Pages are kept apart by per-request browser contexts instead.
LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-software-rasterizer",
    "--disable-extensions",
)


class SupervisorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LIVE = "live"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


class BrowserSupervisor:
    """Owns the browser process and hands out isolated render sessions.

    Launch is the only place that retries. A browser that crashes while the
    service is running is not relaunched automatically; :meth:`is_live`
    turns false and every new session is refused until an operator restarts
    the service or calls :meth:`launch` again.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._state = SupervisorState.UNINITIALIZED
        self._lock = asyncio.Lock()
        self.failed_attempts: list[str] = []

    @property
    def state(self) -> SupervisorState:
        return self._state

    def _live_browser(self) -> Browser | None:
        browser = self._browser
        if self._state is SupervisorState.LIVE and browser is not None and browser.is_connected():
            return browser
        return None

    def is_live(self) -> bool:
        return self._live_browser() is not None

    async def launch(self, max_attempts: int | None = None) -> Browser:
        """Start Chromium, retrying with linear backoff.

        The wait before attempt ``n + 1`` is ``n * browser_launch_retry_delay``
        seconds. Raises :class:`BrowserLaunchError` when every attempt fails.
        """
        attempts = self._settings.browser_launch_max_retries if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {attempts}")
        base_delay = self._settings.browser_launch_retry_delay

        async with self._lock:
            live = self._live_browser()
            if live is not None:
                return live

            if self._browser is not None:
                # Crashed handle from an earlier launch
                await self._close_browser()

            self.failed_attempts = []
            last_error: BaseException | None = None

            for attempt in range(1, attempts + 1):
                logger.info("browser launch attempt", extra={"attempt": attempt, "max_attempts": attempts})
                try:
                    if self._playwright is None:
                        self._playwright = await async_playwright().start()
                    browser = await self._playwright.chromium.launch(
                        headless=self._settings.browser_headless,
                        args=list(LAUNCH_ARGS),
                    )
                except Exception as exc:
                    last_error = exc
                    self.failed_attempts.append(str(exc))
                    logger.warning(
                        "browser launch attempt failed",
                        extra={"attempt": attempt, "max_attempts": attempts, "error": str(exc)},
                    )
                    if attempt < attempts:
                        delay = base_delay * attempt
                        logger.info("retrying browser launch", extra={"delay_seconds": delay})
                        await asyncio.sleep(delay)
                    continue

                browser.on("disconnected", self._on_disconnected)
                self._browser = browser
                self._state = SupervisorState.LIVE
                logger.info(
                    "browser launched",
                    extra={"attempt": attempt, "failed_attempts": len(self.failed_attempts)},
                )
                return browser

            await self._stop_playwright()
            self._state = SupervisorState.UNINITIALIZED
            logger.error("browser launch failed", extra={"attempts": attempts})
            raise BrowserLaunchError(attempts, last_error)

    def _on_disconnected(self, browser: Browser) -> None:
        if self._state is SupervisorState.LIVE:
            logger.error("browser disconnected unexpectedly; restart required")

    async def open_session(
        self,
        request_id: str | None = None,
        deadline: float | None = None,
    ) -> RenderSession:
        """Create a fresh render session. Fails fast when the browser is not live."""
        browser = self._live_browser()
        if browser is None:
            raise ScrapeError(ErrorKind.SERVICE_UNAVAILABLE, "The browser service is currently unavailable")

        return await RenderSession.open(
            browser,
            request_id=request_id or uuid.uuid4().hex[:12],
            page_timeout=self._settings.page_timeout_seconds,
            user_agent=self._settings.user_agent,
            deadline=deadline,
            block_resources=self._settings.block_resources,
        )

    @asynccontextmanager
    async def session(
        self,
        request_id: str | None = None,
        deadline: float | None = None,
    ) -> AsyncIterator[RenderSession]:
        """``open_session`` + guaranteed ``close``."""
        render_session = await self.open_session(request_id=request_id, deadline=deadline)
        try:
            yield render_session
        finally:
            await render_session.close()

    async def shutdown(self) -> None:
        """Close the browser and stop the driver. Idempotent."""
        async with self._lock:
            if self._state is SupervisorState.CLOSED:
                return
            self._state = SupervisorState.SHUTTING_DOWN
            started = time.monotonic()

            await self._close_browser()
            await self._stop_playwright()
            self._state = SupervisorState.CLOSED
            logger.info("browser closed", extra={"duration_ms": int((time.monotonic() - started) * 1000)})

    async def _close_browser(self) -> None:
        if self._browser is None:
            return
        try:
            await self._browser.close()
        except Exception:
            logger.warning("browser close failed", exc_info=True)
        self._browser = None

    async def _stop_playwright(self) -> None:
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception:
            logger.warning("playwright stop failed", exc_info=True)
        self._playwright = None
