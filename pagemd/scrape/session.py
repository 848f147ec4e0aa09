"""Per-request browser context + page with navigation and guaranteed release."""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable

from playwright.async_api import Browser, BrowserContext, Page, Route
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import CleanupFailure, NavigationError

logger = logging.getLogger(__name__)

BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font", "media"})

VIEWPORT = {"width": 1280, "height": 720}


def context_options(user_agent: str) -> dict[str, Any]:
    """Keyword arguments for ``Browser.new_context`` used by every session."""
    return {
        "user_agent": user_agent,
        "viewport": dict(VIEWPORT),
        "ignore_https_errors": True,
        "java_script_enabled": True,
        "accept_downloads": False,
        "has_touch": False,
    }


async def filter_resources(route: Route) -> None:
    """Abort images, stylesheets, fonts and media; let everything else through."""
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class RenderSession:
    """One isolated browser context and page, used for a single request.

    Every resource acquired in :meth:`open` registers a release action.
    :meth:`close` runs them newest first and never raises; failures end up
    in :attr:`cleanup_failures`.
    """

    def __init__(
        self,
        *,
        request_id: str,
        page_timeout: float,
        deadline: float | None = None,
        block_resources: bool = True,
    ) -> None:
        self.request_id = request_id
        self.page_timeout = page_timeout
        self.deadline = deadline
        self.block_resources = block_resources
        self.created_at = time.monotonic()
        self.context: BrowserContext | None = None
        self.page: Page | None = None
        self.cleanup_failures: list[CleanupFailure] = []
        self._releases: list[tuple[str, Callable[[], Awaitable[None]]]] = []
        self._closed = False

    @classmethod
    async def open(
        cls,
        browser: Browser,
        *,
        request_id: str,
        page_timeout: float,
        user_agent: str,
        deadline: float | None = None,
        block_resources: bool = True,
    ) -> RenderSession:
        session = cls(
            request_id=request_id,
            page_timeout=page_timeout,
            deadline=deadline,
            block_resources=block_resources,
        )
        try:
            session.context = await browser.new_context(**context_options(user_agent))
            session._push_release("context", session.context.close)

            session.page = await session.context.new_page()
            session._push_release("page", session.page.close)

            if block_resources:
                await session.page.route("**/*", filter_resources)
        except BaseException:
            await session.close()
            raise

        logger.debug(
            "render session opened",
            extra={"request_id": request_id, "block_resources": block_resources},
        )
        return session

    @property
    def closed(self) -> bool:
        return self._closed

    def remaining(self) -> float | None:
        """Seconds left until the session deadline, or ``None`` without one."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def _navigation_timeout(self) -> float:
        remaining = self.remaining()
        if remaining is None:
            return self.page_timeout
        return min(self.page_timeout, remaining)

    def _push_release(self, resource: str, release: Callable[[], Awaitable[None]]) -> None:
        self._releases.append((resource, release))

    async def navigate(self, url: str) -> str:
        """Load *url* up to DOMContentLoaded and return the rendered HTML."""
        if self._closed or self.page is None:
            raise RuntimeError("render session is closed")

        timeout = self._navigation_timeout()
        if timeout <= 0:
            raise NavigationError("timeout", "request deadline exhausted before navigation")

        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000)
            return await self.page.content()
        except PlaywrightTimeoutError as exc:
            raise NavigationError("timeout", exc.message) from exc
        except PlaywrightError as exc:
            raise NavigationError("network", exc.message) from exc

    async def close(self) -> None:
        """Release the page, then the context. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        while self._releases:
            resource, release = self._releases.pop()
            try:
                await release()
            except Exception as exc:
                logger.warning(
                    "failed to close %s",
                    resource,
                    extra={"request_id": self.request_id, "error": str(exc)},
                )
                self.cleanup_failures.append(CleanupFailure(resource=resource, error=str(exc)))

        logger.debug(
            "render session closed",
            extra={
                "request_id": self.request_id,
                "lifetime_ms": int((time.monotonic() - self.created_at) * 1000),
                "cleanup_failures": len(self.cleanup_failures),
            },
        )

    async def __aenter__(self) -> RenderSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
