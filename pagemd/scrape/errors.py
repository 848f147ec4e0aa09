"""Error types raised and returned by the scrape pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

NavigationFailure = Literal["timeout", "network"]
RejectionReason = Literal["malformed", "scheme", "blocked-host", "private-range"]


class ErrorKind(str, Enum):
    """Failure classes a scrape can end in. The HTTP layer maps each to a status code."""

    VALIDATION = "validation"
    SERVICE_UNAVAILABLE = "service_unavailable"
    TIMEOUT = "timeout"
    UPSTREAM = "upstream"
    EXTRACTION = "extraction"
    INTERNAL = "internal"


class ScrapeError(Exception):
    """A classified per-request failure."""

    def __init__(self, kind: ErrorKind, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.reason = reason

    def __repr__(self) -> str:
        return f"ScrapeError(kind={self.kind.value!r}, message={self.message!r}, reason={self.reason!r})"


class UrlRejected(ValueError):
    """Raised by the URL validator; ``reason`` names the rule that fired."""

    def __init__(self, reason: RejectionReason, url: object) -> None:
        super().__init__(f"url rejected ({reason}): {url!r}")
        self.reason = reason
        self.url = url


class NavigationError(Exception):
    """Navigation failed. ``kind`` is set where the failure was observed."""

    def __init__(self, kind: NavigationFailure, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class ExtractionError(Exception):
    """The page rendered but had no identifiable main content."""

    def __init__(self, reason: str = "no-content") -> None:
        super().__init__(f"content extraction failed: {reason}")
        self.reason = reason


class BrowserLaunchError(RuntimeError):
    """The browser could not be started within the retry budget. Fatal at startup."""

    def __init__(self, attempts: int, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"failed to launch browser after {attempts} attempts{detail}")
        self.attempts = attempts
        self.cause = cause


@dataclass(frozen=True)
class CleanupFailure:
    """A release action that raised while a session was being torn down."""

    resource: str
    error: str
