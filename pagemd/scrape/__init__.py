"""Browser-backed page scraping: supervisor, render sessions, extraction."""

from .errors import (
    BrowserLaunchError,
    CleanupFailure,
    ErrorKind,
    ExtractionError,
    NavigationError,
    ScrapeError,
    UrlRejected,
)
from .extractor import extract, html_to_markdown
from .models import UNTITLED, ExtractedDocument, ScrapeResult
from .orchestrator import Scraper, ScrapePhase
from .session import RenderSession
from .supervisor import BrowserSupervisor, SupervisorState
from .urls import is_admissible, validate_url

__all__ = [
    "BrowserLaunchError",
    "BrowserSupervisor",
    "CleanupFailure",
    "ErrorKind",
    "ExtractedDocument",
    "ExtractionError",
    "NavigationError",
    "RenderSession",
    "ScrapeError",
    "ScrapePhase",
    "ScrapeResult",
    "Scraper",
    "SupervisorState",
    "UNTITLED",
    "UrlRejected",
    "extract",
    "html_to_markdown",
    "is_admissible",
    "validate_url",
]
