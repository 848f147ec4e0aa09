"""Data models for the scrape submodule."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ScrapeError

UNTITLED = "Untitled"


@dataclass
class ExtractedDocument:
    """Main content of a rendered page."""

    title: str
    content: str  # readability HTML fragment
    markdown: str

    @property
    def display_title(self) -> str:
        return self.title or UNTITLED


@dataclass
class ScrapeResult:
    """Outcome of one scrape: a document or a classified error, plus timing."""

    url: str
    request_id: str
    duration_ms: int
    document: ExtractedDocument | None = None
    error: ScrapeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.document is not None
