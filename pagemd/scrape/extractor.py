"""Main-content extraction (readability) and markdown conversion (markdownify)."""

from __future__ import annotations

import logging
import re

import lxml.html
from lxml.etree import ParserError
from markdownify import ATX, MarkdownConverter
from readability import Document
from readability.readability import Unparseable

from .errors import ExtractionError
from .models import ExtractedDocument

logger = logging.getLogger(__name__)

# readability-lxml returns this when the page has no <title>
_NO_TITLE = "[no-title]"

# Two or more blank (or whitespace-only) lines in a row
_BLANK_RUN_RE = re.compile(r"\n(?:[ \t]*\n){2,}")


class GfmConverter(MarkdownConverter):
    """markdownify converter with GitHub-flavoured extras.

    markdownify already emits pipe tables, ``~~`` strikethrough and fenced
    ``pre`` blocks; this adds task-list checkboxes.
    """

    def __init__(self, **options) -> None:
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        super().__init__(**options)

    def convert_input(self, el, text, parent_tags):
        if (el.get("type") or "").lower() != "checkbox":
            return ""
        return "[x] " if el.has_attr("checked") else "[ ] "


_converter = GfmConverter()


def html_to_markdown(html: str) -> str:
    """Convert an HTML fragment to normalised markdown."""
    markdown = _converter.convert(html)
    return _BLANK_RUN_RE.sub("\n\n", markdown).strip()


def _visible_text(fragment: str) -> str:
    try:
        root = lxml.html.document_fromstring(fragment)
    except ParserError:
        return ""
    return root.text_content().strip()


def extract(raw_html: str, origin_url: str) -> ExtractedDocument:
    """Isolate the main article of *raw_html* and convert it to markdown.

    Relative links and image sources are resolved against *origin_url*.
    Raises :class:`ExtractionError` when no main-content region with any
    text can be identified.
    """
    if not raw_html or not raw_html.strip():
        raise ExtractionError("no-content")

    doc = Document(raw_html, url=origin_url)
    try:
        content = doc.summary(html_partial=True)
        title = doc.title()
    except Unparseable:
        logger.debug("readability could not parse page", extra={"url": origin_url}, exc_info=True)
        raise ExtractionError("no-content") from None

    if not _visible_text(content):
        raise ExtractionError("no-content")

    if title == _NO_TITLE:
        title = ""

    markdown = html_to_markdown(content)
    if not markdown:
        raise ExtractionError("no-content")

    logger.debug(
        "content extracted",
        extra={"url": origin_url, "title": title[:80], "content_length": len(markdown)},
    )
    return ExtractedDocument(title=title.strip(), content=content, markdown=markdown)
