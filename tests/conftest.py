"""Fixtures — settings, fake Playwright objects, a live supervisor."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from pagemd.config import Settings
from pagemd.scrape import BrowserSupervisor

ARTICLE_HTML = """
<html>
  <head><title>Understanding Tide Pools</title></head>
  <body>
    <nav class="menu">
      <a href="/">Home</a> <a href="/about">About us</a> <a href="/subscribe">Subscribe now</a>
    </nav>
    <div class="sidebar sponsor">
      <p>Sponsored: buy the SuperWidget 3000 today</p>
    </div>
    <article class="post">
      <h1>Understanding Tide Pools</h1>
      <p>Tide pools are rocky pockets of seawater left behind when the ocean
      retreats at low tide, and they host a surprising variety of life, from
      anemones and sea stars to small fish, crabs, and snails.</p>
      <p>Every organism living in a tide pool has to survive dramatic changes in
      temperature, salinity, and oxygen, sometimes within a few hours, which
      makes these habitats a natural laboratory for studying adaptation.</p>
      <p>Visitors should step carefully, avoid turning over rocks, and never
      remove animals from the water, because even brief handling can injure
      delicate creatures. Read our <a href="/guide">field guide</a> before you go.</p>
      <p>Researchers have monitored the same pools for decades, recording how
      warming seas, invasive species, and trampling by visitors change the
      balance of species, and their long records are invaluable.</p>
    </article>
    <footer class="footer">Copyright 2024 Example Coastal Society</footer>
  </body>
</html>
"""

ARTICLE_URL = "https://example.com/articles/tide-pools"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        page_timeout=1000,
        request_timeout=3000,
        browser_launch_max_retries=3,
        browser_launch_retry_delay=1.0,
        block_resources=True,
    )


def _make_page(html: str = ARTICLE_HTML, goto=None) -> MagicMock:
    page = MagicMock(name="page")
    page.goto = AsyncMock(side_effect=goto)
    page.content = AsyncMock(return_value=html)
    page.route = AsyncMock()
    page.close = AsyncMock()
    return page


def _make_context(page: MagicMock) -> MagicMock:
    context = MagicMock(name="context")
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()
    context.page = page
    return context


@pytest.fixture
def make_page():
    return _make_page


@pytest.fixture
def make_context():
    return _make_context


@pytest.fixture
def browser() -> MagicMock:
    """Fake Browser; every ``new_context`` call yields a fresh context + page.

    Created contexts are collected on ``browser.contexts``. Tests override
    ``browser.page_factory`` to control what pages do.
    """
    fake = MagicMock(name="browser")
    fake.is_connected.return_value = True
    fake.close = AsyncMock()
    fake.contexts = []
    fake.page_factory = _make_page

    async def new_context(**kwargs):
        context = _make_context(fake.page_factory())
        context.options = kwargs
        fake.contexts.append(context)
        return context

    fake.new_context = AsyncMock(side_effect=new_context)
    return fake


@pytest.fixture
def playwright(browser) -> MagicMock:
    fake = MagicMock(name="playwright")
    fake.chromium.launch = AsyncMock(return_value=browser)
    fake.stop = AsyncMock()
    return fake


@pytest.fixture
def patched_playwright(playwright):
    """Patch ``async_playwright`` in the supervisor module to return *playwright*."""
    with patch("pagemd.scrape.supervisor.async_playwright") as mock_async_playwright:
        mock_async_playwright.return_value.start = AsyncMock(return_value=playwright)
        yield mock_async_playwright


@pytest_asyncio.fixture
async def supervisor(settings, patched_playwright):
    """A launched supervisor backed by the fake browser."""
    sup = BrowserSupervisor(settings)
    await sup.launch()
    yield sup
    await sup.shutdown()


@pytest.fixture
def article_html() -> str:
    return ARTICLE_HTML


@pytest.fixture
def article_url() -> str:
    return ARTICLE_URL
