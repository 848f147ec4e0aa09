"""HTTP layer tests — /getmd, /health, /ready, middleware, lifespan."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from pagemd.api.limiter import limiter
from pagemd.main import SECURITY_HEADERS, create_app
from pagemd.scrape import BrowserLaunchError, ErrorKind, ExtractedDocument, ScrapeError, ScrapeResult


def _ok_result(title: str = "Tide Pools", markdown: str = "# Tide Pools\n\nBody text.") -> ScrapeResult:
    return ScrapeResult(
        url="https://example.com/a",
        request_id="req-1",
        duration_ms=42,
        document=ExtractedDocument(title=title, content="<div></div>", markdown=markdown),
    )


def _error_result(kind: ErrorKind, message: str = "failed", reason: str | None = None) -> ScrapeResult:
    return ScrapeResult(
        url="https://example.com/a",
        request_id="req-1",
        duration_ms=7,
        error=ScrapeError(kind, message, reason=reason),
    )


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def scraper() -> MagicMock:
    fake = MagicMock()
    fake.scrape = AsyncMock(return_value=_ok_result())
    return fake


@pytest.fixture
def supervisor() -> MagicMock:
    fake = MagicMock()
    fake.is_live.return_value = True
    return fake


@pytest.fixture
def client(settings, scraper, supervisor) -> TestClient:
    # No lifespan: state is wired by hand so no browser is launched
    app = create_app(settings)
    app.state.scraper = scraper
    app.state.supervisor = supervisor
    return TestClient(app)


# --- POST /getmd ---


class TestGetMarkdown:
    def test_returns_markdown_with_headers(self, client: TestClient, scraper) -> None:
        resp = client.post("/getmd", json={"url": "https://example.com/a"})

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "text/markdown; charset=utf-8"
        assert resp.text == "# Tide Pools\n\nBody text."
        assert resp.headers["X-Page-Title"] == "Tide%20Pools"
        assert resp.headers["X-Processing-Time"] == "42"
        scraper.scrape.assert_awaited_once()
        assert scraper.scrape.await_args.args == ("https://example.com/a",)

    def test_title_is_percent_encoded(self, client: TestClient, scraper) -> None:
        scraper.scrape.return_value = _ok_result(title="Café & Crème: 100% (vol. 2)")
        resp = client.post("/getmd", json={"url": "https://example.com/a"})
        assert resp.headers["X-Page-Title"] == "Caf%C3%A9%20%26%20Cr%C3%A8me%3A%20100%25%20(vol.%202)"

    def test_missing_title_uses_placeholder(self, client: TestClient, scraper) -> None:
        scraper.scrape.return_value = _ok_result(title="")
        resp = client.post("/getmd", json={"url": "https://example.com/a"})
        assert resp.headers["X-Page-Title"] == "Untitled"

    def test_request_id_passed_through(self, client: TestClient, scraper) -> None:
        resp = client.post(
            "/getmd",
            json={"url": "https://example.com/a"},
            headers={"X-Request-ID": "abc123"},
        )
        assert resp.headers["X-Request-ID"] == "abc123"
        assert scraper.scrape.await_args.kwargs["request_id"] == "abc123"

    @pytest.mark.parametrize(
        "kind, status",
        [
            (ErrorKind.VALIDATION, 400),
            (ErrorKind.SERVICE_UNAVAILABLE, 503),
            (ErrorKind.TIMEOUT, 504),
            (ErrorKind.UPSTREAM, 502),
            (ErrorKind.EXTRACTION, 422),
            (ErrorKind.INTERNAL, 500),
        ],
    )
    def test_error_kinds_map_to_status(self, client: TestClient, scraper, kind, status) -> None:
        scraper.scrape.return_value = _error_result(kind, "something broke")
        resp = client.post("/getmd", json={"url": "https://example.com/a"})

        assert resp.status_code == status
        body = resp.json()
        assert body["details"] == "something broke"
        assert body["url"] == "https://example.com/a"
        assert body["request_id"] == "req-1"

    def test_validation_error_body(self, client: TestClient, scraper) -> None:
        scraper.scrape.return_value = _error_result(ErrorKind.VALIDATION, "unsafe", reason="private-range")
        resp = client.post("/getmd", json={"url": "http://10.0.0.1/"})

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid or unsafe URL"
        assert resp.json()["reason"] == "private-range"

    def test_unavailable_error_body(self, client: TestClient, scraper) -> None:
        scraper.scrape.return_value = _error_result(ErrorKind.SERVICE_UNAVAILABLE)
        resp = client.post("/getmd", json={"url": "https://example.com/a"})
        assert resp.json()["error"] == "Browser not ready"

    def test_scrape_failure_body(self, client: TestClient, scraper) -> None:
        scraper.scrape.return_value = _error_result(ErrorKind.UPSTREAM, "net::ERR_CONNECTION_REFUSED")
        resp = client.post("/getmd", json={"url": "https://example.com/a"})
        assert resp.json()["error"] == "Scraping failed"

    def test_result_without_document_is_internal_error(self, client: TestClient, scraper) -> None:
        scraper.scrape.return_value = ScrapeResult(url="https://example.com/a", request_id="req-1", duration_ms=3)
        resp = client.post("/getmd", json={"url": "https://example.com/a"})

        assert resp.status_code == 500
        assert resp.json()["error"] == "Scraping failed"

    @pytest.mark.parametrize("payload", [{}, {"url": ""}, {"url": "https://e.com/" + "a" * 2048}, {"url": 5}])
    def test_invalid_body_rejected(self, client: TestClient, scraper, payload) -> None:
        resp = client.post("/getmd", json=payload)
        assert resp.status_code == 422
        scraper.scrape.assert_not_awaited()

    def test_rate_limited(self, client: TestClient, settings) -> None:
        statuses = [client.post("/getmd", json={"url": "https://example.com/a"}).status_code for _ in range(11)]

        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429

    def test_rate_limit_body(self, client: TestClient) -> None:
        for _ in range(10):
            client.post("/getmd", json={"url": "https://example.com/a"})
        resp = client.post("/getmd", json={"url": "https://example.com/a"})

        assert resp.json()["error"] == "Rate limit exceeded"
        assert "10 per 1 minute" in resp.json()["message"]


# --- health / readiness ---


class TestProbes:
    def test_health_live(self, client: TestClient) -> None:
        resp = client.get("/health")
        body = resp.json()

        assert resp.status_code == 200
        assert body["status"] == "healthy"
        assert body["browser"] == "connected"
        assert body["version"]
        assert body["timestamp"]

    def test_health_not_live(self, client: TestClient, supervisor) -> None:
        supervisor.is_live.return_value = False
        resp = client.get("/health")

        assert resp.status_code == 503
        assert resp.json()["status"] == "unhealthy"
        assert resp.json()["browser"] == "disconnected"

    def test_ready(self, client: TestClient) -> None:
        resp = client.get("/ready")
        assert resp.status_code == 200
        assert resp.json() == {"ready": True}

    def test_not_ready(self, client: TestClient, supervisor) -> None:
        supervisor.is_live.return_value = False
        resp = client.get("/ready")

        assert resp.status_code == 503
        assert resp.json() == {"ready": False, "reason": "Browser not connected"}

    def test_probes_not_rate_limited(self, client: TestClient) -> None:
        statuses = {client.get("/health").status_code for _ in range(15)}
        assert statuses == {200}


# --- middleware ---


class TestMiddleware:
    def test_security_headers(self, client: TestClient) -> None:
        resp = client.get("/health")
        for name, value in SECURITY_HEADERS.items():
            assert resp.headers[name] == value
        assert "content-security-policy" not in resp.headers

    def test_request_id_generated(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 12

    def test_cors_disabled_by_default(self, client: TestClient) -> None:
        resp = client.get("/health", headers={"Origin": "https://app.example.com"})
        assert "access-control-allow-origin" not in resp.headers

    def test_cors_enabled_with_origin(self, settings, scraper, supervisor) -> None:
        settings.cors_origin = "https://app.example.com"
        app = create_app(settings)
        app.state.scraper = scraper
        app.state.supervisor = supervisor

        resp = TestClient(app).get("/health", headers={"Origin": "https://app.example.com"})

        assert resp.headers["access-control-allow-origin"] == "https://app.example.com"


# --- lifespan ---


class TestLifespan:
    @patch("pagemd.main.setup_logging")
    @patch("pagemd.main.BrowserSupervisor")
    def test_startup_launches_and_shutdown_closes(self, mock_supervisor_cls, mock_setup_logging, settings) -> None:
        instance = mock_supervisor_cls.return_value
        instance.launch = AsyncMock()
        instance.shutdown = AsyncMock()
        instance.is_live.return_value = True
        app = create_app(settings)

        with TestClient(app) as client:
            assert client.get("/ready").status_code == 200
            assert app.state.supervisor is instance
            instance.launch.assert_awaited_once()

        instance.shutdown.assert_awaited_once()

    @patch("pagemd.main.setup_logging")
    @patch("pagemd.main.BrowserSupervisor")
    def test_launch_failure_aborts_startup(self, mock_supervisor_cls, mock_setup_logging, settings) -> None:
        instance = mock_supervisor_cls.return_value
        instance.launch = AsyncMock(side_effect=BrowserLaunchError(3, RuntimeError("no chromium")))
        app = create_app(settings)

        with pytest.raises(BrowserLaunchError):
            with TestClient(app):
                pass

        assert not hasattr(app.state, "scraper")
