"""FastAPI app entrypoint."""

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from pagemd import __version__
from pagemd.api.limiter import limiter, rate_limit_exceeded_handler
from pagemd.api.routes import router
from pagemd.config import Settings, get_settings
from pagemd.logging_config import setup_logging
from pagemd.scrape import BrowserLaunchError, BrowserSupervisor, Scraper

logger = logging.getLogger(__name__)

# No CSP: the service only answers API calls
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Resource-Policy": "same-origin",
}

EXPOSED_HEADERS = ["X-Page-Title", "X-Processing-Time", "X-Request-ID"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # Initialize logging FIRST so all subsequent operations produce JSON logs
    setup_logging(settings.log_level)
    logger.info("starting pagemd service", extra={"version": __version__})

    supervisor = BrowserSupervisor(settings)
    try:
        await supervisor.launch()
    except BrowserLaunchError:
        # Never serve scrape requests without a browser
        logger.critical("browser unavailable, aborting startup", exc_info=True)
        raise

    app.state.supervisor = supervisor
    app.state.scraper = Scraper(supervisor, settings)

    logger.info(
        "pagemd service ready",
        extra={
            "host": settings.host,
            "port": settings.port,
            "headless": settings.browser_headless,
            "block_resources": settings.block_resources,
            "page_timeout": settings.page_timeout,
            "request_timeout": settings.request_timeout,
            "rate_limit": settings.rate_limit,
        },
    )

    try:
        yield
    finally:
        logger.info("shutting down pagemd service")
        await supervisor.shutdown()


async def request_context(request: Request, call_next):
    """Attach a request id and the security headers to every response."""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    response.headers.update(SECURITY_HEADERS)
    return response


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="pagemd", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.middleware("http")(request_context)
    if settings.cors_origin:
        origins = [origin.strip() for origin in settings.cors_origin.split(",") if origin.strip()]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
            expose_headers=EXPOSED_HEADERS,
        )

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Console entrypoint: serve ``app`` with uvicorn on HOST:PORT."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
