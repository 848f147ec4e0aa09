"""POST /getmd, GET /health, GET /ready endpoint handlers."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from pagemd.api.limiter import limiter, scrape_rate_limit
from pagemd.api.schemas import ErrorResponse, HealthResponse, ReadyResponse, ScrapeRequest
from pagemd.api.service import health_status, markdown_response, readiness
from pagemd.scrape import BrowserSupervisor, Scraper

router = APIRouter()


def _get_scraper(request: Request) -> Scraper:
    return request.app.state.scraper


def _get_supervisor(request: Request) -> BrowserSupervisor | None:
    return getattr(request.app.state, "supervisor", None)


@router.post(
    "/getmd",
    response_class=Response,
    responses={
        200: {"content": {"text/markdown": {}}, "description": "Main content as markdown"},
        400: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
@limiter.limit(scrape_rate_limit)
async def get_markdown(
    request: Request,
    body: ScrapeRequest,
    scraper: Scraper = Depends(_get_scraper),
) -> Response:
    request_id = getattr(request.state, "request_id", None)
    result = await scraper.scrape(body.url, request_id=request_id)
    return markdown_response(result)


@router.get("/health", response_model=HealthResponse)
async def health(supervisor: BrowserSupervisor | None = Depends(_get_supervisor)):
    status_code, body = health_status(supervisor)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@router.get("/ready", response_model=ReadyResponse)
async def ready(supervisor: BrowserSupervisor | None = Depends(_get_supervisor)):
    status_code, body = readiness(supervisor)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))
