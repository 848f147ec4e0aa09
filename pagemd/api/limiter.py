"""Shared slowapi rate-limiter singleton.

The limit string is read from settings on every request, so ``RATE_LIMIT``
changes take effect without re-importing the route modules.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from pagemd.config import get_settings

limiter: Limiter = Limiter(key_func=get_remote_address)


def scrape_rate_limit() -> str:
    return get_settings().rate_limit


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "message": f"Maximum {exc.detail}",
        },
    )
