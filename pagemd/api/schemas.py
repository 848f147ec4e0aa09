"""Request/response Pydantic models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ScrapeRequest(BaseModel):
    url: str = Field(min_length=1, max_length=2048)


class ErrorResponse(BaseModel):
    error: str
    details: str
    url: str | None = None
    request_id: str | None = None
    reason: str | None = None


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    browser: Literal["connected", "disconnected"]
    timestamp: datetime
    version: str


class ReadyResponse(BaseModel):
    ready: bool
    reason: str | None = None
