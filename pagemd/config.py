"""Pydantic Settings — loads configuration from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; LLM-MD-Scraper/1.0)"


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "ignore"}

    host: str = "0.0.0.0"
    port: int = 3000

    # Timeouts are in milliseconds
    page_timeout: int = 30000
    request_timeout: int = 45000

    browser_headless: bool = True
    browser_launch_max_retries: int = 3
    browser_launch_retry_delay: float = 1.0
    block_resources: bool = True
    user_agent: str = DEFAULT_USER_AGENT

    rate_limit: str = "10/minute"
    cors_origin: str = ""
    log_level: str = "INFO"

    @property
    def page_timeout_seconds(self) -> float:
        return self.page_timeout / 1000

    @property
    def request_timeout_seconds(self) -> float:
        return self.request_timeout / 1000


@lru_cache
def get_settings() -> Settings:
    return Settings()
