from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings
from rich import print

from resultpoll.adapters.logging_adapter import LoggingAdapter
from resultpoll.core.interfaces.logging import LoggingPort


# using pydantic_settings to manage environment variables
# and do automatic type casting in a central place
class PollerSettings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }
    RESULTPOLL_LOG_LEVEL: str = "INFO"
    RESULTPOLL_BASE_URL: str = "http://localhost:8000"
    RESULTPOLL_STATUS_PATH: str = "/v1/predictions"
    RESULTPOLL_MAX_ATTEMPTS: int = 120
    RESULTPOLL_INTERVAL_MS: int = 1000
    # None: the advice chase gets the same budget as the primary poll
    RESULTPOLL_ADVICE_MAX_ATTEMPTS: int | None = None
    RESULTPOLL_REQUEST_TIMEOUT: float = 10.0  # seconds, per request
    # None: results are cached in process memory only
    RESULTPOLL_CACHE_PATH: Path | None = None
    # None: cached results never expire
    RESULTPOLL_CACHE_TTL: float | None = None
    RESULTPOLL_RESUME_PARTIAL_FROM_CACHE: bool = False

    @field_validator("RESULTPOLL_BASE_URL", mode="before")
    def strip_trailing_slash(cls, value: str) -> str:
        """Status URLs are built as base + path; a trailing slash would double up."""
        return value.rstrip("/") if isinstance(value, str) else value

    @field_validator("RESULTPOLL_STATUS_PATH", mode="before")
    def ensure_leading_slash(cls, value: str) -> str:
        if isinstance(value, str) and value and not value.startswith("/"):
            value = "/" + value
        return value.rstrip("/") if isinstance(value, str) else value

    def print_settings(self, logger: LoggingPort):
        """Prints the settings for debugging purposes"""
        logger.info("resultpoll settings:")
        print(self)


app_settings = PollerSettings()

logger: LoggingPort = LoggingAdapter(log_level=app_settings.RESULTPOLL_LOG_LEVEL)
