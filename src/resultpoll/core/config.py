"""Configuration models for the polling core.

Pydantic-based, immutable configuration handed to StatusPoller,
AdviceContinuation and ResultSession so that tests can inject tiny
intervals and budgets without touching environment variables.
"""

from typing import Optional
from pydantic import BaseModel, Field, model_validator


class PollingConfig(BaseModel):
    """Configuration for one job's polling behavior.

    Attributes:
        base_url: API origin, without trailing slash
        status_path: Path prefix of the status route; `/{job_id}/result` is appended
        max_attempts: Request budget of the primary poll
        interval: Seconds between attempts of the primary poll
        advice_max_attempts: Request budget of the advice continuation
        advice_interval: Seconds between attempts of the advice continuation
        request_timeout: Total seconds allowed for a single HTTP request
        resume_partial_from_cache: Chase advice for cached entries that have none
    """

    base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the prediction API"
    )

    status_path: str = Field(
        default="/v1/predictions",
        description="Prefix of the status route"
    )

    max_attempts: int = Field(
        default=120,
        ge=1,
        description="Maximum status requests made by the primary poll"
    )

    interval: float = Field(
        default=1.0,
        gt=0,
        description="Fixed delay in seconds between primary poll attempts"
    )

    advice_max_attempts: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum status requests made while chasing advice (None = max_attempts)"
    )

    advice_interval: Optional[float] = Field(
        default=None,
        gt=0,
        description="Delay in seconds between advice attempts (None = interval)"
    )

    request_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Per-request timeout in seconds (None = adapter default)"
    )

    resume_partial_from_cache: bool = Field(
        default=False,
        description="Start the advice chase when the cached entry has no advice yet"
    )

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @model_validator(mode="after")
    def _fill_advice_defaults(self) -> "PollingConfig":
        # frozen model: write through __dict__ once, at validation time
        if self.advice_max_attempts is None:
            self.__dict__["advice_max_attempts"] = self.max_attempts
        if self.advice_interval is None:
            self.__dict__["advice_interval"] = self.interval
        self.__dict__["base_url"] = self.base_url.rstrip("/")
        return self

    def status_url(self, job_id: str) -> str:
        return f"{self.base_url}{self.status_path}/{job_id}/result"

    @classmethod
    def from_app_settings(cls, settings) -> "PollingConfig":
        """Factory method to construct config from a PollerSettings instance."""
        return cls(
            base_url=settings.RESULTPOLL_BASE_URL,
            status_path=settings.RESULTPOLL_STATUS_PATH,
            max_attempts=settings.RESULTPOLL_MAX_ATTEMPTS,
            interval=settings.RESULTPOLL_INTERVAL_MS / 1000,
            advice_max_attempts=settings.RESULTPOLL_ADVICE_MAX_ATTEMPTS,
            request_timeout=settings.RESULTPOLL_REQUEST_TIMEOUT,
            resume_partial_from_cache=settings.RESULTPOLL_RESUME_PARTIAL_FROM_CACHE,
        )
