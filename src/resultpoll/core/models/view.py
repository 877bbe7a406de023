from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from resultpoll.core.models.result import AdvicePayload, ResultPayload


class ViewStatus(StrEnum):
    loading_primary = "loading-primary"
    loading_advice = "loading-advice"
    ready = "ready"
    error = "error"
    advice_unavailable = "advice-unavailable"

    @property
    def is_terminal(self) -> bool:
        return self in {ViewStatus.ready, ViewStatus.error, ViewStatus.advice_unavailable}


class ResultView(BaseModel):
    """What a consumer renders for one job at a given moment."""

    job_id: str
    status: ViewStatus = ViewStatus.loading_primary
    result: Optional[ResultPayload] = None
    advice: Optional[AdvicePayload] = None
    error: Optional[str] = None
    from_cache: bool = False
