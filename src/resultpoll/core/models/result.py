from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(StrEnum):
    queued = "queued"
    processing = "processing"
    partial = "partial"
    ready = "ready"
    error = "error"
    not_found = "not_found"

    @property
    def rank(self) -> int:
        """Position in the forward-only lifecycle; terminal failures rank highest."""
        return _STATUS_RANK[self]

    @property
    def is_pending(self) -> bool:
        return self in {JobStatus.queued, JobStatus.processing}

    @classmethod
    def is_regression(cls, previous: Optional["JobStatus"], new: "JobStatus") -> bool:
        """True when `new` moves the job backwards relative to `previous`.

        Only a move away from `ready` counts: the advisory stage can report
        `processing` again while it is still working after a `partial`.
        """
        if previous is None:
            return False
        return previous == cls.ready and new.rank < previous.rank


_STATUS_RANK = {
    JobStatus.queued: 0,
    JobStatus.processing: 0,
    JobStatus.partial: 1,
    JobStatus.ready: 2,
    JobStatus.error: 3,
    JobStatus.not_found: 3,
}


class AdviceFactor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    advices: List[str] = Field(default_factory=list)
    references: List[str] = Field(default_factory=list)


class AdvicePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: str = ""
    factors: Dict[str, AdviceFactor] = Field(default_factory=dict)


class ResultTiming(BaseModel):
    """Benchmark values reported by the numeric model."""

    model_config = ConfigDict(extra="ignore")

    ridge_prediction_ms: Optional[float] = None
    server_processing_ms: Optional[float] = None
    start_timestamp: Optional[float] = None
    total_end_to_end_ms: Optional[float] = None

    def with_end_to_end(self, now: Optional[float] = None) -> "ResultTiming":
        if self.start_timestamp is None:
            return self
        now = now if now is not None else datetime.now(timezone.utc).timestamp()
        return self.model_copy(
            update={"total_end_to_end_ms": (now - self.start_timestamp) * 1000}
        )


class ResultMetadata(BaseModel):
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    numeric_completed_at: Optional[datetime] = None
    advisory_completed_at: Optional[datetime] = None
    timing: Optional[ResultTiming] = None


class ResultPayload(BaseModel):
    """Computed result of one job, partial (score only) or complete."""

    score: float
    category: str
    analysis: Optional[str] = None
    advice: Optional[AdvicePayload] = None
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, value: Any) -> float:
        # backend regression can dip slightly below zero
        return max(0.0, float(value))

    @property
    def is_partial(self) -> bool:
        return self.analysis is None and self.advice is None


class StatusResult(BaseModel):
    """`result` object of the status response body."""

    model_config = ConfigDict(extra="ignore")

    prediction_score: Optional[float] = None
    health_level: Optional[str] = None
    wellness_analysis: Optional[str] = None
    advice: Optional[AdvicePayload] = None
    timing: Optional[ResultTiming] = None


class StatusResponse(BaseModel):
    """Body of `GET {status_path}/{job_id}/result`.

    `status` is kept as a raw string; unknown values are a dispatch concern,
    not a parsing one.
    """

    model_config = ConfigDict(extra="ignore")

    status: Optional[str] = None
    result: Optional[StatusResult] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    numeric_completed_at: Optional[datetime] = None
    advisory_completed_at: Optional[datetime] = None
    message: Optional[str] = None
    error: Optional[str] = None

    def metadata(self) -> ResultMetadata:
        timing = self.result.timing if self.result else None
        return ResultMetadata(
            created_at=self.created_at,
            completed_at=self.completed_at,
            numeric_completed_at=self.numeric_completed_at,
            advisory_completed_at=self.completed_at or self.advisory_completed_at,
            timing=timing.with_end_to_end() if timing else None,
        )

    def to_payload(self, complete: bool) -> ResultPayload:
        if self.result is None:
            raise ValueError("status response carries no result object")
        if self.result.prediction_score is None or self.result.health_level is None:
            raise ValueError("result object lacks prediction_score or health_level")
        return ResultPayload(
            score=self.result.prediction_score,
            category=self.result.health_level,
            analysis=self.result.wellness_analysis if complete else None,
            advice=self.result.advice if complete else None,
            metadata=self.metadata(),
        )


class PollOutcome(BaseModel):
    """Resolved stage of one poll call. `payload` is None only while pending."""

    job_id: str
    status: JobStatus
    payload: Optional[ResultPayload] = None

    @property
    def advice(self) -> Optional[AdvicePayload]:
        return self.payload.advice if self.payload else None


class CacheEntry(BaseModel):
    job_id: str
    result_data: ResultPayload
    advice_data: Optional[AdvicePayload] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_outcome(cls, outcome: PollOutcome) -> "CacheEntry":
        if outcome.payload is None:
            raise ValueError(f"outcome for {outcome.job_id} has no payload to cache")
        return cls(
            job_id=outcome.job_id,
            result_data=outcome.payload,
            advice_data=outcome.payload.advice,
        )
