"""AdviceContinuation: background chase for the slow advisory stage.

Started only after the primary poll returned `partial`. Every iteration is a
single request through `StatusPoller.fetch_once`; nothing here is ever
raised to the caller. The partial result is already on screen, so a failed
or exhausted chase degrades to "advice not available" and is logged.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from resultpoll.core.config import PollingConfig
from resultpoll.core.exceptions import PollCancelledError, ProtocolViolationError
from resultpoll.core.managers.result_cache import ResultCache
from resultpoll.core.managers.retry_policy import RetryPolicy
from resultpoll.core.managers.status_poller import StatusPoller
from resultpoll.core.models.result import CacheEntry, JobStatus, PollOutcome
from resultpoll.core.settings import logger
from resultpoll.core.utils.cancellation import CancellationToken


class ContinuationOutcome(StrEnum):
    completed = "completed"
    exhausted = "exhausted"
    failed = "failed"
    cancelled = "cancelled"


class ChaseResult:
    """Outcome of one chase plus the ready outcome when advice arrived."""

    def __init__(
        self,
        outcome: ContinuationOutcome,
        attempts: int,
        ready: Optional[PollOutcome] = None,
        error: Optional[BaseException] = None,
    ):
        self.outcome = outcome
        self.attempts = attempts
        self.ready = ready
        self.error = error

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"ChaseResult(outcome={self.outcome}, attempts={self.attempts})"


class AdviceContinuation:
    def __init__(
        self,
        poller: StatusPoller,
        cache: Optional[ResultCache] = None,
        config: Optional[PollingConfig] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._poller = poller
        self._cache = cache
        self.config = config or poller.config
        self._policy = policy or RetryPolicy()

    async def chase(
        self,
        job_id: str,
        config: Optional[PollingConfig] = None,
        token: Optional[CancellationToken] = None,
    ) -> ChaseResult:
        cfg = config or self.config
        token = token or CancellationToken()
        budget = cfg.advice_max_attempts
        attempts = 0
        last_status: Optional[JobStatus] = JobStatus.partial

        while not token.cancelled:
            attempts += 1
            logger.debug(f"[advice:attempt] attempt={attempts}/{budget} job_id={job_id}")
            try:
                outcome = await self._poller.fetch_once(job_id, cfg)
                if JobStatus.is_regression(last_status, outcome.status):
                    raise ProtocolViolationError(job_id, str(last_status), str(outcome.status))
            except Exception as exc:
                logger.warning(
                    f"[advice:stop] giving up on advice job_id={job_id} attempt={attempts} "
                    f"error={type(exc).__name__}: {exc}"
                )
                return ChaseResult(ContinuationOutcome.failed, attempts, error=exc)
            last_status = outcome.status

            if outcome.status == JobStatus.ready and outcome.advice is not None:
                if token.cancelled:
                    break
                self._store(outcome)
                logger.info(f"[advice:ready] job_id={job_id} attempts={attempts}")
                return ChaseResult(ContinuationOutcome.completed, attempts, ready=outcome)

            if self._policy.is_exhausted(attempts, budget):
                logger.warning(
                    f"[advice:exhausted] timeout waiting for advice job_id={job_id} "
                    f"attempts={attempts} last_status={outcome.status}"
                )
                return ChaseResult(ContinuationOutcome.exhausted, attempts)

            try:
                await token.sleep(cfg.advice_interval)
            except PollCancelledError:
                break

        logger.debug(f"[advice:cancelled] job_id={job_id} attempts={attempts}")
        return ChaseResult(ContinuationOutcome.cancelled, attempts)

    def _store(self, outcome: PollOutcome) -> None:
        if self._cache is None:
            return
        self._cache.put(outcome.job_id, CacheEntry.from_outcome(outcome))
