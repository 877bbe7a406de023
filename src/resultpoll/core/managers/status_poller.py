"""StatusPoller: primary poll for a job's result.

One GET per attempt against `{base_url}{status_path}/{job_id}/result`, the
body dispatched on its `status` field:

- ready       -> complete payload, returned
- partial     -> score-only payload, returned (the caller decides whether to chase advice)
- processing  -> sleep the fixed interval and retry while the budget lasts, else PollTimeoutError
- queued        (same as processing)
- error       -> BackendError, immediately
- not_found   -> NotFoundError, immediately
- anything else -> ConfigurationError, immediately (gateway misrouting gets the operator message)

Transport failures are classified by RetryPolicy and retried on the same
fixed interval; when the budget runs out they surface as NetworkError.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from resultpoll.adapters.retry_tenacity import TenacityRetryAdapter
from resultpoll.core.config import PollingConfig
from resultpoll.core.exceptions import (
    BackendError,
    ConfigurationError,
    GATEWAY_ROUTE_MESSAGE,
    GATEWAY_ROUTE_PATTERN,
    NotFoundError,
    PollCancelledError,
    PollTimeoutError,
    TransportError,
)
from resultpoll.core.interfaces.http_client import HttpClientPort
from resultpoll.core.interfaces.retry import RetryPort
from resultpoll.core.managers.result_cache import ResultCache
from resultpoll.core.managers.retry_policy import RetryPolicy, TransientPollError
from resultpoll.core.models.result import CacheEntry, JobStatus, PollOutcome, StatusResponse
from resultpoll.core.settings import logger
from resultpoll.core.utils.cancellation import CancellationToken


class JobPendingSignal(Exception):
    """Raised by an attempt that found the job still queued/processing.

    Only the retry adapter sees it; it never leaves `poll`.
    """

    def __init__(self, job_id: str, status: JobStatus):
        self.job_id = job_id
        self.status = status
        super().__init__(f"job {job_id} is {status}")


def is_gateway_misrouting(message: Optional[str]) -> bool:
    return bool(message) and GATEWAY_ROUTE_PATTERN in message


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


class StatusPoller:
    """Primary status poll with bounded, fixed-interval retries.

    Attributes:
        config: Default polling configuration, overridable per call
    """

    def __init__(
        self,
        http_client: HttpClientPort,
        config: Optional[PollingConfig] = None,
        retry_port: Optional[RetryPort] = None,
        policy: Optional[RetryPolicy] = None,
        cache: Optional[ResultCache] = None,
    ) -> None:
        self._http = http_client
        self.config = config or PollingConfig()
        self._retry = retry_port or TenacityRetryAdapter()
        self._policy = policy or RetryPolicy()
        self._cache = cache

    async def poll(
        self,
        job_id: str,
        config: Optional[PollingConfig] = None,
        token: Optional[CancellationToken] = None,
    ) -> PollOutcome:
        """Poll until the job resolves to `partial` or `ready`.

        Raises:
            PollTimeoutError: still processing after `max_attempts` requests
            NotFoundError / BackendError / ConfigurationError: on first occurrence
            NetworkError: transient failures outlasted the budget
            PollCancelledError: `token` was cancelled
        """
        cfg = config or self.config
        token = token or CancellationToken()
        attempts = 0

        async def attempt_once() -> PollOutcome:
            nonlocal attempts
            token.raise_if_cancelled(job_id)
            attempts += 1
            logger.debug(
                f"[poll:attempt] attempt={attempts}/{cfg.max_attempts} job_id={job_id}"
            )
            try:
                outcome = await self.fetch_once(job_id, cfg)
            except Exception as exc:
                if self._policy.is_fatal(exc):
                    logger.warning(
                        f"[poll:fatal] job_id={job_id} attempt={attempts} "
                        f"error={type(exc).__name__}: {exc}"
                    )
                    raise
                raise TransientPollError(exc, job_id, attempts) from exc
            if outcome.status.is_pending:
                raise JobPendingSignal(job_id, outcome.status)
            return outcome

        def log_retry(attempt: int, exc: BaseException) -> None:
            if isinstance(exc, TransientPollError):
                logger.warning(
                    f"[poll:transient] job_id={job_id} attempt={attempt}/{cfg.max_attempts} "
                    f"error={type(exc.cause).__name__}: {exc.cause}"
                )
            else:
                logger.debug(
                    f"[poll:retry] job_id={job_id} attempt={attempt}/{cfg.max_attempts} "
                    f"status={exc.status} next_in={cfg.interval}s"
                )

        try:
            outcome = await self._retry.execute(
                attempt_once,
                attempts=cfg.max_attempts,
                wait_initial=cfg.interval,
                exception_types=(TransientPollError, JobPendingSignal),
                sleep=token.sleep,
                should_stop=lambda: token.cancelled,
                on_retry=log_retry,
            )
        except PollCancelledError:
            logger.debug(f"[poll:cancelled] job_id={job_id} attempts={attempts}")
            raise PollCancelledError(job_id)
        except JobPendingSignal as exc:
            if token.cancelled:
                raise PollCancelledError(job_id) from exc
            logger.warning(f"[poll:timeout] job_id={job_id} attempts={attempts}")
            raise PollTimeoutError(job_id, attempts, diagnostic=f"last status={exc.status}") from exc
        except TransientPollError as exc:
            if token.cancelled:
                raise PollCancelledError(job_id) from exc
            logger.error(
                f"[poll:exhausted] transient failures outlasted budget job_id={job_id} "
                f"attempts={attempts}"
            )
            raise self._policy.exhausted(job_id, attempts, exc) from exc.cause

        logger.info(
            f"[poll:resolved] job_id={job_id} status={outcome.status} attempts={attempts}"
        )
        self._store(outcome, token)
        return outcome

    async def fetch_once(
        self, job_id: str, config: Optional[PollingConfig] = None
    ) -> PollOutcome:
        """Single request plus dispatch, no retry and no sleep.

        Pending statuses are returned as an outcome without payload rather
        than slept on.
        """
        cfg = config or self.config
        url = cfg.status_url(job_id)
        body = await self._http.get_json(url, timeout=cfg.request_timeout)
        return self.dispatch(job_id, body, url)

    def dispatch(self, job_id: str, body: Dict[str, Any], url: str = "") -> PollOutcome:
        # status, message and error are read raw: a fatal status must not be
        # masked by an unrelated malformed field
        raw_status = body.get("status")
        message = _text(body.get("message"))
        try:
            status = JobStatus(raw_status) if isinstance(raw_status, str) else None
        except ValueError:
            status = None

        if status is None:
            if is_gateway_misrouting(message):
                logger.error(
                    f"[poll:gateway] status route not registered at gateway job_id={job_id} url={url}"
                )
                raise ConfigurationError(
                    GATEWAY_ROUTE_MESSAGE, diagnostic=message, job_id=job_id
                )
            raise ConfigurationError(
                f"Unknown status: {raw_status}",
                diagnostic=message,
                job_id=job_id,
            )

        if status == JobStatus.error:
            raise BackendError(
                _text(body.get("error")) or message or "Prediction failed", job_id=job_id
            )
        if status == JobStatus.not_found:
            raise NotFoundError(job_id, diagnostic=message)
        if status.is_pending:
            return PollOutcome(job_id=job_id, status=status)

        try:
            response = StatusResponse.model_validate(body)
        except ValidationError as exc:
            raise TransportError(
                f"Malformed status body: {exc.error_count()} validation error(s)",
                url=url,
                diagnostic=str(exc),
            ) from exc

        try:
            payload = response.to_payload(complete=status == JobStatus.ready)
        except ValueError as exc:
            # ValidationError is a ValueError too: a non-numeric score lands here
            raise TransportError(
                f"Status '{status}' without a usable result object",
                url=url,
                diagnostic=str(exc),
            ) from exc

        timing = payload.metadata.timing
        if timing is not None and timing.total_end_to_end_ms is not None:
            logger.debug(
                f"[poll:timing] job_id={job_id} prediction_ms={timing.ridge_prediction_ms} "
                f"server_ms={timing.server_processing_ms} "
                f"end_to_end_ms={timing.total_end_to_end_ms:.2f}"
            )
        return PollOutcome(job_id=job_id, status=status, payload=payload)

    def _store(self, outcome: PollOutcome, token: CancellationToken) -> None:
        if self._cache is None or token.cancelled:
            return
        self._cache.put(outcome.job_id, CacheEntry.from_outcome(outcome))
