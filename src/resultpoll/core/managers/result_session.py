"""ResultSession: the polling core as seen by one consumer of one job.

Flow:
1. Read the ResultCache; a hit resolves the session without any request.
2. Otherwise run the primary poll (StatusPoller).
3. `ready` resolves the session; `partial` is published immediately and the
   advice chase (AdviceContinuation) starts as a background task.
4. The chase either upgrades the view to `ready` or ends it in
   `advice-unavailable`; its errors never reach the consumer.

`close()` is the teardown hook: loops stop at their next checkpoint and the
session neither writes the cache nor notifies observers afterwards.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from resultpoll.core.config import PollingConfig
from resultpoll.core.exceptions import PollCancelledError, ResultPollError
from resultpoll.core.interfaces.observers import ResultObserver
from resultpoll.core.logging_config import job_id_var
from resultpoll.core.managers.advice_continuation import (
    AdviceContinuation,
    ChaseResult,
    ContinuationOutcome,
)
from resultpoll.core.managers.result_cache import ResultCache
from resultpoll.core.managers.single_flight import SingleFlight
from resultpoll.core.managers.status_poller import StatusPoller
from resultpoll.core.models.result import JobStatus, PollOutcome
from resultpoll.core.models.view import ResultView, ViewStatus
from resultpoll.core.settings import logger
from resultpoll.core.utils.cancellation import CancellationToken


class ResultSession:
    """Cache-first primary poll plus background advice chase for one job.

    Attributes:
        view: Current state for rendering; None before `load`
        token: Cancellation token shared with every loop this session starts
    """

    def __init__(
        self,
        poller: StatusPoller,
        continuation: AdviceContinuation,
        cache: Optional[ResultCache] = None,
        config: Optional[PollingConfig] = None,
        observers: Optional[List[ResultObserver]] = None,
        primary_flights: Optional[SingleFlight[PollOutcome]] = None,
        advice_flights: Optional[SingleFlight[ChaseResult]] = None,
    ) -> None:
        self._poller = poller
        self._continuation = continuation
        self._cache = cache
        self.config = config or poller.config
        self._observers = observers or []
        self._primary_flights = primary_flights
        self._advice_flights = advice_flights
        self.token = CancellationToken()
        self.view: Optional[ResultView] = None
        self._advice_task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "ResultSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    @property
    def closed(self) -> bool:
        return self.token.cancelled

    # ---------------- Observer fan-out -----------------
    async def _notify(self, event: str) -> None:
        if self.closed or self.view is None:
            return
        view = self.view.model_copy(deep=True)
        for observer in self._observers:
            try:
                await getattr(observer, event)(view)
            except Exception:
                logger.exception(
                    f"[observer:error] {event} failed observer={type(observer).__name__} "
                    f"job_id={view.job_id}"
                )

    def _set_view(self, **changes) -> None:
        if self.closed or self.view is None:
            return
        self.view = self.view.model_copy(update=changes)

    # ---------------- Lifecycle -----------------
    async def load(self, job_id: str) -> ResultView:
        """Resolve the primary stage for `job_id` and return the resulting view.

        Never raises for polling failures; they end up in `view.error`.
        """
        if self.view is not None:
            raise RuntimeError(f"session already loaded job {self.view.job_id}")
        ctx_token = job_id_var.set(job_id)
        try:
            self.view = ResultView(job_id=job_id)
            if self._load_from_cache(job_id):
                await self._notify("on_stage_resolved")
                if self.view.status == ViewStatus.loading_advice:
                    self._start_chase(job_id)
                return self.view
            await self._run_primary(job_id)
            return self.view
        finally:
            job_id_var.reset(ctx_token)

    def _load_from_cache(self, job_id: str) -> bool:
        if self._cache is None:
            return False
        entry = self._cache.get(job_id)
        if entry is None:
            return False
        resume = self.config.resume_partial_from_cache and entry.advice_data is None
        logger.info(
            f"[session:cache] using cached result job_id={job_id} "
            f"has_advice={entry.advice_data is not None} resume_advice={resume}"
        )
        self._set_view(
            status=ViewStatus.loading_advice if resume else ViewStatus.ready,
            result=entry.result_data,
            advice=entry.advice_data,
            from_cache=True,
        )
        return True

    async def _poll_primary(self, job_id: str) -> PollOutcome:
        if self._primary_flights is None:
            return await self._poller.poll(job_id, self.config, self.token)
        while True:
            try:
                return await self._primary_flights.do(
                    job_id,
                    lambda flight_token: self._poller.poll(job_id, self.config, flight_token),
                    self.token,
                )
            except PollCancelledError:
                if self.closed:
                    raise
                # joined a flight its other consumers abandoned
                logger.debug(f"[session:rejoin] primary flight was abandoned job_id={job_id}")

    async def _run_primary(self, job_id: str) -> None:
        try:
            outcome = await self._poll_primary(job_id)
        except PollCancelledError:
            logger.debug(f"[session:cancelled] primary poll abandoned job_id={job_id}")
            return
        except ResultPollError as exc:
            logger.warning(
                f"[session:failed] job_id={job_id} error={type(exc).__name__}: {exc.message}"
            )
            self._set_view(status=ViewStatus.error, error=exc.message)
            await self._notify("on_failed")
            return

        if outcome.status == JobStatus.ready:
            self._set_view(
                status=ViewStatus.ready, result=outcome.payload, advice=outcome.advice
            )
            await self._notify("on_stage_resolved")
            return

        self._set_view(status=ViewStatus.loading_advice, result=outcome.payload)
        await self._notify("on_stage_resolved")
        self._start_chase(job_id)

    def _start_chase(self, job_id: str) -> None:
        if self.closed or self._advice_task is not None:
            return
        logger.debug(f"[session:advice] starting advice chase job_id={job_id}")
        self._advice_task = asyncio.create_task(self._chase(job_id))

    async def _run_chase(self, job_id: str) -> ChaseResult:
        if self._advice_flights is None:
            return await self._continuation.chase(job_id, self.config, self.token)
        while True:
            try:
                result = await self._advice_flights.do(
                    job_id,
                    lambda flight_token: self._continuation.chase(job_id, self.config, flight_token),
                    self.token,
                )
            except PollCancelledError:
                if self.closed:
                    raise
                result = None
            if self.closed or (
                result is not None and result.outcome != ContinuationOutcome.cancelled
            ):
                return result
            logger.debug(f"[session:rejoin] advice flight was abandoned job_id={job_id}")

    async def _chase(self, job_id: str) -> None:
        try:
            result = await self._run_chase(job_id)
        except PollCancelledError:
            return

        if self.closed or result.outcome == ContinuationOutcome.cancelled:
            return
        if result.outcome == ContinuationOutcome.completed and result.ready is not None:
            self._set_view(
                status=ViewStatus.ready,
                result=result.ready.payload,
                advice=result.ready.advice,
            )
            await self._notify("on_stage_resolved")
            return
        self._set_view(status=ViewStatus.advice_unavailable)
        await self._notify("on_advice_unavailable")

    async def wait_for_advice(self) -> Optional[ResultView]:
        """Await the background chase, if one was started, and return the view."""
        if self._advice_task is not None:
            await asyncio.shield(self._advice_task)
        return self.view

    async def close(self) -> None:
        """Teardown: stop all loops; no cache write or notification happens afterwards."""
        if self.closed:
            return
        self.token.cancel()
        if self._advice_task is not None:
            await asyncio.gather(self._advice_task, return_exceptions=True)
        logger.debug(
            f"[session:closed] job_id={self.view.job_id if self.view else None}"
        )
