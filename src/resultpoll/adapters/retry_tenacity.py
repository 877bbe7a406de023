import asyncio
from typing import Any, Awaitable, Callable, Optional, Sequence, Type

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)


class TenacityRetryAdapter:
    """Tenacity-based retry adapter implementing RetryPort.

    Waits a fixed delay between attempts: polls are bounded by attempt count
    and the interval is short. Call-time kwargs override the defaults
    (attempts, wait_initial, exception_types) and add per-call hooks:

    - sleep: async callable used between attempts (e.g. a cancellable sleep)
    - should_stop: zero-arg predicate checked before each retry
    - on_retry: called with (attempt_number, exception) before sleeping
    """

    def __init__(
        self,
        attempts: int = 3,
        wait_initial: float = 1.0,
        exception_types: Sequence[Type[Exception]] = (Exception,),
    ) -> None:
        self.attempts = attempts
        self.wait_initial = wait_initial
        self.exception_types = tuple(exception_types)

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        attempts = kwargs.pop("attempts", self.attempts)
        wait_initial = kwargs.pop("wait_initial", self.wait_initial)
        exception_types = tuple(kwargs.pop("exception_types", self.exception_types))
        sleep: Callable[[float], Awaitable[None]] = kwargs.pop("sleep", asyncio.sleep)
        should_stop: Optional[Callable[[], bool]] = kwargs.pop("should_stop", None)
        on_retry: Optional[Callable[[int, BaseException], None]] = kwargs.pop("on_retry", None)

        stop = stop_after_attempt(attempts)
        if should_stop is not None:
            stop = stop | (lambda _state: should_stop())

        def before_sleep(retry_state: RetryCallState) -> None:
            if on_retry is None or retry_state.outcome is None:
                return
            on_retry(retry_state.attempt_number, retry_state.outcome.exception())

        retrying = AsyncRetrying(
            stop=stop,
            wait=wait_fixed(wait_initial),
            retry=retry_if_exception_type(exception_types),
            before_sleep=before_sleep,
            sleep=sleep,
            reraise=True,
        )
        async for attempt in retrying:  # pragma: no cover - control flow instrumentation
            with attempt:
                return await func(*args, **kwargs)
