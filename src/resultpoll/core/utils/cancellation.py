import asyncio
from typing import Optional

from resultpoll.core.exceptions import PollCancelledError


class CancellationToken:
    """Cooperative stop signal shared by a consumer and the loops it started.

    Loops check `cancelled` before every attempt and before every write, and
    sleep through `sleep()` so that a teardown wakes them immediately instead
    of after a full interval.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self, job_id: Optional[str] = None) -> None:
        if self._event.is_set():
            raise PollCancelledError(job_id)

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, seconds: float) -> None:
        """Sleep up to `seconds`; raise PollCancelledError if cancelled meanwhile."""
        if self._event.is_set():
            raise PollCancelledError()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise PollCancelledError()
