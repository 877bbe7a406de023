"""SingleFlight: at most one in-flight loop per key.

Consumers that ask for a key while a flight is running join it and await
the same result. Each consumer brings its own CancellationToken; leaving
only detaches that consumer. The flight's own token is cancelled when its
last waiter has left, which stops the shared network loop; the abandoned
flight is forgotten at once so the next consumer starts a new one.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

from resultpoll.core.exceptions import PollCancelledError
from resultpoll.core.settings import logger
from resultpoll.core.utils.cancellation import CancellationToken

T = TypeVar("T")

FlightFactory = Callable[[CancellationToken], Awaitable[T]]


class _Flight(Generic[T]):
    def __init__(self, task: "asyncio.Task[T]", token: CancellationToken) -> None:
        self.task = task
        self.token = token
        self.waiters = 0


class SingleFlight(Generic[T]):
    def __init__(self, name: str = "flight") -> None:
        self._name = name
        self._flights: Dict[str, _Flight[T]] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._flights

    async def do(
        self,
        key: str,
        factory: FlightFactory,
        token: Optional[CancellationToken] = None,
    ) -> T:
        """Run `factory(flight_token)` for `key`, or join the flight already running.

        Raises PollCancelledError when `token` is cancelled before the flight
        finishes; the flight keeps running for remaining waiters.
        """
        flight = self._flights.get(key)
        if flight is None or flight.token.cancelled:
            flight_token = CancellationToken()
            task = asyncio.create_task(factory(flight_token))
            flight = _Flight(task, flight_token)
            self._flights[key] = flight
            task.add_done_callback(lambda t, k=key, f=flight: self._forget(k, f, t))
            logger.debug(f"[{self._name}:start] key={key}")
        else:
            logger.debug(f"[{self._name}:join] key={key} waiters={flight.waiters}")

        flight.waiters += 1
        try:
            return await self._wait(flight, token)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                logger.debug(f"[{self._name}:abandon] key={key}")
                flight.token.cancel()
                # a later consumer must start a fresh flight, not join this one
                if self._flights.get(key) is flight:
                    del self._flights[key]

    async def _wait(self, flight: _Flight[T], token: Optional[CancellationToken]) -> T:
        if token is None:
            return await asyncio.shield(flight.task)
        if token.cancelled:
            raise PollCancelledError()
        stop = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {flight.task, stop}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            stop.cancel()
        if flight.task in done:
            return flight.task.result()
        raise PollCancelledError()

    def _forget(self, key: str, flight: _Flight[Any], task: "asyncio.Task[Any]") -> None:
        # mark the outcome retrieved; abandoned flights end in PollCancelledError nobody awaits
        if not task.cancelled():
            task.exception()
        if self._flights.get(key) is flight:
            del self._flights[key]
