"""Composition helpers: instantiate concrete adapters and wire the core.

Nothing in `resultpoll.core` constructs stores or HTTP sessions itself.
"""

from typing import List, Optional

from resultpoll.adapters.key_value_store_inmemory import InMemoryKeyValueStore
from resultpoll.adapters.key_value_store_sqlite import SqliteKeyValueStore
from resultpoll.adapters.retry_tenacity import TenacityRetryAdapter
from resultpoll.core.config import PollingConfig
from resultpoll.core.interfaces.http_client import HttpClientPort
from resultpoll.core.interfaces.observers import ResultObserver
from resultpoll.core.managers.advice_continuation import AdviceContinuation, ChaseResult
from resultpoll.core.managers.result_cache import ResultCache
from resultpoll.core.managers.single_flight import SingleFlight
from resultpoll.core.managers.status_poller import StatusPoller
from resultpoll.core.managers.result_session import ResultSession
from resultpoll.core.models.result import PollOutcome
from resultpoll.core.settings import PollerSettings


def create_cache(settings: PollerSettings) -> ResultCache:
    if settings.RESULTPOLL_CACHE_PATH is not None:
        store = SqliteKeyValueStore(settings.RESULTPOLL_CACHE_PATH)
    else:
        store = InMemoryKeyValueStore()
    return ResultCache(store, ttl=settings.RESULTPOLL_CACHE_TTL)


class PollingServices:
    """Long-lived wiring shared by every session of one process.

    The single-flight registries live here so that sessions created from the
    same services object never run two network loops for one job id.
    """

    def __init__(
        self,
        http_client: HttpClientPort,
        config: PollingConfig,
        cache: Optional[ResultCache] = None,
        retry_port: Optional[TenacityRetryAdapter] = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.poller = StatusPoller(
            http_client,
            config=config,
            retry_port=retry_port or TenacityRetryAdapter(),
            cache=cache,
        )
        self.continuation = AdviceContinuation(self.poller, cache=cache, config=config)
        self._primary_flights: SingleFlight[PollOutcome] = SingleFlight("poll:flight")
        self._advice_flights: SingleFlight[ChaseResult] = SingleFlight("advice:flight")

    def session(self, observers: Optional[List[ResultObserver]] = None) -> ResultSession:
        return ResultSession(
            self.poller,
            self.continuation,
            cache=self.cache,
            config=self.config,
            observers=observers,
            primary_flights=self._primary_flights,
            advice_flights=self._advice_flights,
        )


def create_services(
    http_client: HttpClientPort,
    settings: PollerSettings,
    cache: Optional[ResultCache] = None,
) -> PollingServices:
    config = PollingConfig.from_app_settings(settings)
    return PollingServices(
        http_client,
        config,
        cache=cache if cache is not None else create_cache(settings),
    )
