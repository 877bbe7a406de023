"""ResultCache: last obtained result per job, on top of a key/value store.

Entries are keyed `result_{job_id}` and hold the serialized CacheEntry.
A later stage never drops advice an earlier write already stored. Entries
are kept until evicted explicitly or, when a TTL is configured, until they
are older than the TTL.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import ValidationError

from resultpoll.core.interfaces.key_value_store import KeyValueStorePort
from resultpoll.core.models.result import CacheEntry
from resultpoll.core.settings import logger

KEY_PREFIX = "result_"


def cache_key(job_id: str) -> str:
    return f"{KEY_PREFIX}{job_id}"


class ResultCache:
    def __init__(self, store: KeyValueStorePort, ttl: Optional[float] = None) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl) if ttl is not None else None

    def get(self, job_id: str) -> Optional[CacheEntry]:
        raw = self._store.get(cache_key(job_id))
        if raw is None:
            logger.debug(f"[cache:miss] job_id={job_id}")
            return None
        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                f"[cache:corrupt] unparsable entry, fetching fresh data job_id={job_id} "
                f"errors={exc.error_count()}"
            )
            return None
        if self._is_expired(entry):
            logger.debug(f"[cache:expired] job_id={job_id} timestamp={entry.timestamp.isoformat()}")
            return None
        logger.debug(
            f"[cache:hit] job_id={job_id} has_advice={entry.advice_data is not None}"
        )
        return entry

    def put(self, job_id: str, entry: CacheEntry) -> CacheEntry:
        """Store `entry`, keeping previously cached advice if `entry` has none."""
        if entry.advice_data is None:
            previous = self._read_raw(job_id)
            if previous is not None and previous.advice_data is not None:
                entry = entry.model_copy(update={"advice_data": previous.advice_data})
        self._store.set(cache_key(job_id), entry.model_dump_json())
        logger.debug(
            f"[cache:put] job_id={job_id} has_advice={entry.advice_data is not None}"
        )
        return entry

    def evict(self, job_id: str) -> None:
        self._store.delete(cache_key(job_id))
        logger.debug(f"[cache:evict] job_id={job_id}")

    def prune(self, now: Optional[datetime] = None) -> List[str]:
        """Remove expired and unparsable entries; return the evicted job ids."""
        evicted: List[str] = []
        for key in self._store.keys(KEY_PREFIX):
            job_id = key[len(KEY_PREFIX):]
            raw = self._store.get(key)
            if raw is None:
                continue
            try:
                entry = CacheEntry.model_validate_json(raw)
            except ValidationError:
                entry = None
            if entry is None or self._is_expired(entry, now):
                self._store.delete(key)
                evicted.append(job_id)
        if evicted:
            logger.info(f"[cache:prune] evicted={len(evicted)}")
        return evicted

    def _read_raw(self, job_id: str) -> Optional[CacheEntry]:
        raw = self._store.get(cache_key(job_id))
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError:
            return None

    def _is_expired(self, entry: CacheEntry, now: Optional[datetime] = None) -> bool:
        if self._ttl is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now - entry.timestamp > self._ttl
