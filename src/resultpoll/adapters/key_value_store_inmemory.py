"""In-memory implementation of KeyValueStorePort.

Suitable for tests and single-process use; contents vanish with the process.
Use SqliteKeyValueStore when results must survive a restart.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from resultpoll.core.interfaces.key_value_store import KeyValueStorePort


class InMemoryKeyValueStore(KeyValueStorePort):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))
