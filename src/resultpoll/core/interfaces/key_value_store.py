"""KeyValueStorePort: string-keyed, string-valued persistence for cached results.

Synchronous on purpose: the cache is read once before any network activity
and written once per resolved stage, so adapters stay trivial.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional


class KeyValueStorePort(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Insert or overwrite `key`."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove `key`; missing keys are ignored."""
        raise NotImplementedError

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """List stored keys starting with `prefix`."""
        raise NotImplementedError
