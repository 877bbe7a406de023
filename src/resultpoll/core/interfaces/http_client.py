from abc import ABC, abstractmethod
from typing import Any, Dict


class HttpClientPort(ABC):
    @abstractmethod
    async def __aenter__(self) -> "HttpClientPort":
        """Async context manager entry method"""
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit method"""
        pass

    @abstractmethod
    async def get_json(self, url: str, timeout: float | None = None) -> Dict[str, Any]:
        """GET `url` and return the decoded JSON object.

        Implementations return the body for 2xx and 4xx responses alike:
        status routes report unknown jobs and gateway misrouting in 4xx
        bodies, and those must reach the status dispatch. Connection
        failures, timeouts, 5xx responses and bodies that are not a JSON
        object raise `TransportError`.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the HTTP client session"""
        pass
