import asyncio
import aiohttp
from typing import Any, Dict, Optional

from resultpoll.core.interfaces.http_client import HttpClientPort
from resultpoll.core.exceptions import TransportError
from resultpoll.core.settings import logger


class AioHttpClientAdapter(HttpClientPort):
    def __init__(self, default_timeout: float = 10.0):
        self._session: Optional[aiohttp.ClientSession] = None
        # Per-field timeouts are fixed at init time so callers only ever pass a total.
        self._default_total: float = default_timeout
        self._default_sock_read: float = default_timeout
        self._default_sock_connect: float = 5.0
        self._default_client_timeout = aiohttp.ClientTimeout(
            total=self._default_total,
            sock_read=self._default_sock_read,
            sock_connect=self._default_sock_connect,
        )

    async def __aenter__(self):
        """Async context manager entry"""
        self._session = aiohttp.ClientSession(headers={"Accept": "application/json"})
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
        return False

    def _client_timeout(self, timeout: float | None) -> aiohttp.ClientTimeout:
        if timeout is None:
            return self._default_client_timeout
        # Keep adapter-level sock_read/sock_connect values but apply provided total
        return aiohttp.ClientTimeout(
            total=timeout,
            sock_read=min(timeout, self._default_sock_read),
            sock_connect=min(timeout, self._default_sock_connect),
        )

    async def get_json(self, url: str, timeout: float | None = None) -> Dict[str, Any]:
        """
        GET a status document.

        Translates network errors, 5xx responses and undecodable bodies into
        TransportError. 4xx bodies are returned to the caller untouched.
        """
        if self._session is None:
            raise RuntimeError("HTTP client not initialized. Use 'async with' context manager.")

        try:
            async with self._session.get(url, timeout=self._client_timeout(timeout)) as response:
                if response.status >= 500:
                    response_text = await response.text()
                    logger.warning(
                        "Upstream HTTP error. URL: %s, Status: %s, Content: %s",
                        url,
                        response.status,
                        response_text[:200],
                    )
                    raise TransportError(
                        f"The remote service returned an HTTP error: {response.status}",
                        url=url,
                        status=response.status,
                        diagnostic=response_text[:500],
                    )

                try:
                    # gateways label error bodies inconsistently; decode regardless of content type
                    body = await response.json(content_type=None)
                except ValueError:
                    response_text = await response.text()
                    logger.warning(
                        "Invalid JSON response from remote service. URL: %s, Content: %s",
                        url,
                        response_text[:500],
                    )
                    raise TransportError(
                        "The response from the remote service was not valid JSON"
                        f": '{response_text[:100]}'",
                        url=url,
                        status=response.status,
                    )

                if not isinstance(body, dict):
                    raise TransportError(
                        f"Expected a JSON object, got {type(body).__name__}",
                        url=url,
                        status=response.status,
                    )
                return body

        except asyncio.TimeoutError:
            logger.warning("Timeout when requesting remote service. URL: %s", url)
            raise TransportError("The request to the remote service timed out.", url=url)

        except aiohttp.ClientError as client_error:
            logger.warning(
                "Connection error when requesting remote service. URL: %s, Error: %s",
                url,
                str(client_error),
            )
            raise TransportError(
                "There was a connection error with the remote service.",
                url=url,
                diagnostic=str(client_error),
            )

    async def close(self) -> None:
        """Close the session"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
