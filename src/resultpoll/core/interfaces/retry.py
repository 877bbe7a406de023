from typing import Protocol, Any, Awaitable, Callable


class RetryPort(Protocol):
    """Abstract retry interface for async operations.

    The contract keeps the pollers decoupled from a specific library
    (tenacity).
    """
    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:  # pragma: no cover - protocol
        """Execute an async callable with retry semantics.

        Args:
            func: Async callable returning a result.
            *args/**kwargs: Passed to the callable.
            Supported kw overrides (optional): attempts, wait_initial,
            exception_types, sleep, should_stop, on_retry.
        Returns:
            Result of the successful invocation.
        Raises:
            Propagates the last exception after exhausting attempts or when
            `should_stop()` turns true.
        """
        ...
