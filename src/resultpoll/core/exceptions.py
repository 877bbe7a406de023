from typing import Optional


GATEWAY_ROUTE_PATTERN = "no Route matched"

GATEWAY_ROUTE_MESSAGE = (
    "Backend configuration error: The polling endpoint is not configured in the API gateway. "
    "Please contact the backend team to add a gateway route mapping for the /result endpoint."
)


class ResultPollError(Exception):
    """Base exception for result polling failures.

    Attributes:
        message: Human-readable error description
        diagnostic: Technical diagnostic information for debugging
        job_id: Optional job identifier
    """
    def __init__(
        self,
        message: str,
        diagnostic: Optional[str] = None,
        job_id: Optional[str] = None
    ):
        self.message = message
        self.diagnostic = diagnostic
        self.job_id = job_id
        super().__init__(message)


# Fatal: never retried, surfaced to the consumer on first occurrence

class ConfigurationError(ResultPollError):
    """Raised for deployment defects such as a status route missing at the gateway.

    The message is meant for operators and is surfaced verbatim.
    """


class PollTimeoutError(ResultPollError):
    """Raised when the attempt budget is exhausted while the job is still processing.

    Attributes:
        attempts: Number of requests made before giving up
    """
    def __init__(self, job_id: str, attempts: int, diagnostic: Optional[str] = None):
        self.attempts = attempts
        message = f"Timeout: Prediction took too long to process ({attempts} attempts)"
        super().__init__(message=message, diagnostic=diagnostic, job_id=job_id)


class NotFoundError(ResultPollError):
    """Raised when the backend does not know the job id (usually a stale link)."""
    def __init__(self, job_id: str, diagnostic: Optional[str] = None):
        super().__init__(message="Prediction ID not found", diagnostic=diagnostic, job_id=job_id)


class BackendError(ResultPollError):
    """Raised when the backend reports that the job failed. The message is user-facing."""


class NetworkError(ResultPollError):
    """Raised when transient transport failures persisted past the retry budget.

    Attributes:
        attempts: Number of requests made before giving up
    """
    def __init__(self, job_id: str, attempts: int, diagnostic: Optional[str] = None):
        self.attempts = attempts
        message = "Network error: Failed to fetch prediction result"
        super().__init__(message=message, diagnostic=diagnostic, job_id=job_id)


class ProtocolViolationError(ResultPollError):
    """Raised when the backend reports a status that moves a job backwards.

    Attributes:
        previous: Last status observed
        observed: Status that violated the forward-only lifecycle
    """
    def __init__(self, job_id: str, previous: str, observed: str):
        self.previous = previous
        self.observed = observed
        message = f"Protocol violation: status moved from {previous} back to {observed}"
        super().__init__(message=message, job_id=job_id)


# Transient: handed to the retry policy

class TransportError(ResultPollError):
    """Raised by HTTP adapters for connection failures, timeouts, 5xx and non-JSON bodies.

    Attributes:
        url: Requested URL
        status: HTTP status code if a response was received
    """
    def __init__(
        self,
        message: str,
        url: str,
        status: Optional[int] = None,
        diagnostic: Optional[str] = None,
    ):
        self.url = url
        self.status = status
        super().__init__(message=message, diagnostic=diagnostic)


class PollCancelledError(ResultPollError):
    """Raised inside a loop whose consumer went away."""
    def __init__(self, job_id: Optional[str] = None):
        super().__init__(message="Polling cancelled", job_id=job_id)
