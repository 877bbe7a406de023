"""Error classification for the polling loops.

Pure decision logic, no I/O: which errors abort a poll on first sight and
which ones are worth another attempt after the fixed interval.
"""

from enum import StrEnum

from resultpoll.core.exceptions import (
    BackendError,
    ConfigurationError,
    NetworkError,
    NotFoundError,
    PollCancelledError,
    PollTimeoutError,
    ProtocolViolationError,
    ResultPollError,
)


class Verdict(StrEnum):
    fatal = "fatal"
    transient = "transient"


FATAL_ERRORS = (
    PollTimeoutError,
    NotFoundError,
    BackendError,
    ConfigurationError,
    ProtocolViolationError,
    NetworkError,
    PollCancelledError,
)


class TransientPollError(ResultPollError):
    """Wrapper marking an attempt failure as retryable for the retry adapter."""

    def __init__(self, cause: BaseException, job_id: str, attempt: int):
        self.cause = cause
        self.attempt = attempt
        super().__init__(
            message=f"Transient failure on attempt {attempt}: {cause}",
            diagnostic=type(cause).__name__,
            job_id=job_id,
        )


class RetryPolicy:
    """Classifies attempt failures and owns the attempt budget predicate."""

    def classify(self, error: BaseException) -> Verdict:
        if isinstance(error, FATAL_ERRORS):
            return Verdict.fatal
        return Verdict.transient

    def is_fatal(self, error: BaseException) -> bool:
        return self.classify(error) == Verdict.fatal

    def is_exhausted(self, attempt: int, max_attempts: int) -> bool:
        return attempt >= max_attempts

    def exhausted(self, job_id: str, attempts: int, last_error: BaseException) -> NetworkError:
        """Build the error propagated once transient failures used up the budget."""
        cause = last_error.cause if isinstance(last_error, TransientPollError) else last_error
        return NetworkError(
            job_id=job_id,
            attempts=attempts,
            diagnostic=f"{type(cause).__name__}: {cause}",
        )
