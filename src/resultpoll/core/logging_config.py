"""Central logging configuration.

`configure_logging` is called once by the composition root (the CLI or the
embedding application). It wires separate stdout/stderr sinks and injects
the job id of the active polling session into every record. Core modules
and adapters never install handlers; they emit through `LoggingPort` or
module loggers and let records propagate to the root.

The job id travels in a context variable so that records emitted from the
background advice task carry the id of the session that spawned it
(asyncio copies the context into tasks at creation).
"""

from __future__ import annotations

import contextvars
import logging
import sys
from typing import Optional

job_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("job_id", default="-")

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s job=%(job_id)s: %(message)s"

ROOT_LOGGER_NAME = "resultpoll"


def coerce_level(level: int | str | None) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    key = str(level).upper().strip()
    return logging.getLevelNamesMapping().get(key, logging.INFO)


class _JobIdFilter(logging.Filter):
    """Inject the session job id from the contextvar into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - simple
        record.job_id = job_id_var.get()
        return True


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover
        return record.levelno <= self.max_level


class _MinLevelFilter(logging.Filter):
    def __init__(self, min_level: int):
        super().__init__()
        self.min_level = min_level

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover
        return record.levelno >= self.min_level


def configure_logging(
    level: int | str | None = None,
    fmt: Optional[str] = None,
    quiet_http: bool = True,
) -> None:
    """Configure the root logger with stdout/stderr sinks and job id injection.

    `quiet_http` raises aiohttp's internal loggers to WARNING; their access
    chatter drowns the per-attempt poll logs at DEBUG.
    """
    numeric_level = coerce_level(level)
    fmt = fmt or DEFAULT_FORMAT

    root = logging.getLogger()
    root.setLevel(numeric_level)

    # Clear existing handlers to avoid duplication on repeated calls
    for h in list(root.handlers):
        root.removeHandler(h)

    formatter = logging.Formatter(fmt)
    job_filter = _JobIdFilter()

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(_MaxLevelFilter(logging.INFO))
    stdout_handler.addFilter(job_filter)
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.addFilter(_MinLevelFilter(logging.WARNING))
    stderr_handler.addFilter(job_filter)
    stderr_handler.setFormatter(formatter)

    root.addHandler(stdout_handler)
    root.addHandler(stderr_handler)

    # the package logger carries its own level (see LoggingAdapter); keep it in step
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(numeric_level)

    if quiet_http:
        logging.getLogger("aiohttp").setLevel(logging.WARNING)

    logging.getLogger(ROOT_LOGGER_NAME).debug(
        "Logging configured level=%s quiet_http=%s", numeric_level, quiet_http
    )
