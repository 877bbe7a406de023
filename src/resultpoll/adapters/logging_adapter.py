import logging

from resultpoll.core.interfaces.logging import LoggingPort
from resultpoll.core.logging_config import ROOT_LOGGER_NAME, coerce_level


class LoggingAdapter(LoggingPort):
    """Concrete logging adapter over the standard `logging` module.

    It does NOT add handlers; `configure_logging` owns the sinks. The level
    set here only gates what this named logger lets through to the root.
    """

    def __init__(self, name: str = ROOT_LOGGER_NAME, log_level: int | str = logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(coerce_level(log_level))
        self.logger.propagate = True

    def debug(self, msg: str, *args) -> None:
        self.logger.debug(msg, *args)

    def info(self, msg: str, *args) -> None:
        self.logger.info(msg, *args)

    def warning(self, msg: str, *args) -> None:
        self.logger.warning(msg, *args)

    def error(self, msg: str, *args) -> None:
        self.logger.error(msg, *args)

    def exception(self, msg: str, *args) -> None:
        self.logger.exception(msg, *args)
