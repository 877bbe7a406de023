from abc import ABC, abstractmethod


class LoggingPort(ABC):
    """Logging seen from the core: lazy %-style arguments, no handler setup."""

    @abstractmethod
    def debug(self, msg: str, *args) -> None:
        pass

    @abstractmethod
    def info(self, msg: str, *args) -> None:
        pass

    @abstractmethod
    def warning(self, msg: str, *args) -> None:
        pass

    @abstractmethod
    def error(self, msg: str, *args) -> None:
        pass

    @abstractmethod
    def exception(self, msg: str, *args) -> None:
        """Log at error level with the active exception's traceback."""
        pass
