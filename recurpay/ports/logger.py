"""Logger port for structured operation logging."""

from abc import ABC, abstractmethod
from typing import Any


class LoggerPort(ABC):
    """Abstract interface for logging operations.

    Keyword arguments are structured context (addresses, amounts, error
    codes), not format arguments.
    """

    @abstractmethod
    def debug(self, message: str, **kwargs: Any) -> None:
        ...

    @abstractmethod
    def info(self, message: str, **kwargs: Any) -> None:
        ...

    @abstractmethod
    def warning(self, message: str, **kwargs: Any) -> None:
        ...

    @abstractmethod
    def error(self, message: str, **kwargs: Any) -> None:
        ...

    @abstractmethod
    def exception(self, message: str, exc_info: Exception | None = None, **kwargs: Any) -> None:
        """Log an exception with traceback."""
        ...

    @abstractmethod
    def bind(self, **context: Any) -> "LoggerPort":
        """Return a logger that adds ``context`` to every record."""
        ...
