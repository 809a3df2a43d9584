"""Logger adapter over Python's standard logging."""

import logging
from typing import Any

from ..ports.logger import LoggerPort

# LogRecord attributes that ``extra`` may not overwrite
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class SimpleLogger(LoggerPort):
    """LoggerPort implementation on top of :mod:`logging`.

    Structured context travels as ``extra`` and is also appended to the
    message so it shows up with the default formatter configured by
    :func:`recurpay.infrastructure.logging_config.setup_logging`.
    """

    def __init__(
        self,
        name: str = "recurpay",
        level: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize the logger.

        Args:
            name: Logger name (default: "recurpay")
            level: Optional level override; otherwise inherited from the hierarchy
            context: Fields attached to every record
        """
        self._logger = logging.getLogger(name)
        if level is not None:
            self._logger.setLevel(level)
        self._context = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def _render(self, message: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        fields = {**self._context, **kwargs}
        if not fields:
            return message, {}
        rendered = " ".join(f"{key}={value}" for key, value in fields.items())
        extra = {
            f"ctx_{key}" if key in _RESERVED_ATTRS else key: value
            for key, value in fields.items()
        }
        return f"{message} [{rendered}]", extra

    def debug(self, message: str, **kwargs: Any) -> None:
        text, extra = self._render(message, kwargs)
        self._logger.debug(text, extra=extra)

    def info(self, message: str, **kwargs: Any) -> None:
        text, extra = self._render(message, kwargs)
        self._logger.info(text, extra=extra)

    def warning(self, message: str, **kwargs: Any) -> None:
        text, extra = self._render(message, kwargs)
        self._logger.warning(text, extra=extra)

    def error(self, message: str, **kwargs: Any) -> None:
        text, extra = self._render(message, kwargs)
        self._logger.error(text, extra=extra)

    def exception(self, message: str, exc_info: Exception | None = None, **kwargs: Any) -> None:
        text, extra = self._render(message, kwargs)
        self._logger.error(text, exc_info=exc_info or True, extra=extra)

    def bind(self, **context: Any) -> "SimpleLogger":
        return SimpleLogger(self._logger.name, context={**self._context, **context})
