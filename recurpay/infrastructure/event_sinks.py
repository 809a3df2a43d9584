"""Event sink adapters."""

from __future__ import annotations

from ..domain.events import DomainEvent
from ..ports.event_sink import EventSinkPort
from ..ports.logger import LoggerPort


class InMemoryEventSink(EventSinkPort):
    """Keeps published events in order (useful for testing and audits)."""

    def __init__(self) -> None:
        self._events: list[DomainEvent] = []

    async def publish(self, event: DomainEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> list[DomainEvent]:
        return list(self._events)

    def of_type(self, event_type: str) -> list[DomainEvent]:
        return [e for e in self._events if e.event_type == event_type]

    def for_aggregate(self, aggregate_id: str) -> list[DomainEvent]:
        return [e for e in self._events if e.aggregate_id == aggregate_id]

    def clear(self) -> None:
        self._events.clear()


class LoggingEventSink(EventSinkPort):
    """Writes every event to the log as an audit line."""

    def __init__(self, logger: LoggerPort | None = None) -> None:
        if logger is None:
            from .simple_logger import SimpleLogger

            logger = SimpleLogger("recurpay.events")
        self._logger = logger

    async def publish(self, event: DomainEvent) -> None:
        payload = event.to_payload()
        for key in ("event_id", "event_type", "event_version", "occurred_at", "aggregate_type"):
            payload.pop(key, None)
        self._logger.info(f"event {event.event_type}", **payload)


class FanOutEventSink(EventSinkPort):
    """Delivers each event to several sinks; one failing sink does not block the rest."""

    def __init__(self, *sinks: EventSinkPort, logger: LoggerPort | None = None) -> None:
        self._sinks = list(sinks)
        if logger is None:
            from .simple_logger import SimpleLogger

            logger = SimpleLogger("recurpay.events")
        self._logger = logger

    async def publish(self, event: DomainEvent) -> None:
        for sink in self._sinks:
            try:
                await sink.publish(event)
            except Exception as e:
                self._logger.exception(
                    "Event sink failed", exc_info=e, sink=type(sink).__name__,
                    event_type=event.event_type,
                )
