"""Event sink port for audit records and external indexers."""

from abc import ABC, abstractmethod

from ..domain.events import DomainEvent


class EventSinkPort(ABC):
    """Receives domain events after their transaction commits.

    Publishing is best-effort from the engine's point of view: a failing sink
    is logged and never fails or rolls back the operation.
    """

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Deliver one event."""
        ...
