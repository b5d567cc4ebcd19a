"""In-memory implementation of EventSink."""

from chronicle.audit.models import MemoryEvent, MemoryEventType
from chronicle.audit.sink import EventSink


class InMemoryEventSink(EventSink):
    """Collects events in a list for testing and development.

    Not suitable for production use.
    """

    def __init__(self) -> None:
        """Initialize empty storage."""
        self.events: list[MemoryEvent] = []

    async def emit(self, event: MemoryEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: MemoryEventType) -> list[MemoryEvent]:
        """Events of one type, in emission order."""
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()
