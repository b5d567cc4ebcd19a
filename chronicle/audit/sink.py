"""EventSink abstract interface."""

from abc import ABC, abstractmethod

from chronicle.audit.models import MemoryEvent
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


class EventSink(ABC):
    """Receives memory events."""

    @abstractmethod
    async def emit(self, event: MemoryEvent) -> None:
        """Deliver an event."""
        pass


async def emit_safely(sink: EventSink | None, event: MemoryEvent) -> bool:
    """Emit an event, logging instead of raising on failure.

    Returns:
        True if the sink accepted the event
    """
    if sink is None:
        return False
    try:
        await sink.emit(event)
        return True
    except Exception as e:
        logger.warning(
            "event_emit_failed",
            event_type=event.event_type.value,
            workspace_id=event.workspace_id,
            error=str(e),
        )
        return False
