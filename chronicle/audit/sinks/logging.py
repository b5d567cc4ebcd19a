"""EventSink that writes events to the structured log."""

from chronicle.audit.models import MemoryEvent
from chronicle.audit.sink import EventSink
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


class LoggingEventSink(EventSink):
    """Default sink when the host supplies none."""

    async def emit(self, event: MemoryEvent) -> None:
        logger.info(
            "memory_event",
            event_id=event.id,
            event_type=event.event_type.value,
            workspace_id=event.workspace_id,
            project_id=event.project_id,
            payload=event.payload,
        )
