"""Outbound memory events.

Consolidation, ingestion and pattern changes are reported to an event sink
supplied by the host. Delivery is best-effort and never aborts the operation
that produced the event.
"""

from chronicle.audit.models import MemoryEvent, MemoryEventType
from chronicle.audit.sink import EventSink, emit_safely
from chronicle.audit.sinks import InMemoryEventSink, LoggingEventSink

__all__ = [
    "EventSink",
    "InMemoryEventSink",
    "LoggingEventSink",
    "MemoryEvent",
    "MemoryEventType",
    "emit_safely",
]
