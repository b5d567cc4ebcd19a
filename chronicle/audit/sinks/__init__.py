"""Event sink implementations."""

from chronicle.audit.sinks.inmemory import InMemoryEventSink
from chronicle.audit.sinks.logging import LoggingEventSink

__all__ = ["InMemoryEventSink", "LoggingEventSink"]
