"""Audit domain models."""

from chronicle.audit.models.event import MemoryEvent, MemoryEventType

__all__ = ["MemoryEvent", "MemoryEventType"]
