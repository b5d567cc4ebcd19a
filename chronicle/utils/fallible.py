"""Best-effort execution for operations that must degrade instead of fail.

Read paths, duplicate checks and side effects such as feedback recording must
never turn a store outage into a failed request. `attempt` runs the operation
once, classifies any failure against the store error taxonomy, logs it,
counts it, and hands back an `Outcome` carrying either the value or the
caller's fallback.
"""

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

from chronicle.db.errors import (
    GraphUnavailableError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import DEGRADED_OPERATIONS

logger = get_logger(__name__)

T = TypeVar("T")

ErrorKind = Literal["graph_unavailable", "not_found", "validation", "store", "unexpected"]


@dataclass
class Outcome(Generic[T]):
    """Result of a best-effort operation."""

    value: T
    error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception onto the error taxonomy."""
    if isinstance(error, GraphUnavailableError):
        return "graph_unavailable"
    if isinstance(error, NotFoundError):
        return "not_found"
    if isinstance(error, ValidationError):
        return "validation"
    if isinstance(error, StoreError):
        return "store"
    return "unexpected"


async def attempt(
    operation: Awaitable[T],
    *,
    fallback: T,
    event: str,
    **log_context: object,
) -> Outcome[T]:
    """Await an operation, degrading to `fallback` on any failure.

    Args:
        operation: Awaitable to run
        fallback: Value returned when the operation fails
        event: Log event name and metric operation label
        **log_context: Extra structured fields for the warning

    Returns:
        Outcome with the operation's value, or the fallback plus error details
    """
    try:
        return Outcome(value=await operation)
    except Exception as e:
        kind = classify_error(e)
        logger.warning(event, error=str(e), error_kind=kind, **log_context)
        DEGRADED_OPERATIONS.labels(operation=event, error_kind=kind).inc()
        return Outcome(value=fallback, error=str(e), error_kind=kind)
