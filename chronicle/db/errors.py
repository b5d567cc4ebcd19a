"""Store error hierarchy for the graph backend.

Store implementations wrap driver-specific failures in one of these so that
engines can degrade on a single, backend-independent taxonomy.
"""


class StoreError(Exception):
    """Base exception for all store errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class GraphUnavailableError(StoreError):
    """Raised when the graph store cannot be reached.

    Examples:
        - Driver never connected (bad credentials, host down at startup)
        - Connection lost mid-session
        - Routing table / cluster unavailable
    """

    pass


class QueryError(StoreError):
    """Raised when the store rejects a statement (syntax, constraint, type)."""

    pass


class NotFoundError(StoreError):
    """Raised when a specific node lookup fails.

    Not raised for empty search results.
    """

    pass


class ValidationError(StoreError):
    """Raised on malformed filter or input data."""

    pass
