"""Exception classes for memory ingestion and consolidation."""


class IngestionError(Exception):
    """Raised when an episode cannot be stored after all retries."""

    def __init__(
        self,
        message: str,
        project_id: str | None = None,
        workspace_id: str | None = None,
        attempts: int = 0,
        cause: Exception | None = None,
    ):
        self.project_id = project_id
        self.workspace_id = workspace_id
        self.attempts = attempts
        self.cause = cause
        super().__init__(message)


class SummarizationError(Exception):
    """Raised when one month of a consolidation run fails."""

    def __init__(
        self,
        message: str,
        project_id: str | None = None,
        period: str | None = None,
        cause: Exception | None = None,
    ):
        self.project_id = project_id
        self.period = period
        self.cause = cause
        super().__init__(message)
