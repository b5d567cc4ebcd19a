"""Summarization sweep workflow.

Scheduled job that checks each project of a workspace against the
consolidation threshold and summarizes those above it.
Runs nightly by default.
"""

from dataclasses import dataclass, field
from typing import Any

from chronicle.memory.ingestion.summarizer import MemorySummarizer
from chronicle.memory.store import EpisodeStore
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SummarizationSweepInput:
    """Input for summarization sweep workflow."""

    workspace_id: str
    project_id: str | None = None  # None = every project in the workspace


@dataclass
class SummarizationSweepOutput:
    """Output from summarization sweep workflow."""

    workspace_id: str
    projects_checked: int
    summaries_created: int
    episodes_archived: int
    success: bool
    error: str | None = None
    project_errors: list[str] = field(default_factory=list)


class SummarizationSweepWorkflow:
    """Workflow to consolidate old episodes into monthly summaries.

    Idempotent: summaries merge on their (project, workspace, month) key and
    archived episodes are never selected again.
    """

    WORKFLOW_NAME = "memory-summarization-sweep"
    CRON_SCHEDULE = "0 2 * * *"  # Daily at 2 AM UTC

    def __init__(self, store: EpisodeStore, summarizer: MemorySummarizer) -> None:
        """Initialize workflow.

        Args:
            store: Episode store used to enumerate projects
            summarizer: Consolidation engine
        """
        self._store = store
        self._summarizer = summarizer

    async def run(self, input_data: SummarizationSweepInput) -> SummarizationSweepOutput:
        """Execute the sweep.

        Args:
            input_data: Workspace and optional single project

        Returns:
            SummarizationSweepOutput with totals across projects
        """
        workspace_id = input_data.workspace_id
        try:
            if input_data.project_id:
                project_ids = [input_data.project_id]
            else:
                project_ids = await self._store.list_project_ids(workspace_id)

            summaries = archived = 0
            project_errors: list[str] = []
            for project_id in project_ids:
                result = await self._summarizer.check_and_summarize(project_id, workspace_id)
                summaries += result.summaries_created
                archived += result.episodes_archived
                project_errors.extend(f"{project_id}: {error}" for error in result.errors)

            logger.info(
                "summarization_sweep_completed",
                workspace_id=workspace_id,
                projects_checked=len(project_ids),
                summaries_created=summaries,
                episodes_archived=archived,
                errors=len(project_errors),
            )
            return SummarizationSweepOutput(
                workspace_id=workspace_id,
                projects_checked=len(project_ids),
                summaries_created=summaries,
                episodes_archived=archived,
                success=not project_errors,
                project_errors=project_errors,
            )

        except Exception as e:
            logger.error(
                "summarization_sweep_failed",
                workspace_id=workspace_id,
                error=str(e),
            )
            return SummarizationSweepOutput(
                workspace_id=workspace_id,
                projects_checked=0,
                summaries_created=0,
                episodes_archived=0,
                success=False,
                error=str(e),
            )


def register_workflow(
    hatchet: Any, store: EpisodeStore, summarizer: MemorySummarizer
) -> Any:
    """Register the summarization sweep with Hatchet.

    Args:
        hatchet: Hatchet SDK instance
        store: Episode store
        summarizer: Consolidation engine

    Returns:
        Registered workflow
    """
    workflow_instance = SummarizationSweepWorkflow(store, summarizer)

    @hatchet.workflow(
        name=SummarizationSweepWorkflow.WORKFLOW_NAME,
        on_crons=[SummarizationSweepWorkflow.CRON_SCHEDULE],
    )
    class HatchetSummarizationSweepWorkflow:
        """Hatchet workflow wrapper for the summarization sweep."""

        @hatchet.step(retries=3, retry_delay="120s")
        async def sweep(self, context: Any) -> dict:
            input_data = context.workflow_input() or {}
            result = await workflow_instance.run(
                SummarizationSweepInput(
                    workspace_id=input_data["workspace_id"],
                    project_id=input_data.get("project_id"),
                )
            )
            return {
                "workspace_id": result.workspace_id,
                "projects_checked": result.projects_checked,
                "summaries_created": result.summaries_created,
                "episodes_archived": result.episodes_archived,
                "success": result.success,
                "error": result.error,
            }

    return HatchetSummarizationSweepWorkflow
