"""Retention lifecycle workflow.

Scheduled job that applies a workspace's retention policy: age-based
archival, then per-project caps. Runs weekly by default.
"""

from dataclasses import dataclass
from typing import Any

from chronicle.memory.lifecycle import MemoryLifecycleManager
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LifecycleInput:
    """Input for lifecycle workflow."""

    workspace_id: str


@dataclass
class LifecycleOutput:
    """Output from lifecycle workflow."""

    workspace_id: str
    archived_by_age: int
    archived_by_cap: int
    success: bool
    error: str | None = None


class LifecycleWorkflow:
    """Workflow to archive episodes the retention policy no longer keeps.

    Idempotent: archived episodes are never selected again.
    """

    WORKFLOW_NAME = "memory-lifecycle"
    CRON_SCHEDULE = "0 3 * * 6"  # Saturdays at 3 AM UTC

    def __init__(self, manager: MemoryLifecycleManager) -> None:
        self._manager = manager

    async def run(self, input_data: LifecycleInput) -> LifecycleOutput:
        workspace_id = input_data.workspace_id
        try:
            result = await self._manager.run_lifecycle(workspace_id)
        except Exception as e:
            logger.error(
                "lifecycle_workflow_failed",
                workspace_id=workspace_id,
                error=str(e),
            )
            return LifecycleOutput(
                workspace_id=workspace_id,
                archived_by_age=0,
                archived_by_cap=0,
                success=False,
                error=str(e),
            )

        return LifecycleOutput(
            workspace_id=workspace_id,
            archived_by_age=result.archived_by_age,
            archived_by_cap=result.archived_by_cap,
            success=not result.errors,
            error="; ".join(result.errors) or None,
        )


def register_workflow(hatchet: Any, manager: MemoryLifecycleManager) -> Any:
    """Register the lifecycle workflow with Hatchet.

    Args:
        hatchet: Hatchet SDK instance
        manager: Lifecycle manager

    Returns:
        Registered workflow
    """
    workflow_instance = LifecycleWorkflow(manager)

    @hatchet.workflow(
        name=LifecycleWorkflow.WORKFLOW_NAME,
        on_crons=[LifecycleWorkflow.CRON_SCHEDULE],
    )
    class HatchetLifecycleWorkflow:
        """Hatchet workflow wrapper for the retention lifecycle."""

        @hatchet.step(retries=3, retry_delay="120s")
        async def run_lifecycle(self, context: Any) -> dict:
            input_data = context.workflow_input() or {}
            result = await workflow_instance.run(
                LifecycleInput(workspace_id=input_data["workspace_id"])
            )
            return {
                "workspace_id": result.workspace_id,
                "archived_by_age": result.archived_by_age,
                "archived_by_cap": result.archived_by_cap,
                "success": result.success,
                "error": result.error,
            }

    return HatchetLifecycleWorkflow
