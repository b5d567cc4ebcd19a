"""Pattern detection workflow.

Scheduled job that mines patterns recurring across the projects of a
workspace. Runs weekly by default.
"""

from dataclasses import dataclass
from typing import Any

from chronicle.memory.patterns.engine import CrossProjectPatternEngine
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DetectPatternsInput:
    """Input for pattern detection workflow."""

    workspace_id: str


@dataclass
class DetectPatternsOutput:
    """Output from pattern detection workflow."""

    workspace_id: str
    new_patterns: int
    updated_patterns: int
    total_patterns: int
    success: bool
    error: str | None = None


class PatternDetectionWorkflow:
    """Workflow to detect cross-project patterns.

    Idempotent: a rerun merges into patterns it already created.
    """

    WORKFLOW_NAME = "memory-pattern-detection"
    CRON_SCHEDULE = "0 4 * * 0"  # Sundays at 4 AM UTC

    def __init__(self, engine: CrossProjectPatternEngine) -> None:
        self._engine = engine

    async def run(self, input_data: DetectPatternsInput) -> DetectPatternsOutput:
        workspace_id = input_data.workspace_id
        try:
            result = await self._engine.detect_patterns(workspace_id)
        except Exception as e:
            logger.error(
                "pattern_detection_workflow_failed",
                workspace_id=workspace_id,
                error=str(e),
            )
            return DetectPatternsOutput(
                workspace_id=workspace_id,
                new_patterns=0,
                updated_patterns=0,
                total_patterns=0,
                success=False,
                error=str(e),
            )

        return DetectPatternsOutput(
            workspace_id=workspace_id,
            new_patterns=result.new_patterns,
            updated_patterns=result.updated_patterns,
            total_patterns=result.total_patterns,
            success=not result.errors,
            error="; ".join(result.errors) or None,
        )


def register_workflow(hatchet: Any, engine: CrossProjectPatternEngine) -> Any:
    """Register the pattern detection workflow with Hatchet.

    Args:
        hatchet: Hatchet SDK instance
        engine: Pattern engine

    Returns:
        Registered workflow
    """
    workflow_instance = PatternDetectionWorkflow(engine)

    @hatchet.workflow(
        name=PatternDetectionWorkflow.WORKFLOW_NAME,
        on_crons=[PatternDetectionWorkflow.CRON_SCHEDULE],
    )
    class HatchetPatternDetectionWorkflow:
        """Hatchet workflow wrapper for pattern detection."""

        @hatchet.step(retries=3, retry_delay="120s")
        async def detect_patterns(self, context: Any) -> dict:
            input_data = context.workflow_input() or {}
            result = await workflow_instance.run(
                DetectPatternsInput(workspace_id=input_data["workspace_id"])
            )
            return {
                "workspace_id": result.workspace_id,
                "new_patterns": result.new_patterns,
                "updated_patterns": result.updated_patterns,
                "total_patterns": result.total_patterns,
                "success": result.success,
                "error": result.error,
            }

    return HatchetPatternDetectionWorkflow
