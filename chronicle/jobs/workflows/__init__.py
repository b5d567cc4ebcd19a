"""Workflow definitions.

- SummarizationSweepWorkflow: Consolidates old episodes per project
- PatternDetectionWorkflow: Mines cross-project patterns per workspace
- LifecycleWorkflow: Applies a workspace's retention policy
"""

from chronicle.jobs.workflows.lifecycle import (
    LifecycleInput,
    LifecycleOutput,
    LifecycleWorkflow,
)
from chronicle.jobs.workflows.pattern_detection import (
    DetectPatternsInput,
    DetectPatternsOutput,
    PatternDetectionWorkflow,
)
from chronicle.jobs.workflows.summarization import (
    SummarizationSweepInput,
    SummarizationSweepOutput,
    SummarizationSweepWorkflow,
)

__all__ = [
    "DetectPatternsInput",
    "DetectPatternsOutput",
    "LifecycleInput",
    "LifecycleOutput",
    "LifecycleWorkflow",
    "PatternDetectionWorkflow",
    "SummarizationSweepInput",
    "SummarizationSweepOutput",
    "SummarizationSweepWorkflow",
]
