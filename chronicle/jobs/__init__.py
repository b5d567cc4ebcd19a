"""Background sweep jobs.

Summarization, pattern detection and retention run on a schedule, outside
request handling. Workflows are plain classes with a `run` coroutine and can be
registered with a Hatchet instance via each module's `register_workflow`.

Usage:
    from chronicle.jobs.workflows import PatternDetectionWorkflow

    workflow = PatternDetectionWorkflow(engine.patterns)
    output = await workflow.run(DetectPatternsInput(workspace_id="ws-1"))
"""
