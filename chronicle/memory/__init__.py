"""Temporal agent memory: episodes, retrieval, consolidation and patterns.

Agents record episodes; the extractor turns task output into candidate
memories; the deduplicator gates ingestion; the query engine ranks episodes
for new tasks; the summarizer folds old episodes into monthly summaries;
the pattern engine mines observations shared across projects; the lifecycle
manager archives what a workspace's retention policy no longer keeps.
"""
