"""Prometheus metrics for Chronicle."""

from prometheus_client import Counter, Histogram

# Ingestion
EPISODES_INGESTED = Counter(
    "chronicle_episodes_ingested_total",
    "Episodes written to the graph store",
    labelnames=["episode_type"],
)

DEDUP_OUTCOMES = Counter(
    "chronicle_dedup_outcomes_total",
    "Deduplication decisions on candidate episodes",
    labelnames=["outcome"],  # accepted | flagged | duplicate
)

# Retrieval
QUERY_LATENCY = Histogram(
    "chronicle_query_latency_seconds",
    "Relevance query latency in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

CONTEXT_MEMORIES = Histogram(
    "chronicle_context_memories",
    "Episodes included in an assembled agent context",
    labelnames=["agent_type"],
    buckets=(0, 1, 2, 5, 10, 20, 50),
)

# Consolidation
SUMMARIZATION_RUNS = Counter(
    "chronicle_summarization_runs_total",
    "Summarization runs by outcome",
    labelnames=["outcome"],  # skipped | completed | partial
)

EPISODES_ARCHIVED = Counter(
    "chronicle_episodes_archived_total",
    "Episodes archived into monthly summaries",
)

# Retention
LIFECYCLE_ARCHIVED = Counter(
    "chronicle_lifecycle_archived_total",
    "Episodes archived by retention policy",
    labelnames=["reason"],  # age | cap
)

# Pattern mining
PATTERN_DETECTION_RUNS = Counter(
    "chronicle_pattern_detection_runs_total",
    "Pattern detection runs by outcome",
    labelnames=["outcome"],  # noop | completed | truncated | failed
)

PATTERN_COMPARISONS = Histogram(
    "chronicle_pattern_comparisons",
    "Pairwise episode comparisons per detection run",
    buckets=(0, 100, 1000, 5000, 10000, 25000, 50000, 100000),
)

# Degradation
DEGRADED_OPERATIONS = Counter(
    "chronicle_degraded_operations_total",
    "Operations that failed open and returned a fallback",
    labelnames=["operation", "error_kind"],
)
