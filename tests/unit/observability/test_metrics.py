"""Tests for Prometheus metrics."""

from prometheus_client import REGISTRY

from chronicle.observability.metrics import (
    DEDUP_OUTCOMES,
    DEGRADED_OPERATIONS,
    EPISODES_INGESTED,
    QUERY_LATENCY,
)


class TestMetrics:
    def test_counter_increments(self) -> None:
        before = REGISTRY.get_sample_value(
            "chronicle_dedup_outcomes_total", {"outcome": "flagged"}
        ) or 0.0

        DEDUP_OUTCOMES.labels(outcome="flagged").inc()

        after = REGISTRY.get_sample_value(
            "chronicle_dedup_outcomes_total", {"outcome": "flagged"}
        )
        assert after == before + 1

    def test_labelled_metrics_accept_labels(self) -> None:
        EPISODES_INGESTED.labels(episode_type="decision").inc()
        DEGRADED_OPERATIONS.labels(operation="memory_query_failed", error_kind="store").inc()

    def test_histogram_observe(self) -> None:
        QUERY_LATENCY.observe(0.01)
        assert REGISTRY.get_sample_value("chronicle_query_latency_seconds_count") >= 1
