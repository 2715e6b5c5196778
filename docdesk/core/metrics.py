from __future__ import annotations

from prometheus_client import Counter, Histogram

BATCH_ITEMS_TOTAL = Counter(
    "docdesk_batch_items_total",
    "Batch items processed grouped by operation and outcome",
    labelnames=("operation", "outcome"),
)

BATCH_LATENCY_SECONDS = Histogram(
    "docdesk_batch_latency_seconds",
    "End-to-end latency of a batch operation run",
    labelnames=("operation",),
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60, 120, float("inf")),
)

CHAT_REQUESTS_TOTAL = Counter(
    "docdesk_chat_requests_total",
    "Chat questions grouped by outcome (answered/failed/rejected)",
    labelnames=("outcome",),
)

DOCUMENTS_ANALYZED_TOTAL = Counter(
    "docdesk_documents_analyzed_total",
    "Documents analyzed into chat context grouped by outcome",
    labelnames=("outcome",),
)

OUTPUTS_SAVED_TOTAL = Counter(
    "docdesk_outputs_saved_total",
    "Output artifacts pushed to a download store",
    labelnames=("media_type",),
)


def record_batch_item(*, operation: str, outcome: str) -> None:
    BATCH_ITEMS_TOTAL.labels(operation=operation, outcome=outcome).inc()


def observe_batch_latency(*, operation: str, latency: float) -> None:
    BATCH_LATENCY_SECONDS.labels(operation=operation).observe(max(0.0, latency))


def record_chat_request(*, outcome: str) -> None:
    CHAT_REQUESTS_TOTAL.labels(outcome=outcome).inc()


def record_document_analysis(*, outcome: str) -> None:
    DOCUMENTS_ANALYZED_TOTAL.labels(outcome=outcome).inc()


def record_output_saved(*, media_type: str) -> None:
    OUTPUTS_SAVED_TOTAL.labels(media_type=media_type).inc()
