"""Prometheus metrics for BuildTrack.

Counters for the document-transition protocol: status transitions, blob
relocations and the two cleanup paths that follow commit or abort.
"""

from prometheus_client import Counter, Histogram, Gauge

workflow_transitions_total = Counter(
    "buildtrack_workflow_transitions_total",
    "Total status transitions applied by approval state machines",
    ["machine", "from_status", "to_status"]
)

workflow_transition_rejections_total = Counter(
    "buildtrack_workflow_transition_rejections_total",
    "Status transitions refused (not in table, forbidden or guard failed)",
    ["machine", "reason"]  # reason: invalid|forbidden|guard
)

blob_relocations_total = Counter(
    "buildtrack_blob_relocations_total",
    "Staged files copied to permanent keys",
    ["status"]  # status: success|error
)

blob_compensations_total = Counter(
    "buildtrack_blob_compensations_total",
    "Permanent copies deleted after a transaction abort",
    ["status"]  # status: success|error
)

blob_finalize_failures_total = Counter(
    "buildtrack_blob_finalize_failures_total",
    "Staged originals that could not be deleted after commit"
)

transactions_total = Counter(
    "buildtrack_transactions_total",
    "Units of work run by the transaction coordinator",
    ["outcome"]  # outcome: committed|aborted
)

transaction_duration_seconds = Histogram(
    "buildtrack_transaction_duration_seconds",
    "Wall time of coordinated units of work in seconds",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

websocket_connections = Gauge(
    "buildtrack_websocket_connections",
    "Currently connected real-time users"
)
