from prometheus_client import Counter

WORKFLOW_TRANSITIONS = Counter(
    "document_control_transitions_total",
    "Committed lifecycle operations",
    ["entity_type", "action"],
)

WORKFLOW_FAILURES = Counter(
    "document_control_failures_total",
    "Requests rejected with a typed lifecycle error",
    ["code"],
)

OVERDUE_REVIEW_TRIGGERS = Counter(
    "document_control_overdue_review_triggers_total",
    "Results of the overdue review batch",
    ["result"],
)
