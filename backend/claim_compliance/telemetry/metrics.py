"""
Prometheus metrics for validation runs, batches and the monitoring layer.

Exposition (HTTP endpoint, push gateway) is the host application's concern.
"""

from prometheus_client import Counter, Histogram

# ── Validation metrics ───────────────────────────────────────────────────────

claim_validations_total = Counter(
    "claim_validations_total",
    "Total claim validations",
    ["overall_status"],
)

claim_validation_duration_seconds = Histogram(
    "claim_validation_duration_seconds",
    "Claim validation duration in seconds",
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5),
)

category_results_total = Counter(
    "category_results_total",
    "Category validator outcomes",
    ["category", "status"],
)

validator_errors_total = Counter(
    "validator_errors_total",
    "Category validators that raised instead of returning a result",
    ["category"],
)

# ── Batch metrics ────────────────────────────────────────────────────────────

batch_size_claims = Histogram(
    "batch_size_claims",
    "Number of claims per batch validation",
    buckets=(1, 10, 50, 100, 500, 1000, 5000),
)

batch_claim_failures_total = Counter(
    "batch_claim_failures_total",
    "Claims in a batch that could not be validated",
)

# ── Monitoring metrics ───────────────────────────────────────────────────────

compliance_alerts_total = Counter(
    "compliance_alerts_total",
    "Compliance alerts raised",
    ["severity"],
)
