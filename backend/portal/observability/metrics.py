"""Prometheus metrics for the portal backend.

Labels never include org or user ids to keep cardinality bounded.
"""

from prometheus_client import Counter, Histogram

# Route labels use the path template (/orgs/{org_id}/...), never the raw path
http_requests_total = Counter(
    "portal_http_requests_total",
    "Total HTTP requests handled",
    ["method", "route", "status"]
)

http_request_duration_seconds = Histogram(
    "portal_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "route"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# Access verification
access_decisions_total = Counter(
    "portal_access_decisions_total",
    "Workspace access decisions",
    ["outcome", "required_role"]  # outcome: allowed|unauthenticated|not_a_member|...
)

# Deliverable workflow
deliverable_transitions_total = Counter(
    "portal_deliverable_transitions_total",
    "Deliverable status transition attempts",
    ["from_status", "to_status", "result"]  # result: applied|rejected
)

uploads_total = Counter(
    "portal_uploads_total",
    "Files uploaded to object storage",
    ["kind", "status"]  # kind: deliverable_asset|signature, status: success|error
)

upload_size_bytes = Histogram(
    "portal_upload_size_bytes",
    "Size of accepted uploads in bytes",
    buckets=[10_000, 100_000, 500_000, 1_000_000, 2_500_000, 5_000_000, 10_000_000]
)

# Org provisioning
org_provisioning_total = Counter(
    "portal_org_provisioning_total",
    "Resolve-or-provision calls",
    ["result"]  # result: existing|created|failed
)

# Reports
reports_generated_total = Counter(
    "portal_reports_generated_total",
    "Reports generated",
    ["tier"]
)

report_generation_seconds = Histogram(
    "portal_report_generation_seconds",
    "Time spent generating a report in seconds",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Messaging
messages_sent_total = Counter(
    "portal_messages_sent_total",
    "Messages posted to org conversations",
    ["author_role"]  # author_role: agency|client
)
