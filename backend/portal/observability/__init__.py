"""Observability: structured logging, request context, metrics, health."""

from .context import RequestContext, bind_workspace, get_request_context, get_request_id, start_request
from .logging_config import configure_logging, get_logger
from .metrics import (
    access_decisions_total,
    deliverable_transitions_total,
    http_request_duration_seconds,
    http_requests_total,
    messages_sent_total,
    org_provisioning_total,
    report_generation_seconds,
    reports_generated_total,
    upload_size_bytes,
    uploads_total,
)
from .middleware import RequestIDMiddleware

__all__ = [
    "configure_logging",
    "get_logger",
    "RequestContext",
    "bind_workspace",
    "get_request_context",
    "get_request_id",
    "start_request",
    "access_decisions_total",
    "deliverable_transitions_total",
    "http_request_duration_seconds",
    "http_requests_total",
    "messages_sent_total",
    "org_provisioning_total",
    "report_generation_seconds",
    "reports_generated_total",
    "upload_size_bytes",
    "uploads_total",
    "RequestIDMiddleware",
]
