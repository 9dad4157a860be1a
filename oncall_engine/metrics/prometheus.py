# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "oncall_requests_total",
    "Total HTTP requests to on-call service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "oncall_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "oncall_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
RESOLUTIONS_TOTAL = Counter(
    "oncall_resolutions_total",
    "On-call resolutions by outcome",
    ["source"],
)
RESOLUTION_LATENCY = Histogram(
    "oncall_resolution_duration_seconds",
    "Time to snapshot and resolve one schedule",
    buckets=[0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1],
)
INVALID_TIMEZONE_ERRORS = Counter(
    "oncall_invalid_timezone_total",
    "Resolutions aborted because the schedule zone is unknown",
)
SCHEDULES_CREATED = Counter(
    "oncall_schedules_created_total",
    "Total schedules created",
)
ACTIVE_SCHEDULES = Gauge(
    "oncall_active_schedules",
    "Number of on-call schedules",
)
OVERRIDES_TOTAL = Gauge(
    "oncall_overrides_total",
    "Number of stored overrides, past and future",
)
