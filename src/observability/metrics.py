"""Prometheus metric definitions for incident assistant self-instrumentation.

All metrics are module-level singletons registered with the default
prometheus_client registry.  Import them wherever instrumentation is needed.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# ---------------------------------------------------------------------------
# Histogram bucket definitions
# ---------------------------------------------------------------------------

REQUEST_DURATION_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0)
TOOL_DURATION_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 15.0)

# ---------------------------------------------------------------------------
# Request-level metrics
# ---------------------------------------------------------------------------

REQUEST_DURATION = Histogram(
    "incident_assistant_request_duration_seconds",
    "End-to-end request duration in seconds",
    labelnames=["endpoint"],
    buckets=REQUEST_DURATION_BUCKETS,
)

REQUESTS_TOTAL = Counter(
    "incident_assistant_requests_total",
    "Total number of requests",
    labelnames=["endpoint", "status"],
)

REQUESTS_IN_PROGRESS = Gauge(
    "incident_assistant_requests_in_progress",
    "Number of requests currently being processed",
    labelnames=["endpoint"],
)

# ---------------------------------------------------------------------------
# Routing metrics
# ---------------------------------------------------------------------------

DIRECT_HITS_TOTAL = Counter(
    "incident_assistant_direct_hits_total",
    "Messages answered by the direct intent router, by intent",
    labelnames=["intent"],
)

FALLBACK_TOTAL = Counter(
    "incident_assistant_fallback_total",
    "Messages handed to the conversational fallback",
    labelnames=["status"],
)

ACTIVE_SESSIONS = Gauge(
    "incident_assistant_active_sessions",
    "Number of conversation histories held in memory",
)

# ---------------------------------------------------------------------------
# Incident cache metrics
# ---------------------------------------------------------------------------

CACHE_REFRESHES_TOTAL = Counter(
    "incident_assistant_cache_refreshes_total",
    "Incident cache refresh attempts",
    labelnames=["status"],
)

CACHE_HITS_TOTAL = Counter(
    "incident_assistant_cache_hits_total",
    "Incident lookups served from the cached snapshot without I/O",
)

CACHE_RECORDS = Gauge(
    "incident_assistant_cache_records",
    "Number of incident records in the current cache snapshot",
)

# ---------------------------------------------------------------------------
# Tool-call metrics (populated by callback handler)
# ---------------------------------------------------------------------------

TOOL_CALL_DURATION = Histogram(
    "incident_assistant_tool_call_duration_seconds",
    "Duration of individual tool calls in seconds",
    labelnames=["tool_name"],
    buckets=TOOL_DURATION_BUCKETS,
)

TOOL_CALLS_TOTAL = Counter(
    "incident_assistant_tool_calls_total",
    "Total number of tool calls",
    labelnames=["tool_name", "status"],
)

# ---------------------------------------------------------------------------
# LLM metrics (populated by callback handler)
# ---------------------------------------------------------------------------

LLM_CALLS_TOTAL = Counter(
    "incident_assistant_llm_calls_total",
    "Total number of LLM calls",
    labelnames=["status"],
)

LLM_TOKEN_USAGE = Counter(
    "incident_assistant_llm_token_usage",
    "Total LLM token usage",
    labelnames=["type"],
)

# ---------------------------------------------------------------------------
# Health / info metrics
# ---------------------------------------------------------------------------

COMPONENT_HEALTHY = Gauge(
    "incident_assistant_component_healthy",
    "Whether a dependency component is healthy (1=healthy, 0=unhealthy)",
    labelnames=["component"],
)

APP_INFO = Info(
    "incident_assistant",
    "Incident assistant build information",
)
