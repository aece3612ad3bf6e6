"""Prometheus metrics for the Gemini gateway"""
from prometheus_client import Counter, Histogram, Gauge, Info

# Request metrics
REQUEST_COUNT = Counter(
    'gemini_gateway_requests_total',
    'Total number of requests',
    ['method', 'endpoint', 'model', 'status_code']
)

REQUEST_DURATION = Histogram(
    'gemini_gateway_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint', 'model'],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, float('inf'))
)

ACTIVE_REQUESTS = Gauge(
    'gemini_gateway_active_requests',
    'Number of active requests',
    ['endpoint']
)

# Token usage metrics
TOKEN_USAGE = Counter(
    'gemini_gateway_tokens_total',
    'Total number of tokens reported by the upstream model',
    ['model', 'token_type']
)

# Streaming metrics
STREAM_FRAMES = Counter(
    'gemini_gateway_stream_frames_total',
    'Number of SSE frames written to clients',
    ['protocol']
)

DROPPED_CHUNKS = Counter(
    'gemini_gateway_dropped_chunks_total',
    'Upstream chunks dropped because they matched no known event shape',
    ['kind']
)

CLIENT_DISCONNECTS = Counter(
    'gemini_gateway_client_disconnects_total',
    'Streams stopped because the client went away',
    ['protocol']
)

UPSTREAM_ERRORS = Counter(
    'gemini_gateway_upstream_errors_total',
    'Errors returned by the Gemini API',
    ['status_code']
)

# Application info
APP_INFO = Info('gemini_gateway_app', 'Application information')
