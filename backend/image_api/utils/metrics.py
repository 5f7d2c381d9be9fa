"""
Prometheus metrics definitions for the API.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Upload metrics
image_uploads_total = Counter(
    'image_uploads_total',
    'Total image upload attempts',
    ['mode', 'status']  # mode: direct/presigned, status: success/rejected/failed
)

# Image provider metrics
provider_requests_total = Counter(
    'provider_requests_total',
    'Total image provider requests',
    ['operation']
)

provider_failures_total = Counter(
    'provider_failures_total',
    'Total image provider failures',
    ['operation']
)

provider_latency_seconds = Histogram(
    'provider_latency_seconds',
    'Image provider request latency in seconds',
    ['operation'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Metadata store metrics
persistence_failures_total = Counter(
    'persistence_failures_total',
    'Metadata store failures that were logged and not surfaced',
    ['operation']
)
