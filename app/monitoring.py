"""
Monitoring and metrics collection using Prometheus.
"""
from prometheus_client import Counter, generate_latest, REGISTRY


# Metrics
meeting_cache_lookups_total = Counter(
    'meeting_cache_lookups_total',
    'Read-through lookups of a meeting by external id',
    ['result']  # hit, miss
)

cache_write_failures_total = Counter(
    'cache_write_failures_total',
    'Fetched transcripts that could not be cached',
    ['error_type']
)

upstream_requests_total = Counter(
    'upstream_requests_total',
    'Total number of upstream API requests made',
    ['service', 'operation', 'status']
)

meeting_syncs_total = Counter(
    'meeting_syncs_total',
    'Upserts by external id',
    ['source', 'status']  # source: sync, client
)

artifact_saves_total = Counter(
    'artifact_saves_total',
    'Artifact sets attached to meetings',
    ['status']
)


def get_metrics() -> bytes:
    """
    Get current metrics in Prometheus format.

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def record_upstream_request(service: str, operation: str, status: str) -> None:
    upstream_requests_total.labels(service=service, operation=operation, status=status).inc()
