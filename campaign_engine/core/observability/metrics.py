"""
Prometheus Metrics

Provides application metrics for monitoring.

Metrics:
    - HTTP request counters and histograms
    - Campaign lifecycle (created, started, completed, sending)
    - Delivery records created and dispatch fan-out size
    - Receipts recorded by outcome and receipts dropped

Usage:
    from campaign_engine.core.observability.metrics import (
        record_campaign_created,
        record_receipt,
    )

    record_campaign_created()
    record_receipt("SENT")
"""

from prometheus_client import Counter, Histogram, Gauge


# HTTP Metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
)

# Campaign Metrics
campaigns_created_total = Counter(
    'campaigns_created_total',
    'Total campaigns created',
)

campaigns_started_total = Counter(
    'campaigns_started_total',
    'Total campaigns dispatched',
)

campaigns_completed_total = Counter(
    'campaigns_completed_total',
    'Total campaigns completed',
)

campaigns_sending = Gauge(
    'campaigns_sending',
    'Number of campaigns currently waiting for receipts',
)

# Delivery Metrics
delivery_records_created_total = Counter(
    'delivery_records_created_total',
    'Total delivery records created',
)

dispatch_fanout_size = Histogram(
    'dispatch_fanout_size',
    'Recipients per campaign dispatch',
    buckets=(0, 1, 10, 50, 100, 500, 1000, 5000, 10000, 50000),
)

receipts_recorded_total = Counter(
    'receipts_recorded_total',
    'Total vendor receipts applied to delivery records',
    ['outcome'],
)

receipts_dropped_total = Counter(
    'receipts_dropped_total',
    'Total vendor receipts that changed nothing',
    ['reason'],
)


def record_http_request(method: str, endpoint: str, status: int, duration: float):
    """
    Record HTTP request metrics

    Args:
        method: HTTP method
        endpoint: Request endpoint
        status: Response status code
        duration: Request duration in seconds
    """
    http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status=status,
    ).inc()

    http_request_duration_seconds.labels(
        method=method,
        endpoint=endpoint,
    ).observe(duration)


def record_campaign_created():
    """Record campaign creation"""
    campaigns_created_total.inc()


def record_campaign_started(recipients: int):
    """
    Record campaign dispatch

    Args:
        recipients: Number of delivery records created
    """
    campaigns_started_total.inc()
    campaigns_sending.inc()
    delivery_records_created_total.inc(recipients)
    dispatch_fanout_size.observe(recipients)


def record_campaign_completed():
    """Record the single SENDING -> COMPLETED transition"""
    campaigns_completed_total.inc()
    campaigns_sending.dec()


def record_receipt(outcome: str):
    """Record a receipt that settled a delivery record"""
    receipts_recorded_total.labels(outcome=outcome).inc()


def record_receipt_dropped(reason: str):
    """
    Record a receipt that changed nothing

    Args:
        reason: "unknown" or "duplicate"
    """
    receipts_dropped_total.labels(reason=reason).inc()
