"""
Prometheus Metrics for the editorial back office.

Metrics included:
- safra_editorial_transitions_total: Counter of committed workflow transitions
- safra_editorial_transition_rejections_total: Counter of refused transitions
- safra_editorial_transition_duration_seconds: Histogram per workflow operation
- safra_editorial_notifications_total: Counter of notification deliveries
- safra_http_requests_total: Counter for HTTP requests by status class

Cardinality Guidelines:
- All labels MUST be low-cardinality (small, bounded set of values)
- ALLOWED label values: article statuses, operation names, error codes
- FORBIDDEN label values: article IDs, user IDs, titles
- If per-article detail is needed, use logging instead

Usage:
    from apps.core.metrics import increment_transition, observe_transition_duration

    with observe_transition_duration('review'):
        ...
    increment_transition('pending_review', 'approved')
"""

import time
from contextlib import contextmanager
import logging

from django.http import HttpResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

transitions_total = Counter(
    'safra_editorial_transitions_total',
    'Total committed editorial workflow transitions',
    ['from_status', 'to_status']
)

transition_rejections_total = Counter(
    'safra_editorial_transition_rejections_total',
    'Total refused editorial workflow operations',
    ['operation', 'reason']  # reason: error code (INVALID_TRANSITION, NOT_FOUND, ...)
)

transition_duration_seconds = Histogram(
    'safra_editorial_transition_duration_seconds',
    'Time spent executing a workflow operation',
    ['operation'],  # operation: submit/review/publish
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

notifications_total = Counter(
    'safra_editorial_notifications_total',
    'Total editorial notifications handled',
    ['type', 'status']  # type: article_submitted/article_reviewed, status: logged/emailed/error
)

http_requests_total = Counter(
    'safra_http_requests_total',
    'Total HTTP requests to the editorial API',
    ['status_class']
)


# ============================================================================
# Helper Functions
# ============================================================================

def increment_transition(from_status, to_status):
    """Count a committed transition."""
    transitions_total.labels(from_status=from_status, to_status=to_status).inc()


def increment_transition_rejection(operation, reason):
    """Count a refused operation."""
    transition_rejections_total.labels(operation=operation, reason=reason).inc()


def increment_notification(notification_type, status='logged'):
    """Count a notification delivery attempt."""
    notifications_total.labels(type=notification_type, status=status).inc()


def _status_code_to_class(status_code) -> str:
    """Convert status code to class label (2xx, 3xx, etc.)."""
    try:
        code = int(status_code)
    except (ValueError, TypeError):
        return 'error'
    if 200 <= code < 300:
        return '2xx'
    elif 300 <= code < 400:
        return '3xx'
    elif 400 <= code < 500:
        return '4xx'
    elif 500 <= code < 600:
        return '5xx'
    return 'other'


def increment_http_request(status_code):
    """Increment HTTP request counter, grouped by status class."""
    http_requests_total.labels(status_class=_status_code_to_class(status_code)).inc()


# ============================================================================
# Context Managers
# ============================================================================

@contextmanager
def observe_transition_duration(operation):
    """Context manager to time a workflow operation."""
    start = time.perf_counter()
    try:
        yield
    finally:
        transition_duration_seconds.labels(operation=operation).observe(
            time.perf_counter() - start
        )


# ============================================================================
# Metrics View
# ============================================================================

def metrics_view(request):
    """
    Django view to expose Prometheus metrics.

    Returns metrics in Prometheus text format.
    """
    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)
