"""
Request correlation for the editorial back office.

Every request gets an id (the caller's ``X-Request-ID`` when it is a UUID,
a fresh one otherwise). The id is echoed in the response header and in error
bodies, stamped on log records, and travels with queued notification tasks so
a review decision can be followed from the HTTP call into the Celery worker.
"""

import logging
import threading
import uuid

from django.utils.deprecation import MiddlewareMixin

from apps.core.metrics import increment_http_request

logger = logging.getLogger(__name__)

_local = threading.local()

REQUEST_ID_META_KEY = 'HTTP_X_REQUEST_ID'
REQUEST_ID_RESPONSE_HEADER = 'X-Request-ID'
CELERY_HEADER = 'request_id'


def accept_request_id(raw):
    """Return ``raw`` if it is a well-formed UUID, else a new one."""
    if raw:
        try:
            return str(uuid.UUID(str(raw)))
        except ValueError:
            logger.debug("Discarding malformed request id %r", raw)
    return str(uuid.uuid4())


def get_request_id():
    """Current request id, or None outside a request or task."""
    return getattr(_local, 'request_id', None)


def set_request_context(request_id, user_id=None, path=None):
    _local.request_id = request_id
    _local.user_id = user_id
    _local.path = path


def clear_request_context():
    set_request_context(None)


class RequestIDMiddleware(MiddlewareMixin):
    """
    Attach ``request.request_id`` and publish it to thread-local context.

    Placed after AuthenticationMiddleware so session users are known. JWT
    users are resolved later by DRF, so their id is not recorded here.
    """

    def process_request(self, request):
        request.request_id = accept_request_id(request.META.get(REQUEST_ID_META_KEY))

        user = getattr(request, 'user', None)
        user_id = str(user.pk) if user is not None and user.is_authenticated else None

        set_request_context(request.request_id, user_id=user_id, path=request.path)

    def process_response(self, request, response):
        request_id = getattr(request, 'request_id', None)
        if request_id:
            response[REQUEST_ID_RESPONSE_HEADER] = request_id

        increment_http_request(response.status_code)
        clear_request_context()
        return response


class RequestIDFilter(logging.Filter):
    """Stamp ``record.request_id`` ('-' outside a request) for the log format."""

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        return True


def celery_request_id_headers():
    """Task headers carrying the current request id, empty outside a request."""
    request_id = get_request_id()
    return {CELERY_HEADER: request_id} if request_id else {}


def setup_celery_request_context(headers):
    """Restore the request id inside a worker from the task's headers."""
    set_request_context(accept_request_id((headers or {}).get(CELERY_HEADER)))
