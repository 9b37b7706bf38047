"""
Rate Limiting / Throttling for the editorial API.

Custom DRF throttle classes for different endpoint types.

Usage in views:
    from apps.core.throttling import StateChangeThrottle

    class PublishArticleView(APIView):
        throttle_classes = [BurstThrottle, StateChangeThrottle]

Rates come from REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']; each class carries a
fallback rate for when its scope is missing there.
"""

import logging

from django.core.exceptions import ImproperlyConfigured
from rest_framework.throttling import UserRateThrottle

logger = logging.getLogger(__name__)


class ScopedDefaultThrottle(UserRateThrottle):
    """User throttle that falls back to ``default_rate`` when settings omit the scope."""

    default_rate = None

    def get_rate(self):
        try:
            return super().get_rate()
        except ImproperlyConfigured:
            return self.default_rate


class BurstThrottle(ScopedDefaultThrottle):
    """
    Burst throttle to prevent rapid-fire requests.

    Default: 100 requests/minute
    """
    scope = 'burst'
    default_rate = '100/minute'


class StateChangeThrottle(ScopedDefaultThrottle):
    """
    Throttle for workflow transitions and other state-changing operations.

    Applies to:
    - POST /api/admin/article-review/submit/
    - POST /api/admin/article-review/{id}/review/
    - POST /api/admin/article-review/{id}/publish/
    - POST /api/admin/versions/{id}/restore/

    Default: 30 requests/minute
    """
    scope = 'state_change'
    default_rate = '30/minute'


class DestructiveActionThrottle(ScopedDefaultThrottle):
    """
    Throttle for destructive actions (comment deletion, version cleanup).

    Default: 20 requests/minute
    """
    scope = 'destructive'
    default_rate = '20/minute'
