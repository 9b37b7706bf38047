"""
URL patterns for core app probes, metrics, and auth endpoints.
"""

from django.urls import path

from .metrics import metrics_view
from .views import (
    LivenessView,
    ReadinessView,
    CustomTokenObtainPairView,
    CustomTokenRefreshView,
    CurrentUserView,
)

app_name = 'core'

urlpatterns = [
    # Probes
    path('livez/', LivenessView.as_view(), name='liveness'),
    path('readyz/', ReadinessView.as_view(), name='readiness'),

    # Prometheus
    path('metrics/', metrics_view, name='metrics'),
]

# Auth URLs - mounted at /api/auth/ in main urls.py
auth_urlpatterns = [
    path('login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('me/', CurrentUserView.as_view(), name='current_user'),
]
